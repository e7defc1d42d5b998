"""
Per-agent ally/rival graph and social interactions.

Each agent owns one RelationshipGraph keyed by peer id. An id is never
in both maps: adding an ally removes the rival entry and vice versa.
Perception reads the graph to flag allies/rivals in radius.
"""

import numpy as np
from typing import Dict, Iterable, List, Optional

from .constants import (
    SOCIAL_INTERACTION_CHANCE, SOCIAL_COOLDOWN_TICKS,
    SOCIAL_RECONCILE_FACTOR, RELATIONSHIP_MAX_STRENGTH
)
from .data_types import Relationship


class RelationshipGraph:
    """Sparse ally/rival maps for one agent."""

    def __init__(self):
        self.allies: Dict[int, Relationship] = {}
        self.rivals: Dict[int, Relationship] = {}
        self.last_interaction_tick: int = -SOCIAL_COOLDOWN_TICKS

    def add_ally(self, peer_id: int, strength: float, tick: int):
        self.rivals.pop(peer_id, None)
        self.allies[peer_id] = Relationship(
            strength=min(float(strength), RELATIONSHIP_MAX_STRENGTH), since=tick
        )

    def add_rival(self, peer_id: int, strength: float, tick: int):
        self.allies.pop(peer_id, None)
        self.rivals[peer_id] = Relationship(
            strength=min(float(strength), RELATIONSHIP_MAX_STRENGTH), since=tick
        )

    def is_ally(self, peer_id: int) -> bool:
        return peer_id in self.allies

    def is_rival(self, peer_id: int) -> bool:
        return peer_id in self.rivals

    def forget(self, peer_id: int):
        """Drop any relationship with peer_id."""
        self.allies.pop(peer_id, None)
        self.rivals.pop(peer_id, None)

    def prune(self, alive_ids: Iterable[int]) -> int:
        """
        Drop entries for peers that no longer exist.

        Returns:
            Number of entries removed
        """
        alive = set(alive_ids)
        stale = [pid for pid in self.allies if pid not in alive]
        stale += [pid for pid in self.rivals if pid not in alive]
        for pid in stale:
            self.forget(pid)
        return len(stale)

    def process_interactions(
        self,
        agent,
        peers: List,
        rng: np.random.Generator,
        tick: int
    ) -> Optional[str]:
        """
        Maybe interact with one in-radius peer.

        With probability SOCIAL_INTERACTION_CHANCE * sociability, a random
        peer is picked: an ally is strengthened, a rival may be reconciled
        (chance sociability * SOCIAL_RECONCILE_FACTOR), and a stranger
        becomes a rival with probability aggressiveness, otherwise an ally.

        Args:
            agent: Agent owning this graph
            peers: Agents already found within perception radius
            rng: Generator handle
            tick: Current tick

        Returns:
            Interaction kind ('strengthen', 'reconcile', 'ally', 'rival')
            or None if nothing happened
        """
        if tick - self.last_interaction_tick < SOCIAL_COOLDOWN_TICKS:
            return None

        candidates = [p for p in (peers or []) if p is not agent]
        if not candidates:
            return None

        sociability = agent.genome.sociability
        if rng.random() >= SOCIAL_INTERACTION_CHANCE * sociability:
            return None

        target = candidates[int(rng.integers(len(candidates)))]
        peer_id = target.id

        if self.is_ally(peer_id):
            current = self.allies[peer_id].strength
            self.add_ally(peer_id, current + rng.uniform(0.5, 1.5), tick)
            kind = 'strengthen'
        elif self.is_rival(peer_id):
            if rng.random() >= sociability * SOCIAL_RECONCILE_FACTOR:
                return None
            self.add_ally(peer_id, 1.0, tick)
            kind = 'reconcile'
        elif rng.random() < agent.genome.aggressiveness:
            self.add_rival(peer_id, rng.uniform(1.0, 3.0), tick)
            kind = 'rival'
        else:
            self.add_ally(peer_id, rng.uniform(1.0, 3.0), tick)
            kind = 'ally'

        self.last_interaction_tick = tick
        return kind

    def to_dict(self) -> Dict:
        return {
            'allies': {str(k): [r.strength, r.since] for k, r in self.allies.items()},
            'rivals': {str(k): [r.strength, r.since] for k, r in self.rivals.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'RelationshipGraph':
        graph = cls()
        for key, (strength, since) in data.get('allies', {}).items():
            graph.allies[int(key)] = Relationship(float(strength), int(since))
        for key, (strength, since) in data.get('rivals', {}).items():
            if int(key) not in graph.allies:
                graph.rivals[int(key)] = Relationship(float(strength), int(since))
        return graph
