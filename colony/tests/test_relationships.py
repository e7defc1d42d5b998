"""
Tests for RelationshipGraph and social interactions.
"""

from types import SimpleNamespace

import numpy as np

from colony.constants import RELATIONSHIP_MAX_STRENGTH, SOCIAL_COOLDOWN_TICKS
from colony.genome import Genome
from colony.relationships import RelationshipGraph


class FixedRng:
    """Generator stand-in returning fixed draws"""
    def __init__(self, value=0.0):
        self.value = value

    def random(self):
        return self.value

    def integers(self, n):
        return 0

    def uniform(self, low, high):
        return low + (high - low) * self.value


def make_peer(peer_id, **traits):
    return SimpleNamespace(id=peer_id, genome=Genome(**traits))


def test_ally_and_rival_are_exclusive():
    graph = RelationshipGraph()
    graph.add_ally(7, 2.0, tick=1)
    assert graph.is_ally(7) and not graph.is_rival(7)

    graph.add_rival(7, 3.0, tick=2)
    assert graph.is_rival(7) and not graph.is_ally(7)

    graph.add_ally(7, 1.0, tick=3)
    assert graph.is_ally(7) and not graph.is_rival(7)
    assert graph.allies[7].since == 3


def test_strength_is_capped():
    graph = RelationshipGraph()
    graph.add_ally(1, 50.0, tick=0)
    assert graph.allies[1].strength == RELATIONSHIP_MAX_STRENGTH


def test_prune_drops_missing_peers():
    graph = RelationshipGraph()
    graph.add_ally(1, 1.0, 0)
    graph.add_rival(2, 1.0, 0)
    graph.add_ally(3, 1.0, 0)

    removed = graph.prune([1])

    assert removed == 2
    assert list(graph.allies) == [1]
    assert graph.rivals == {}


def test_stranger_becomes_ally_when_not_aggressive():
    agent = make_peer(1, sociability=1.0, aggressiveness=0.0)
    peer = make_peer(2)
    graph = RelationshipGraph()

    kind = graph.process_interactions(agent, [peer], FixedRng(0.0), tick=100)

    assert kind == 'ally'
    assert graph.is_ally(2)
    assert np.isclose(graph.allies[2].strength, 1.0)


def test_stranger_becomes_rival_when_aggressive():
    agent = make_peer(1, sociability=1.0, aggressiveness=1.0)
    graph = RelationshipGraph()

    kind = graph.process_interactions(agent, [make_peer(2)], FixedRng(0.0), tick=100)

    assert kind == 'rival'
    assert graph.is_rival(2)


def test_existing_ally_is_strengthened():
    agent = make_peer(1, sociability=1.0)
    graph = RelationshipGraph()
    graph.add_ally(2, 2.0, tick=0)

    kind = graph.process_interactions(agent, [make_peer(2)], FixedRng(0.0), tick=100)

    assert kind == 'strengthen'
    assert np.isclose(graph.allies[2].strength, 2.5)


def test_rival_reconciles():
    agent = make_peer(1, sociability=1.0)
    graph = RelationshipGraph()
    graph.add_rival(2, 3.0, tick=0)

    kind = graph.process_interactions(agent, [make_peer(2)], FixedRng(0.0), tick=100)

    assert kind == 'reconcile'
    assert graph.is_ally(2) and not graph.is_rival(2)


def test_cooldown_and_zero_sociability():
    agent = make_peer(1, sociability=1.0, aggressiveness=0.0)
    graph = RelationshipGraph()
    peers = [make_peer(2), make_peer(3)]

    assert graph.process_interactions(agent, peers, FixedRng(0.0), tick=100) is not None
    assert graph.process_interactions(agent, peers, FixedRng(0.0), tick=100 + SOCIAL_COOLDOWN_TICKS - 1) is None
    assert graph.process_interactions(agent, peers, FixedRng(0.0), tick=100 + SOCIAL_COOLDOWN_TICKS) is not None

    shy = make_peer(4, sociability=0.0)
    assert RelationshipGraph().process_interactions(shy, peers, FixedRng(0.0), tick=500) is None


def test_no_peers_no_interaction():
    agent = make_peer(1, sociability=1.0)
    graph = RelationshipGraph()
    assert graph.process_interactions(agent, [], FixedRng(0.0), tick=100) is None
    assert graph.process_interactions(agent, [agent], FixedRng(0.0), tick=100) is None
    assert graph.process_interactions(agent, None, FixedRng(0.0), tick=100) is None


def test_dict_round_trip():
    graph = RelationshipGraph()
    graph.add_ally(1, 2.0, 5)
    graph.add_rival(2, 4.0, 6)

    restored = RelationshipGraph.from_dict(graph.to_dict())

    assert restored.allies[1].strength == 2.0 and restored.allies[1].since == 5
    assert restored.rivals[2].strength == 4.0
