"""
Environment perception.

analyze() turns candidate lists (already narrowed by SpatialIndex radius
queries) into a Conditions snapshot: nearest food/mate/predator within
the agent's perception radius, ally/rival flags from the relationship
graph, and an obstacle proximity flag.

The result is always well-formed; bad input produces a neutral
Conditions rather than an exception.
"""

from typing import Iterable, List, Optional, Tuple

from .data_types import Conditions, PerceptionConfig
from .spatial import as_point, distance_2d


def _nearest(origin, candidates: Iterable, radius: float, accept=None) -> Tuple[Optional[object], Optional[float]]:
    """
    Nearest candidate within radius (first encountered wins ties).

    Returns:
        Tuple of (candidate, distance) or (None, None)
    """
    best = None
    best_dist = None
    for candidate in candidates:
        point = as_point(getattr(candidate, 'position', None))
        if point is None:
            continue
        if accept is not None and not accept(candidate):
            continue
        dist = distance_2d(origin, point)
        if dist > radius:
            continue
        if best_dist is None or dist < best_dist:
            best = candidate
            best_dist = dist
    return best, best_dist


def _as_list(items) -> List:
    if items is None:
        return []
    try:
        return list(items)
    except TypeError:
        return []


def analyze(
    agent,
    food=None,
    predators=None,
    obstacles=None,
    peers=None,
    tick: int = 0,
    config: Optional[PerceptionConfig] = None
) -> Conditions:
    """
    Build the perception snapshot for one agent.

    Args:
        agent: Observing agent
        food: Candidate food items
        predators: Candidate predators
        obstacles: Obstacles exposing collides_with(point, radius)
        peers: Candidate agents (the observer itself is skipped)
        tick: Current tick (mate detection cooldown)
        config: Perception parameters (defaults if None)

    Returns:
        Conditions (neutral if the agent has no valid position)
    """
    if config is None:
        config = PerceptionConfig()

    origin = as_point(getattr(agent, 'position', None))
    if origin is None or getattr(agent, 'genome', None) is None:
        return Conditions()

    radius = agent.genome.perception_radius(config.radius)
    conditions = Conditions()

    # Food
    target, dist = _nearest(
        origin, _as_list(food), radius,
        accept=lambda f: (getattr(f, 'nutrition', 0) or 0) > 0
    )
    if target is not None:
        conditions.food_nearby = True
        conditions.food_target = target
        conditions.food_distance = dist

    # Predators
    target, dist = _nearest(origin, _as_list(predators), radius)
    if target is not None:
        conditions.predator_nearby = True
        conditions.predator_target = target
        conditions.predator_distance = dist

    # Peers in radius (exact distance, self and dead excluded)
    nearby = []
    for peer in _as_list(peers):
        if peer is agent or getattr(peer, 'death_cause', None) is not None:
            continue
        point = as_point(getattr(peer, 'position', None))
        if point is None or distance_2d(origin, point) > radius:
            continue
        nearby.append(peer)
    conditions.nearby_peers = nearby

    graph = getattr(agent, 'relationships', None)
    if graph is not None:
        conditions.nearby_allies = [p for p in nearby if graph.is_ally(p.id)]
        conditions.nearby_rivals = [p for p in nearby if graph.is_rival(p.id)]
        conditions.allies_nearby = bool(conditions.nearby_allies)
        conditions.rivals_nearby = bool(conditions.nearby_rivals)

    # Mates: opposite sex, both above the energy threshold, detection cooldown elapsed
    last = agent.last_mate_detection_tick
    cooldown_elapsed = last is None or tick - last >= config.mate_cooldown_ticks
    if cooldown_elapsed and agent.energy > config.mate_energy:
        target, dist = _nearest(
            origin, nearby, radius,
            accept=lambda p: p.is_female != agent.is_female and p.energy > config.mate_energy
        )
        if target is not None:
            conditions.mate_nearby = True
            conditions.mate_target = target
            conditions.mate_distance = dist
            agent.last_mate_detection_tick = tick

    # Obstacles
    margin = config.obstacle_margin_factor * agent.size
    for obstacle in _as_list(obstacles):
        collides = getattr(obstacle, 'collides_with', None)
        if collides is not None and collides(origin, margin):
            conditions.obstacle_nearby = True
            break

    return conditions
