"""
Tests for perception snapshots.

Verifies:
- Nearest target per category within radius (first encountered wins ties)
- Mate detection energy threshold and cooldown
- Ally/rival flags restricted to peers in radius
- Obstacle proximity with 1.5x size margin
- Neutral, well-formed output on malformed input
"""

import numpy as np

from colony.agent import SimulationContext, spawn_agent
from colony.data_types import (
    Conditions, Food, PerceptionConfig, Predator, RectObstacle, SimulationConfig
)
from colony.genome import Genome
from colony.perception import analyze


def make_context():
    return SimulationContext.from_config(SimulationConfig())


def make_agent(ctx, x, y, is_female=True, energy=100.0):
    # curiosity 0.5 -> perception radius exactly 150, size 0.5 -> body size 20
    return spawn_agent(ctx, position=[x, y], genome=Genome(), is_female=is_female,
                       initial_energy=energy)


def test_nearest_food_within_radius():
    ctx = make_context()
    agent = make_agent(ctx, 400.0, 300.0)
    near = Food([430.0, 300.0], 20.0)
    far = Food([480.0, 300.0], 20.0)
    outside = Food([560.0, 300.0], 20.0)

    conditions = analyze(agent, food=[outside, far, near], tick=0)

    assert conditions.food_nearby
    assert conditions.food_target is near
    assert np.isclose(conditions.food_distance, 30.0)


def test_tie_keeps_first_encountered():
    ctx = make_context()
    agent = make_agent(ctx, 400.0, 300.0)
    left = Food([380.0, 300.0], 20.0)
    right = Food([420.0, 300.0], 20.0)

    assert analyze(agent, food=[left, right]).food_target is left
    assert analyze(agent, food=[right, left]).food_target is right


def test_exhausted_food_and_far_predator_ignored():
    ctx = make_context()
    agent = make_agent(ctx, 100.0, 100.0)
    empty = Food([105.0, 100.0], 0.0)
    predator = Predator([400.0, 100.0])

    conditions = analyze(agent, food=[empty], predators=[predator])

    assert not conditions.food_nearby
    assert conditions.food_target is None
    assert not conditions.predator_nearby
    assert conditions.predator_distance is None


def test_predator_detected():
    ctx = make_context()
    agent = make_agent(ctx, 100.0, 100.0)
    predator = Predator([160.0, 180.0])

    conditions = analyze(agent, predators=[predator])

    assert conditions.predator_nearby
    assert conditions.predator_target is predator
    assert np.isclose(conditions.predator_distance, 100.0)


def test_mate_detection_requires_energy_and_opposite_sex():
    ctx = make_context()
    config = PerceptionConfig()
    agent = make_agent(ctx, 200.0, 200.0, is_female=True, energy=90.0)
    same_sex = make_agent(ctx, 210.0, 200.0, is_female=True, energy=90.0)
    tired = make_agent(ctx, 205.0, 200.0, is_female=False, energy=50.0)
    partner = make_agent(ctx, 240.0, 200.0, is_female=False, energy=90.0)

    conditions = analyze(agent, peers=[same_sex, tired, partner], tick=10, config=config)

    assert conditions.mate_nearby
    assert conditions.mate_target is partner
    assert agent.last_mate_detection_tick == 10

    # Observer below threshold sees no mates at all
    weak = make_agent(ctx, 200.0, 200.0, is_female=True, energy=40.0)
    assert not analyze(weak, peers=[partner], tick=10, config=config).mate_nearby


def test_mate_detection_cooldown():
    ctx = make_context()
    config = PerceptionConfig(mate_cooldown_ticks=300)
    agent = make_agent(ctx, 200.0, 200.0, is_female=True, energy=90.0)
    partner = make_agent(ctx, 220.0, 200.0, is_female=False, energy=90.0)

    assert analyze(agent, peers=[partner], tick=0, config=config).mate_nearby
    assert not analyze(agent, peers=[partner], tick=1, config=config).mate_nearby
    assert not analyze(agent, peers=[partner], tick=299, config=config).mate_nearby
    assert analyze(agent, peers=[partner], tick=300, config=config).mate_nearby


def test_allies_and_rivals_in_radius_only():
    ctx = make_context()
    agent = make_agent(ctx, 300.0, 300.0)
    ally = make_agent(ctx, 320.0, 300.0)
    rival = make_agent(ctx, 300.0, 340.0)
    distant_ally = make_agent(ctx, 700.0, 300.0)

    agent.relationships.add_ally(ally.id, 2.0, 0)
    agent.relationships.add_ally(distant_ally.id, 2.0, 0)
    agent.relationships.add_rival(rival.id, 2.0, 0)

    conditions = analyze(agent, peers=[agent, ally, rival, distant_ally])

    assert conditions.allies_nearby
    assert conditions.rivals_nearby
    assert conditions.nearby_allies == [ally]
    assert conditions.nearby_rivals == [rival]
    assert agent not in conditions.nearby_peers
    assert distant_ally not in conditions.nearby_peers


def test_obstacle_margin():
    """Margin is 1.5 x body size (20) = 30 units"""
    ctx = make_context()
    agent = make_agent(ctx, 100.0, 100.0)

    touching = RectObstacle(x=125.0, y=50.0, w=20.0, h=100.0)
    clear = RectObstacle(x=140.0, y=50.0, w=20.0, h=100.0)

    assert analyze(agent, obstacles=[touching]).obstacle_nearby
    assert not analyze(agent, obstacles=[clear]).obstacle_nearby
    assert analyze(agent, obstacles=[clear, touching]).obstacle_nearby


def test_malformed_input_yields_neutral_conditions():
    ctx = make_context()
    assert analyze(None) == Conditions()

    agent = make_agent(ctx, 100.0, 100.0)
    agent.position = np.array([np.nan, 100.0])
    assert analyze(agent, food=[Food([100.0, 100.0], 10.0)]) == Conditions()

    agent.position = np.array([100.0, 100.0])
    conditions = analyze(agent, food=[None, object(), Food([np.nan, 1.0], 10.0)],
                         predators=5, obstacles=None, peers=None)
    assert not conditions.food_nearby
    assert not conditions.predator_nearby
    assert conditions.nearby_peers == []
    assert conditions.food_target is None
