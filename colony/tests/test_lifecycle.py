"""
Tests for the lifecycle model: aging, resource decay, eating and death.

Verifies:
- Per-state energy costs (resting is a net gain) scaled by metabolism
- Starvation damage past the threshold
- Death conditions in order: health, old age, disease
- Resources stay within [0, 100]
"""

import numpy as np

from colony.agent import SimulationContext, spawn_agent
from colony.data_types import Food, LifecycleConfig, SimulationConfig
from colony.genome import Genome
from colony.lifecycle import DeathCause, LifecycleModel
from colony.policy import BehaviorState, TabularPolicy, Action
from colony.rng import make_rng


def make_agent(energy=100.0, metabolism=0.5, immunity=0.5, policy=None):
    ctx = SimulationContext.from_config(SimulationConfig())
    genome = Genome(metabolism=metabolism, immunity=immunity, base_lifespan=30000.0)
    return spawn_agent(ctx, position=[50.0, 50.0], genome=genome,
                       initial_energy=energy, policy=policy)


def test_tick_ages_and_decays():
    model = LifecycleModel(LifecycleConfig(health_loss_rate=0.05))
    agent = make_agent(energy=80.0)
    agent.state = BehaviorState.EXPLORING

    model.tick(agent, dt=1.0)

    assert agent.age == 1.0
    assert np.isclose(agent.health, 99.95)
    # exploring 0.05 * (0.5 + metabolism 0.5)
    assert np.isclose(agent.energy, 80.0 - 0.05)
    assert agent.ticks_since_meal == 1.0


def test_state_costs_differ_and_rest_restores():
    model = LifecycleModel()
    energies = {}
    for state in BehaviorState:
        agent = make_agent(energy=50.0, metabolism=0.5)
        agent.state = state
        model.tick(agent, dt=10.0)
        energies[state] = agent.energy

    assert energies[BehaviorState.RESTING] > 50.0
    assert energies[BehaviorState.FLEEING] < energies[BehaviorState.SEEKING_MATE]
    assert energies[BehaviorState.SEEKING_MATE] < energies[BehaviorState.SEEKING_FOOD]
    assert energies[BehaviorState.SEEKING_FOOD] < energies[BehaviorState.EXPLORING]


def test_metabolism_scales_cost():
    model = LifecycleModel()
    slow = make_agent(energy=50.0, metabolism=0.0)
    fast = make_agent(energy=50.0, metabolism=1.0)
    model.tick(slow, 10.0)
    model.tick(fast, 10.0)
    assert fast.energy < slow.energy


def test_starvation_damage():
    model = LifecycleModel(LifecycleConfig(health_loss_rate=0.0, starvation_ticks=5,
                                           starvation_damage=2.0))
    agent = make_agent()

    for _ in range(5):
        model.tick(agent)
    assert agent.health == 100.0

    model.tick(agent)
    assert np.isclose(agent.health, 98.0)


def test_resting_ticks_and_mate_cooldown():
    model = LifecycleModel()
    agent = make_agent()
    agent.mate_cooldown = 3.0
    agent.state = BehaviorState.RESTING

    model.tick(agent)
    model.tick(agent)
    assert agent.resting_ticks == 2.0
    assert agent.mate_cooldown == 1.0

    agent.state = BehaviorState.EXPLORING
    model.tick(agent)
    model.tick(agent)
    assert agent.resting_ticks == 0.0
    assert agent.mate_cooldown == 0.0


def test_death_order():
    """health <= 0 is reported before old age"""
    model = LifecycleModel()
    rng = make_rng(1)

    agent = make_agent()
    agent.health = 0.0
    agent.age = agent.lifespan + 1
    assert model.check_death(agent, rng) == DeathCause.STARVATION
    assert agent.death_cause == "starvation"
    assert agent.is_dead()

    old = make_agent()
    old.age = old.lifespan
    assert model.check_death(old, rng) == DeathCause.OLD_AGE

    healthy = make_agent()
    assert model.check_death(healthy, rng) is None
    assert not healthy.is_dead()


def test_disease_death():
    rng = make_rng(2)
    certain = LifecycleModel(LifecycleConfig(disease_death_base=1.0))
    agent = make_agent(immunity=0.0)

    assert certain.check_death(agent, rng) is None, "No infections, no disease death"

    agent.infections["Systemic Decay"] = 3.0
    assert np.isclose(certain.disease_death_chance(agent), 1.0)
    assert certain.check_death(agent, rng) == DeathCause.DISEASE

    # Immunity scales the chance down by (1 - immunity * 0.8)
    default = LifecycleModel()
    immune = make_agent(immunity=1.0)
    immune.infections["A"] = 0.0
    immune.infections["B"] = 0.0
    assert np.isclose(default.disease_death_chance(immune), 0.0001 * 2 * 0.2)


def test_resources_stay_bounded():
    model = LifecycleModel()
    rng = make_rng(3)
    states = list(BehaviorState)

    agent = make_agent(energy=99.9)
    for _ in range(2000):
        agent.state = states[int(rng.integers(len(states)))]
        model.tick(agent, dt=float(rng.uniform(0.1, 5.0)))
        assert 0.0 <= agent.health <= 100.0
        assert 0.0 <= agent.energy <= 100.0


def test_eat():
    agent = make_agent(energy=30.0)
    agent.health = 50.0
    agent.ticks_since_meal = 400.0

    assert agent.eat(Food([50.0, 50.0], 40.0))
    assert np.isclose(agent.energy, 70.0)
    assert np.isclose(agent.health, 70.0)
    assert agent.ticks_since_meal == 0.0

    agent.eat(Food([50.0, 50.0], 50.0))
    assert agent.energy == 100.0

    assert not agent.eat(None)
    assert not agent.eat(Food([50.0, 50.0], 0.0))


def test_eat_feeds_reward_to_policy():
    policy = TabularPolicy(epsilon=0.0)
    agent = make_agent(energy=30.0, policy=policy)
    rng = make_rng(4)

    policy.decide(agent, agent.last_conditions, rng)
    key = policy.state_key(agent, agent.last_conditions)
    agent.eat(Food([50.0, 50.0], 20.0), reward=2.0)

    assert policy.q_table[key][list(Action).index(Action.EXPLORE)] > 0.0


def test_disease_trial_can_be_skipped():
    """roll_disease=False only reaps health and age deaths"""
    certain = LifecycleModel(LifecycleConfig(disease_death_base=1.0))
    rng = make_rng(5)
    agent = make_agent(immunity=0.0)
    agent.infections["Systemic Decay"] = 3.0

    assert certain.check_death(agent, rng, roll_disease=False) is None
    assert agent.death_cause is None

    agent.health = 0.0
    assert certain.check_death(agent, rng, roll_disease=False) == DeathCause.STARVATION
