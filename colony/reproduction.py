"""
Sexual reproduction.

can_mate() is the compatibility test; reproduce() creates one offspring
from two compatible parents. A failed attempt returns None and leaves
both parents untouched.
"""

import numpy as np
from typing import Optional

from .agent import Agent, SimulationContext, spawn_agent
from .constants import NETWORK_MUTATION_RATE
from .data_types import ReproductionConfig
from .genome import Genome
from .policy import BehaviorState, NeuralPolicy


def can_mate(a: Agent, b: Agent, config: Optional[ReproductionConfig] = None) -> bool:
    """
    Mate compatibility test.

    Requires opposite sex, both alive and fertile (can_reproduce), both
    energies at or above the configured threshold, and both mating
    cooldowns elapsed.
    """
    if config is None:
        config = ReproductionConfig()
    if a is None or b is None or a is b:
        return False
    if a.is_female == b.is_female:
        return False
    if a.is_dead() or b.is_dead():
        return False
    if not (a.can_reproduce and b.can_reproduce):
        return False
    threshold = config.effective_threshold
    if a.energy < threshold or b.energy < threshold:
        return False
    return a.mate_cooldown <= 0 and b.mate_cooldown <= 0


def _offspring_policy(a: Agent, b: Agent, context: SimulationContext):
    if isinstance(a.policy, NeuralPolicy) and isinstance(b.policy, NeuralPolicy):
        return NeuralPolicy.from_parents(a.policy, b.policy, context.rng, NETWORK_MUTATION_RATE)
    return None


def reproduce(a: Agent, b: Agent, context: SimulationContext) -> Optional[Agent]:
    """
    Mate two agents.

    On success: child genome = mutate(crossover(a, b)); both parents pay
    the energy cost and start their mating cooldown; the child is placed
    near the parents' midpoint, starts Resting with the configured
    offspring energy, and inherits a crossed-over network when both
    parents use the neural policy.

    Args:
        a: First parent
        b: Second parent
        context: Simulation context

    Returns:
        Offspring agent, or None if the pair cannot mate
    """
    config = context.config.reproduction
    if not can_mate(a, b, config):
        return None

    rng = context.rng
    genome = Genome.crossover(a.genome, b.genome, rng, mode=config.crossover)
    genome, mutations = genome.mutate(rng)

    a.change_energy(-config.energy_cost)
    b.change_energy(-config.energy_cost)
    a.mate_cooldown = a.genome.mating_cooldown(config.cooldown_ticks)
    b.mate_cooldown = b.genome.mating_cooldown(config.cooldown_ticks)

    midpoint = (a.position + b.position) / 2.0
    jitter = config.offspring_jitter
    position = midpoint + rng.uniform(-jitter, jitter, size=2)
    position = np.clip(position, [0.0, 0.0], [context.width, context.height])

    child = spawn_agent(
        context,
        position=position,
        genome=genome,
        initial_energy=config.offspring_energy,
        policy=_offspring_policy(a, b, context)
    )
    child.state = BehaviorState.RESTING
    child.mutation_count = mutations
    return child
