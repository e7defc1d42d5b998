"""
Resource decay, aging and death.

LifecycleModel.tick() applies one step of aging and resource costs;
check_death() evaluates the death conditions in fixed order (first
match wins): health depleted, old age, disease mortality.
"""

import numpy as np
from enum import Enum
from typing import Optional

from .constants import IMMUNITY_DEATH_FACTOR, RESOURCE_MIN
from .data_types import LifecycleConfig
from .policy import BehaviorState


class DeathCause(Enum):
    STARVATION = "starvation"   # Health reached zero
    OLD_AGE = "old_age"
    DISEASE = "disease"


class LifecycleModel:
    """
    Per-tick aging and resource model.

    Energy cost depends on behavioral state (resting is a net gain) and
    is scaled by the metabolism trait; baseline health decay is constant.
    """

    def __init__(self, config: Optional[LifecycleConfig] = None):
        self.config = config or LifecycleConfig()

    def energy_cost(self, agent) -> float:
        """Energy cost per tick for the agent's current state."""
        cost = self.config.energy_costs.get(agent.state.value, 0.0)
        if cost > 0:
            cost *= agent.genome.energy_cost_factor
        return cost

    def tick(self, agent, dt: float = 1.0):
        """
        Advance agent by dt ticks.

        Args:
            agent: Agent to update in place
            dt: Time step in ticks
        """
        if not np.isfinite(dt) or dt <= 0:
            return

        agent.age += dt
        agent.change_health(-self.config.health_loss_rate * dt)
        agent.change_energy(-self.energy_cost(agent) * dt)

        agent.ticks_since_meal += dt
        if agent.ticks_since_meal > self.config.starvation_ticks:
            agent.change_health(-self.config.starvation_damage * dt)

        agent.mate_cooldown = max(0.0, agent.mate_cooldown - dt)

        if agent.state == BehaviorState.RESTING:
            agent.resting_ticks += dt
        else:
            agent.resting_ticks = 0.0

    def disease_death_chance(self, agent) -> float:
        active = len(agent.infections)
        if active == 0:
            return 0.0
        return (self.config.disease_death_base * active
                * (1.0 - agent.genome.immunity * IMMUNITY_DEATH_FACTOR))

    def check_death(
        self,
        agent,
        rng: np.random.Generator,
        roll_disease: bool = True
    ) -> Optional[DeathCause]:
        """
        Evaluate death conditions and mark the agent if one fires.

        Args:
            agent: Agent to check
            rng: Generator handle
            roll_disease: Draw the disease mortality trial (once per tick)

        Returns:
            DeathCause, or None if the agent survives this tick
        """
        if agent.death_cause is not None:
            return DeathCause(agent.death_cause)

        cause = None
        if agent.health <= RESOURCE_MIN:
            cause = DeathCause.STARVATION
        elif agent.age >= agent.lifespan:
            cause = DeathCause.OLD_AGE
        elif roll_disease:
            chance = self.disease_death_chance(agent)
            if chance > 0 and rng.random() < chance:
                cause = DeathCause.DISEASE

        if cause is not None:
            agent.death_cause = cause.value
        return cause
