"""
Heritable trait vector with crossover and mutation operators.

A Genome is immutable after creation: crossover() and mutate() return
new instances. Every trait lives in [0, 1] except base_lifespan (ticks)
and generation; all constructors clamp, so no operator can leave a
trait outside its domain.
"""

import numpy as np
from dataclasses import dataclass, fields
from typing import Dict, Tuple

from .constants import (
    BASE_AGENT_SIZE, BASE_MAX_SPEED,
    LIFESPAN_MIN_TICKS, LIFESPAN_MAX_TICKS,
    MUTATION_PROBABILITY_CAP, MUTATION_STEP, LIFESPAN_MUTATION_FRACTION,
    MATING_COOLDOWN_TICKS
)

# Unit-interval traits, in serialization order
TRAIT_NAMES = (
    'speed', 'size', 'aggressiveness', 'sociability', 'curiosity',
    'fertility', 'immunity', 'regeneration', 'metabolism',
    'adaptability', 'mutation_rate',
)


def _clip01(value: float) -> float:
    value = float(value)
    if not np.isfinite(value):
        return 0.5
    return float(min(max(value, 0.0), 1.0))


def _clip_lifespan(value: float) -> float:
    value = float(value)
    if not np.isfinite(value):
        return LIFESPAN_MIN_TICKS
    return float(min(max(value, LIFESPAN_MIN_TICKS), LIFESPAN_MAX_TICKS))


@dataclass(frozen=True)
class Genome:
    """
    Heritable traits of one agent.

    Attributes:
        speed .. mutation_rate: Unit-interval traits (see TRAIT_NAMES)
        color: RGB channels in [0, 1]
        base_lifespan: Lifespan in ticks before metabolism scaling
        generation: 0 for seeded agents, max(parents) + 1 for offspring
    """
    speed: float = 0.5
    size: float = 0.5
    aggressiveness: float = 0.5
    sociability: float = 0.5
    curiosity: float = 0.5
    fertility: float = 0.5
    immunity: float = 0.5
    regeneration: float = 0.5
    metabolism: float = 0.5
    adaptability: float = 0.5
    mutation_rate: float = 0.5
    color: Tuple[float, float, float] = (0.5, 0.5, 0.5)
    base_lifespan: float = LIFESPAN_MIN_TICKS
    generation: int = 0

    def __post_init__(self):
        # Frozen dataclass: clamp through object.__setattr__
        for name in TRAIT_NAMES:
            object.__setattr__(self, name, _clip01(getattr(self, name)))
        color = tuple(self.color)[:3]
        if len(color) < 3:
            color = color + (0.5,) * (3 - len(color))
        object.__setattr__(self, 'color', tuple(_clip01(c) for c in color))
        object.__setattr__(self, 'base_lifespan', _clip_lifespan(self.base_lifespan))
        object.__setattr__(self, 'generation', max(0, int(self.generation)))

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def random(cls, rng: np.random.Generator) -> 'Genome':
        """Genome with every trait drawn uniformly from its domain."""
        traits = {name: rng.random() for name in TRAIT_NAMES}
        return cls(
            color=tuple(rng.random(3)),
            base_lifespan=rng.uniform(LIFESPAN_MIN_TICKS, LIFESPAN_MAX_TICKS),
            generation=0,
            **traits
        )

    @classmethod
    def crossover(
        cls,
        parent_a: 'Genome',
        parent_b: 'Genome',
        rng: np.random.Generator,
        mode: str = "pick"
    ) -> 'Genome':
        """
        Combine two parent genomes.

        Args:
            parent_a: First parent
            parent_b: Second parent
            rng: Generator handle
            mode: "pick" takes each trait from a random parent,
                  "average" takes the mean of both parents

        Returns:
            Child genome (not yet mutated), generation = max(parents) + 1
        """
        def combine(a: float, b: float) -> float:
            if mode == "average":
                return (a + b) / 2.0
            return a if rng.random() < 0.5 else b

        traits = {
            name: combine(getattr(parent_a, name), getattr(parent_b, name))
            for name in TRAIT_NAMES
        }
        # Color channels are inherited independently
        color = tuple(
            parent_a.color[i] if rng.random() < 0.5 else parent_b.color[i]
            for i in range(3)
        )
        return cls(
            color=color,
            base_lifespan=combine(parent_a.base_lifespan, parent_b.base_lifespan),
            generation=max(parent_a.generation, parent_b.generation) + 1,
            **traits
        )

    def mutate(self, rng: np.random.Generator) -> Tuple['Genome', int]:
        """
        Apply random mutations.

        Each trait mutates independently with probability
        mutation_rate * MUTATION_PROBABILITY_CAP by a uniform step in
        [-MUTATION_STEP, +MUTATION_STEP]; results are clamped.

        Returns:
            Tuple of (mutated genome, number of mutated traits)
        """
        probability = self.mutation_rate * MUTATION_PROBABILITY_CAP
        values = self.to_dict()
        mutations = 0

        for name in TRAIT_NAMES:
            if rng.random() < probability:
                values[name] = values[name] + rng.uniform(-MUTATION_STEP, MUTATION_STEP)
                mutations += 1

        color = list(values['color'])
        for i in range(3):
            if rng.random() < probability:
                color[i] += rng.uniform(-MUTATION_STEP, MUTATION_STEP)
                mutations += 1
        values['color'] = color

        if rng.random() < probability:
            spread = values['base_lifespan'] * LIFESPAN_MUTATION_FRACTION
            values['base_lifespan'] += rng.uniform(-spread, spread)
            mutations += 1

        return Genome.from_dict(values), mutations

    # ------------------------------------------------------------------
    # Derived body parameters
    # ------------------------------------------------------------------

    @property
    def body_size(self) -> float:
        return BASE_AGENT_SIZE * (0.8 + 0.4 * self.size)

    @property
    def max_speed(self) -> float:
        return BASE_MAX_SPEED * (0.5 + self.speed)

    @property
    def lifespan(self) -> float:
        """Lifespan in ticks (fast metabolisms burn out sooner)."""
        return self.base_lifespan * (1.2 - 0.4 * self.metabolism)

    @property
    def energy_cost_factor(self) -> float:
        return 0.5 + self.metabolism

    def mating_cooldown(self, base_ticks: int = MATING_COOLDOWN_TICKS) -> int:
        """Ticks between matings (fertile agents recover faster)."""
        return int(round(base_ticks * (1.5 - self.fertility)))

    def perception_radius(self, base_radius: float) -> float:
        return base_radius * (0.8 + 0.4 * self.curiosity)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data['color'] = list(self.color)
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'Genome':
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        if 'color' in kwargs:
            kwargs['color'] = tuple(kwargs['color'])
        return cls(**kwargs)
