"""
Contagion model: disease emergence, effects, recovery and spread.

Ownership:
- Disease.infected (agent id -> elapsed ticks) is the authoritative
  infection record; agent.infections mirrors it and is only written here.
- Recovery adds the disease name to agent.immunities, which permanently
  excludes the agent from that disease.

DiseaseSystem.update() order per tick:
1. Spontaneous emergence (Bernoulli trial while below the disease cap)
2. Per-disease effects, elapsed time, recovery; extinct diseases archived
3. Spread from every infected agent via SpatialIndex radius queries
"""

import numpy as np
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Set

from .constants import (
    DISEASE_NAMES, DISEASE_SEVERITY_RANGE, DISEASE_IMMUNITY_DIFFICULTY_RANGE,
    DISEASE_DURATION_RANGE, DISEASE_CONTAGION_RANGE,
    RECOVERY_BASE_CHANCE, RECOVERY_REGENERATION_WEIGHT, CONTAGION_IMMUNITY_FACTOR,
    MOTOR_SPEED_BASE, MOTOR_SPEED_SEVERITY, MOTOR_TREMOR,
    METABOLIC_DRAIN, DEGENERATIVE_DRAIN,
    NEURAL_IMPULSE_CHANCE, NEURAL_IMPULSE_STRENGTH
)
from .data_types import DiseaseConfig, DiseaseRecord
from .rng import random_unit_vector


class DiseaseCategory(Enum):
    METABOLIC = "metabolic"
    MOTOR = "motor"
    REPRODUCTIVE = "reproductive"
    NEURAL = "neural"
    DEGENERATIVE = "degenerative"


class Disease:
    """
    One active disease.

    Attributes:
        name: Unique among active diseases (also the immunity key)
        category: DiseaseCategory
        severity: (0, 1]
        immunity_difficulty: (0, 1]
        duration: Ticks after which an infection always ends
        contagion: Base transmission probability per contact per tick
        recovery_base_chance: Scale of the early-recovery chance
        infected: Agent id -> elapsed infection ticks
        immune: Ids of agents that recovered
        peak_infected: Largest simultaneous infected count
        total_infected: Infections ever started
    """

    def __init__(
        self,
        name: str,
        category: DiseaseCategory,
        severity: float,
        immunity_difficulty: float,
        duration: float,
        contagion: float,
        created_tick: int = 0,
        recovery_base_chance: float = RECOVERY_BASE_CHANCE
    ):
        self.name = name
        self.category = DiseaseCategory(category)
        self.severity = float(np.clip(severity, 1e-6, 1.0))
        self.immunity_difficulty = float(np.clip(immunity_difficulty, 1e-6, 1.0))
        self.duration = max(1.0, float(duration))
        self.contagion = float(np.clip(contagion, 0.0, 1.0))
        self.created_tick = created_tick
        self.recovery_base_chance = max(0.0, float(recovery_base_chance))

        self.infected: Dict[int, float] = {}
        self.immune: Set[int] = set()
        self.peak_infected: int = 0
        self.total_infected: int = 0
        self.recovered_count: int = 0

    @property
    def is_extinct(self) -> bool:
        return not self.infected

    def can_infect(self, agent) -> bool:
        if agent is None or agent.is_dead():
            return False
        return (agent.id not in self.infected
                and agent.id not in self.immune
                and self.name not in agent.immunities)

    def infect(self, agent) -> bool:
        """
        Start an infection.

        Returns:
            False if the agent is already infected, immune, or dead
        """
        if not self.can_infect(agent):
            return False
        self.infected[agent.id] = 0.0
        agent.infections[self.name] = 0.0
        self.total_infected += 1
        self.peak_infected = max(self.peak_infected, len(self.infected))
        return True

    def apply_effects(self, agent, rng: np.random.Generator, dt: float = 1.0):
        """Apply category-specific effects for one tick."""
        if self.category == DiseaseCategory.MOTOR:
            cap = agent.base_max_speed * (MOTOR_SPEED_BASE + MOTOR_SPEED_SEVERITY * self.severity)
            agent.max_speed = min(agent.max_speed, cap)
            agent.velocity = agent.velocity + rng.uniform(-MOTOR_TREMOR, MOTOR_TREMOR, size=2) * self.severity
        elif self.category == DiseaseCategory.REPRODUCTIVE:
            agent.can_reproduce = False
        elif self.category == DiseaseCategory.METABOLIC:
            agent.change_energy(-METABOLIC_DRAIN * self.severity * dt)
        elif self.category == DiseaseCategory.NEURAL:
            if rng.random() < NEURAL_IMPULSE_CHANCE * self.severity * dt:
                agent.velocity = agent.velocity + random_unit_vector(rng) * NEURAL_IMPULSE_STRENGTH
        elif self.category == DiseaseCategory.DEGENERATIVE:
            agent.change_health(-DEGENERATIVE_DRAIN * self.severity * dt)

    def recovery_chance(self, agent, elapsed: float) -> float:
        genome = agent.genome
        resistance = genome.immunity + genome.regeneration * RECOVERY_REGENERATION_WEIGHT
        return self.recovery_base_chance * resistance * (elapsed / self.duration)

    def recover(self, agent, other_categories: Iterable[DiseaseCategory] = ()):
        """
        End the agent's infection and grant permanent immunity.

        Properties this disease overrode are restored unless another
        active disease of the same category still holds them.

        Args:
            agent: Recovering agent
            other_categories: Categories of the agent's other active diseases
        """
        self.infected.pop(agent.id, None)
        self.immune.add(agent.id)
        self.recovered_count += 1
        agent.infections.pop(self.name, None)
        agent.immunities.add(self.name)

        others = set(other_categories)
        if self.category == DiseaseCategory.MOTOR and DiseaseCategory.MOTOR not in others:
            agent.max_speed = agent.base_max_speed
        elif self.category == DiseaseCategory.REPRODUCTIVE and DiseaseCategory.REPRODUCTIVE not in others:
            agent.can_reproduce = True

    def update(
        self,
        agents_by_id: Dict[int, object],
        rng: np.random.Generator,
        dt: float = 1.0,
        categories_for: Optional[Callable] = None
    ) -> List[int]:
        """
        Advance every infection by dt.

        Ids with no living agent are dropped silently. An infection ends
        once elapsed >= duration, or earlier with recovery_chance().

        Args:
            agents_by_id: Living agents by id
            rng: Generator handle
            dt: Time step in ticks
            categories_for: f(agent, disease) -> categories of the agent's
                other active diseases (used when restoring properties)

        Returns:
            Ids of agents that recovered this tick
        """
        recovered = []
        for agent_id, elapsed in list(self.infected.items()):
            agent = agents_by_id.get(agent_id)
            if agent is None or agent.is_dead():
                del self.infected[agent_id]
                continue

            self.apply_effects(agent, rng, dt)

            elapsed += dt
            self.infected[agent_id] = elapsed
            agent.infections[self.name] = elapsed

            if elapsed >= self.duration or rng.random() < self.recovery_chance(agent, elapsed):
                others = categories_for(agent, self) if categories_for is not None else ()
                self.recover(agent, others)
                recovered.append(agent_id)

        self.peak_infected = max(self.peak_infected, len(self.infected))
        return recovered

    def to_record(self, end_tick: int) -> DiseaseRecord:
        return DiseaseRecord(
            name=self.name,
            category=self.category.value,
            severity=self.severity,
            duration=int(round(self.duration)),
            peak_infected=self.peak_infected,
            total_infected=self.total_infected,
            end_tick=end_tick
        )

    def to_dict(self) -> Dict:
        return {
            'name': self.name,
            'category': self.category.value,
            'severity': self.severity,
            'immunity_difficulty': self.immunity_difficulty,
            'duration': self.duration,
            'contagion': self.contagion,
            'recovery_base_chance': self.recovery_base_chance,
            'created_tick': self.created_tick,
            'infected': {str(k): v for k, v in self.infected.items()},
            'immune': sorted(self.immune),
            'peak_infected': self.peak_infected,
            'total_infected': self.total_infected,
            'recovered_count': self.recovered_count,
        }


class DiseaseSystem:
    """
    Owner of all active diseases and the archive of retired ones.

    Attributes:
        diseases: Active diseases (at most config.max_diseases from emergence)
        history: DiseaseRecord per retired disease, in retirement order
    """

    def __init__(self, config: Optional[DiseaseConfig] = None, verbose: bool = False):
        self.config = config or DiseaseConfig()
        self.verbose = verbose
        self.diseases: List[Disease] = []
        self.history: List[DiseaseRecord] = []

    def get_disease(self, name: str) -> Optional[Disease]:
        for disease in self.diseases:
            if disease.name == name:
                return disease
        return None

    def _other_categories(self, agent, disease: Disease) -> Set[DiseaseCategory]:
        categories = set()
        for other in self.diseases:
            if other is not disease and agent.id in other.infected:
                categories.add(other.category)
        return categories

    def introduce_disease(
        self,
        name: str,
        category,
        severity: float,
        immunity_difficulty: float,
        duration: float,
        contagion: float,
        patient_zero=None,
        tick: int = 0
    ) -> Disease:
        """
        Add a disease (or reuse the active one with this name).

        Args:
            patient_zero: Optional agent infected immediately

        Returns:
            The active Disease with this name
        """
        disease = self.get_disease(name)
        if disease is None:
            disease = Disease(name, DiseaseCategory(category), severity,
                              immunity_difficulty, duration, contagion, created_tick=tick,
                              recovery_base_chance=self.config.recovery_base_chance)
            self.diseases.append(disease)
        if patient_zero is not None:
            disease.infect(patient_zero)
        return disease

    def create_random_disease(self, agents: List, rng: np.random.Generator, tick: int = 0) -> Optional[Disease]:
        """
        Create a randomized disease and infect one random living agent.

        Returns:
            New Disease, or None if the drawn name is already active or no
            agent can be infected
        """
        living = [a for a in agents if not a.is_dead()]
        if not living:
            return None

        categories = list(DiseaseCategory)
        category = categories[int(rng.integers(len(categories)))]
        names = DISEASE_NAMES[category.value]
        name = names[int(rng.integers(len(names)))]
        if self.get_disease(name) is not None:
            return None

        disease = Disease(
            name, category,
            severity=rng.uniform(*DISEASE_SEVERITY_RANGE),
            immunity_difficulty=rng.uniform(*DISEASE_IMMUNITY_DIFFICULTY_RANGE),
            duration=rng.uniform(*DISEASE_DURATION_RANGE),
            contagion=rng.uniform(*DISEASE_CONTAGION_RANGE),
            created_tick=tick,
            recovery_base_chance=self.config.recovery_base_chance
        )
        patient_zero = living[int(rng.integers(len(living)))]
        if not disease.infect(patient_zero):
            return None

        self.diseases.append(disease)
        if self.verbose:
            print(f"[DISEASE] {name} ({category.value}) emerged | "
                  f"severity={disease.severity:.2f} contagion={disease.contagion:.2f} | "
                  f"patient zero: agent {patient_zero.id}")
        return disease

    def update(self, agents: List, index, rng: np.random.Generator, tick: int = 0, dt: float = 1.0):
        """
        Advance the contagion model one tick.

        Args:
            agents: Current population
            index: SpatialIndex over agents
            rng: Generator handle
            tick: Current tick (history timestamps)
            dt: Time step in ticks
        """
        if not self.config.enabled:
            return

        agents_by_id = {a.id: a for a in agents if not a.is_dead()}

        # 1. Emergence
        if (agents_by_id and len(self.diseases) < self.config.max_diseases
                and rng.random() < self.config.random_chance):
            self.create_random_disease(list(agents_by_id.values()), rng, tick)

        # 2. Progression and retirement
        for disease in list(self.diseases):
            disease.update(agents_by_id, rng, dt, categories_for=self._other_categories)
            if disease.is_extinct:
                self.diseases.remove(disease)
                self.history.append(disease.to_record(tick))
                if self.verbose:
                    print(f"[DISEASE] {disease.name} retired at tick {tick} | "
                          f"peak={disease.peak_infected} total={disease.total_infected}")

        # 3. Spread (snapshot: agents infected this tick do not spread until next tick)
        for disease in self.diseases:
            for agent_id in list(disease.infected):
                source = agents_by_id.get(agent_id)
                if source is None:
                    continue
                for target in index.query_radius(source.position, self.config.infection_range):
                    if target is source or agents_by_id.get(getattr(target, 'id', None)) is not target:
                        continue
                    if not disease.can_infect(target):
                        continue
                    chance = disease.contagion * (1.0 - target.genome.immunity * CONTAGION_IMMUNITY_FACTOR)
                    if rng.random() < chance:
                        disease.infect(target)

    def forget_agent(self, agent_id: int):
        """Drop a removed agent from every infected map."""
        for disease in self.diseases:
            disease.infected.pop(agent_id, None)

    def get_statistics(self, population: int) -> Dict:
        """
        Contagion statistics.

        Returns:
            Dict with active_diseases, total_infected, infection_rate and
            per_disease (name, category, infected, immune, peak, total)
        """
        per_disease = []
        total_infected = 0
        for disease in self.diseases:
            total_infected += len(disease.infected)
            per_disease.append({
                'name': disease.name,
                'category': disease.category.value,
                'infected': len(disease.infected),
                'immune': len(disease.immune),
                'peak_infected': disease.peak_infected,
                'total_infected': disease.total_infected,
            })

        return {
            'active_diseases': len(self.diseases),
            'total_infected': total_infected,
            'infection_rate': total_infected / population if population > 0 else 0.0,
            'per_disease': per_disease,
        }


# Name used by the rest of the core for the disease subsystem
ContagionModel = DiseaseSystem
