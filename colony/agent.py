"""
Agent runtime representation and the per-run simulation context.

Agents are created by spawn_agent() (population seeding) or by
reproduction (offspring). Each agent owns its genome, resources,
behavioral state, infection map, immunity memory and relationship
graph. Agents never hold a reference back to the simulation; anything
world-scoped arrives through an explicit SimulationContext.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set

from .constants import INITIAL_ENERGY_DEFAULT, RESOURCE_MAX, RESOURCE_MIN
from .data_types import Conditions, SimulationConfig
from .genome import Genome
from .policy import BehaviorState, Decision, DecisionPolicy, make_policy
from .relationships import RelationshipGraph
from .rng import make_rng, random_position_in_bounds
from .spatial import as_point


@dataclass
class SimulationContext:
    """
    World-scoped state passed into every core call.

    Attributes:
        config: Complete simulation configuration
        rng: Generator handle shared by all core components
        width: World width
        height: World height
        tick: Current tick (advanced by ColonySimulation.tick)
    """
    config: SimulationConfig
    rng: np.random.Generator
    width: float
    height: float
    tick: int = 0
    _next_id: int = 1

    @classmethod
    def from_config(cls, config: SimulationConfig) -> 'SimulationContext':
        return cls(
            config=config,
            rng=make_rng(config.world.seed, "colony"),
            width=float(config.world.width),
            height=float(config.world.height)
        )

    def next_agent_id(self) -> int:
        """Unique, monotonically increasing agent id."""
        agent_id = self._next_id
        self._next_id += 1
        return agent_id


@dataclass(eq=False)
class Agent:
    """
    Runtime agent in simulation.

    Attributes:
        id: Unique id within a run
        position: 2D position [x, y] float64
        genome: Heritable traits (immutable)
        is_female: Sex
        policy: Decision policy (tabular or neural)
        velocity: 2D velocity [vx, vy] float64
        health: 0..100
        energy: 0..100
        age: Ticks lived
        lifespan: Ticks, fixed at creation from the genome
        state: Current behavioral state
        infections: Disease name -> elapsed infection ticks
        immunities: Disease names this agent can no longer catch
        relationships: Ally/rival graph
        death_cause: Set once a death condition fires
    """
    id: int
    position: np.ndarray
    genome: Genome
    is_female: bool
    policy: Optional[DecisionPolicy] = None
    velocity: np.ndarray = None
    health: float = RESOURCE_MAX
    energy: float = INITIAL_ENERGY_DEFAULT
    age: float = 0.0
    lifespan: float = None
    state: BehaviorState = BehaviorState.EXPLORING
    infections: Dict[str, float] = field(default_factory=dict)
    immunities: Set[str] = field(default_factory=set)
    relationships: RelationshipGraph = field(default_factory=RelationshipGraph)
    ticks_since_meal: float = 0.0
    mate_cooldown: float = 0.0
    last_mate_detection_tick: Optional[int] = None
    can_reproduce: bool = True
    base_max_speed: float = None
    max_speed: float = None
    resting_ticks: float = 0.0
    death_cause: Optional[str] = None
    last_conditions: Conditions = field(default_factory=Conditions)
    last_decision: Optional[Decision] = None
    mutation_count: int = 0  # Genome mutations applied at birth

    def __post_init__(self):
        """Coerce vectors to float64 and derive body parameters from genome"""
        self.position = np.array(self.position, dtype=np.float64)
        if self.velocity is None:
            self.velocity = np.zeros(2, dtype=np.float64)
        else:
            self.velocity = np.array(self.velocity, dtype=np.float64)

        if self.lifespan is None:
            self.lifespan = self.genome.lifespan
        if self.base_max_speed is None:
            self.base_max_speed = self.genome.max_speed
        if self.max_speed is None:
            self.max_speed = self.base_max_speed

        self.health = float(np.clip(self.health, RESOURCE_MIN, RESOURCE_MAX))
        self.energy = float(np.clip(self.energy, RESOURCE_MIN, RESOURCE_MAX))

    @property
    def size(self) -> float:
        return self.genome.body_size

    def change_health(self, delta: float):
        """Add delta to health, clamped to [0, 100]. Non-finite deltas are ignored."""
        if np.isfinite(delta):
            self.health = float(min(max(self.health + delta, RESOURCE_MIN), RESOURCE_MAX))

    def change_energy(self, delta: float):
        """Add delta to energy, clamped to [0, 100]. Non-finite deltas are ignored."""
        if np.isfinite(delta):
            self.energy = float(min(max(self.energy + delta, RESOURCE_MIN), RESOURCE_MAX))

    def is_dead(self) -> bool:
        return (self.death_cause is not None
                or self.health <= RESOURCE_MIN
                or self.age >= self.lifespan)

    def eat(self, food, health_fraction: float = 0.5, reward: float = 2.0) -> bool:
        """
        Consume food: energy += nutrition, health += nutrition * fraction.

        Args:
            food: Food item (its nutrition is not reduced here)
            health_fraction: Fraction of nutrition converted to health
            reward: Reward fed to the decision policy

        Returns:
            True if the agent ate
        """
        if food is None or self.is_dead():
            return False
        nutrition = getattr(food, 'nutrition', 0.0)
        if nutrition is None or not np.isfinite(nutrition) or nutrition <= 0:
            return False

        self.change_health(nutrition * health_fraction)
        self.change_energy(nutrition)
        self.ticks_since_meal = 0.0

        if self.policy is not None:
            self.policy.learn(self, self.last_conditions, reward)
        return True

    def reproduce(self, partner: 'Agent', context: SimulationContext) -> Optional['Agent']:
        """Mate with partner; see reproduction.reproduce()."""
        from .reproduction import reproduce
        return reproduce(self, partner, context)

    def to_dict(self) -> dict:
        """
        Serialize agent to JSON-compatible dict.

        The policy is described by kind only; learned weights are not exported.
        """
        return {
            'id': self.id,
            'position': self.position.tolist(),
            'velocity': self.velocity.tolist(),
            'is_female': self.is_female,
            'genome': self.genome.to_dict(),
            'health': self.health,
            'energy': self.energy,
            'age': self.age,
            'lifespan': self.lifespan,
            'state': self.state.value,
            'infections': dict(self.infections),
            'immunities': sorted(self.immunities),
            'relationships': self.relationships.to_dict(),
            'ticks_since_meal': self.ticks_since_meal,
            'mate_cooldown': self.mate_cooldown,
            'can_reproduce': self.can_reproduce,
            'policy': self.policy.kind if self.policy is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict, policy: Optional[DecisionPolicy] = None) -> 'Agent':
        """
        Deserialize agent from dict.

        Args:
            data: Dict produced by to_dict()
            policy: Policy to attach (a fresh one is the caller's choice)
        """
        return cls(
            id=int(data['id']),
            position=np.array(data['position'], dtype=np.float64),
            velocity=np.array(data.get('velocity', [0.0, 0.0]), dtype=np.float64),
            is_female=bool(data['is_female']),
            genome=Genome.from_dict(data['genome']),
            policy=policy,
            health=data.get('health', RESOURCE_MAX),
            energy=data.get('energy', INITIAL_ENERGY_DEFAULT),
            age=data.get('age', 0.0),
            lifespan=data.get('lifespan'),
            state=BehaviorState(data.get('state', BehaviorState.EXPLORING.value)),
            infections=dict(data.get('infections', {})),
            immunities=set(data.get('immunities', [])),
            relationships=RelationshipGraph.from_dict(data.get('relationships', {})),
            ticks_since_meal=data.get('ticks_since_meal', 0.0),
            mate_cooldown=data.get('mate_cooldown', 0.0),
            can_reproduce=data.get('can_reproduce', True)
        )


def spawn_agent(
    context: SimulationContext,
    position: Any = None,
    parent_genome: Optional[Genome] = None,
    initial_energy: float = INITIAL_ENERGY_DEFAULT,
    genome: Optional[Genome] = None,
    is_female: Optional[bool] = None,
    policy: Optional[DecisionPolicy] = None
) -> Agent:
    """
    Create a new agent.

    Args:
        context: Simulation context (ids, RNG, bounds, config)
        position: [x, y]; random inside bounds if missing or not finite
        parent_genome: Inherit a mutated copy of this genome
        initial_energy: Starting energy (clamped to [0, 100])
        genome: Use this genome as-is (overrides parent_genome)
        is_female: Sex; random if None
        policy: Decision policy; built from config.policy if None

    Returns:
        Agent (not yet registered with any simulation)
    """
    rng = context.rng

    if genome is None:
        if parent_genome is not None:
            inherited = Genome.from_dict(
                dict(parent_genome.to_dict(), generation=parent_genome.generation + 1)
            )
            genome, _ = inherited.mutate(rng)
        else:
            genome = Genome.random(rng)

    point = as_point(position)
    if point is None:
        point = random_position_in_bounds(rng, context.width, context.height)

    if is_female is None:
        is_female = bool(rng.random() < 0.5)

    if policy is None:
        policy = make_policy(context.config.policy, rng)

    return Agent(
        id=context.next_agent_id(),
        position=point,
        genome=genome,
        is_female=is_female,
        policy=policy,
        energy=initial_energy if np.isfinite(initial_energy) else INITIAL_ENERGY_DEFAULT
    )
