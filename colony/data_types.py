"""
Data types shared across the colony simulation.

Configuration dataclasses are populated by loader.py from YAML files;
the remaining types describe world objects and per-tick snapshots.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from . import constants as C


# ============================================================================
# Configuration
# ============================================================================

@dataclass
class WorldConfig:
    """World bounds, seed and population cap"""
    width: float = C.WORLD_WIDTH
    height: float = C.WORLD_HEIGHT
    seed: int = C.WORLD_SEED_DEFAULT
    population_limit: int = C.POPULATION_LIMIT
    grid_cell_size: float = C.GRID_CELL_SIZE
    use_ckdtree: bool = C.USE_CKDTREE


@dataclass
class PerceptionConfig:
    """Perception radius and mate detection parameters"""
    radius: float = C.PERCEPTION_RADIUS
    mate_energy: float = C.MATE_DETECTION_ENERGY
    mate_cooldown_ticks: int = C.MATE_DETECTION_COOLDOWN_TICKS
    obstacle_margin_factor: float = C.OBSTACLE_MARGIN_FACTOR


@dataclass
class PolicyConfig:
    """Decision policy selection and learning parameters"""
    kind: str = C.POLICY_DEFAULT_KIND  # neural, tabular
    continuous_control: bool = C.POLICY_CONTINUOUS_CONTROL
    epsilon: float = C.Q_EPSILON
    learning_rate: float = C.Q_LEARNING_RATE
    discount: float = C.Q_DISCOUNT
    hidden_size: int = C.NETWORK_HIDDEN_SIZE
    network_learning_rate: float = C.NETWORK_LEARNING_RATE
    max_resting_ticks: int = C.MAX_RESTING_TICKS


@dataclass
class LifecycleConfig:
    """Resource decay, starvation and death parameters"""
    health_loss_rate: float = C.HEALTH_LOSS_RATE
    starvation_ticks: int = C.STARVATION_TICKS
    starvation_damage: float = C.STARVATION_DAMAGE
    energy_costs: Dict[str, float] = field(default_factory=lambda: dict(C.ENERGY_COST_BY_STATE))
    disease_death_base: float = C.DISEASE_DEATH_BASE
    food_health_fraction: float = C.FOOD_HEALTH_FRACTION
    eat_reward: float = C.EAT_REWARD


@dataclass
class ReproductionConfig:
    """Mating thresholds, costs and offspring parameters"""
    energy_threshold: float = C.MATING_ENERGY_THRESHOLD
    strict: bool = False  # Use MATING_ENERGY_THRESHOLD_STRICT instead
    energy_cost: float = C.MATING_ENERGY_COST
    cooldown_ticks: int = C.MATING_COOLDOWN_TICKS
    offspring_energy: float = C.OFFSPRING_ENERGY
    offspring_jitter: float = C.OFFSPRING_JITTER
    crossover: str = "pick"  # pick, average

    @property
    def effective_threshold(self) -> float:
        if self.strict:
            return max(self.energy_threshold, C.MATING_ENERGY_THRESHOLD_STRICT)
        return self.energy_threshold


@dataclass
class DiseaseConfig:
    """Disease emergence and spread parameters"""
    enabled: bool = True
    infection_range: float = C.INFECTION_RANGE
    random_chance: float = C.RANDOM_DISEASE_CHANCE
    max_diseases: int = C.MAX_DISEASES
    recovery_base_chance: float = C.RECOVERY_BASE_CHANCE


@dataclass
class SimulationConfig:
    """Complete simulation configuration"""
    world: WorldConfig = field(default_factory=WorldConfig)
    perception: PerceptionConfig = field(default_factory=PerceptionConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    lifecycle: LifecycleConfig = field(default_factory=LifecycleConfig)
    reproduction: ReproductionConfig = field(default_factory=ReproductionConfig)
    disease: DiseaseConfig = field(default_factory=DiseaseConfig)
    description: Optional[str] = None


# ============================================================================
# World Objects
# ============================================================================

def _as_array(value) -> np.ndarray:
    return np.asarray(value, dtype=np.float64).copy()


@dataclass(eq=False)
class Food:
    """Food item; nutrition is consumed in bites until exhausted"""
    position: np.ndarray
    nutrition: float = C.FOOD_DEFAULT_NUTRITION

    def __post_init__(self):
        self.position = _as_array(self.position)

    @property
    def size(self) -> float:
        # Visual/contact diameter grows with remaining nutrition (5..15)
        return float(np.clip(5.0 + (self.nutrition - 10.0) * 0.25, 5.0, 15.0))


@dataclass(eq=False)
class Predator:
    """Predator as seen by the core (movement is owned elsewhere)"""
    position: np.ndarray
    size: float = 30.0

    def __post_init__(self):
        self.position = _as_array(self.position)


@dataclass(eq=False)
class RectObstacle:
    """Axis-aligned rectangular obstacle (x, y = top-left corner)"""
    x: float
    y: float
    w: float
    h: float

    def closest_point(self, point: np.ndarray) -> np.ndarray:
        """Closest point on (or inside) the rectangle to point."""
        return np.array([
            min(max(point[0], self.x), self.x + self.w),
            min(max(point[1], self.y), self.y + self.h),
        ], dtype=np.float64)

    def contains(self, point: np.ndarray) -> bool:
        return (self.x <= point[0] <= self.x + self.w
                and self.y <= point[1] <= self.y + self.h)

    def collides_with(self, point: np.ndarray, radius: float = 0.0) -> bool:
        """
        Circle-vs-rectangle test.

        Args:
            point: Circle center [x, y]
            radius: Circle radius (safety margin)

        Returns:
            True if the circle touches or overlaps the rectangle
        """
        if point is None or not np.all(np.isfinite(point)):
            return False
        diff = np.asarray(point, dtype=np.float64) - self.closest_point(point)
        return float(np.dot(diff, diff)) <= radius * radius


# ============================================================================
# Per-tick snapshots
# ============================================================================

@dataclass
class Conditions:
    """
    Perception snapshot for one agent at the start of a tick.

    Boolean flags are always present; targets and distances are None
    when nothing of that category is in range.
    """
    food_nearby: bool = False
    mate_nearby: bool = False
    predator_nearby: bool = False
    obstacle_nearby: bool = False
    allies_nearby: bool = False
    rivals_nearby: bool = False
    food_target: Optional[Food] = None
    mate_target: Optional[Any] = None  # Agent
    predator_target: Optional[Predator] = None
    food_distance: Optional[float] = None
    mate_distance: Optional[float] = None
    predator_distance: Optional[float] = None
    nearby_peers: List[Any] = field(default_factory=list)
    nearby_allies: List[Any] = field(default_factory=list)
    nearby_rivals: List[Any] = field(default_factory=list)


@dataclass
class MovementParams:
    """Continuous movement parameters (heading in radians, others 0..1)"""
    heading: float = C.DEFAULT_MOVEMENT_PARAMS['heading']
    speed: float = C.DEFAULT_MOVEMENT_PARAMS['speed']
    wander_strength: float = C.DEFAULT_MOVEMENT_PARAMS['wander_strength']
    noise_strength: float = C.DEFAULT_MOVEMENT_PARAMS['noise_strength']
    target_weight: float = C.DEFAULT_MOVEMENT_PARAMS['target_weight']

    def to_list(self) -> List[float]:
        """Parameters as network targets (heading scaled to 0..1)."""
        return [self.heading / C.TWO_PI, self.speed, self.wander_strength,
                self.noise_strength, self.target_weight]


@dataclass
class Relationship:
    """Ally/rival relationship entry"""
    strength: float
    since: int  # Tick the relationship was created or last reset


@dataclass
class DiseaseRecord:
    """Archived outcome of a retired disease"""
    name: str
    category: str
    severity: float
    duration: int
    peak_infected: int
    total_infected: int
    end_tick: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'category': self.category,
            'severity': float(self.severity),
            'duration': int(self.duration),
            'peak_infected': int(self.peak_infected),
            'total_infected': int(self.total_infected),
            'end_tick': int(self.end_tick),
        }
