"""
Central configuration constants for colony simulation.

Defines default values, thresholds, and configuration parameters
used across multiple modules. Runtime overrides come from the YAML
config (see loader.py); these are the fallbacks.
"""

import math

# ============================================================================
# World Configuration
# ============================================================================

WORLD_WIDTH = 800.0
WORLD_HEIGHT = 600.0

# Default world seed (hashed with component names, see rng.make_seed)
WORLD_SEED_DEFAULT = 12345

# Hard cap on living agents (births beyond this are dropped)
POPULATION_LIMIT = 100


# ============================================================================
# Spatial Indexing Configuration
# ============================================================================

# Uniform grid cell width in world units
GRID_CELL_SIZE = 50.0

# Use scipy.cKDTree for radius queries instead of walking grid cells.
# The grid stays authoritative for membership either way.
USE_CKDTREE = False

# cKDTree build parameters
CKDTREE_LEAFSIZE = 16


# ============================================================================
# Agent Body Configuration
# ============================================================================

BASE_AGENT_SIZE = 20.0       # Diameter at size trait 0.5 (scaled 0.8x-1.2x)
MAX_BODY_SIZE = BASE_AGENT_SIZE * 1.2  # Diameter at size trait 1
BASE_MAX_SPEED = 3.0         # Units per tick at speed trait 0.5 (scaled 0.5x-1.5x)
INITIAL_ENERGY_DEFAULT = 100.0
RESOURCE_MAX = 100.0         # Health and energy ceiling
RESOURCE_MIN = 0.0


# ============================================================================
# Genome Configuration
# ============================================================================

# Lifespan range in ticks for randomly generated genomes
LIFESPAN_MIN_TICKS = 20000.0
LIFESPAN_MAX_TICKS = 40000.0

# Mutation: per-trait probability = mutation_rate trait * this cap
MUTATION_PROBABILITY_CAP = 0.1
MUTATION_STEP = 0.1          # Uniform +/- change applied to a mutated trait
LIFESPAN_MUTATION_FRACTION = 0.1


# ============================================================================
# Perception Configuration
# ============================================================================

PERCEPTION_RADIUS = 150.0

# Mate detection (both parties must exceed this energy)
MATE_DETECTION_ENERGY = 60.0
MATE_DETECTION_COOLDOWN_TICKS = 300

# Obstacle proximity margin = factor * agent.size
OBSTACLE_MARGIN_FACTOR = 1.5


# ============================================================================
# Decision Policy Configuration
# ============================================================================

POLICY_DEFAULT_KIND = "neural"      # "neural" or "tabular"
POLICY_CONTINUOUS_CONTROL = True    # Neural policy emits movement parameters

# Tabular Q-learning
Q_EPSILON = 0.1
Q_LEARNING_RATE = 0.1
Q_DISCOUNT = 0.9
Q_BUCKET_SIZE = 10

# Feed-forward network
NETWORK_HIDDEN_SIZE = 12
NETWORK_LEARNING_RATE = 0.1
NETWORK_MUTATION_RATE = 0.1
NETWORK_MUTATION_INTENSITY = 0.2

# Continuous control -> discrete action mapping
REST_SPEED_THRESHOLD = 0.2
TARGET_WEIGHT_THRESHOLD = 0.7

# Fixed reward fed to the policy when an agent eats
EAT_REWARD = 2.0

# Resting longer than this forces exploration
MAX_RESTING_TICKS = 120

# Default movement parameters (discrete mode and fallbacks)
DEFAULT_MOVEMENT_PARAMS = {
    'heading': 0.0,
    'speed': 0.5,
    'wander_strength': 0.3,
    'noise_strength': 0.2,
    'target_weight': 0.8,
}


# ============================================================================
# Reward Shaping
# ============================================================================

REWARD_LOW_ENERGY = -0.5       # energy < 20
REWARD_HIGH_ENERGY = 0.3       # energy > 80
REWARD_LOW_HEALTH = -0.5       # health < 30
REWARD_HIGH_HEALTH = 0.2       # health > 70
REWARD_PREDATOR_EVADED = 0.5   # fleeing while a predator is in range
REWARD_PREDATOR_IGNORED = -1.0
REWARD_SURVIVAL = 0.1
REWARD_STARVATION = -1.0


# ============================================================================
# Movement Configuration
# ============================================================================

STATE_SPEED_MULTIPLIERS = {
    'exploring': 1.0,
    'seeking_food': 1.2,
    'seeking_mate': 0.8,
    'fleeing': 1.5,
    'resting': 0.0,
}

REST_DRIFT_DAMPING = 0.1       # Velocity retained per tick while resting
FLEE_LOOKAHEAD = 100.0         # Distance of the escape point from the agent
STEERING_GAIN = 0.5            # Fraction of the velocity error corrected per tick
TWO_PI = 2.0 * math.pi


# ============================================================================
# Lifecycle Configuration
# ============================================================================

HEALTH_LOSS_RATE = 0.05        # Baseline health decay per tick

# Energy cost per tick by behavioral state (negative = net gain)
ENERGY_COST_BY_STATE = {
    'exploring': 0.05,
    'seeking_food': 0.06,
    'seeking_mate': 0.07,
    'fleeing': 0.10,
    'resting': -0.2,
}

STARVATION_TICKS = 1800        # Ticks without a meal before damage starts
STARVATION_DAMAGE = 0.5        # Health lost per tick while starving

DISEASE_DEATH_BASE = 0.0001    # Per active disease, per tick
IMMUNITY_DEATH_FACTOR = 0.8

FOOD_HEALTH_FRACTION = 0.5     # Health gain = nutrition * fraction
FOOD_BITE = 10.0               # Nutrition removed from a food item per meal
FOOD_DEFAULT_NUTRITION = 30.0


# ============================================================================
# Reproduction Configuration
# ============================================================================

MATING_ENERGY_THRESHOLD = 70.0
MATING_ENERGY_THRESHOLD_STRICT = 80.0
MATING_ENERGY_COST = 30.0
MATING_COOLDOWN_TICKS = 300
OFFSPRING_ENERGY = 60.0
OFFSPRING_JITTER = 5.0


# ============================================================================
# Disease Configuration
# ============================================================================

INFECTION_RANGE = 50.0
RANDOM_DISEASE_CHANCE = 0.0005
MAX_DISEASES = 5

DISEASE_SEVERITY_RANGE = (0.1, 1.0)
DISEASE_IMMUNITY_DIFFICULTY_RANGE = (0.3, 0.9)
DISEASE_DURATION_RANGE = (500, 5000)
DISEASE_CONTAGION_RANGE = (0.1, 0.8)

RECOVERY_BASE_CHANCE = 0.002
RECOVERY_REGENERATION_WEIGHT = 0.3
CONTAGION_IMMUNITY_FACTOR = 0.8

# Per-category effects
MOTOR_SPEED_BASE = 0.3         # Speed cap = base_max_speed * (0.3 + 0.2 * severity)
MOTOR_SPEED_SEVERITY = 0.2
MOTOR_TREMOR = 0.5
METABOLIC_DRAIN = 0.05         # Extra energy drain * severity
DEGENERATIVE_DRAIN = 0.02      # Extra health drain * severity
NEURAL_IMPULSE_CHANCE = 0.05   # Per tick * severity
NEURAL_IMPULSE_STRENGTH = 2.0

DISEASE_NAMES = {
    'metabolic': ["Gastroenteritis", "Hypermetabolism", "Digestive Syndrome"],
    'motor': ["Progressive Paralysis", "Bacterial Tremors", "Motor Atrophy"],
    'reproductive': ["Microbial Infertility", "Genetic Dysregulation", "Inhibitory Mutation"],
    'neural': ["Neural Confusion", "Decision Disorder", "Sensory Blindness"],
    'degenerative': ["Cellular Necrosis", "Mitochondrial Dysfunction", "Systemic Decay"],
}


# ============================================================================
# Social Configuration
# ============================================================================

SOCIAL_INTERACTION_CHANCE = 0.005    # * sociability
SOCIAL_COOLDOWN_TICKS = 60
SOCIAL_RECONCILE_FACTOR = 0.2        # * sociability
RELATIONSHIP_MAX_STRENGTH = 10.0


# ============================================================================
# Performance Configuration
# ============================================================================

# Tick timing window for rolling average
TICK_TIME_WINDOW = 100
