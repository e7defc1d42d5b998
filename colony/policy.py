"""
Decision policies: behavioral states, actions, features and rewards.

Each tick an agent's policy maps its perception snapshot to an Action
(explore / seek food / seek mate / rest) and, in continuous-control
mode, to MovementParams. select_state() turns the action into a
BehaviorState, with a nearby predator forcing Fleeing regardless of
what the policy chose.

Two interchangeable policies share the DecisionPolicy interface:
- TabularPolicy: epsilon-greedy Q-learning over a coarse state key
- NeuralPolicy: FeedForwardNetwork over normalized features

Reward shaping (compute_reward) is shared by both.
"""

import numpy as np
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from .constants import (
    PERCEPTION_RADIUS, Q_BUCKET_SIZE, TWO_PI,
    REST_SPEED_THRESHOLD, TARGET_WEIGHT_THRESHOLD, STARVATION_TICKS,
    REWARD_LOW_ENERGY, REWARD_HIGH_ENERGY, REWARD_LOW_HEALTH, REWARD_HIGH_HEALTH,
    REWARD_PREDATOR_EVADED, REWARD_PREDATOR_IGNORED, REWARD_SURVIVAL,
    REWARD_STARVATION
)
from .data_types import Conditions, MovementParams, PolicyConfig
from .network import FeedForwardNetwork


class Action(Enum):
    EXPLORE = "explore"
    SEEK_FOOD = "seek_food"
    SEEK_MATE = "seek_mate"
    REST = "rest"


class BehaviorState(Enum):
    EXPLORING = "exploring"
    SEEKING_FOOD = "seeking_food"
    SEEKING_MATE = "seeking_mate"
    FLEEING = "fleeing"
    RESTING = "resting"


ACTIONS = (Action.EXPLORE, Action.SEEK_FOOD, Action.SEEK_MATE, Action.REST)

ACTION_TO_STATE = {
    Action.EXPLORE: BehaviorState.EXPLORING,
    Action.SEEK_FOOD: BehaviorState.SEEKING_FOOD,
    Action.SEEK_MATE: BehaviorState.SEEKING_MATE,
    Action.REST: BehaviorState.RESTING,
}

FEATURE_NAMES = (
    'health', 'energy',
    'food_nearby', 'food_proximity',
    'mate_nearby',
    'predator_nearby', 'predator_proximity',
    'obstacle_nearby', 'allies_nearby', 'rivals_nearby',
    'age_fraction', 'aggressiveness', 'curiosity',
)

N_MOVEMENT_PARAMS = 5


@dataclass
class Decision:
    """Policy output for one tick"""
    action: Action
    params: MovementParams = field(default_factory=MovementParams)


# ============================================================================
# Features and state mapping
# ============================================================================

def _proximity(distance: Optional[float], radius: float = PERCEPTION_RADIUS) -> float:
    if distance is None or not np.isfinite(distance) or radius <= 0:
        return 0.0
    return float(np.clip(1.0 - distance / radius, 0.0, 1.0))


def extract_features(agent, conditions: Conditions) -> np.ndarray:
    """
    Normalize agent resources and perception into a fixed-length vector.

    Returns:
        Array of len(FEATURE_NAMES) values, each in [0, 1]
    """
    c = conditions if conditions is not None else Conditions()
    lifespan = agent.lifespan if agent.lifespan and agent.lifespan > 0 else 1.0
    features = np.array([
        agent.health / 100.0,
        agent.energy / 100.0,
        float(c.food_nearby),
        _proximity(c.food_distance),
        float(c.mate_nearby),
        float(c.predator_nearby),
        _proximity(c.predator_distance),
        float(c.obstacle_nearby),
        float(c.allies_nearby),
        float(c.rivals_nearby),
        min(agent.age / lifespan, 1.0),
        agent.genome.aggressiveness,
        agent.genome.curiosity,
    ], dtype=np.float64)
    return np.clip(np.nan_to_num(features, nan=0.0), 0.0, 1.0)


def map_params_to_action(params: MovementParams, conditions: Conditions) -> Action:
    """Discrete action implied by continuous movement parameters."""
    if params.speed < REST_SPEED_THRESHOLD:
        return Action.REST
    if params.target_weight > TARGET_WEIGHT_THRESHOLD:
        if conditions.food_nearby:
            return Action.SEEK_FOOD
        if conditions.mate_nearby:
            return Action.SEEK_MATE
    return Action.EXPLORE


def select_state(
    action: Action,
    conditions: Conditions,
    agent=None,
    max_resting_ticks: Optional[float] = None
) -> BehaviorState:
    """
    Behavioral state for this tick.

    Priority: predator in range -> Fleeing; resting past
    max_resting_ticks -> Exploring; otherwise the action's state.
    """
    if conditions is not None and conditions.predator_nearby:
        return BehaviorState.FLEEING
    if (action == Action.REST and agent is not None and max_resting_ticks is not None
            and agent.state == BehaviorState.RESTING
            and agent.resting_ticks >= max_resting_ticks):
        return BehaviorState.EXPLORING
    return ACTION_TO_STATE.get(action, BehaviorState.EXPLORING)


# ============================================================================
# Reward shaping
# ============================================================================

def action_reward(action: Action, energy: float, conditions: Conditions) -> float:
    """
    Context match between the chosen action and the agent's situation.

    Seeking food pays while hungry and costs while sated; seeking a mate
    pays with spare energy; resting pays when exhausted.
    """
    reward = 0.0
    if action == Action.SEEK_FOOD:
        if energy < 50:
            reward += 0.7
        elif energy > 70:
            reward -= 0.3
        if conditions.food_nearby:
            reward += 1.0
    elif action == Action.SEEK_MATE:
        if energy > 70:
            reward += 0.7
        elif energy < 30:
            reward -= 0.8
        if conditions.mate_nearby:
            reward += 1.0
    elif action == Action.REST:
        if energy < 30:
            reward += 0.8
        elif energy > 70:
            reward -= 0.5
    elif action == Action.EXPLORE:
        reward += 0.2
        if energy < 20:
            reward -= 0.4
    return reward


def compute_reward(
    agent,
    action: Action,
    conditions: Conditions,
    starvation_ticks: float = STARVATION_TICKS
) -> float:
    """
    Per-tick reward for the action an agent took.

    Sum of energy band, health band, action_reward(), predator term,
    survival bonus and starvation penalty.
    """
    c = conditions if conditions is not None else Conditions()
    reward = 0.0

    if agent.energy < 20:
        reward += REWARD_LOW_ENERGY
    elif agent.energy > 80:
        reward += REWARD_HIGH_ENERGY

    if agent.health < 30:
        reward += REWARD_LOW_HEALTH
    elif agent.health > 70:
        reward += REWARD_HIGH_HEALTH

    reward += action_reward(action, agent.energy, c)

    if c.predator_nearby:
        reward += REWARD_PREDATOR_IGNORED if action == Action.REST else REWARD_PREDATOR_EVADED

    if not agent.is_dead():
        reward += REWARD_SURVIVAL
    if agent.ticks_since_meal > starvation_ticks:
        reward += REWARD_STARVATION

    return reward


# ============================================================================
# Policies
# ============================================================================

class DecisionPolicy(ABC):
    """
    Interface shared by tabular and neural policies.

    decide() remembers what it chose; learn() credits that choice.
    """

    kind = "base"

    @abstractmethod
    def decide(self, agent, conditions: Conditions, rng: np.random.Generator) -> Decision:
        ...

    @abstractmethod
    def learn(self, agent, conditions: Conditions, reward: float):
        ...


class TabularPolicy(DecisionPolicy):
    """
    Epsilon-greedy Q-learning.

    State key = (health // 10, energy // 10, food, mate, predator,
    allies, rivals). Unknown keys start at zero for every action.
    """

    kind = "tabular"

    def __init__(self, epsilon: float = 0.1, learning_rate: float = 0.1, discount: float = 0.9):
        self.epsilon = float(epsilon)
        self.learning_rate = float(learning_rate)
        self.discount = float(discount)
        self.q_table: Dict[Tuple, np.ndarray] = {}
        self._last_key: Optional[Tuple] = None
        self._last_action: Optional[int] = None

    @staticmethod
    def state_key(agent, conditions: Conditions) -> Tuple:
        c = conditions if conditions is not None else Conditions()
        return (
            int(agent.health // Q_BUCKET_SIZE),
            int(agent.energy // Q_BUCKET_SIZE),
            bool(c.food_nearby),
            bool(c.mate_nearby),
            bool(c.predator_nearby),
            bool(c.allies_nearby),
            bool(c.rivals_nearby),
        )

    def q_values(self, key: Tuple) -> np.ndarray:
        values = self.q_table.get(key)
        if values is None:
            values = np.zeros(len(ACTIONS), dtype=np.float64)
            self.q_table[key] = values
        return values

    def decide(self, agent, conditions: Conditions, rng: np.random.Generator) -> Decision:
        key = self.state_key(agent, conditions)
        values = self.q_values(key)
        if rng.random() < self.epsilon:
            index = int(rng.integers(len(ACTIONS)))
        else:
            index = int(np.argmax(values))
        self._last_key = key
        self._last_action = index
        return Decision(action=ACTIONS[index])

    def learn(self, agent, conditions: Conditions, reward: float):
        """Q[s,a] += alpha * (r + gamma * max Q[s'] - Q[s,a])"""
        if self._last_key is None or not np.isfinite(reward):
            return
        next_values = self.q_values(self.state_key(agent, conditions))
        values = self.q_values(self._last_key)
        target = reward + self.discount * float(np.max(next_values))
        values[self._last_action] += self.learning_rate * (target - values[self._last_action])


class NeuralPolicy(DecisionPolicy):
    """
    Feed-forward network policy.

    Discrete mode: epsilon-greedy arg-max over action logits.
    Continuous mode: the parameter head (plus small exploration noise)
    yields MovementParams, mapped to an action by map_params_to_action().
    """

    kind = "neural"

    def __init__(
        self,
        rng: np.random.Generator,
        hidden_size: int = 12,
        learning_rate: float = 0.1,
        epsilon: float = 0.1,
        continuous: bool = True,
        network: Optional[FeedForwardNetwork] = None
    ):
        self.epsilon = float(epsilon)
        self.continuous = bool(continuous)
        self.network = network or FeedForwardNetwork(
            len(FEATURE_NAMES), hidden_size, len(ACTIONS), N_MOVEMENT_PARAMS,
            rng, learning_rate=learning_rate
        )
        self.exploration_noise = 0.05
        self._last_inputs: Optional[np.ndarray] = None
        self._last_action: Optional[int] = None
        self._last_params: Optional[MovementParams] = None

    def decide(self, agent, conditions: Conditions, rng: np.random.Generator) -> Decision:
        c = conditions if conditions is not None else Conditions()
        inputs = extract_features(agent, c)
        logits, raw = self.network.predict(inputs)

        if self.continuous:
            raw = np.clip(raw + rng.normal(0.0, self.exploration_noise, size=raw.shape), 0.0, 1.0)
            params = MovementParams(
                heading=float(raw[0]) * TWO_PI,
                speed=float(raw[1]),
                wander_strength=float(raw[2]),
                noise_strength=float(raw[3]),
                target_weight=float(raw[4])
            )
            action = map_params_to_action(params, c)
            index = ACTIONS.index(action)
        else:
            params = MovementParams()
            if rng.random() < self.epsilon:
                index = int(rng.integers(len(ACTIONS)))
            else:
                index = int(np.argmax(logits))
            action = ACTIONS[index]

        self._last_inputs = inputs
        self._last_action = index
        self._last_params = params
        return Decision(action=action, params=params)

    def learn(self, agent, conditions: Conditions, reward: float):
        if self._last_inputs is None or not np.isfinite(reward):
            return
        self.network.reinforce(self._last_inputs, self._last_action, reward)
        if self.continuous and reward > 0:
            self.network.train_params(self._last_inputs, self._last_params.to_list(), reward)

    @classmethod
    def from_parents(
        cls,
        parent_a: 'NeuralPolicy',
        parent_b: 'NeuralPolicy',
        rng: np.random.Generator,
        mutation_rate: float
    ) -> Optional['NeuralPolicy']:
        """
        Offspring policy with a crossed-over, mutated network.

        Returns:
            NeuralPolicy, or None if the parent networks are incompatible
        """
        network = parent_a.network.crossover(parent_b.network, rng)
        if network is None:
            return None
        network.mutate(rng, rate=mutation_rate)
        return cls(
            rng,
            epsilon=parent_a.epsilon,
            continuous=parent_a.continuous,
            network=network
        )


def make_policy(config: PolicyConfig, rng: np.random.Generator) -> DecisionPolicy:
    """Build the policy named by config.kind (unknown kinds fall back to neural)."""
    if config.kind == "tabular":
        return TabularPolicy(
            epsilon=config.epsilon,
            learning_rate=config.learning_rate,
            discount=config.discount
        )
    return NeuralPolicy(
        rng,
        hidden_size=config.hidden_size,
        learning_rate=config.network_learning_rate,
        epsilon=config.epsilon,
        continuous=config.continuous_control
    )
