"""
Small feed-forward network for the neural decision policy.

One ReLU hidden layer feeds two heads sharing the output matrix:
- action logits (one per discrete action)
- movement parameters squashed to (0, 1) with scipy.special.expit

Training only touches output rows. reinforce() moves the taken action's
row along the hidden activation scaled by the reward, so a non-negative
reward can never lower that action's logit for the same input and a
negative reward can never raise it.
"""

import numpy as np
from typing import Optional, Sequence, Tuple
from scipy.special import expit

from .constants import NETWORK_MUTATION_RATE, NETWORK_MUTATION_INTENSITY


class FeedForwardNetwork:
    """
    input -> ReLU(hidden) -> [action logits | sigmoid(params)]

    Attributes:
        w1, b1: Hidden layer (hidden x input), (hidden,)
        w2, b2: Output layer (n_actions + n_params x hidden), (n_actions + n_params,)
    """

    def __init__(
        self,
        input_size: int,
        hidden_size: int,
        n_actions: int,
        n_params: int,
        rng: np.random.Generator,
        learning_rate: float = 0.1
    ):
        self.input_size = int(input_size)
        self.hidden_size = int(hidden_size)
        self.n_actions = int(n_actions)
        self.n_params = int(n_params)
        self.learning_rate = float(learning_rate)

        # He-style init for the ReLU layer, small output weights
        scale1 = np.sqrt(2.0 / max(1, self.input_size))
        self.w1 = rng.normal(0.0, scale1, size=(self.hidden_size, self.input_size))
        self.b1 = np.zeros(self.hidden_size, dtype=np.float64)

        n_out = self.n_actions + self.n_params
        scale2 = np.sqrt(1.0 / max(1, self.hidden_size))
        self.w2 = rng.normal(0.0, scale2, size=(n_out, self.hidden_size))
        self.b2 = np.zeros(n_out, dtype=np.float64)

    def _hidden(self, inputs: np.ndarray) -> np.ndarray:
        return np.maximum(0.0, self.w1 @ inputs + self.b1)

    def _coerce(self, inputs: Sequence[float]) -> np.ndarray:
        x = np.asarray(inputs, dtype=np.float64).reshape(-1)
        if x.shape[0] != self.input_size:
            padded = np.zeros(self.input_size, dtype=np.float64)
            n = min(self.input_size, x.shape[0])
            padded[:n] = x[:n]
            x = padded
        return np.nan_to_num(x, nan=0.0, posinf=1.0, neginf=0.0)

    def predict(self, inputs: Sequence[float]) -> Tuple[np.ndarray, np.ndarray]:
        """
        Forward pass.

        Args:
            inputs: Feature vector (padded/truncated to input_size, NaN -> 0)

        Returns:
            Tuple of (action logits, movement params in (0, 1))
        """
        x = self._coerce(inputs)
        out = self.w2 @ self._hidden(x) + self.b2
        return out[:self.n_actions], expit(out[self.n_actions:])

    def reinforce(self, inputs: Sequence[float], action_index: int, reward: float):
        """
        Nudge the taken action's logit in the direction of the reward.

        The logit changes by lr * reward * (|h|^2 + 1) for the same input.
        """
        if not np.isfinite(reward) or not 0 <= action_index < self.n_actions:
            return
        h = self._hidden(self._coerce(inputs))
        step = self.learning_rate * float(reward)
        self.w2[action_index] += step * h
        self.b2[action_index] += step

    def train_params(self, inputs: Sequence[float], targets: Sequence[float], weight: float = 1.0):
        """
        One gradient step of squared error on the parameter head.

        Args:
            inputs: Feature vector
            targets: Desired params in [0, 1] (length n_params)
            weight: Step multiplier (e.g. positive reward)
        """
        if weight <= 0 or not np.isfinite(weight):
            return
        x = self._coerce(inputs)
        h = self._hidden(x)
        rows = slice(self.n_actions, self.n_actions + self.n_params)
        y = expit(self.w2[rows] @ h + self.b2[rows])
        t = np.clip(np.nan_to_num(np.asarray(targets, dtype=np.float64)), 0.0, 1.0)
        # d(0.5 * (y - t)^2)/dz through the sigmoid
        grad = (y - t) * y * (1.0 - y)
        step = self.learning_rate * min(float(weight), 1.0)
        self.w2[rows] -= step * np.outer(grad, h)
        self.b2[rows] -= step * grad

    # ------------------------------------------------------------------
    # Genetic operators (offspring brains)
    # ------------------------------------------------------------------

    def copy(self) -> 'FeedForwardNetwork':
        clone = FeedForwardNetwork.__new__(FeedForwardNetwork)
        clone.input_size = self.input_size
        clone.hidden_size = self.hidden_size
        clone.n_actions = self.n_actions
        clone.n_params = self.n_params
        clone.learning_rate = self.learning_rate
        clone.w1 = self.w1.copy()
        clone.b1 = self.b1.copy()
        clone.w2 = self.w2.copy()
        clone.b2 = self.b2.copy()
        return clone

    def crossover(
        self,
        other: 'FeedForwardNetwork',
        rng: np.random.Generator
    ) -> Optional['FeedForwardNetwork']:
        """
        Child network picking each weight from either parent.

        Returns:
            New network, or None if the shapes differ
        """
        if self.w1.shape != other.w1.shape or self.w2.shape != other.w2.shape:
            return None
        child = self.copy()
        for name in ('w1', 'b1', 'w2', 'b2'):
            mine = getattr(self, name)
            theirs = getattr(other, name)
            mask = rng.random(mine.shape) < 0.5
            setattr(child, name, np.where(mask, mine, theirs))
        return child

    def mutate(
        self,
        rng: np.random.Generator,
        rate: float = NETWORK_MUTATION_RATE,
        intensity: float = NETWORK_MUTATION_INTENSITY
    ) -> int:
        """
        Perturb a random subset of weights in place.

        Returns:
            Number of weights changed
        """
        changed = 0
        for name in ('w1', 'b1', 'w2', 'b2'):
            values = getattr(self, name)
            mask = rng.random(values.shape) < rate
            values += mask * rng.normal(0.0, intensity, size=values.shape)
            changed += int(mask.sum())
        return changed
