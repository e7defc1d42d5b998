"""
Deterministic RNG utilities for colony simulation.

Uses SHA256 hashing to derive stable seeds from hierarchical components
(world_seed, component_name, ...). All randomness uses
numpy.random.Generator(PCG64) handles passed explicitly through the
simulation context.
"""

import hashlib
import numpy as np
from typing import Any


def make_seed(*components: Any) -> int:
    """
    Generate deterministic 64-bit seed from hierarchical components.

    Uses SHA256 to hash components into stable seed value.

    Args:
        *components: Seed components (world_seed, subsystem name, etc.)

    Returns:
        64-bit integer seed for numpy RNG

    Example:
        disease_seed = make_seed(world_seed, "disease")
    """
    hash_input = ":".join(str(c) for c in components)

    hash_bytes = hashlib.sha256(hash_input.encode('utf-8')).digest()
    seed = int.from_bytes(hash_bytes[:8], byteorder='big')

    return seed


def make_rng(*components: Any) -> np.random.Generator:
    """Create a PCG64 generator seeded from make_seed(*components)."""
    return np.random.Generator(np.random.PCG64(make_seed(*components)))


def random_unit_vector(rng: np.random.Generator) -> np.ndarray:
    """
    Generate random 2D unit vector (uniform heading).

    Args:
        rng: Generator handle

    Returns:
        2D unit vector as numpy array [x, y]
    """
    theta = rng.uniform(0.0, 2.0 * np.pi)
    return np.array([np.cos(theta), np.sin(theta)], dtype=np.float64)


def random_position_in_bounds(
    rng: np.random.Generator,
    width: float,
    height: float,
    margin: float = 0.1
) -> np.ndarray:
    """
    Generate random position inside the world rectangle, away from the edges.

    Args:
        rng: Generator handle
        width: World width
        height: World height
        margin: Fraction of each dimension kept clear on both sides

    Returns:
        Position as numpy array [x, y]
    """
    x = rng.uniform(width * margin, width * (1.0 - margin))
    y = rng.uniform(height * margin, height * (1.0 - margin))
    return np.array([x, y], dtype=np.float64)
