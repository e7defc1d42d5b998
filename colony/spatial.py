"""
Spatial utility functions for 2D geometry.

Helper functions for distance calculations, vector normalization
and speed clamping. All helpers operate on float64 numpy arrays.
"""

import numpy as np
from typing import Any, Optional, Tuple


def distance_2d(pos_a: np.ndarray, pos_b: np.ndarray) -> float:
    """
    Calculate Euclidean distance between two 2D points.

    Args:
        pos_a: Position [x, y]
        pos_b: Position [x, y]

    Returns:
        Distance in world units
    """
    diff = pos_a - pos_b
    return float(np.sqrt(np.dot(diff, diff)))


def reflect_velocity(velocity: np.ndarray, normal: np.ndarray) -> np.ndarray:
    """
    Reflect velocity vector across surface normal.

    Uses formula: v' = v - 2 * (v . n) * n, applied only when moving into
    the surface (v . n < 0).

    Args:
        velocity: Incident velocity vector [vx, vy]
        normal: Surface normal pointing away from the surface (unit vector)

    Returns:
        Reflected velocity vector
    """
    dot = np.dot(velocity, normal)
    if dot >= 0:
        return velocity
    return velocity - 2.0 * dot * normal


def normalize(vec: np.ndarray) -> Tuple[np.ndarray, float]:
    """
    Normalize vector to unit length.

    Args:
        vec: Vector to normalize [x, y]

    Returns:
        Tuple of (normalized vector, original length)
    """
    length = np.sqrt(np.dot(vec, vec))

    if length < 1e-9:
        # Zero vector, return arbitrary unit vector
        return np.array([1.0, 0.0], dtype=np.float64), 0.0

    return vec / length, float(length)


def clamp_speed(velocity: np.ndarray, max_speed: float) -> np.ndarray:
    """
    Clamp velocity magnitude to maximum speed.

    Args:
        velocity: Velocity vector [vx, vy]
        max_speed: Maximum allowed speed

    Returns:
        Velocity with clamped magnitude
    """
    speed_sq = np.dot(velocity, velocity)

    if speed_sq > max_speed * max_speed:
        speed = np.sqrt(speed_sq)
        return velocity * (max_speed / speed)

    return velocity


def heading_vector(angle: float) -> np.ndarray:
    """Unit vector for a heading angle in radians."""
    return np.array([np.cos(angle), np.sin(angle)], dtype=np.float64)


def is_finite_point(point: Any) -> bool:
    """True if point is a length-2 sequence of finite numbers."""
    try:
        arr = np.asarray(point, dtype=np.float64)
    except (TypeError, ValueError):
        return False
    return arr.shape == (2,) and bool(np.all(np.isfinite(arr)))


def as_point(point: Any) -> Optional[np.ndarray]:
    """
    Coerce a position-like value to a float64 [x, y] array.

    Returns:
        Array, or None when the value is not a finite 2D point
    """
    if not is_finite_point(point):
        return None
    return np.asarray(point, dtype=np.float64)
