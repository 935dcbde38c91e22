"""
Utility functions for the Flow-Lenia simulation.

Toroidal geometry, angle helpers and brush footprints shared by the
field solver, the environment and the creature tracker.
"""

from typing import Tuple
import numpy as np


def wrap_angle(angle):
    """
    Wrap angle to [-π, π].

    Args:
        angle: Angle in radians

    Returns:
        Wrapped angle in [-π, π]
    """
    return np.arctan2(np.sin(angle), np.cos(angle))


def angle_difference(target: float, current: float) -> float:
    """Shortest signed arc from current to target, in [-π, π]."""
    return float(wrap_angle(target - current))


def toroidal_delta(to: float, frm: float, size: float) -> float:
    """
    Signed shortest displacement from ``frm`` to ``to`` on a ring.

    Args:
        to: Destination coordinate
        frm: Origin coordinate
        size: Ring circumference (grid size)

    Returns:
        Displacement in [-size/2, size/2]
    """
    delta = to - frm
    if delta > size / 2:
        delta -= size
    if delta < -size / 2:
        delta += size
    return delta


def periodic_distance(a, b, period):
    """
    Compute distance on a periodic domain.

    Args:
        a, b: Positions
        period: Period of the domain

    Returns:
        Shortest distance accounting for periodicity
    """
    diff = np.abs(a - b)
    return np.minimum(diff, period - diff)


def toroidal_distance(x1: float, y1: float, x2: float, y2: float,
                      size: float) -> float:
    """Euclidean distance on a square torus of side ``size``."""
    dx = periodic_distance(x1, x2, size)
    dy = periodic_distance(y1, y2, size)
    return float(np.sqrt(dx * dx + dy * dy))


def disc_footprint(radius: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Offsets and normalized distances of a round brush.

    Offsets run from -radius to +radius in unit steps (so a fractional
    radius gives fractional offsets, floored by the caller when indexing).

    Returns:
        (dx, dy, dist) flat arrays, dist = |offset| / radius, only dist <= 1
    """
    if radius <= 0:
        empty = np.zeros(0)
        return empty, empty, empty
    steps = np.arange(-radius, radius + 1e-9, 1.0)
    dy, dx = np.meshgrid(steps, steps, indexing='ij')
    dist = np.sqrt(dx * dx + dy * dy) / radius
    inside = dist <= 1
    return dx[inside], dy[inside], dist[inside]


def wrapped_indices(x: float, y: float, dx: np.ndarray, dy: np.ndarray,
                    size: int) -> Tuple[np.ndarray, np.ndarray]:
    """Row/column indices of ``(x + dx, y + dy)`` wrapped onto the grid."""
    ix = np.floor(x + dx).astype(np.int64) % size
    iy = np.floor(y + dy).astype(np.int64) % size
    return iy, ix
