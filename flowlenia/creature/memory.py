"""
Creature Memory - Coarse spatial recall of food and danger.

Each creature carries two resolution x resolution grids over the whole
(toroidal) world. Food experiences and predator encounters are written
into the cell covering the event; both grids decay geometrically every
sensing call. The memory gradient points toward remembered food and away
from remembered danger.
"""

import numpy as np

from ..core.constants import (
    MEMORY_RESOLUTION, MEMORY_DECAY, MEMORY_FOOD_INTENSITY, MEMORY_DANGER_INTENSITY
)


class CreatureMemory:
    """Decaying food/danger map owned by one creature."""

    def __init__(self, resolution: int = MEMORY_RESOLUTION, decay_rate: float = MEMORY_DECAY):
        self.resolution = resolution
        self.decay_rate = decay_rate
        self.food = np.zeros((resolution, resolution))
        self.danger = np.zeros((resolution, resolution))

    def cell(self, x: float, y: float, world_size: float):
        """Memory cell (row, col) covering world position (x, y)."""
        mx = int(np.floor(x / world_size * self.resolution)) % self.resolution
        my = int(np.floor(y / world_size * self.resolution)) % self.resolution
        return my, mx

    def record_food(self, x: float, y: float, world_size: float,
                    intensity: float = MEMORY_FOOD_INTENSITY):
        idx = self.cell(x, y, world_size)
        self.food[idx] = min(1.0, self.food[idx] + intensity)

    def record_danger(self, x: float, y: float, world_size: float,
                      intensity: float = MEMORY_DANGER_INTENSITY):
        idx = self.cell(x, y, world_size)
        self.danger[idx] = min(1.0, self.danger[idx] + intensity)

    def decay(self):
        """Fade all memories toward zero."""
        self.food *= self.decay_rate
        self.danger *= self.decay_rate

    def value(self, x: float, y: float, world_size: float) -> float:
        """Net memory at a location (food minus danger)."""
        idx = self.cell(x, y, world_size)
        return float(self.food[idx] - self.danger[idx])

    def gradient(self, x: float, y: float, world_size: float):
        """
        Central-difference memory gradient around (x, y).

        Samples one memory cell width away in each of the four axis
        directions (wrapping around the world).

        Returns:
            (gx, gy) tuple
        """
        step = world_size / self.resolution
        gx = gy = 0.0
        for dx, dy in ((1, 0), (-1, 0), (0, 1), (0, -1)):
            nx = (x + dx * step) % world_size
            ny = (y + dy * step) % world_size
            v = self.value(nx, ny, world_size)
            gx += dx * v
            gy += dy * v
        return gx, gy

    def clone(self, inheritance_rate: float = 0.5) -> 'CreatureMemory':
        """Damped copy for offspring."""
        child = CreatureMemory(self.resolution, self.decay_rate)
        child.food = self.food * inheritance_rate
        child.danger = self.danger * inheritance_rate
        return child
