"""
Morphology blending - per-cell growth parameters from nearby creatures.

Each creature stamps an influence disc of radius ceil(1.5 * kernel_radius)
around its centroid. A cell's influence weight is (1 - d/r)^2 * A[cell], and
only the strongest contribution per cell is kept, so two overlapping
creatures keep their own mu/sigma/bias instead of averaging into a third
shape.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple
import numpy as np

from .constants import MORPH_RADIUS_SCALE


@dataclass
class MorphologyMaps:
    """Local growth parameters; ``weight`` is 0 where no creature reaches."""
    mu: np.ndarray
    sigma: np.ndarray
    weight: np.ndarray
    bias_x: np.ndarray
    bias_y: np.ndarray


class MorphologyBlender:
    """Builds MorphologyMaps into reusable N x N buffers."""

    def __init__(self, size: int):
        self._offsets: Dict[int, Tuple[np.ndarray, np.ndarray, np.ndarray]] = {}
        self.resize(size)

    def resize(self, size: int):
        self.size = size
        self.maps = MorphologyMaps(*(np.zeros((size, size)) for _ in range(5)))
        self._scratch = np.zeros((size, size))

    def _disc(self, radius: int):
        if radius not in self._offsets:
            steps = np.arange(-radius, radius + 1)
            dy, dx = np.meshgrid(steps, steps, indexing='ij')
            dist = np.sqrt(dx * dx + dy * dy)
            inside = dist <= radius
            self._offsets[radius] = (dx[inside], dy[inside], dist[inside] / radius)
        return self._offsets[radius]

    def compute(self, A: np.ndarray, creatures: Iterable) -> Optional[MorphologyMaps]:
        """
        Stamp every creature's genome into the influence maps.

        Args:
            A: Current mass grid
            creatures: Tracked creatures (need x, y, heading, genome)

        Returns:
            The shared MorphologyMaps, or None when there are no creatures
        """
        creatures = list(creatures)
        if not creatures:
            return None

        maps = self.maps
        for buf in (maps.mu, maps.sigma, maps.weight, maps.bias_x, maps.bias_y):
            buf.fill(0.0)

        n = self.size
        tmp = self._scratch
        for c in creatures:
            g = c.genome
            radius = max(1, int(np.ceil(MORPH_RADIUS_SCALE * g.kernel_radius)))
            dx, dy, t = self._disc(radius)
            ix = (int(np.floor(c.x)) + dx) % n
            iy = (int(np.floor(c.y)) + dy) % n

            # Disc can be wider than the grid, so indices may repeat
            np.maximum.at(tmp, (iy, ix), (1 - t) ** 2 * A[iy, ix])
            w = tmp[iy, ix]
            stronger = w > maps.weight[iy, ix]
            sy, sx = iy[stronger], ix[stronger]

            angle = c.heading + g.kernel_orientation
            maps.weight[sy, sx] = w[stronger]
            maps.mu[sy, sx] = g.growth_mu
            maps.sigma[sy, sx] = g.growth_sigma
            maps.bias_x[sy, sx] = np.cos(angle) * g.kernel_bias
            maps.bias_y[sy, sx] = np.sin(angle) * g.kernel_bias
            tmp[iy, ix] = 0.0

        return maps
