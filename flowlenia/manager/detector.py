"""
Creature detection - connected components of the mass field.

A creature candidate is a 4-connected region of cells with A >= threshold,
where connectivity wraps around both grid edges. The centroid is averaged on
coordinates unwrapped relative to the component's seed cell, so a blob
lying across the seam gets its true centre rather than the middle of the
grid.
"""

from dataclasses import dataclass
from typing import List
import numpy as np

from ..core.config import TrackingParams
from ..creature.creature import CellSet

_NEIGHBOURS = ((1, 0), (-1, 0), (0, 1), (0, -1))


@dataclass
class Candidate:
    """One detected component (not yet matched to a creature)."""
    x: float
    y: float
    mass: float
    cells: CellSet
    label: int = 0


class CreatureDetector:
    """Flood-fill labeler with reusable, index-addressed scratch buffers."""

    def __init__(self, size: int, params: TrackingParams = None):
        self.params = params if params is not None else TrackingParams()
        self.resize(size)

    def resize(self, size: int):
        self.size = size
        self.visited = np.zeros((size, size), dtype=np.uint8)
        self.labels = np.zeros((size, size), dtype=np.int32)
        # Each cell is pushed at most once per pass, so n*n slots suffice
        self.stack = np.zeros((size * size, 4), dtype=np.int64)
        self.comp = np.zeros((size * size, 4), dtype=np.int64)

    def detect(self, A: np.ndarray) -> List[Candidate]:
        """
        Label the field and return candidates, heaviest first.

        Components lighter than min_creature_mass are dropped and at most
        max_creatures are returned. ``labels`` holds the 1-based index of
        each returned candidate (0 elsewhere).
        """
        n = self.size
        threshold = self.params.mass_threshold
        visited = self.visited
        labels = self.labels
        stack = self.stack
        comp = self.comp
        visited.fill(0)
        labels.fill(0)

        above = A >= threshold
        found = []
        for sy, sx in np.argwhere(above):
            if visited[sy, sx]:
                continue
            visited[sy, sx] = 1

            # Columns: wrapped x, wrapped y, unwrapped x, unwrapped y
            stack[0] = (sx, sy, sx, sy)
            top = 1
            count = 0
            while top:
                top -= 1
                x, y, wx, wy = (int(v) for v in stack[top])
                comp[count] = (x, y, wx, wy)
                count += 1
                for dx, dy in _NEIGHBOURS:
                    nx = (x + dx) % n
                    ny = (y + dy) % n
                    if above[ny, nx] and not visited[ny, nx]:
                        visited[ny, nx] = 1
                        stack[top] = (nx, ny, wx + dx, wy + dy)
                        top += 1

            cells = comp[:count]
            xs = cells[:, 0].copy()
            ys = cells[:, 1].copy()
            values = A[ys, xs]
            mass = float(np.sum(values))
            if mass < self.params.min_creature_mass:
                continue

            cx = float(np.dot(cells[:, 2], values) / mass) % n
            cy = float(np.dot(cells[:, 3], values) / mass) % n
            found.append(Candidate(cx, cy, mass, CellSet(xs, ys, values)))

        found.sort(key=lambda c: c.mass, reverse=True)
        found = found[:self.params.max_creatures]
        for i, cand in enumerate(found, start=1):
            cand.label = i
            labels[cand.cells.ys, cand.cells.xs] = i
        return found
