"""
Environment - Food, pheromone and signal fields that creatures sense.

All fields share the mass grid's size and wrap at the edges:
- food: regrows everywhere, eaten where creature mass sits
- pheromone: emitted by creature mass, decays and diffuses
- signals: alarm / hunting / mating / territory pulses emitted by creatures,
  fading faster than pheromone (territory persists longer)
- current: one global drift vector, optionally oscillating

Gradients are refreshed once per ``update`` with a wrapping Sobel filter and
sampled bilinearly at creature positions.
"""

from typing import Dict, List, Optional, Tuple
import numpy as np
from scipy import ndimage

from ..core.config import EnvironmentParams
from ..core.constants import SIGNAL_TYPES, SIGNAL_RADIUS, FOOD_UNIFORM_LEVEL
from ..core.errors import ConfigurationError
from ..core.utils import disc_footprint, wrapped_indices

# Stable food patch layout (patches mode)
PATCH_SIZE = 30
PATCH_SPACING = 60
PATCH_LEVEL = 0.8

# Territory marks fade and spread slower than the other signals
TERRITORY_DECAY_SCALE = 0.5
TERRITORY_DIFFUSION_SCALE = 0.3


def _neighbour_mean(field: np.ndarray) -> np.ndarray:
    return (np.roll(field, 1, axis=0) + np.roll(field, -1, axis=0) +
            np.roll(field, 1, axis=1) + np.roll(field, -1, axis=1)) / 4


def _sobel(field: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    return (ndimage.sobel(field, axis=1, mode='wrap') / 8.0,
            ndimage.sobel(field, axis=0, mode='wrap') / 8.0)


class Environment:
    """
    Environmental fields coupled to one MassField.

    Owned by the simulation; ``update(mass)`` is called once per step while
    sensory mode is on.
    """

    def __init__(self, size: int, params: Optional[EnvironmentParams] = None):
        self.params = params if params is not None else EnvironmentParams()
        self.food_clusters: List[dict] = []
        self.current_phase = 0.0
        self.current = (0.0, 0.0)
        self._alloc(size)
        self.initialize_food()

    def _alloc(self, size: int):
        self.size = size
        shape = (size, size)
        self.food = np.zeros(shape)
        self.pheromone = np.zeros(shape)
        self.signals: Dict[str, np.ndarray] = {kind: np.zeros(shape) for kind in SIGNAL_TYPES}
        self.food_grad = (np.zeros(shape), np.zeros(shape))
        self.pheromone_grad = (np.zeros(shape), np.zeros(shape))
        self.signal_grad = {kind: (np.zeros(shape), np.zeros(shape)) for kind in SIGNAL_TYPES}

    def _signal(self, kind: str) -> np.ndarray:
        if kind not in self.signals:
            raise ConfigurationError(
                f"unknown signal type '{kind}' (expected one of {', '.join(SIGNAL_TYPES)})")
        return self.signals[kind]

    # =========================================================================
    # FOOD LAYOUT
    # =========================================================================

    def initialize_food(self):
        """Lay out food according to food_spawn_mode."""
        self.food.fill(0.0)
        mode = self.params.food_spawn_mode
        if mode == 'uniform':
            self.food.fill(FOOD_UNIFORM_LEVEL)
        elif mode == 'clusters':
            self.food_clusters = [
                {
                    'x': np.random.random() * self.size,
                    'y': np.random.random() * self.size,
                    'radius': 15 + np.random.random() * 25,
                    'strength': 0.5 + np.random.random() * 0.5,
                }
                for _ in range(5 + int(np.random.random() * 5))
            ]
            self._apply_food_clusters()
        elif mode == 'patches':
            self._create_food_patches()

    def _apply_food_clusters(self):
        yy, xx = np.mgrid[0:self.size, 0:self.size].astype(float)
        for cluster in self.food_clusters:
            t = np.sqrt((xx - cluster['x']) ** 2 + (yy - cluster['y']) ** 2) / cluster['radius']
            inside = t < 1
            self.food[inside] = np.minimum(
                self.params.food_max_density,
                self.food[inside] + cluster['strength'] * (1 - t[inside] ** 2))

    def _create_food_patches(self):
        half = PATCH_SIZE // 2
        steps = np.arange(-half, half)
        dy, dx = np.meshgrid(steps, steps, indexing='ij')
        dist = np.sqrt(dx * dx + dy * dy) / half
        inside = dist < 1
        dx, dy, dist = dx[inside], dy[inside], dist[inside]
        for py in range(PATCH_SIZE, self.size - PATCH_SIZE, PATCH_SPACING):
            for px in range(PATCH_SIZE, self.size - PATCH_SIZE, PATCH_SPACING):
                iy, ix = wrapped_indices(px, py, dx, dy, self.size)
                self.food[iy, ix] = PATCH_LEVEL * (1 - dist * dist)

    # =========================================================================
    # UPDATE
    # =========================================================================

    def update(self, mass: Optional[np.ndarray] = None):
        """Advance food, pheromone, signals and current, then refresh gradients."""
        self.update_food(mass)
        self.update_pheromones(mass)
        self.update_signals()
        self.update_current()
        self.compute_gradients()

    def update_food(self, mass: Optional[np.ndarray] = None):
        p = self.params
        food = self.food
        growing = food < p.food_max_density
        food[growing] = np.minimum(food[growing] + p.food_spawn_rate, p.food_max_density)

        if mass is not None:
            eating = mass > 0.1
            food[eating] = np.maximum(0.0, food[eating] - mass[eating] * p.food_consumption_rate)

        if p.food_spawn_mode == 'clusters':
            for cluster in self.food_clusters:
                cx = int(np.floor(cluster['x'])) % self.size
                cy = int(np.floor(cluster['y'])) % self.size
                food[cy, cx] = min(p.food_max_density, food[cy, cx] + p.food_spawn_rate * 5)

    def update_pheromones(self, mass: Optional[np.ndarray] = None):
        p = self.params
        value = self.pheromone * (1 - p.pheromone_decay_rate)
        if p.pheromone_diffusion > 0:
            value = (value * (1 - p.pheromone_diffusion) +
                     _neighbour_mean(self.pheromone) * p.pheromone_diffusion)
        if mass is not None:
            value = value + np.where(mass > 0.1, mass * p.pheromone_emission_rate, 0.0)
        self.pheromone = np.clip(value, 0.0, p.pheromone_max_density)

    def update_signals(self):
        p = self.params
        for kind in SIGNAL_TYPES:
            decay, diffusion = p.signal_decay_rate, p.signal_diffusion_rate
            if kind == 'territory':
                decay *= TERRITORY_DECAY_SCALE
                diffusion *= TERRITORY_DIFFUSION_SCALE
            field = self.signals[kind]
            value = field * (1 - decay)
            if diffusion > 0:
                value = value * (1 - diffusion) + _neighbour_mean(field) * diffusion
            self.signals[kind] = np.clip(value, 0.0, p.signal_max_density)

    def update_current(self):
        p = self.params
        strength = p.current_strength
        if p.current_oscillate:
            self.current_phase += p.current_oscillation_speed
            strength *= np.sin(self.current_phase)
        self.current = (float(np.cos(p.current_angle) * strength),
                        float(np.sin(p.current_angle) * strength))

    def compute_gradients(self):
        self.food_grad = _sobel(self.food)
        self.pheromone_grad = _sobel(self.pheromone)
        for kind in SIGNAL_TYPES:
            self.signal_grad[kind] = _sobel(self.signals[kind])

    # =========================================================================
    # SAMPLING
    # =========================================================================

    def sample_gradient(self, x: float, y: float, grad) -> Tuple[float, float]:
        """Bilinear sample of a (gx, gy) pair at a wrapped position."""
        n = self.size
        x = x % n
        y = y % n
        x0 = int(np.floor(x)) % n
        y0 = int(np.floor(y)) % n
        x1 = (x0 + 1) % n
        y1 = (y0 + 1) % n
        fx = x - np.floor(x)
        fy = y - np.floor(y)
        w00 = (1 - fx) * (1 - fy)
        w10 = fx * (1 - fy)
        w01 = (1 - fx) * fy
        w11 = fx * fy
        out = []
        for g in grad:
            out.append(float(g[y0, x0] * w00 + g[y0, x1] * w10 +
                             g[y1, x0] * w01 + g[y1, x1] * w11))
        return out[0], out[1]

    def get_food_gradient(self, x: float, y: float) -> Tuple[float, float]:
        return self.sample_gradient(x, y, self.food_grad)

    def get_pheromone_gradient(self, x: float, y: float) -> Tuple[float, float]:
        return self.sample_gradient(x, y, self.pheromone_grad)

    def get_signal_gradient(self, kind: str, x: float, y: float) -> Tuple[float, float]:
        self._signal(kind)
        return self.sample_gradient(x, y, self.signal_grad[kind])

    def _cell(self, x: float, y: float):
        return int(np.floor(y)) % self.size, int(np.floor(x)) % self.size

    def food_at(self, x: float, y: float) -> float:
        return float(self.food[self._cell(x, y)])

    def pheromone_at(self, x: float, y: float) -> float:
        return float(self.pheromone[self._cell(x, y)])

    def signal_at(self, kind: str, x: float, y: float) -> float:
        return float(self._signal(kind)[self._cell(x, y)])

    # =========================================================================
    # DEPOSITS
    # =========================================================================

    def _deposit(self, field: np.ndarray, x: float, y: float, amount: float,
                 radius: float, cap: float):
        dx, dy, dist = disc_footprint(radius)
        if len(dist) == 0:
            return
        iy, ix = wrapped_indices(x, y, dx, dy, self.size)
        np.add.at(field, (iy, ix), amount * (1 - dist * dist))
        field[iy, ix] = np.minimum(cap, field[iy, ix])

    def add_food(self, x: float, y: float, amount: float, radius: float = 10):
        self._deposit(self.food, x, y, amount, radius, self.params.food_max_density)

    def add_pheromone(self, x: float, y: float, amount: float, radius: float = 5):
        self._deposit(self.pheromone, x, y, amount, radius, self.params.pheromone_max_density)

    def emit_signal(self, kind: str, x: float, y: float, intensity: float = 0.8,
                    radius: float = SIGNAL_RADIUS):
        """Stamp a smooth signal pulse of the given kind."""
        self._deposit(self._signal(kind), x, y, intensity, radius, self.params.signal_max_density)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def clear(self):
        """Zero every field and gradient."""
        for field in (self.food, self.pheromone, *self.signals.values(),
                      *self.food_grad, *self.pheromone_grad):
            field.fill(0.0)
        for gx, gy in self.signal_grad.values():
            gx.fill(0.0)
            gy.fill(0.0)

    def reset(self):
        """Clear pheromone and signals, restart the current and re-lay food."""
        self.pheromone.fill(0.0)
        for field in self.signals.values():
            field.fill(0.0)
        self.current_phase = 0.0
        self.initialize_food()

    def resize(self, size: int):
        if size == self.size:
            return
        self._alloc(size)
        self.initialize_food()
