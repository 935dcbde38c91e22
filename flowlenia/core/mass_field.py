"""
MassField - Toroidal Flow-Lenia density grid and its solver stages.

One step of the field is:

    A --kernel--> potential U --growth--> affinity G --sobel--> flow F
    A --(move along F * dt, split bilinearly)--> A' --diffuse--> A''

Transport moves mass instead of creating or destroying it, so the total is
preserved by every stage after the affinity map. Only the editing tools
(brush, patterns, erase) change the sum.

The potential has two back ends: a cached-spectrum FFT correlation (default)
and a direct ``scipy.ndimage.correlate`` with wrap mode. Both give the same
field up to floating-point noise.
"""

from typing import Iterable, Optional, Tuple, TYPE_CHECKING
import numpy as np
from scipy import ndimage

from .config import FieldParams
from .constants import (
    DEFAULT_GRID_SIZE, MIN_GRID_SIZE, MASS_EPSILON, DIFFUSION_SHARE_FACTOR,
    FLOW_MASS_THRESHOLD, MORPH_WEIGHT_THRESHOLD, BRUSH_SCALE
)
from .errors import ConfigurationError
from .kernels import Kernel, generate_kernel
from .utils import disc_footprint, wrapped_indices

if TYPE_CHECKING:
    from .morphology import MorphologyMaps
    from ..creature.creature import CellSet


def _check_size(size: int) -> int:
    size = int(size)
    if size < MIN_GRID_SIZE:
        raise ConfigurationError(f"grid size must be >= {MIN_GRID_SIZE}, got {size}")
    return size


class MassField:
    """
    Density grid A[y, x] plus the step-scoped solver buffers.

    Buffers ``potential``, ``affinity``, ``fx`` and ``fy`` are derived state:
    they are overwritten on every step and only kept for inspection.
    """

    def __init__(self, size: int = DEFAULT_GRID_SIZE, params: Optional[FieldParams] = None):
        """
        Initialize an empty field.

        Args:
            size: Grid side N (the grid is N x N and wraps on both axes)
            params: Solver parameters (defaults if None)
        """
        self.size = _check_size(size)
        self.params = params if params is not None else FieldParams()

        self.A = np.zeros((self.size, self.size))
        self._alloc_buffers()

        self.kernel: Optional[Kernel] = None
        self._kernel_spectrum = None
        self.set_kernel()

    def _alloc_buffers(self):
        n = self.size
        self.potential = np.zeros((n, n))
        self.affinity = np.zeros((n, n))
        self.fx = np.zeros((n, n))
        self.fy = np.zeros((n, n))

    # =========================================================================
    # KERNEL
    # =========================================================================

    def set_kernel(self, kind: Optional[str] = None, radius: Optional[int] = None,
                   params: Optional[dict] = None):
        """
        Regenerate the active kernel from the current (or given) parameters.

        Raises:
            KernelError: unknown kind or radius < 1
        """
        if kind is not None:
            self.params.kernel_type = kind
        if radius is not None:
            self.params.R = int(radius)
        if params is not None:
            self.params.kernel_params = dict(params)

        kernel_params = dict(self.params.kernel_params)
        kernel_params.setdefault('peaks', self.params.peaks)
        self.kernel = generate_kernel(self.params.kernel_type, self.params.R, kernel_params)
        self._kernel_spectrum = None

    def update_params(self, **overrides):
        """Apply parameter overrides, rebuilding the kernel when its shape changes."""
        shape_keys = {'R', 'peaks', 'kernel_type', 'kernel_params'}
        self.params.update(**overrides)
        if shape_keys & set(overrides):
            self.set_kernel()

    def _spectrum(self) -> np.ndarray:
        """Conjugate kernel spectrum, padded to the grid and centred on (0, 0)."""
        if self._kernel_spectrum is None:
            n = self.size
            weights = self.kernel.weights
            r = self.kernel.radius
            ky, kx = np.indices(weights.shape)
            padded = np.zeros((n, n))
            np.add.at(padded, ((ky - r) % n, (kx - r) % n), weights)
            self._kernel_spectrum = np.conj(np.fft.rfft2(padded))
        return self._kernel_spectrum

    # =========================================================================
    # SOLVER STAGES
    # =========================================================================

    def compute_potential(self) -> np.ndarray:
        """U = A correlated with the kernel, wrapping at the edges."""
        if self.params.use_fft:
            self.potential = np.fft.irfft2(np.fft.rfft2(self.A) * self._spectrum(),
                                           s=self.A.shape)
        else:
            self.potential = ndimage.correlate(self.A, self.kernel.weights, mode='wrap')
        return self.potential

    def compute_affinity(self, influence: Optional['MorphologyMaps'] = None) -> np.ndarray:
        """
        Growth mapping G(U) = 2 exp(-((U - mu) / sigma)^2 / 2) - 1.

        Where a morphology influence weight exceeds 0.01, mu and sigma are
        blended toward the local creature's values by min(1, 2 * weight).
        """
        mu = self.params.mu
        sigma = self.params.sigma
        if influence is not None:
            w = influence.weight
            active = w > MORPH_WEIGHT_THRESHOLD
            blend = np.where(active, np.minimum(1.0, 2.0 * w), 0.0)
            mu = mu + (influence.mu - mu) * blend
            sigma = sigma + (influence.sigma - sigma) * blend

        d = (self.potential - mu) / sigma
        self.affinity = 2.0 * np.exp(-d * d / 2) - 1.0
        return self.affinity

    def compute_gradient(self, influence: Optional['MorphologyMaps'] = None):
        """
        Flow = Sobel gradient of the affinity (wrapping, /8) times flow_strength.

        Creature bias vectors are added where A > 0.1 and the influence
        weight exceeds 0.01, scaled by A * weight.
        """
        gx = ndimage.sobel(self.affinity, axis=1, mode='wrap') / 8.0
        gy = ndimage.sobel(self.affinity, axis=0, mode='wrap') / 8.0

        if influence is not None:
            mask = (self.A > FLOW_MASS_THRESHOLD) & (influence.weight > MORPH_WEIGHT_THRESHOLD)
            scale = np.where(mask, self.A * influence.weight, 0.0)
            gx += influence.bias_x * scale
            gy += influence.bias_y * scale

        self.fx = gx * self.params.flow_strength
        self.fy = gy * self.params.flow_strength
        return self.fx, self.fy

    def add_flow(self, fx: np.ndarray, fy: np.ndarray):
        """Add an externally computed vector field (steering, pursuit)."""
        self.fx += fx
        self.fy += fy

    def transport_mass(self, dt: Optional[float] = None):
        """
        Move every cell's mass to pos + flow * dt, split over 4 cells.

        Cells below MASS_EPSILON keep their mass where it is, so the total
        is preserved exactly (up to float rounding).
        """
        if dt is None:
            dt = self.params.dt
        n = self.size
        A = self.A

        moving = A >= MASS_EPSILON
        ys, xs = np.nonzero(moving)
        m = A[ys, xs]

        nx = xs + self.fx[ys, xs] * dt
        ny = ys + self.fy[ys, xs] * dt
        x0 = np.floor(nx)
        y0 = np.floor(ny)
        tx = nx - x0
        ty = ny - y0
        x0 = x0.astype(np.int64) % n
        y0 = y0.astype(np.int64) % n
        x1 = (x0 + 1) % n
        y1 = (y0 + 1) % n

        idx = np.concatenate([y0 * n + x0, y0 * n + x1, y1 * n + x0, y1 * n + x1])
        weights = np.concatenate([
            m * (1 - tx) * (1 - ty),
            m * tx * (1 - ty),
            m * (1 - tx) * ty,
            m * tx * ty,
        ])
        moved = np.bincount(idx, weights=weights, minlength=n * n).reshape(n, n)

        self.A = np.maximum(0.0, np.where(moving, 0.0, A) + moved)

    def apply_diffusion(self, rate: Optional[float] = None):
        """Each cell above MASS_EPSILON gives rate * 0.1 of its mass to each neighbour."""
        if rate is None:
            rate = self.params.diffusion
        if rate <= 0:
            return
        share = rate * DIFFUSION_SHARE_FACTOR
        m = np.where(self.A >= MASS_EPSILON, self.A, 0.0)
        incoming = (np.roll(m, 1, axis=0) + np.roll(m, -1, axis=0) +
                    np.roll(m, 1, axis=1) + np.roll(m, -1, axis=1))
        self.A = np.maximum(0.0, self.A - 4.0 * share * m + share * incoming)

    def advance(self, influence: Optional['MorphologyMaps'] = None,
                flows: Iterable[Tuple[np.ndarray, np.ndarray]] = ()) -> Tuple[float, float]:
        """
        Run one full field update.

        Args:
            influence: Morphology maps from MorphologyBlender, or None
            flows: Extra (fx, fy) fields added after the gradient

        Returns:
            (mass before transport, mass after diffusion)
        """
        self.compute_potential()
        self.compute_affinity(influence)
        self.compute_gradient(influence)
        for fx, fy in flows:
            self.add_flow(fx, fy)

        before = self.total_mass()
        self.transport_mass()
        self.apply_diffusion()
        return before, self.total_mass()

    # =========================================================================
    # QUERIES & EDITING
    # =========================================================================

    def total_mass(self) -> float:
        return float(np.sum(self.A))

    def clear(self):
        self.A.fill(0.0)
        for buf in (self.potential, self.affinity, self.fx, self.fy):
            buf.fill(0.0)

    def resize(self, size: int):
        """Nearest-neighbour resample of A onto a size x size grid."""
        size = _check_size(size)
        if size == self.size:
            return
        old = self.size
        src = (np.arange(size) * old // size).astype(np.int64)
        self.A = self.A[np.ix_(src, src)].copy()
        self.size = size
        self._alloc_buffers()
        self._kernel_spectrum = None

    def disc_indices(self, x: float, y: float, radius: float):
        """Wrapped (rows, cols, normalized distance) of a round brush at floor(x, y)."""
        dx, dy, dist = disc_footprint(radius)
        iy, ix = wrapped_indices(np.floor(x), np.floor(y), dx, dy, self.size)
        return iy, ix, dist

    def draw_blob(self, x: float, y: float, radius: float, value: float = 1.0):
        """
        Smooth additive brush: value * (1 - d^2) * 0.3 per cell.

        Positive strokes are capped at 1, negative strokes floored at 0.
        """
        iy, ix, dist = self.disc_indices(x, y, radius)
        if len(dist) == 0:
            return
        np.add.at(self.A, (iy, ix), value * (1 - dist * dist) * BRUSH_SCALE)
        if value > 0:
            self.A[iy, ix] = np.minimum(1.0, self.A[iy, ix])
        else:
            self.A[iy, ix] = np.maximum(0.0, self.A[iy, ix])

    def place_pattern(self, pattern: np.ndarray, cx: Optional[float] = None,
                      cy: Optional[float] = None):
        """Overwrite the grid with ``pattern`` centred on (cx, cy), wrapping."""
        pattern = np.asarray(pattern, dtype=float)
        if cx is None:
            cx = self.size / 2
        if cy is None:
            cy = self.size / 2
        h, w = pattern.shape
        rows = (int(np.floor(cy)) - h // 2 + np.arange(h)) % self.size
        cols = (int(np.floor(cx)) - w // 2 + np.arange(w)) % self.size
        self.A[np.ix_(rows, cols)] = pattern

    def randomize(self, density: float = 0.3, clumpiness: float = 0.5):
        """Clear, then scatter soft clumps and a little background noise."""
        n = self.size
        self.clear()
        yy, xx = np.mgrid[0:n, 0:n].astype(float)
        for _ in range(int(np.floor(n * n * density * 0.001))):
            cx = np.random.random() * n
            cy = np.random.random() * n
            r = 5 + np.random.random() * 20
            d = np.sqrt((xx - cx) ** 2 + (yy - cy) ** 2)
            inside = d < r
            jitter = 0.5 + 0.5 * np.random.random(np.count_nonzero(inside))
            self.A[inside] += (1 - d[inside] / r) * jitter * clumpiness
        self.A += np.random.random((n, n)) * 0.1
        np.minimum(self.A, 1.0, out=self.A)

    def erase_cells(self, cells: 'CellSet') -> float:
        """Zero the given cells; returns the mass removed."""
        if len(cells) == 0:
            return 0.0
        removed = float(np.sum(self.A[cells.ys, cells.xs]))
        self.A[cells.ys, cells.xs] = 0.0
        return removed
