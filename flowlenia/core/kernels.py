"""
Kernel generation for the Flow-Lenia field.

The kernel defines the neighbourhood whose weighted density forms the
potential U. Every kernel is a (2R+1) x (2R+1) matrix normalized to sum 1
(the Mexican hat is normalized by its absolute sum since it has a negative
ring).

Available kinds:
- ring: sum of Gaussian bumps (classic Lenia shell, multi-peak)
- bump4: exp(4 - 1/(r(1-r))), the Orbium kernel
- quad4: bump4 shells with per-shell amplitudes (betas)
- gaussian, filled, mexican_hat
- asymmetric, spiral, star, multi_scale, anisotropic
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional
import numpy as np

from .errors import KernelError


@dataclass
class Kernel:
    """Normalized kernel weights plus the parameters that produced them."""
    weights: np.ndarray
    radius: int
    size: int
    kind: str
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def total(self) -> float:
        return float(np.sum(self.weights))


def bump(x, center, width):
    """Gaussian bell: exp(-((x - center) / width)^2 / 2)."""
    d = (x - center) / width
    return np.exp(-d * d / 2)


def _grid(radius: int):
    """Offsets and normalized distance/angle over the kernel footprint."""
    offsets = np.arange(-radius, radius + 1, dtype=float)
    dy, dx = np.meshgrid(offsets, offsets, indexing='ij')
    dist = np.sqrt(dx * dx + dy * dy) / radius
    angle = np.arctan2(dy, dx)
    return dx, dy, dist, angle


def _normalize(k: np.ndarray) -> np.ndarray:
    total = np.sum(k)
    if total > 0:
        k = k / total
    return k


def _bump4_profile(r: np.ndarray) -> np.ndarray:
    """exp(4 - 1/(r(1-r))) on 0 < r < 1, zero elsewhere."""
    out = np.zeros_like(r)
    inside = (r > 0) & (r < 1)
    ri = r[inside]
    out[inside] = np.exp(4 - 1 / (ri * (1 - ri)))
    return out


# =============================================================================
# KERNEL SHAPES
# =============================================================================

def ring(radius: int, peaks: int = 1) -> np.ndarray:
    _, _, dist, _ = _grid(radius)
    k = np.zeros_like(dist)
    width = 0.5 / (peaks + 1)
    for p in range(1, peaks + 1):
        k += bump(dist, p / (peaks + 1), width)
    k[dist > 1] = 0
    return _normalize(k)


def bump4(radius: int) -> np.ndarray:
    _, _, dist, _ = _grid(radius)
    return _normalize(_bump4_profile(dist))


def quad4(radius: int, betas=(1, 1, 1)) -> np.ndarray:
    """
    Multi-shell bump4 kernel (Geminium family).

    The normalized radius is split into len(betas) equal shells; each shell
    carries a bump4 profile scaled by its beta.
    """
    betas = np.asarray(betas, dtype=float)
    n_shells = len(betas)
    _, _, r, _ = _grid(radius)
    k = np.zeros_like(r)
    inside = (r > 0) & (r < 1)
    br = n_shells * r[inside]
    shell = np.minimum(np.floor(br).astype(int), n_shells - 1)
    k[inside] = betas[shell] * _bump4_profile(br - shell)
    return _normalize(k)


def gaussian(radius: int) -> np.ndarray:
    dx, dy, _, _ = _grid(radius)
    sigma = radius / 3
    return _normalize(np.exp(-(dx * dx + dy * dy) / (2 * sigma * sigma)))


def filled(radius: int, falloff: float = 1.0) -> np.ndarray:
    _, _, dist, _ = _grid(radius)
    d = dist * falloff
    k = np.maximum(0, (1 - d * d) ** 2)
    k[dist > 1] = 0
    return _normalize(k)


def mexican_hat(radius: int) -> np.ndarray:
    dx, dy, _, _ = _grid(radius)
    sigma = radius / 3
    norm = (dx * dx + dy * dy) / (sigma * sigma)
    k = (1 - norm / 2) * np.exp(-norm / 2)
    return k / np.sum(np.abs(k))


def asymmetric(radius: int, bias: float = 0.3) -> np.ndarray:
    _, _, dist, angle = _grid(radius)
    k = np.maximum(0, bump(dist, 0.5, 0.15) * (1 + bias * np.cos(angle)))
    k[dist > 1] = 0
    return _normalize(k)


def spiral(radius: int, arms: int = 3, tightness: float = 1.5) -> np.ndarray:
    _, _, dist, angle = _grid(radius)
    spiral_angle = angle + dist * tightness * np.pi * 2
    k = (np.cos(spiral_angle * arms) + 1) / 2 * bump(dist, 0.5, 0.25)
    k[(dist > 1) | (dist <= 0.1)] = 0
    return _normalize(k)


def star(radius: int, points: int = 5, sharpness: float = 0.5) -> np.ndarray:
    _, _, dist, angle = _grid(radius)
    star_mod = 1 - sharpness + sharpness * np.abs(np.cos(angle * points / 2))
    effective = dist / star_mod
    k = bump(effective, 0.6, 0.2)
    k[(dist > 1) | (effective > 1)] = 0
    return _normalize(k)


def multi_scale(radius: int, scales=(0.3, 0.6, 0.9), weights=(1, 0.5, 0.25)) -> np.ndarray:
    _, _, dist, _ = _grid(radius)
    weights = np.asarray(weights, dtype=float)
    weights = weights / np.sum(weights)
    k = np.zeros_like(dist)
    for scale, w in zip(scales, weights):
        k += w * bump(dist, scale, 0.1)
    k[dist > 1] = 0
    return _normalize(k)


def anisotropic(radius: int, angle: float = 0.0, eccentricity: float = 0.6) -> np.ndarray:
    dx, dy, _, _ = _grid(radius)
    cos_a, sin_a = np.cos(angle), np.sin(angle)
    rx = dx * cos_a + dy * sin_a
    ry = -dx * sin_a + dy * cos_a
    sy = ry / (1 - eccentricity)
    dist = np.sqrt(rx * rx + sy * sy) / radius
    k = bump(dist, 0.5, 0.2)
    k[dist > 1] = 0
    return _normalize(k)


# kind -> (builder, accepted parameter names)
KERNEL_BUILDERS: Dict[str, tuple] = {
    'ring': (ring, ('peaks',)),
    'bump4': (bump4, ()),
    'quad4': (quad4, ('betas',)),
    'gaussian': (gaussian, ()),
    'filled': (filled, ('falloff',)),
    'mexican_hat': (mexican_hat, ()),
    'asymmetric': (asymmetric, ('bias',)),
    'spiral': (spiral, ('arms', 'tightness')),
    'star': (star, ('points', 'sharpness')),
    'multi_scale': (multi_scale, ('scales', 'weights')),
    'anisotropic': (anisotropic, ('angle', 'eccentricity')),
}

KERNEL_TYPES = tuple(KERNEL_BUILDERS)


def generate_kernel(kind: str, radius: int, params: Optional[Dict[str, Any]] = None) -> Kernel:
    """
    Build a normalized kernel.

    Args:
        kind: One of KERNEL_TYPES
        radius: Kernel radius in cells (>= 1)
        params: Shape parameters; names not used by ``kind`` are ignored

    Returns:
        Kernel with weights of shape (2*radius+1, 2*radius+1)

    Raises:
        KernelError: unknown kind or radius < 1
    """
    if kind not in KERNEL_BUILDERS:
        raise KernelError(f"unknown kernel type '{kind}' (expected one of {', '.join(KERNEL_TYPES)})")
    radius = int(radius)
    if radius < 1:
        raise KernelError(f"kernel radius must be >= 1, got {radius}")

    builder, accepted = KERNEL_BUILDERS[kind]
    params = dict(params or {})
    used = {name: params[name] for name in accepted if name in params}
    weights = builder(radius, **used).astype(np.float64)

    return Kernel(weights=weights, radius=radius, size=2 * radius + 1, kind=kind, params=used)
