"""
Species Presets - Field parameters, kernels and genomes for known creatures.

A preset bundles everything needed to seed a simulation with one kind of
creature: the field solver parameters (R, mu, sigma, dt, flow, diffusion),
the kernel shape, optional environment overrides, the base genome given to
newly detected creatures and the initial density pattern.

Sensory presets switch on environment sensing and evolution when loaded.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Optional
import numpy as np

from ..core.errors import ConfigurationError
from .genome import Genome


@dataclass
class SpeciesPreset:
    """
    Everything ``FlowLeniaSimulation.load_species`` needs.

    ``pattern`` builds the starting density as a 2D array placed at the
    grid centre.
    """
    name: str
    description: str
    R: int
    mu: float
    sigma: float
    dt: float
    flow_strength: float = 1.0
    diffusion: float = 0.1
    peaks: int = 1
    kernel_type: str = 'ring'
    kernel_params: dict = field(default_factory=dict)
    sensory: bool = False
    environment: dict = field(default_factory=dict)
    genome: Optional[dict] = None
    pattern: Optional[Callable[[], np.ndarray]] = None

    def field_params(self) -> dict:
        """Keyword arguments for FieldParams.update()."""
        return {
            'R': self.R,
            'peaks': self.peaks,
            'mu': self.mu,
            'sigma': self.sigma,
            'dt': self.dt,
            'flow_strength': self.flow_strength,
            'diffusion': self.diffusion,
            'kernel_type': self.kernel_type,
            'kernel_params': dict(self.kernel_params),
        }

    def base_genome(self) -> Optional[Genome]:
        return Genome.from_dict(self.genome) if self.genome is not None else None


# =============================================================================
# PATTERNS
# =============================================================================

def _centred(size: int):
    c = size / 2 - 0.5
    y, x = np.mgrid[0:size, 0:size].astype(float)
    return x - c, y - c


def droplet_pattern(size: int = 16) -> np.ndarray:
    """Dense compact disc with a steep edge."""
    dx, dy = _centred(size)
    t = np.sqrt(dx * dx + dy * dy) / (size / 2.5)
    return np.where(t < 1, np.power(np.clip(1 - t * t, 0, 1), 1.5), 0.0)


def amoeba_pattern(size: int = 20) -> np.ndarray:
    """Lumpy blob made of four overlapping bumps."""
    y, x = np.mgrid[0:size, 0:size].astype(float)
    value = np.zeros((size, size))
    for lx, ly, r, strength in ((10, 10, 7, 1.0), (14, 8, 4, 0.8),
                                (6, 12, 4, 0.8), (10, 14, 3, 0.6)):
        d = np.sqrt((x - lx) ** 2 + (y - ly) ** 2) / r
        value += np.where(d < 1, strength * (1 - d * d), 0.0)
    return np.minimum(1.0, value)


def disc_pattern(size: int, extent: float) -> np.ndarray:
    """Smooth (1 - r^2) disc of radius size / extent."""
    dx, dy = _centred(size)
    t = np.sqrt(dx * dx + dy * dy) / (size / extent)
    return np.where(t < 1, 1 - t * t, 0.0)


def hunter_pattern(size: int = 22) -> np.ndarray:
    """Larger disc, slightly pointed toward +x."""
    dx, dy = _centred(size)
    r = np.sqrt(dx * dx + dy * dy)
    max_r = (size / 2.3) * (1 + 0.15 * np.cos(np.arctan2(dy, dx)))
    t = r / max_r
    return np.where(t < 1, np.power(np.clip(1 - t * t, 0, 1), 1.2), 0.0)


# =============================================================================
# PRESET DEFINITIONS
# =============================================================================

SPECIES_DROPLET = SpeciesPreset(
    name="Droplet",
    description="Cohesive spherical mass that maintains its shape.",
    R=10, mu=0.25, sigma=0.025, dt=0.08,
    flow_strength=0.8, diffusion=0.05,
    kernel_type='ring',
    pattern=droplet_pattern,
)

SPECIES_AMOEBA = SpeciesPreset(
    name="Amoeba",
    description="Amorphous blob that extends and retracts pseudopods.",
    R=10, mu=0.18, sigma=0.032, dt=0.12,
    flow_strength=1.0, diffusion=0.12,
    kernel_type='gaussian',
    pattern=amoeba_pattern,
)

SPECIES_GRAZER = SpeciesPreset(
    name="Grazer",
    description="Grazes on food sources, avoids crowding with other creatures.",
    R=12, mu=0.15, sigma=0.018, dt=0.12,
    flow_strength=0.9, diffusion=0.12,
    kernel_type='filled',
    sensory=True,
    environment={
        'food_spawn_rate': 0.003,
        'pheromone_decay_rate': 0.02,
        'pheromone_emission_rate': 0.05,
    },
    genome={
        'food_weight': 1.5, 'pheromone_weight': 0.3, 'social_weight': -0.2,
        'turn_rate': 0.1, 'speed_preference': 0.8,
        'metabolism_rate': 0.015, 'reproduction_threshold': 45, 'reproduction_cost': 0.55,
        'size_preference': 1.0, 'is_predator': False,
        'kernel_radius': 12, 'growth_mu': 0.15, 'growth_sigma': 0.018,
        'kernel_bias': 0.05, 'kernel_orientation': 0.0,
        'sensor_angle': 0.0, 'sensor_focus': 0.1,
        'memory_weight': 0.6, 'memory_decay': 0.995,
        'alarm_sensitivity': 0.3, 'hunting_sensitivity': 0.0, 'mating_sensitivity': 0.6,
        'territory_sensitivity': 0.2, 'signal_emission_rate': 0.4,
        'alignment_weight': 0.2, 'flocking_radius': 25, 'pack_coordination': 0.0,
        'territory_radius': 45, 'homing_strength': 0.25,
    },
    pattern=lambda: disc_pattern(16, 2.4),
)

SPECIES_HUNTER = SpeciesPreset(
    name="Hunter",
    description="Actively hunts and pursues smaller creatures.",
    R=14, mu=0.24, sigma=0.028, dt=0.12,
    flow_strength=1.8, diffusion=0.06,
    kernel_type='asymmetric',
    kernel_params={'bias': 0.3},
    sensory=True,
    environment={
        'food_spawn_rate': 0.001,
        'pheromone_decay_rate': 0.015,
        'pheromone_emission_rate': 0.08,
    },
    genome={
        'food_weight': 0.0, 'pheromone_weight': 0.5, 'social_weight': 1.5,
        'turn_rate': 0.45, 'speed_preference': 1.3,
        'metabolism_rate': 0.010, 'reproduction_threshold': 80, 'reproduction_cost': 0.65,
        'size_preference': 1.3, 'is_predator': True,
        'kernel_radius': 14, 'growth_mu': 0.24, 'growth_sigma': 0.020,
        'kernel_bias': 0.3, 'kernel_orientation': 0.0,
        'sensor_angle': 0.0, 'sensor_focus': 0.6,
        'memory_weight': 0.4, 'memory_decay': 0.99,
        'alarm_sensitivity': 0.0, 'hunting_sensitivity': 0.6, 'mating_sensitivity': 0.3,
        'territory_sensitivity': 0.3, 'signal_emission_rate': 0.5,
        'alignment_weight': 0.0, 'flocking_radius': 0, 'pack_coordination': 0.5,
        'territory_radius': 50, 'homing_strength': 0.1,
    },
    pattern=hunter_pattern,
)

SPECIES_PREY = SpeciesPreset(
    name="Prey",
    description="Flees from larger creatures, moves erratically.",
    R=9, mu=0.18, sigma=0.035, dt=0.14,
    flow_strength=1.2, diffusion=0.12,
    kernel_type='gaussian',
    sensory=True,
    environment={
        'food_spawn_rate': 0.004,
        'pheromone_decay_rate': 0.025,
        'pheromone_emission_rate': 0.04,
    },
    genome={
        'food_weight': 0.8, 'pheromone_weight': -0.3, 'social_weight': -0.8,
        'turn_rate': 0.4, 'speed_preference': 1.4,
        'metabolism_rate': 0.03, 'reproduction_threshold': 55, 'reproduction_cost': 0.5,
        'size_preference': 0.7, 'is_predator': False,
        'kernel_radius': 8, 'growth_mu': 0.16, 'growth_sigma': 0.022,
        'kernel_bias': 0.1, 'kernel_orientation': 0.0,
        'sensor_angle': np.pi, 'sensor_focus': 0.4,
        'memory_weight': 0.5, 'memory_decay': 0.98,
        'alarm_sensitivity': 0.8, 'hunting_sensitivity': -0.3, 'mating_sensitivity': 0.4,
        'territory_sensitivity': 0.1, 'signal_emission_rate': 0.7,
        'alignment_weight': 0.4, 'flocking_radius': 30, 'pack_coordination': 0.0,
        'territory_radius': 35, 'homing_strength': 0.15,
    },
    pattern=lambda: disc_pattern(12, 2.5),
)


SPECIES_BY_NAME: Dict[str, SpeciesPreset] = {
    'droplet': SPECIES_DROPLET,
    'amoeba': SPECIES_AMOEBA,
    'grazer': SPECIES_GRAZER,
    'hunter': SPECIES_HUNTER,
    'prey': SPECIES_PREY,
}


def get_species(name: str) -> SpeciesPreset:
    """Look up a preset by (case-insensitive) key."""
    key = name.lower()
    if key not in SPECIES_BY_NAME:
        raise ConfigurationError(
            f"unknown species '{name}' (expected one of {', '.join(SPECIES_BY_NAME)})")
    return SPECIES_BY_NAME[key]
