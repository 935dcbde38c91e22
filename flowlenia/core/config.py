"""
Parameter groups for the Flow-Lenia simulation.

Each group is a plain dataclass with defaults taken from ``constants``:
- FieldParams: kernel and growth parameters of the mass field
- TrackingParams: detection thresholds and kinematic smoothing
- EvolutionParams: energy economy, reproduction and predation
- EnvironmentParams: food, pheromone, signal and current settings

``launch_params_from_env`` reads FLOWLENIA_* environment variables for the
headless runner.
"""

import os
from dataclasses import dataclass, field, fields, asdict
from typing import Dict, Any

from . import constants as C
from .errors import ConfigurationError


class _ParamsMixin:
    """Shared (de)serialization for parameter dataclasses."""

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict):
        """Deserialize from dictionary, ignoring unknown keys."""
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})

    def update(self, **overrides):
        """Apply overrides in place, rejecting unknown names."""
        names = {f.name for f in fields(self)}
        for key, value in overrides.items():
            if key not in names:
                raise ConfigurationError(f"unknown parameter '{key}' for {type(self).__name__}")
            setattr(self, key, value)
        if hasattr(self, 'validate'):
            self.validate()
        return self


@dataclass
class FieldParams(_ParamsMixin):
    """
    Parameters of the mass field solver.

    Small dt favors stability. Very small sigma makes the affinity map
    highly sensitive and prone to oscillation.
    """
    R: int = C.DEFAULT_KERNEL_RADIUS
    peaks: int = C.DEFAULT_KERNEL_PEAKS
    mu: float = C.DEFAULT_MU
    sigma: float = C.DEFAULT_SIGMA
    dt: float = C.DEFAULT_DT
    flow_strength: float = C.DEFAULT_FLOW_STRENGTH
    diffusion: float = C.DEFAULT_DIFFUSION
    kernel_type: str = C.DEFAULT_KERNEL_TYPE
    kernel_params: Dict[str, Any] = field(default_factory=dict)
    steering_strength: float = C.STEERING_STRENGTH
    use_fft: bool = True

    def __post_init__(self):
        self.validate()

    def validate(self):
        if int(self.R) < 1:
            raise ConfigurationError(f"kernel radius must be >= 1, got {self.R}")
        if self.sigma <= 0:
            raise ConfigurationError(f"sigma must be positive, got {self.sigma}")
        if self.dt < 0 or self.diffusion < 0:
            raise ConfigurationError("dt and diffusion must be non-negative")
        self.R = int(self.R)
        self.peaks = max(1, int(self.peaks))


@dataclass
class TrackingParams(_ParamsMixin):
    """Detection thresholds and tracking smoothing."""
    mass_threshold: float = C.MASS_THRESHOLD
    min_creature_mass: float = C.MIN_CREATURE_MASS
    max_creatures: int = C.MAX_CREATURES
    match_distance: float = C.MATCH_DISTANCE
    heading_smoothing: float = C.HEADING_SMOOTHING
    velocity_smoothing: float = C.VELOCITY_SMOOTHING
    stale_frames: int = C.STALE_FRAMES
    social_distance: float = C.SOCIAL_DISTANCE


@dataclass
class EvolutionParams(_ParamsMixin):
    """Energy economy, reproduction and predation settings."""
    enabled: bool = False
    mutation_rate: float = C.MUTATION_RATE
    size_metabolism_factor: float = C.SIZE_METABOLISM_FACTOR
    food_energy_gain: float = C.FOOD_ENERGY_GAIN
    max_population: int = C.MAX_POPULATION
    death_becomes_food: bool = C.DEATH_BECOMES_FOOD
    min_creature_energy: float = C.MIN_CREATURE_ENERGY
    predation_energy: float = C.PREDATION_ENERGY


@dataclass
class EnvironmentParams(_ParamsMixin):
    """Food, pheromone, signal and current settings."""
    food_spawn_rate: float = C.FOOD_SPAWN_RATE
    food_max_density: float = C.FOOD_MAX_DENSITY
    food_consumption_rate: float = C.FOOD_CONSUMPTION_RATE
    food_spawn_mode: str = 'uniform'

    pheromone_decay_rate: float = C.PHEROMONE_DECAY_RATE
    pheromone_emission_rate: float = C.PHEROMONE_EMISSION_RATE
    pheromone_max_density: float = C.PHEROMONE_MAX_DENSITY
    pheromone_diffusion: float = C.PHEROMONE_DIFFUSION

    current_strength: float = 0.0
    current_angle: float = 0.0
    current_oscillate: bool = False
    current_oscillation_speed: float = C.CURRENT_OSCILLATION_SPEED

    signal_decay_rate: float = C.SIGNAL_DECAY_RATE
    signal_diffusion_rate: float = C.SIGNAL_DIFFUSION_RATE
    signal_max_density: float = C.SIGNAL_MAX_DENSITY

    def __post_init__(self):
        self.validate()

    def validate(self):
        if self.food_spawn_mode not in C.FOOD_SPAWN_MODES:
            raise ConfigurationError(
                f"food_spawn_mode must be one of {C.FOOD_SPAWN_MODES}, got '{self.food_spawn_mode}'")


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default) == '1'


def launch_params_from_env() -> dict:
    """
    Read headless launch parameters from FLOWLENIA_* environment variables.

    Returns:
        Dict with grid size, step count, species, ecosystem counts, seed,
        event log path, strict conservation flag and verbosity.
    """
    return {
        'size': int(os.environ.get('FLOWLENIA_SIZE', str(C.DEFAULT_GRID_SIZE))),
        'steps': int(os.environ.get('FLOWLENIA_STEPS', '1000')),
        'species': os.environ.get('FLOWLENIA_SPECIES', 'droplet'),
        'hunters': int(os.environ.get('FLOWLENIA_HUNTERS', '0')),
        'prey': int(os.environ.get('FLOWLENIA_PREY', '0')),
        'seed': int(os.environ['FLOWLENIA_SEED']) if 'FLOWLENIA_SEED' in os.environ else None,
        'event_log': os.environ.get('FLOWLENIA_EVENT_LOG', C.EVENT_LOG_FILE),
        'strict': _env_flag('FLOWLENIA_STRICT', '0'),
        'verbosity': os.environ.get('FLOWLENIA_VERBOSITY', 'eco'),
    }
