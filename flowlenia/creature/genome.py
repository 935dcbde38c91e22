"""
Genome - Heritable parameter vector of a Flow-Lenia creature.

Every trait has one [min, max] range in GENOME_BOUNDS. The same table is
used when a genome is built (values are clamped into range) and when it is
mutated (noise is scaled by the range width, then clamped), so a genome
can never leave its bounds.

Trait groups:
- Sensory weights: food, pheromone, social attraction
- Movement: turn rate, speed preference
- Metabolism: upkeep, reproduction threshold and cost
- Morphology: kernel radius, growth mu/sigma, directional bias/orientation
- Sensing: sensor angle and focus
- Memory: weight and decay
- Signaling: alarm/hunting/mating/territory sensitivity, emission rate
- Collective: alignment, flocking radius, pack coordination, territory, homing
"""

from dataclasses import dataclass, fields, asdict
from typing import Dict, Tuple
import numpy as np

from ..core.utils import wrap_angle


# Trait bounds (trait_name -> (min, max))
GENOME_BOUNDS: Dict[str, Tuple[float, float]] = {
    'food_weight': (-1.0, 2.0),
    'pheromone_weight': (-1.0, 2.0),
    'social_weight': (-1.0, 2.0),
    'turn_rate': (0.01, 0.5),
    'speed_preference': (0.5, 2.0),
    'metabolism_rate': (0.005, 0.1),
    'reproduction_threshold': (20.0, 100.0),
    'reproduction_cost': (0.4, 0.8),
    'size_preference': (0.5, 2.0),
    'kernel_radius': (8.0, 15.0),
    'growth_mu': (0.1, 0.3),
    'growth_sigma': (0.01, 0.05),
    'kernel_bias': (0.0, 0.5),
    'kernel_orientation': (-np.pi, np.pi),
    'sensor_angle': (-np.pi, np.pi),
    'sensor_focus': (0.0, 1.0),
    'memory_weight': (0.0, 1.0),
    'memory_decay': (0.98, 0.999),
    'alarm_sensitivity': (0.0, 1.0),
    'hunting_sensitivity': (-0.5, 1.0),
    'mating_sensitivity': (0.0, 1.0),
    'territory_sensitivity': (-0.5, 1.0),
    'signal_emission_rate': (0.1, 1.0),
    'alignment_weight': (0.0, 1.0),
    'flocking_radius': (15.0, 50.0),
    'pack_coordination': (0.0, 1.0),
    'territory_radius': (0.0, 80.0),
    'homing_strength': (0.0, 0.5),
}

# Traits that live on the circle: mutation wraps instead of piling up at ±π
ANGULAR_TRAITS = ('kernel_orientation', 'sensor_angle')

# Chance per mutation (times the mutation rate) that predator status flips
PREDATOR_FLIP_FACTOR = 0.1


@dataclass
class Genome:
    """
    One creature's heritable traits.

    Construct with keyword overrides; anything omitted takes its default.
    Values outside GENOME_BOUNDS are clamped on construction.
    """
    # Sensory weights
    food_weight: float = 1.0
    pheromone_weight: float = 0.5
    social_weight: float = 0.3

    # Movement
    turn_rate: float = 0.15
    speed_preference: float = 1.0

    # Metabolism
    metabolism_rate: float = 0.02
    reproduction_threshold: float = 50.0
    reproduction_cost: float = 0.6

    # Physical
    size_preference: float = 1.0
    is_predator: bool = False

    # Morphology
    kernel_radius: float = 10.0
    growth_mu: float = 0.15
    growth_sigma: float = 0.02
    kernel_bias: float = 0.0
    kernel_orientation: float = 0.0

    # Asymmetric sensing
    sensor_angle: float = 0.0
    sensor_focus: float = 0.0

    # Memory
    memory_weight: float = 0.3
    memory_decay: float = 0.995

    # Signal sensitivities
    alarm_sensitivity: float = 0.5
    hunting_sensitivity: float = 0.3
    mating_sensitivity: float = 0.4
    territory_sensitivity: float = 0.2
    signal_emission_rate: float = 0.5

    # Collective behavior
    alignment_weight: float = 0.3
    flocking_radius: float = 30.0
    pack_coordination: float = 0.4
    territory_radius: float = 40.0
    homing_strength: float = 0.2

    def __post_init__(self):
        self.is_predator = bool(self.is_predator)
        for name, (lo, hi) in GENOME_BOUNDS.items():
            setattr(self, name, float(np.clip(getattr(self, name), lo, hi)))

    # =========================================================================
    # INHERITANCE
    # =========================================================================

    def clone(self) -> 'Genome':
        """Exact, independent copy."""
        return Genome(**asdict(self))

    def mutate(self, mutation_rate: float = 0.1) -> 'Genome':
        """
        Return a mutated copy; this genome is left untouched.

        Each bounded trait gets uniform noise in
        ±mutation_rate * (max - min), then is clamped (angles are wrapped).
        Predator status flips with probability mutation_rate * 0.1.

        Args:
            mutation_rate: Fraction of each trait's range used as noise scale

        Returns:
            New Genome
        """
        values = asdict(self)
        for name, (lo, hi) in GENOME_BOUNDS.items():
            noise = np.random.uniform(-1.0, 1.0) * mutation_rate * (hi - lo)
            value = values[name] + noise
            if name in ANGULAR_TRAITS:
                value = float(wrap_angle(value))
            values[name] = value

        if np.random.random() < mutation_rate * PREDATOR_FLIP_FACTOR:
            values['is_predator'] = not self.is_predator

        return Genome(**values)

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> 'Genome':
        """Deserialize from dictionary; unknown keys are ignored."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in d.items() if k in names})

    def within_bounds(self) -> bool:
        """True when every bounded trait lies inside GENOME_BOUNDS."""
        return all(lo <= getattr(self, name) <= hi
                   for name, (lo, hi) in GENOME_BOUNDS.items())


# Default value of every trait (is_predator included)
GENOME_DEFAULTS: Dict[str, float] = Genome().to_dict()
