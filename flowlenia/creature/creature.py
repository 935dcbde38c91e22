"""
Creature - A tracked connected component of the mass field.

A creature is not simulated on its own: it is whatever mass the detector
finds above threshold, matched frame to frame by the tracker. The record
below carries the identity, kinematics, energy, genome and memory that
persist across those frames.
"""

from dataclasses import dataclass, field
from typing import Iterator, Optional, Tuple
import numpy as np

from ..core.constants import DEFAULT_CREATURE_ENERGY
from .genome import Genome
from .memory import CreatureMemory


@dataclass
class CellSet:
    """Grid cells owned by one creature this frame (parallel arrays)."""
    xs: np.ndarray
    ys: np.ndarray
    values: np.ndarray

    @classmethod
    def empty(cls) -> 'CellSet':
        return cls(np.zeros(0, dtype=np.int64), np.zeros(0, dtype=np.int64), np.zeros(0))

    def __len__(self) -> int:
        return len(self.xs)

    def __iter__(self) -> Iterator[Tuple[int, int, float]]:
        return zip(self.xs.tolist(), self.ys.tolist(), self.values.tolist())

    @property
    def mass(self) -> float:
        return float(np.sum(self.values))


@dataclass(eq=False)
class Creature:
    """
    Persistent state of one tracked creature.

    ``cells`` only describes the current frame. ``parent_id`` is a plain id:
    the parent may already be gone, in which case lookups return None.
    """
    id: int
    x: float = 0.0
    y: float = 0.0
    mass: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    heading: float = 0.0
    target_heading: float = 0.0
    cells: CellSet = field(default_factory=CellSet.empty)
    age: int = 0
    last_seen: int = 0

    # Evolution
    energy: float = DEFAULT_CREATURE_ENERGY
    genome: Genome = field(default_factory=Genome)
    generation: int = 0
    parent_id: Optional[int] = None
    birth_frame: int = 0

    # Territory (set once, at first detection)
    home_x: float = 0.0
    home_y: float = 0.0

    memory: CreatureMemory = field(default_factory=CreatureMemory)

    @property
    def speed(self) -> float:
        return float(np.hypot(self.vx, self.vy))

    @property
    def radius(self) -> float:
        """Radius of a disc with the creature's mass."""
        return float(np.sqrt(self.mass / np.pi))

    @property
    def can_reproduce(self) -> bool:
        return self.energy >= self.genome.reproduction_threshold

    @property
    def is_alive(self) -> bool:
        return self.energy > 0

    @property
    def is_predator(self) -> bool:
        return self.genome.is_predator

    def summary(self) -> dict:
        """Compact dict for event logs and snapshots."""
        return {
            'id': self.id,
            'pos': [round(self.x, 2), round(self.y, 2)],
            'mass': round(self.mass, 3),
            'energy': round(self.energy, 3),
            'heading': round(self.heading, 3),
            'generation': self.generation,
            'parent_id': self.parent_id,
            'predator': self.genome.is_predator,
            'age': self.age,
        }
