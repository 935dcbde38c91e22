"""
Statistics Tracking - Population and evolution analytics.

Contains:
- EvolutionStats: running totals, averages, trait means and population history
- trait_averages: mean of the tracked genome traits over a roster
- generation_breakdown: roster statistics grouped by generation
"""

from dataclasses import dataclass, field
from collections import deque
from typing import Deque, Dict, Iterable, List
import numpy as np

from ..core.constants import POPULATION_HISTORY_LENGTH

# Genome traits averaged into EvolutionStats.trait_averages
TRACKED_TRAITS = (
    'food_weight', 'pheromone_weight', 'social_weight', 'turn_rate',
    'metabolism_rate', 'kernel_radius', 'growth_mu', 'growth_sigma',
    'kernel_bias', 'sensor_focus', 'memory_weight', 'alignment_weight',
    'pack_coordination', 'homing_strength',
)


def trait_averages(creatures: Iterable) -> Dict[str, float]:
    """Mean value of every TRACKED_TRAITS entry; empty dict for no creatures."""
    creatures = list(creatures)
    if not creatures:
        return {}
    return {
        name: float(np.mean([getattr(c.genome, name) for c in creatures]))
        for name in TRACKED_TRAITS
    }


def generation_breakdown(creatures: Iterable) -> Dict[int, dict]:
    """Statistics grouped by generation."""
    gens: Dict[int, List] = {}
    for c in creatures:
        gens.setdefault(c.generation, []).append(c)

    stats = {}
    for g, group in gens.items():
        stats[g] = {
            'count': len(group),
            'mean_energy': float(np.mean([c.energy for c in group])),
            'mean_mass': float(np.mean([c.mass for c in group])),
            'mean_age': float(np.mean([c.age for c in group])),
            'predators': sum(1 for c in group if c.genome.is_predator),
        }
    return stats


@dataclass
class EvolutionStats:
    """Running evolution statistics owned by the creature tracker."""
    total_births: int = 0
    total_deaths: int = 0
    highest_generation: int = 0
    predation_events: int = 0
    average_energy: float = 0.0
    average_generation: float = 0.0
    trait_averages: Dict[str, float] = field(default_factory=dict)
    population_history: Deque[int] = field(
        default_factory=lambda: deque(maxlen=POPULATION_HISTORY_LENGTH))
    lineages: Dict[int, List[int]] = field(default_factory=dict)  # parent_id -> [child ids]

    def record_birth(self, generation: int, count: int = 1):
        self.total_births += count
        self.highest_generation = max(self.highest_generation, generation)

    def record_lineage(self, parent_id: int, child_id: int):
        self.lineages.setdefault(parent_id, []).append(child_id)

    def update(self, creatures: Iterable):
        """Refresh averages and append the population count to the history."""
        creatures = list(creatures)
        if not creatures:
            self.average_energy = 0.0
            self.average_generation = 0.0
            self.trait_averages = {}
            return

        self.average_energy = float(np.mean([c.energy for c in creatures]))
        self.average_generation = float(np.mean([c.generation for c in creatures]))
        self.trait_averages = trait_averages(creatures)
        self.population_history.append(len(creatures))

    def reset(self):
        self.__init__()

    def to_dict(self) -> dict:
        return {
            'total_births': self.total_births,
            'total_deaths': self.total_deaths,
            'highest_generation': self.highest_generation,
            'predation_events': self.predation_events,
            'average_energy': round(self.average_energy, 3),
            'average_generation': round(self.average_generation, 3),
            'trait_averages': {k: round(v, 4) for k, v in self.trait_averages.items()},
            'population': self.population_history[-1] if self.population_history else 0,
        }
