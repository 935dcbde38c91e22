"""Creature records - genome, memory, tracked creature and species presets."""

from .genome import Genome, GENOME_BOUNDS, GENOME_DEFAULTS, ANGULAR_TRAITS
from .memory import CreatureMemory
from .creature import Creature, CellSet
from .species import (
    SpeciesPreset,
    SPECIES_DROPLET, SPECIES_AMOEBA, SPECIES_GRAZER, SPECIES_HUNTER, SPECIES_PREY,
    SPECIES_BY_NAME, get_species
)
