"""
Flow-Lenia - Mass-conservative continuous cellular automaton with creatures.

A toroidal density field is advected along the gradient of its own growth
map, so mass moves instead of appearing or vanishing. Connected blobs of
mass are tracked as creatures that carry genomes, memories and energy,
steer the flow, reproduce by splitting and hunt each other.

Usage:
    python -m flowlenia                    # Headless run, default species
    python -m flowlenia --ecosystem 2 6    # Hunters vs prey
    python -m flowlenia --help             # Show help

Package structure:
- core/: Constants, configuration, kernels, mass field, morphology
- creature/: Genome, memory, creature record, species presets
- manager/: Detection, tracking and sensing
- world/: Environment fields (food, pheromone, signals, current)
- events/: Event logging and console verbosity
- statistics/: Evolution statistics
"""

__version__ = "1.0.0"

from .simulation import FlowLeniaSimulation, StepReport, PendingOffspring, run_batch
from .main import main

# Submodule imports
from . import core, creature, manager, world, events, statistics
