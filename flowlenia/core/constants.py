"""
Core constants for the Flow-Lenia simulation.

This module contains grid defaults, field solver parameters, tracking
thresholds, evolution economy constants and environment defaults used
throughout the simulation. Parameter dataclasses in ``config`` take their
defaults from here.
"""

import os
import numpy as np

# =============================================================================
# ERROR HANDLING
# =============================================================================
# Flow math divides by sigma and mass totals; NaN/inf are contained by clamping
np.seterr(divide='ignore', invalid='ignore', over='ignore')

# =============================================================================
# PATHS
# =============================================================================
SCRIPT_DIR = os.getcwd()

# File paths - may be overridden with FLOWLENIA_EVENT_LOG
EVENT_LOG_FILE = os.path.join(SCRIPT_DIR, "flowlenia_events.jsonl")


# =============================================================================
# GRID
# =============================================================================
DEFAULT_GRID_SIZE = 128
MIN_GRID_SIZE = 8


# =============================================================================
# FIELD SOLVER (Flow-Lenia)
# =============================================================================
DEFAULT_KERNEL_RADIUS = 13
DEFAULT_KERNEL_PEAKS = 1
DEFAULT_MU = 0.15
DEFAULT_SIGMA = 0.015
DEFAULT_DT = 0.1
DEFAULT_FLOW_STRENGTH = 1.0
DEFAULT_DIFFUSION = 0.1
DEFAULT_KERNEL_TYPE = 'ring'

MASS_EPSILON = 1e-4            # Cells below this are skipped by transport/diffusion
DIFFUSION_SHARE_FACTOR = 0.1   # shareRate = diffusion * factor, per neighbour
FLOW_MASS_THRESHOLD = 0.1      # Bias/steering/pursuit only where A exceeds this
MORPH_WEIGHT_THRESHOLD = 0.01  # Minimum influence weight to blend local params
MORPH_RADIUS_SCALE = 1.5       # Influence disc = scale * genome.kernel_radius
STEERING_STRENGTH = 0.5

# Conservation diagnostic: relative drift per step that is reported
MASS_DRIFT_TOLERANCE = 0.01


# =============================================================================
# PURSUIT (ecosystem mode)
# =============================================================================
PURSUIT_STRENGTH = 5.0
PURSUIT_RANGE = 150.0
PURSUIT_MAX_LOOKAHEAD = 15.0
PURSUIT_PROXIMITY_GAIN = 3.0


# =============================================================================
# DETECTION & TRACKING
# =============================================================================
MASS_THRESHOLD = 0.1
MIN_CREATURE_MASS = 5.0
MAX_CREATURES = 50
MATCH_DISTANCE = 30.0
HEADING_SMOOTHING = 0.1
VELOCITY_SMOOTHING = 0.3
HEADING_SPEED_FLOOR = 0.1      # Below this speed heading is not taken from velocity
STALE_FRAMES = 10
SOCIAL_DISTANCE = 50.0


# =============================================================================
# EVOLUTION ECONOMY
# =============================================================================
MUTATION_RATE = 0.1
SIZE_METABOLISM_FACTOR = 0.001
FOOD_ENERGY_GAIN = 0.5
FOOD_BITE_FRACTION = 0.1       # Consumed per cell = min(food, value * fraction)
FOOD_MEMORY_FACTOR = 0.1
MAX_POPULATION = 30
DEATH_BECOMES_FOOD = True
DEATH_FOOD_FRACTION = 0.3
MIN_CREATURE_ENERGY = 10.0
PREDATION_ENERGY = 1.5
DEFAULT_CREATURE_ENERGY = 25.0

OFFSPRING_CAPTURE_RADIUS = 20.0
OFFSPRING_PENDING_FRAMES = 5
OFFSPRING_MEMORY_INHERITANCE = 0.5
SPLIT_DISTANCE_SCALE = 0.7
OFFSPRING_RADIUS_SCALE = 0.75
OFFSPRING_MIN_RADIUS = 6.0

POPULATION_HISTORY_LENGTH = 500


# =============================================================================
# MEMORY
# =============================================================================
MEMORY_RESOLUTION = 8
MEMORY_DECAY = 0.995
MEMORY_FOOD_INTENSITY = 0.3
MEMORY_DANGER_INTENSITY = 0.5


# =============================================================================
# SIGNALS
# =============================================================================
SIGNAL_TYPES = ('alarm', 'hunting', 'mating', 'territory')
SIGNAL_GLOW_SECONDS = 0.5
SIGNAL_RADIUS = 8


# =============================================================================
# ENVIRONMENT
# =============================================================================
FOOD_SPAWN_RATE = 0.002
FOOD_MAX_DENSITY = 1.0
FOOD_CONSUMPTION_RATE = 0.1
FOOD_SPAWN_MODES = ('uniform', 'clusters', 'patches')
FOOD_UNIFORM_LEVEL = 0.3

PHEROMONE_DECAY_RATE = 0.01
PHEROMONE_EMISSION_RATE = 0.1
PHEROMONE_MAX_DENSITY = 1.0
PHEROMONE_DIFFUSION = 0.05

SIGNAL_DECAY_RATE = 0.08
SIGNAL_DIFFUSION_RATE = 0.3
SIGNAL_MAX_DENSITY = 1.0

CURRENT_OSCILLATION_SPEED = 0.01


# =============================================================================
# ECOSYSTEM SPAWNING
# =============================================================================
HUNTER_BLOB_RADIUS = 14
HUNTER_BLOB_VALUE = 0.9
PREY_BLOB_RADIUS = 10
PREY_BLOB_VALUE = 0.85
HUNTER_SPAWN_SEPARATION = 50.0
PREY_SPAWN_SEPARATION = 30.0
BRUSH_SCALE = 0.3
