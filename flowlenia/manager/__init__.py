"""Creature orchestration - detection, tracking and sensing."""

from .detector import CreatureDetector, Candidate
from .tracker import CreatureTracker, Offspring, OffspringData
from .sensing import compute_sensory_input, directional_weight, social_force
