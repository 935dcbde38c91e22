"""World systems - food, pheromone, signal fields and the global current."""

from .environment import Environment
