"""
Sensing - how a creature turns its surroundings into a desired direction.

``compute_sensory_input`` sums stimulus vectors (food, pheromone, other
creatures, current, memory, the four signal fields, homing, flocking and
pack flanking) into one 2D vector. Its angle becomes the creature's target
heading.

Stimulus gradients (everything except current and memory) pass through a
cosine directional filter keyed on heading + sensor_angle:

    w = (1 - focus) + focus * (1 + cos(delta)) / 2

so focus 0 senses all around and focus 1 is a forward cone.
"""

from typing import List, Optional, Sequence, Tuple
import numpy as np

from ..core.constants import SOCIAL_DISTANCE
from ..core.utils import angle_difference, toroidal_delta, toroidal_distance

Vector = Tuple[float, float]

# Force scales
MEMORY_SCALE = 10.0
ALARM_SCALE = 15.0
HUNT_ATTRACT_SCALE = 10.0
HUNT_FLEE_SCALE = 8.0
MATING_SCALE = 8.0
TERRITORY_SCALE = 5.0
HOMING_SCALE = 0.5 * 10.0
ALIGNMENT_SCALE = 5.0
PACK_SCALE = 3.0

FLOCK_MIN_DISTANCE = 5.0
PACK_PREY_RANGE = 60.0
PACK_HUNTER_RANGE = 80.0


def directional_weight(gradient: Vector, preferred_dir: float, focus: float) -> Vector:
    """Scale a stimulus by how well it lines up with the preferred direction."""
    gx, gy = gradient
    if focus <= 0.001:
        return gradient
    if np.hypot(gx, gy) < 0.001:
        return gradient
    delta = angle_difference(np.arctan2(gy, gx), preferred_dir)
    w = 1.0 - focus + focus * (1 + np.cos(delta)) / 2
    return gx * w, gy * w


def social_force(creature, creatures: Sequence, size: int,
                 social_distance: float = SOCIAL_DISTANCE) -> Vector:
    """
    Pull/push from other creatures within social_distance.

    Predators are drawn to anything lighter than 80% of their mass and
    pushed off by the rest; everyone else schools, weighted by size
    similarity.
    """
    fx = fy = 0.0
    for other in creatures:
        if other.id == creature.id:
            continue
        dx = toroidal_delta(other.x, creature.x, size)
        dy = toroidal_delta(other.y, creature.y, size)
        dist = float(np.hypot(dx, dy))
        if not 0 < dist < social_distance:
            continue

        nx, ny = dx / dist, dy / dist
        strength = 1 - dist / social_distance
        if creature.genome.is_predator:
            if other.mass < creature.mass * 0.8:
                k = strength * other.mass / creature.mass
            else:
                k = -strength * 0.5
        else:
            k = strength * min(creature.mass, other.mass) / max(creature.mass, other.mass)
        fx += nx * k
        fy += ny * k
    return fx, fy


def _flocking(creature, creatures: Sequence, size: int) -> Vector:
    g = creature.genome
    hx = hy = 0.0
    count = 0
    for other in creatures:
        if other.id == creature.id or other.genome.is_predator:
            continue
        dist = toroidal_distance(other.x, other.y, creature.x, creature.y, size)
        if FLOCK_MIN_DISTANCE < dist < g.flocking_radius:
            hx += np.cos(other.heading)
            hy += np.sin(other.heading)
            count += 1
    if count == 0:
        return 0.0, 0.0
    scale = g.alignment_weight * ALIGNMENT_SCALE / count
    return hx * scale, hy * scale


def _pack_flank(creature, creatures: Sequence, size: int) -> Vector:
    prey = [c for c in creatures if not c.genome.is_predator]
    if not prey:
        return 0.0, 0.0
    target = min(prey, key=lambda p: toroidal_distance(p.x, p.y, creature.x, creature.y, size))
    if toroidal_distance(target.x, target.y, creature.x, creature.y, size) >= PACK_PREY_RANGE:
        return 0.0, 0.0

    bearings: List[float] = []
    for other in creatures:
        if other.id == creature.id or not other.genome.is_predator:
            continue
        dx = toroidal_delta(target.x, other.x, size)
        dy = toroidal_delta(target.y, other.y, size)
        if np.hypot(dx, dy) < PACK_HUNTER_RANGE:
            bearings.append(np.arctan2(dy, dx))
    if not bearings:
        return 0.0, 0.0

    direct = np.arctan2(toroidal_delta(target.y, creature.y, size),
                        toroidal_delta(target.x, creature.x, size))
    side = 1 if creature.id % 2 == 0 else -1
    flank = np.mean(bearings) + np.pi / 2 * side
    pc = creature.genome.pack_coordination
    final = direct * (1 - pc) + flank * pc
    return float(np.cos(final) * PACK_SCALE), float(np.sin(final) * PACK_SCALE)


def compute_sensory_input(creature, creatures: Sequence, environment, size: int,
                          social_distance: float = SOCIAL_DISTANCE) -> Vector:
    """
    Desired direction of one creature as an (x, y) vector.

    Args:
        creature: Sensing creature (its memory decays once per call)
        creatures: Full roster, the creature itself included
        environment: Environment or None (stimuli that need it are skipped)
        size: Grid size, for toroidal geometry
        social_distance: Reach of the social force

    Returns:
        (sense_x, sense_y)
    """
    g = creature.genome
    preferred = creature.heading + g.sensor_angle
    focus = g.sensor_focus
    sx = sy = 0.0

    def add(vec: Vector, weight: float, focused: bool = True):
        nonlocal sx, sy
        if focused:
            vec = directional_weight(vec, preferred, focus)
        sx += vec[0] * weight
        sy += vec[1] * weight

    if environment is not None:
        if g.food_weight != 0:
            add(environment.get_food_gradient(creature.x, creature.y), g.food_weight)
        if g.pheromone_weight != 0:
            add(environment.get_pheromone_gradient(creature.x, creature.y), g.pheromone_weight)
    if g.social_weight != 0:
        add(social_force(creature, creatures, size, social_distance), g.social_weight)

    if environment is not None:
        add(environment.current, 1.0, focused=False)

    creature.memory.decay()
    add(creature.memory.gradient(creature.x, creature.y, size),
        g.memory_weight * MEMORY_SCALE, focused=False)

    if environment is not None:
        def signal(kind: str) -> Vector:
            return environment.get_signal_gradient(kind, creature.x, creature.y)

        if not g.is_predator:
            add(signal('alarm'), -g.alarm_sensitivity * ALARM_SCALE)
        if g.is_predator:
            add(signal('hunting'), g.hunting_sensitivity * HUNT_ATTRACT_SCALE)
        else:
            add(signal('hunting'), -abs(g.hunting_sensitivity) * HUNT_FLEE_SCALE)

        half = g.reproduction_threshold * 0.5
        if creature.energy > half:
            fertility = min(1.0, (creature.energy - half) / half)
            add(signal('mating'), g.mating_sensitivity * fertility * MATING_SCALE)

        add(signal('territory'), -g.territory_sensitivity * TERRITORY_SCALE)

    if g.homing_strength > 0:
        hx = toroidal_delta(creature.home_x, creature.x, size)
        hy = toroidal_delta(creature.home_y, creature.y, size)
        home_dist = float(np.hypot(hx, hy))
        if home_dist > g.territory_radius and home_dist > 1:
            add((hx / home_dist, hy / home_dist), g.homing_strength * HOMING_SCALE, focused=False)

    if not g.is_predator and g.alignment_weight > 0:
        add(_flocking(creature, creatures, size), 1.0, focused=False)

    if g.is_predator and g.pack_coordination > 0:
        add(_pack_flank(creature, creatures, size), 1.0, focused=False)

    return sx, sy


def target_heading(sense: Vector, current: float) -> float:
    """Angle of the sense vector, or the current heading when it is ~zero."""
    if np.hypot(sense[0], sense[1]) > 0.001:
        return float(np.arctan2(sense[1], sense[0]))
    return current
