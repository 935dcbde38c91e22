import numpy as np
import pytest

from flowlenia.creature.genome import Genome
from flowlenia.manager.sensing import (
    compute_sensory_input, directional_weight, social_force, target_heading
)
from flowlenia.world.environment import Environment

from conftest import make_creature


def test_directional_weight_without_focus_is_identity():
    assert directional_weight((1.0, 2.0), 0.3, 0.0) == (1.0, 2.0)


def test_full_focus_blocks_stimulus_from_behind():
    gx, gy = directional_weight((-1.0, 0.0), 0.0, 1.0)
    assert gx == pytest.approx(0.0, abs=1e-12)
    gx, gy = directional_weight((1.0, 0.0), 0.0, 1.0)
    assert gx == pytest.approx(1.0)


def test_partial_focus_formula():
    gx, gy = directional_weight((0.0, 1.0), 0.0, 0.5)
    # delta = pi/2 -> w = 0.5 + 0.5 * 0.5
    assert gy == pytest.approx(0.75)


def test_prey_schools_with_similar_sizes():
    a = make_creature(1, 10, 10, mass=20.0)
    b = make_creature(2, 20, 10, mass=20.0)
    fx, fy = social_force(a, [a, b], 64, 50.0)
    assert fx == pytest.approx(1 - 10 / 50)
    assert fy == pytest.approx(0.0)


def test_predator_attracted_to_small_and_repelled_by_large():
    hunter = make_creature(1, 10, 10, mass=100.0, genome=Genome(is_predator=True))
    small = make_creature(2, 20, 10, mass=30.0)
    big = make_creature(3, 10, 20, mass=150.0)
    fx, fy = social_force(hunter, [hunter, small, big], 64, 50.0)
    assert fx > 0
    assert fy < 0


def test_social_force_crosses_edges():
    a = make_creature(1, 2, 10, mass=20.0)
    b = make_creature(2, 60, 10, mass=20.0)
    fx, _ = social_force(a, [a, b], 64, 50.0)
    assert fx < 0


def test_food_steers_sensing():
    env = Environment(64)
    env.food.fill(0.0)
    env.add_food(40, 32, 1.0, radius=10)
    env.compute_gradients()
    c = make_creature(1, 34, 32, genome=Genome(social_weight=0.0, homing_strength=0.0))
    c.home_x, c.home_y = 34, 32
    sx, sy = compute_sensory_input(c, [c], env, 64)
    assert sx > 0
    assert target_heading((sx, sy), 1.0) == pytest.approx(np.arctan2(sy, sx))


def test_homing_pulls_outside_territory():
    c = make_creature(1, 40, 10, genome=Genome(territory_radius=10, homing_strength=0.5))
    c.home_x, c.home_y = 10, 10
    sx, sy = compute_sensory_input(c, [c], None, 128)
    assert sx < 0
    assert sy == pytest.approx(0.0)


def test_memory_decays_once_per_sensing_call():
    c = make_creature(1, 10, 10)
    c.memory.decay_rate = 0.5
    c.memory.record_food(10, 10, 64, 0.8)
    compute_sensory_input(c, [c], None, 64)
    assert c.memory.food.max() == pytest.approx(0.4)


def test_no_stimulus_keeps_current_heading():
    c = make_creature(1, 10, 10, genome=Genome(homing_strength=0.0))
    sense = compute_sensory_input(c, [c], None, 64)
    assert sense == (0.0, 0.0)
    assert target_heading(sense, 1.2) == 1.2


def test_prey_flee_alarm_signal():
    env = Environment(64)
    env.emit_signal('alarm', 40, 32, 1.0)
    env.compute_gradients()
    c = make_creature(1, 34, 32, genome=Genome(food_weight=0.0, pheromone_weight=0.0,
                                               social_weight=0.0, homing_strength=0.0,
                                               territory_sensitivity=0.0))
    sx, _ = compute_sensory_input(c, [c], env, 64)
    assert sx < 0


def test_prey_align_with_neighbours():
    c = make_creature(1, 10, 10, genome=Genome(social_weight=0.0, homing_strength=0.0))
    mate = make_creature(2, 20, 10, heading=np.pi / 2)
    sx, sy = compute_sensory_input(c, [c, mate], None, 64)
    assert sy == pytest.approx(0.3 * 5.0)
