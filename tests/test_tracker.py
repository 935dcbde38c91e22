import numpy as np
import pytest

from flowlenia.core.config import TrackingParams, EvolutionParams
from flowlenia.core.utils import toroidal_distance
from flowlenia.creature.genome import Genome
from flowlenia.manager.detector import Candidate
from flowlenia.manager.tracker import CreatureTracker
from flowlenia.world.environment import Environment
from flowlenia.creature.creature import CellSet

from conftest import make_creature, square


def candidate(x, y, mass, label):
    return Candidate(x, y, mass, CellSet.empty(), label)


def test_toroidal_distance_wraps():
    assert toroidal_distance(2, 2, 62, 2, 64) == pytest.approx(4.0)
    assert CreatureTracker(64).toroidal_distance(2, 2, 62, 2) == pytest.approx(4.0)


def test_candidate_claims_one_creature_only():
    tracker = CreatureTracker(64)
    tracker.creatures = [make_creature(1, 10, 10), make_creature(2, 14, 10)]
    tracker.next_id = 3
    created = tracker.match([candidate(12, 10, 20, 1)], frame=1)
    assert created == []
    seen = [c for c in tracker.creatures if c.last_seen == 1]
    assert len(seen) == 1


def test_creature_is_claimed_once():
    tracker = CreatureTracker(64)
    tracker.creatures = [make_creature(1, 10, 10)]
    tracker.next_id = 2
    created = tracker.match([candidate(11, 10, 30, 1), candidate(12, 10, 20, 2)], frame=1)
    assert [c.id for c in created] == [2]
    assert tracker.get_creature_by_id(1).x == 11
    assert tracker.count == 2


def test_new_creatures_are_not_claimed_in_the_same_pass():
    tracker = CreatureTracker(64)
    tracker.detector.labels[31, 16] = 1
    tracker.detector.labels[31, 28] = 2
    created = tracker.match([candidate(16.5, 31.5, 196, 1), candidate(28.5, 31.5, 64, 2)], frame=1)

    assert [(c.id, c.mass) for c in created] == [(1, 196), (2, 64)]
    assert tracker.count == 2
    assert tracker.get_creature_by_id(1).x == 16.5
    assert tracker.labels[31, 16] == 1
    assert tracker.labels[31, 28] == 2


def test_match_updates_kinematics():
    tracker = CreatureTracker(64)
    creature = make_creature(1, 10, 10)
    tracker.creatures = [creature]
    tracker.match([candidate(12, 10, 25, 1)], frame=3)
    assert creature.vx == pytest.approx(0.6)
    assert creature.vy == pytest.approx(0.0)
    assert creature.heading == pytest.approx(0.0)
    assert creature.age == 1
    assert creature.last_seen == 3
    assert creature.mass == 25


def test_velocity_uses_toroidal_delta():
    tracker = CreatureTracker(64)
    creature = make_creature(1, 63, 10)
    tracker.creatures = [creature]
    tracker.match([candidate(1, 10, 25, 1)], frame=1)
    assert creature.vx == pytest.approx(0.6)


def test_new_creature_setup():
    tracker = CreatureTracker(64)
    created = tracker.match([candidate(20, 30, 25, 1)], frame=4)
    c = created[0]
    assert (c.home_x, c.home_y) == (20, 30)
    assert c.birth_frame == 4
    assert -np.pi <= c.heading <= np.pi
    assert c.memory is not None


def test_update_assigns_default_genome_and_energy():
    tracker = CreatureTracker(64)
    A = np.zeros((64, 64))
    square(A, 10, 10, 6)
    created = tracker.update(A, 1)
    assert len(created) == 1
    c = created[0]
    assert c.genome == Genome()
    assert c.energy == pytest.approx(10 + 36 * 0.5)
    assert tracker.labels[12, 12] == c.id


def test_update_uses_base_genome_clone():
    tracker = CreatureTracker(64)
    tracker.base_genome = Genome(food_weight=1.7)
    A = np.zeros((64, 64))
    square(A, 10, 10, 6)
    square(A, 40, 40, 6)
    created = tracker.update(A, 1)
    assert all(c.genome.food_weight == 1.7 for c in created)
    assert created[0].genome is not created[1].genome
    assert created[0].genome is not tracker.base_genome


def test_identity_persists_and_stale_creatures_drop():
    tracker = CreatureTracker(64)
    A = np.zeros((64, 64))
    square(A, 10, 10, 6)
    first = tracker.update(A, 1)[0]

    A = np.zeros((64, 64))
    square(A, 11, 10, 6)
    assert tracker.update(A, 2) == []
    assert tracker.creatures[0].id == first.id

    empty = np.zeros((64, 64))
    tracker.update(empty, 11)
    assert tracker.count == 1
    assert len(tracker.creatures[0].cells) == 0
    tracker.update(empty, 12)
    assert tracker.count == 0


def test_heading_wraps_through_pi():
    tracker = CreatureTracker(64, TrackingParams(heading_smoothing=1.0))
    creature = make_creature(1, 10, 10, heading=3.1, target_heading=-3.1)
    tracker.creatures = [creature]
    tracker.integrate_headings()
    assert creature.heading == pytest.approx(-3.1)


def test_heading_smoothing_takes_short_arc():
    tracker = CreatureTracker(64)
    creature = make_creature(1, 10, 10, heading=3.0, target_heading=-3.0)
    tracker.creatures = [creature]
    tracker.integrate_headings()
    assert creature.heading == pytest.approx(3.0 + (2 * np.pi - 6.0) * 0.1)


def test_reproduction_energy_accounting():
    tracker = CreatureTracker(64)
    parent = make_creature(1, 20, 20, energy=55.0, heading=0.5,
                           genome=Genome(reproduction_threshold=50, reproduction_cost=0.6))
    data = tracker.process_reproduction(parent, 5)
    assert parent.energy == pytest.approx(22.0)
    assert [o.energy for o in data.offspring] == [pytest.approx(16.5)] * 2
    assert [o.generation for o in data.offspring] == [1, 1]
    assert data.offspring[0].heading == pytest.approx(0.5 + np.pi / 4)
    assert data.offspring[1].heading == pytest.approx(0.5 - np.pi / 4)
    assert data.offspring[0].genome is not data.offspring[1].genome
    assert tracker.stats.total_births == 2


def test_offspring_memory_is_damped_copy():
    tracker = CreatureTracker(64)
    parent = make_creature(1, 20, 20, energy=60.0)
    parent.memory.record_food(20, 20, 64, 0.8)
    data = tracker.process_reproduction(parent, 1)
    assert data.offspring[0].memory.food.max() == pytest.approx(0.4)


def test_evolution_events_split_reproducers_and_dead():
    tracker = CreatureTracker(64)
    ready = make_creature(1, 10, 10, energy=60.0)
    dead = make_creature(2, 40, 40, energy=0.0)
    idle = make_creature(3, 20, 40, energy=20.0)
    tracker.creatures = [ready, dead, idle]
    reproduce, die = tracker.check_evolution_events()
    assert reproduce == [ready]
    assert die == [dead]


def test_population_cap_blocks_reproduction():
    tracker = CreatureTracker(64, evolution=EvolutionParams(max_population=1))
    tracker.creatures = [make_creature(1, 10, 10, energy=60.0)]
    reproduce, _ = tracker.check_evolution_events()
    assert reproduce == []


def test_energy_update_eats_food():
    tracker = CreatureTracker(64)
    env = Environment(64)
    creature = make_creature(1, 11, 11, mass=4.0, energy=10.0,
                             cells=([10, 11, 10, 11], [10, 10, 11, 11], [1.0] * 4))
    tracker.creatures = [creature]
    tracker.update_energy(env)
    eaten = 4 * 0.1
    assert creature.energy == pytest.approx(10.0 - 0.02 - 4.0 * 0.001 + eaten * 0.5)
    assert env.food[10, 10] == pytest.approx(0.3 - 0.1)
    assert creature.memory.food.max() > 0


def test_energy_never_negative():
    tracker = CreatureTracker(64)
    creature = make_creature(1, 11, 11, energy=0.01)
    tracker.creatures = [creature]
    tracker.update_energy()
    assert creature.energy == 0.0


def test_death_returns_food():
    tracker = CreatureTracker(64)
    env = Environment(64)
    env.food.fill(0.0)
    creature = make_creature(1, 30, 30, mass=50.0, energy=0.0)
    tracker.process_death(creature, env)
    assert tracker.stats.total_deaths == 1
    # 0.3 * mass is far above the food cap
    assert env.food[30, 30] == pytest.approx(1.0)
    assert env.food[0, 0] == 0.0


def test_steering_field_follows_heading():
    tracker = CreatureTracker(32)
    A = np.zeros((32, 32))
    A[5, 5] = 0.8
    A[5, 6] = 0.05
    creature = make_creature(1, 5, 5, heading=0.0,
                             cells=([5, 6], [5, 5], [0.8, 0.05]))
    tracker.creatures = [creature]
    fx, fy = tracker.steering_field(A, 0.5)
    assert fx[5, 5] == pytest.approx(0.15 * 0.8 * 0.5)
    assert fy[5, 5] == pytest.approx(0.0)
    assert fx[5, 6] == 0.0


def test_creature_queries():
    tracker = CreatureTracker(64)
    small = make_creature(1, 10, 10, mass=12.0)
    big = make_creature(2, 40, 40, mass=80.0)
    tracker.creatures = [small, big]
    assert tracker.get_largest_creature() is big
    assert tracker.get_creature_at(42, 41) is big
    assert tracker.get_creature_at(25, 25) is None
    assert tracker.get_creature_by_id(7) is None
    assert CreatureTracker(64).get_largest_creature() is None


@pytest.fixture
def clock(monkeypatch):
    now = [100.0]
    monkeypatch.setattr('flowlenia.manager.tracker.time.monotonic', lambda: now[0])
    return now


def signalling_tracker(monkeypatch):
    tracker = CreatureTracker(64)
    tracker.environment = Environment(64)
    emitted = []
    monkeypatch.setattr(tracker.environment, 'emit_signal',
                        lambda kind, x, y, intensity: emitted.append((kind, intensity)))
    return tracker, emitted


def test_emit_signal_scales_by_emission_rate(monkeypatch, clock):
    tracker, emitted = signalling_tracker(monkeypatch)
    caller = make_creature(1, 10, 10, genome=Genome(signal_emission_rate=0.4))
    tracker.emit_signal('mating', 10, 10, 0.5, caller)
    tracker.emit_signal('alarm', 20, 20, 0.5)
    assert emitted[0] == ('mating', pytest.approx(0.2))
    assert emitted[1] == ('alarm', pytest.approx(0.5))
    assert list(tracker.recent_signals) == [1]


def test_recent_signal_fades_out(monkeypatch, clock):
    tracker, _ = signalling_tracker(monkeypatch)
    caller = make_creature(1, 10, 10, genome=Genome(signal_emission_rate=0.5))
    tracker.emit_signal('alarm', 10, 10, 1.0, caller)

    clock[0] += 0.25
    kind, glow = tracker.get_recent_signal(caller)
    assert kind == 'alarm'
    assert glow == pytest.approx(0.25)

    clock[0] += 0.3
    assert tracker.get_recent_signal(caller) is None
    assert tracker.recent_signals == {}


def test_expired_signals_pruned_on_emit(monkeypatch, clock):
    tracker, _ = signalling_tracker(monkeypatch)
    tracker.emit_signal('alarm', 10, 10, 1.0, make_creature(1, 10, 10))
    clock[0] += 1.0
    tracker.emit_signal('alarm', 30, 30, 1.0, make_creature(2, 30, 30))
    assert list(tracker.recent_signals) == [2]


def test_removed_creatures_forget_their_signals(monkeypatch, clock):
    tracker, _ = signalling_tracker(monkeypatch)
    starving = make_creature(1, 10, 10, energy=0.0)
    alive = make_creature(2, 30, 30, energy=5.0)
    tracker.creatures = [starving, alive]
    tracker.emit_signal('mating', 10, 10, 1.0, starving)
    tracker.emit_signal('mating', 30, 30, 1.0, alive)
    tracker.remove_dead()
    assert list(tracker.recent_signals) == [2]

    tracker.update(np.zeros((64, 64)), frame=tracker.params.stale_frames)
    assert tracker.creatures == []
    assert tracker.recent_signals == {}
