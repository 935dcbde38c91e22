import numpy as np
import pytest

from flowlenia.core.config import EvolutionParams
from flowlenia.core.errors import ConfigurationError, MassConservationError
from flowlenia.creature.genome import Genome
from flowlenia.manager.tracker import Offspring, OffspringData
from flowlenia.creature.memory import CreatureMemory
from flowlenia.simulation import FlowLeniaSimulation, PendingOffspring, StepReport, run_batch

from conftest import make_creature, square


def evolving_sim(size=64):
    return FlowLeniaSimulation(size, sensory=True, evolution=EvolutionParams(enabled=True))


def test_plain_field_does_not_track():
    sim = FlowLeniaSimulation(32)
    square(sim.field.A, 10, 10, 6)
    sim.step()
    assert sim.creatures == []


def test_sensory_mode_tracks_creatures():
    sim = FlowLeniaSimulation(64, sensory=True)
    square(sim.field.A, 10, 10, 6)
    report = sim.step()
    assert report.creatures == 1
    assert sim.creatures[0].last_seen == 1


def test_reproduction_splits_parent_mass():
    sim = evolving_sim()
    square(sim.field.A, 20, 20, 10)
    sim.frame = 1
    sim.tracker.update(sim.field.A, 1)
    parent = sim.creatures[0]
    parent.energy = 60.0
    parent.heading = 0.0

    pending = sim.process_reproduction(parent)

    assert parent.energy == pytest.approx(60.0 * 0.4)
    assert len(pending.positions) == 2
    (x1, y1), (x2, y2) = pending.positions
    assert x1 == pytest.approx(parent.x)
    assert y1 > parent.y > y2
    assert sim.field.A.max() <= 1.0
    assert 0 < sim.total_mass() <= 100.0
    assert sim.pending_offspring == [pending]


def test_pending_offspring_expire_without_new_reproduction():
    sim = evolving_sim()
    data = OffspringData(7, 30, 30, 40, [
        Offspring(Genome(), 12.0, 3, 0.0, CreatureMemory()),
        Offspring(Genome(), 12.0, 3, 0.0, CreatureMemory()),
    ])
    sim.pending_offspring = [PendingOffspring(data, [(30, 35), (30, 25)], frame=1)]
    sim.frame = 60
    stranger = make_creature(11, 31, 34, birth_frame=60)
    sim.tracker.creatures = [stranger]

    assert sim.match_pending_offspring() == 0
    assert stranger.parent_id is None
    assert stranger.generation == 0
    assert sim.pending_offspring == []


def test_pending_offspring_survive_within_window():
    sim = evolving_sim()
    data = OffspringData(1, 10, 10, 30)
    sim.pending_offspring = [PendingOffspring(data, [(10, 10), (20, 20)], frame=1)]
    sim.frame = 5
    assert sim.match_pending_offspring() == 0
    assert len(sim.pending_offspring) == 1
    sim.frame = 6
    sim.match_pending_offspring()
    assert sim.pending_offspring == []


def test_pending_offspring_hand_over_inheritance():
    sim = evolving_sim()
    genome = Genome(food_weight=1.9)
    memory = CreatureMemory()
    data = OffspringData(7, 30, 30, 40, [
        Offspring(genome, 12.0, 3, 0.25, memory),
        Offspring(Genome(), 12.0, 3, -0.25, CreatureMemory()),
    ])
    pending = PendingOffspring(data, [(30, 35), (30, 25)], frame=4)
    sim.pending_offspring = [pending]
    newborn = make_creature(11, 31, 34, birth_frame=5)
    older = make_creature(12, 30, 35, birth_frame=2)
    sim.tracker.creatures = [older, newborn]

    assert sim.match_pending_offspring() == 1

    assert newborn.genome is genome
    assert newborn.energy == 12.0
    assert newborn.generation == 3
    assert newborn.parent_id == 7
    assert newborn.birth_frame == 4
    assert newborn.heading == 0.25
    assert newborn.memory is memory
    assert older.parent_id is None
    assert pending.assigned == [True, False]
    assert sim.tracker.stats.lineages == {7: [11]}
    assert sim.pending_offspring == [pending]


def test_fully_assigned_pending_is_dropped():
    sim = evolving_sim()
    data = OffspringData(7, 30, 30, 40, [
        Offspring(Genome(), 12.0, 1, 0.0, CreatureMemory()),
        Offspring(Genome(), 12.0, 1, 0.0, CreatureMemory()),
    ])
    sim.pending_offspring = [PendingOffspring(data, [(30, 35), (30, 25)], frame=4)]
    sim.tracker.creatures = [make_creature(11, 30, 35, birth_frame=4),
                             make_creature(12, 30, 25, birth_frame=4)]
    assert sim.match_pending_offspring() == 2
    assert sim.pending_offspring == []


def test_starving_creature_dies_and_feeds_environment():
    sim = evolving_sim()
    square(sim.field.A, 20, 20, 6)
    sim.step()
    creature = sim.creatures[0]
    creature.energy = 0.001
    sim.environment.food.fill(0.0)
    report = sim.step()
    assert report.deaths == 1
    assert sim.tracker.stats.total_deaths == 1


def test_drift_is_reported_and_strict_mode_raises():
    sim = FlowLeniaSimulation(32)
    square(sim.field.A, 10, 10, 6)
    sim.drift_tolerance = -1.0
    report = sim.step()
    assert not report.conserved

    sim.strict_conservation = True
    with pytest.raises(MassConservationError) as info:
        sim.step()
    assert info.value.step == 2


def test_load_species_applies_preset():
    sim = FlowLeniaSimulation(64)
    preset = sim.load_species('grazer')
    assert preset.name == 'Grazer'
    assert sim.params.R == 12
    assert sim.field.kernel.kind == 'filled'
    assert sim.sensory_mode and sim.evolution_enabled
    assert sim.tracker.base_genome.food_weight == 1.5
    assert sim.environment.params.food_spawn_rate == 0.003
    assert sim.total_mass() > 0
    assert sim.frame == 0


def test_load_plain_species_keeps_sensing_off():
    sim = FlowLeniaSimulation(64)
    sim.load_species('Droplet')
    assert not sim.sensory_mode
    assert sim.tracker.base_genome is None


def test_unknown_species_rejected():
    with pytest.raises(ConfigurationError):
        FlowLeniaSimulation(32).load_species('kraken')


def test_snapshot_is_a_copy():
    sim = FlowLeniaSimulation(64, sensory=True)
    square(sim.field.A, 10, 10, 6)
    sim.step()
    snap = sim.snapshot()
    snap['A'][...] = 0.0
    assert sim.total_mass() > 0
    assert snap['frame'] == 1
    assert snap['creatures'][0]['id'] == 1
    assert snap['stats']['total_births'] == 0


def test_clear_and_resize():
    sim = evolving_sim()
    square(sim.field.A, 10, 10, 6)
    sim.step()
    sim.resize(96)
    assert sim.field.A.shape == (96, 96)
    assert sim.environment.food.shape == (96, 96)
    assert sim.creatures == []
    sim.step()
    assert sim.tracker.labels.shape == (96, 96)

    sim.clear()
    assert sim.total_mass() == 0
    assert sim.frame == 0


def test_run_batch_runs_and_reports():
    sim = FlowLeniaSimulation(32)
    square(sim.field.A, 10, 10, 6)
    seen = []
    reports = run_batch(sim, 5, on_step=seen.append)
    assert len(reports) == 5
    assert seen == reports
    assert all(isinstance(r, StepReport) for r in reports)
    assert sim.frame == 5


def test_run_batch_stops_between_steps():
    sim = FlowLeniaSimulation(32)
    reports = run_batch(sim, 10, should_stop=lambda: sim.frame >= 3)
    assert len(reports) == 3
    assert sim.frame == 3


def test_long_run_conserves_mass_in_evolution_mode():
    sim = evolving_sim(96)
    sim.load_species('grazer')
    for report in run_batch(sim, 20):
        assert report.drift < 1e-6
