import pytest

from flowlenia.creature.genome import Genome
from flowlenia.statistics import EvolutionStats, generation_breakdown, trait_averages

from conftest import make_creature


def test_update_computes_averages_and_history():
    stats = EvolutionStats()
    creatures = [make_creature(1, 0, 0, energy=10.0, generation=1,
                               genome=Genome(food_weight=1.0)),
                 make_creature(2, 0, 0, energy=30.0, generation=3,
                               genome=Genome(food_weight=0.0))]
    stats.update(creatures)
    assert stats.average_energy == pytest.approx(20.0)
    assert stats.average_generation == pytest.approx(2.0)
    assert stats.trait_averages['food_weight'] == pytest.approx(0.5)
    assert list(stats.population_history) == [2]


def test_empty_update_keeps_history():
    stats = EvolutionStats()
    stats.update([])
    assert list(stats.population_history) == []
    assert stats.average_energy == 0.0


def test_history_is_bounded():
    stats = EvolutionStats()
    creature = [make_creature(1, 0, 0)]
    for _ in range(600):
        stats.update(creature)
    assert len(stats.population_history) == 500


def test_births_track_highest_generation():
    stats = EvolutionStats()
    stats.record_birth(2, 2)
    stats.record_birth(1, 2)
    assert stats.total_births == 4
    assert stats.highest_generation == 2
    stats.reset()
    assert stats.total_births == 0


def test_trait_helpers():
    creatures = [make_creature(1, 0, 0, generation=0), make_creature(2, 0, 0, generation=0),
                 make_creature(3, 0, 0, generation=1)]
    assert trait_averages([]) == {}
    breakdown = generation_breakdown(creatures)
    assert breakdown[0]['count'] == 2
    assert breakdown[1]['count'] == 1
