import json

import pytest

from flowlenia.core.errors import ConfigurationError
from flowlenia.events.console_log import Verbosity, console_log
from flowlenia.events.logger import event_log
from flowlenia.simulation import FlowLeniaSimulation

from conftest import square


def read_events(path):
    with open(path) as f:
        return [json.loads(line) for line in f]


def test_event_log_is_off_until_configured(tmp_path):
    log = event_log()
    log.log('birth', 1, creature_id=1)
    assert log.buffer == []

    path = tmp_path / 'events.jsonl'
    log.configure(str(path))
    log.log_death(3, 5, 'starvation', 2, age=40, pos=(1.234, 5.678))
    log.flush()
    events = read_events(path)
    assert events[0]['type'] == 'death'
    assert events[0]['step'] == 3
    assert events[0]['pos'] == [1.23, 5.68]


def test_event_log_flushes_when_buffer_fills(tmp_path):
    path = tmp_path / 'events.jsonl'
    log = event_log()
    log.configure(str(path))
    for i in range(log.buffer_size):
        log.log_predation(i, 1, 2, 10.0)
    assert len(read_events(path)) == log.buffer_size
    assert log.buffer == []


def test_mass_drift_event_from_step(tmp_path):
    path = tmp_path / 'events.jsonl'
    event_log().configure(str(path))
    sim = FlowLeniaSimulation(32)
    square(sim.field.A, 10, 10, 6)
    sim.drift_tolerance = -1.0
    sim.step()
    event_log().flush()
    events = read_events(path)
    assert events[0]['type'] == 'mass_drift'
    assert events[0]['before'] == pytest.approx(36.0)


def test_console_filters_by_verbosity(capsys):
    console = console_log()
    console.set_verbosity('minimal')
    assert not console.log('[Birth] creature 3')
    assert console.log('[MassDrift] step 4')
    console.set_verbosity(Verbosity.FULL)
    assert console.log('[Track] creature 3 lost')
    out = capsys.readouterr().out
    assert '[MassDrift]' in out and '[Track]' in out and '[Birth]' not in out


def test_console_counts_suppressed_events():
    console = console_log()
    console.set_verbosity(Verbosity.MINIMAL)
    console.log('[Death] one')
    console.log('[Death] two')
    assert console.get_summary(500) == '[Summary] Death:2'
    assert console.get_summary(600) is None


def test_console_cycle_and_bad_level():
    console = console_log()
    assert console.cycle_verbosity() == 'FULL (everything)'
    assert console.cycle_verbosity() == 'MINIMAL (essentials only)'
    with pytest.raises(ConfigurationError):
        console.set_verbosity('chatty')
