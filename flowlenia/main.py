#!/usr/bin/env python3
"""
Flow-Lenia - Headless Runner
============================

Runs the simulation without visualization, printing a status line every
100 steps and writing simulation events to a JSONL log.

Usage:
    python -m flowlenia [options]

Options:
    --steps N          Number of steps to run (default 1000, 0 = until Ctrl+C)
    --size N           Grid size (default 128)
    --species NAME     droplet, amoeba, grazer, hunter or prey
    --ecosystem H P    Spawn H hunters and P prey instead of a species
    --seed S           Seed numpy's random generator
    --log PATH         Event log file (JSONL)
    --quiet            Only print essential messages
    --strict           Stop on a mass conservation failure
    --help, -h         Show this help

Defaults come from FLOWLENIA_* environment variables where set.
"""

import sys
import time
from typing import List, Optional
import numpy as np

from .core.config import launch_params_from_env
from .core.errors import FlowLeniaError, ConfigurationError, MassConservationError
from .events.console_log import console_log
from .events.logger import event_log
from .simulation import FlowLeniaSimulation, run_batch

STATUS_INTERVAL = 100
POPULATION_INTERVAL = 1000


def _arg_values(argv: List[str], flag: str, count: int = 1) -> Optional[List[str]]:
    """Values following ``flag`` in argv, or None if the flag is absent."""
    if flag not in argv:
        return None
    i = argv.index(flag)
    values = argv[i + 1:i + 1 + count]
    if len(values) < count:
        raise ConfigurationError(f"{flag} expects {count} value(s)")
    return values


def parse_args(argv: List[str]) -> dict:
    """Merge command-line options over the FLOWLENIA_* launch parameters."""
    try:
        params = launch_params_from_env()
        for flag, key in (('--steps', 'steps'), ('--size', 'size'), ('--seed', 'seed')):
            values = _arg_values(argv, flag)
            if values is not None:
                params[key] = int(values[0])
        values = _arg_values(argv, '--ecosystem', 2)
        if values is not None:
            params['hunters'], params['prey'] = int(values[0]), int(values[1])
    except ValueError as e:
        raise ConfigurationError(f"invalid numeric option: {e}") from e

    values = _arg_values(argv, '--species')
    if values is not None:
        params['species'] = values[0]
    values = _arg_values(argv, '--log')
    if values is not None:
        params['event_log'] = values[0]
    if '--quiet' in argv:
        params['verbosity'] = 'minimal'
    if '--strict' in argv:
        params['strict'] = True
    return params


def print_banner(params: dict):
    """Print startup banner."""
    print("=" * 72)
    print("FLOW-LENIA - Mass-Conservative Artificial Life")
    print("=" * 72)
    print("HEADLESS MODE")
    print(f"Grid {params['size']}x{params['size']} | steps: {params['steps'] or 'unlimited'}")
    if params['hunters'] or params['prey']:
        print(f"Ecosystem: {params['hunters']} hunters, {params['prey']} prey")
    else:
        print(f"Species: {params['species']}")
    print("Press Ctrl+C to stop gracefully.")
    print("=" * 72)


def build_simulation(params: dict) -> FlowLeniaSimulation:
    """Create and seed a simulation from parsed launch parameters."""
    if params['seed'] is not None:
        np.random.seed(params['seed'])

    sim = FlowLeniaSimulation(params['size'], strict_conservation=params['strict'])
    if params['hunters'] or params['prey']:
        sim.spawn_ecosystem(params['hunters'], params['prey'])
    else:
        sim.load_species(params['species'])
    return sim


def population_counts(sim: FlowLeniaSimulation) -> dict:
    counts = {'creatures': len(sim.creatures)}
    if sim.tracker.ecosystem_mode:
        hunters = sum(1 for c in sim.creatures if c.is_predator)
        counts['hunters'] = hunters
        counts['prey'] = counts['creatures'] - hunters
    return counts


def status_line(sim: FlowLeniaSimulation, elapsed: float) -> str:
    counts = population_counts(sim)
    count_str = " | ".join(f"{k}:{v}" for k, v in counts.items())
    stats = sim.tracker.stats
    return (f"[{sim.frame:6d}] mass:{sim.total_mass():.3f} | {count_str} | "
            f"births:{stats.total_births} deaths:{stats.total_deaths} | {elapsed:.1f}s")


def run_headless(params: dict) -> int:
    """Headless mode - no visualization. Returns a process exit code."""
    console = console_log()
    console.set_verbosity(params['verbosity'])
    event_log().configure(params['event_log'])

    print_banner(params)
    sim = build_simulation(params)
    print(f"[Init] Initial mass {sim.total_mass():.3f}, {len(sim.creatures)} creatures")

    event_log().log('session_start', 0, mode='headless', size=sim.size,
                    species=params['species'], hunters=params['hunters'], prey=params['prey'])
    started = time.time()

    def on_step(report):
        if report.frame % STATUS_INTERVAL == 0:
            print(status_line(sim, time.time() - started))
            summary = console.get_summary(report.frame)
            if summary:
                print(summary)
        if report.frame % POPULATION_INTERVAL == 0:
            event_log().log_population(report.frame, population_counts(sim), sim.total_mass())
            event_log().flush()

    exit_code = 0
    try:
        if params['steps'] > 0:
            run_batch(sim, params['steps'], on_step=on_step)
        else:
            while True:
                run_batch(sim, STATUS_INTERVAL, on_step=on_step)
    except KeyboardInterrupt:
        print("\n[Shutdown] Stopping gracefully...")
    except MassConservationError as e:
        print(f"[Shutdown] {e}")
        exit_code = 1
    finally:
        event_log().log('session_end', sim.frame, mode='headless',
                        total_mass=sim.total_mass(), creatures=len(sim.creatures),
                        stats=sim.tracker.stats.to_dict())
        event_log().flush()
        print(f"[Shutdown] {sim.frame} steps, final mass {sim.total_mass():.3f}")
    return exit_code


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point - parse arguments and run headless."""
    argv = sys.argv[1:] if argv is None else argv
    if '--help' in argv or '-h' in argv:
        print(__doc__)
        return 0

    try:
        params = parse_args(argv)
        return run_headless(params)
    except FlowLeniaError as e:
        print(f"[Error] {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
