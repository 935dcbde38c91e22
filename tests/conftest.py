import numpy as np
import pytest

from flowlenia.core.config import FieldParams, EvolutionParams
from flowlenia.creature.creature import Creature, CellSet
from flowlenia.events.console_log import ConsoleLogger
from flowlenia.events.logger import EventLogger
from flowlenia.simulation import FlowLeniaSimulation


@pytest.fixture(autouse=True)
def fresh_singletons():
    """Fresh loggers and a fixed random state for every test."""
    EventLogger.reset()
    ConsoleLogger.reset()
    np.random.seed(1234)
    yield
    EventLogger.reset()
    ConsoleLogger.reset()


@pytest.fixture
def scenario_params():
    return FieldParams(R=13, mu=0.15, sigma=0.015, dt=0.1, flow_strength=1.0, diffusion=0.1)


@pytest.fixture
def ecosystem_sim():
    sim = FlowLeniaSimulation(64, sensory=True, evolution=EvolutionParams(enabled=True))
    sim.tracker.ecosystem_mode = True
    return sim


def square(A, x0, y0, side, value=1.0):
    """Fill a side x side block with top-left corner (x0, y0)."""
    A[y0:y0 + side, x0:x0 + side] = value


def make_creature(cid, x, y, mass=20.0, cells=None, **kwargs):
    """Creature with an optional CellSet built from (xs, ys, values)."""
    if cells is not None:
        xs, ys, values = cells
        kwargs['cells'] = CellSet(np.asarray(xs), np.asarray(ys), np.asarray(values, dtype=float))
    return Creature(id=cid, x=x, y=y, mass=mass, **kwargs)
