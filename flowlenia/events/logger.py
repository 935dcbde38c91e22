"""
Event Logger for the Flow-Lenia simulation.

Writes simulation events as JSON Lines, one self-contained object per
line: ``{"type": ..., "step": ..., "time": ..., <fields>}``.

Event types written by the package:
- session_start / session_end: headless run boundaries
- birth: offspring matched to a tracked creature
- reproduction: creature split into two offspring
- death: starvation or stale track
- predation: prey caught by a hunter
- population: periodic population snapshot
- mass_drift: transport + diffusion changed the total mass

File output stays off until ``configure`` is given a path.
"""

import json
import time
from typing import List, Optional

from ..core.constants import EVENT_LOG_FILE


def _rounded(values, ndigits: int = 2) -> Optional[List[float]]:
    if values is None:
        return None
    return [round(float(v), ndigits) for v in values]


class EventLogger:
    """Buffered JSONL writer, shared through ``event_log()``."""

    _instance: Optional['EventLogger'] = None

    def __init__(self, filepath: Optional[str] = None):
        self.filepath = filepath
        self.enabled = filepath is not None
        self.buffer: List[dict] = []
        self.buffer_size = 10

    @classmethod
    def get(cls) -> 'EventLogger':
        if cls._instance is None:
            cls._instance = EventLogger()
        return cls._instance

    @classmethod
    def reset(cls):
        cls._instance = None

    def configure(self, filepath: Optional[str] = EVENT_LOG_FILE, enabled: bool = True):
        """Flush pending events, then write future ones to ``filepath`` (None disables)."""
        self.flush()
        self.filepath = filepath
        self.enabled = enabled and filepath is not None

    def log(self, event_type: str, step: int = 0, **data):
        """
        Queue one event; the buffer is written out every ``buffer_size`` events.

        Args:
            event_type: Event name, e.g. 'birth' or 'mass_drift'
            step: Simulation frame of the event
            **data: Extra JSON-serialisable fields
        """
        if not self.enabled:
            return
        self.buffer.append({
            'type': event_type,
            'step': step,
            'time': time.strftime('%Y-%m-%d %H:%M:%S'),
            **data,
        })
        if len(self.buffer) >= self.buffer_size:
            self.flush()

    def flush(self):
        if not (self.buffer and self.filepath):
            return
        lines = ''.join(json.dumps(event) + '\n' for event in self.buffer)
        try:
            with open(self.filepath, 'a') as f:
                f.write(lines)
        except OSError as e:
            print(f"[EventLog] Write failed: {e}")
            return
        self.buffer.clear()

    # === Typed events ===

    def log_birth(self, step: int, creature_id: int, parent_id: int, generation: int,
                  pos: tuple = None, traits: dict = None):
        self.log('birth', step, creature_id=creature_id, parent_id=parent_id,
                 generation=generation, pos=_rounded(pos), traits=traits)

    def log_reproduction(self, step: int, parent_id: int, energy: float,
                         child_energy: float, generation: int):
        self.log('reproduction', step, parent_id=parent_id, energy=round(energy, 3),
                 child_energy=round(child_energy, 3), generation=generation)

    def log_death(self, step: int, creature_id: int, cause: str, generation: int,
                  age: int = 0, pos: tuple = None):
        self.log('death', step, creature_id=creature_id, cause=cause,
                 generation=generation, age=age, pos=_rounded(pos))

    def log_predation(self, step: int, predator: int, prey: int, prey_mass: float = 0.0):
        self.log('predation', step, predator=predator, prey=prey,
                 prey_mass=round(prey_mass, 3))

    def log_population(self, step: int, counts: dict, total_mass: float = 0.0):
        """Periodic snapshot; ``counts`` maps population name to size."""
        self.log('population', step, counts=counts, total_mass=round(total_mass, 4))

    def log_mass_drift(self, step: int, before: float, after: float, drift: float):
        self.log('mass_drift', step, before=before, after=after, drift=drift)


def event_log() -> EventLogger:
    """Get the singleton EventLogger instance."""
    return EventLogger.get()
