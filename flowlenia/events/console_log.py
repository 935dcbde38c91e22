"""
Console Logger - Tag-based verbosity for terminal output.

Simulation messages start with a bracketed tag such as ``[Birth]``. Each
tag maps to the lowest verbosity level that shows it:

- MINIMAL: session boundaries, setup, extinctions, mass drift
- ECO: births, deaths, predation and reproduction on top of MINIMAL
- FULL: per-step tracking and signal chatter

Untagged lines (status lines) always print. Suppressed messages are
counted per tag and reported periodically by ``get_summary``.
"""

from enum import IntEnum
from typing import Dict, Optional, Union
from collections import Counter

from ..core.errors import ConfigurationError


class Verbosity(IntEnum):
    MINIMAL = 0
    ECO = 1
    FULL = 2


VERBOSITY_NAMES = {
    Verbosity.MINIMAL: "MINIMAL (essentials only)",
    Verbosity.ECO: "ECOSYSTEM OVERVIEW",
    Verbosity.FULL: "FULL (everything)",
}

# Unknown tags are treated as FULL
TAG_LEVELS: Dict[str, Verbosity] = {
    'Init': Verbosity.MINIMAL,
    'Batch': Verbosity.MINIMAL,
    'MassDrift': Verbosity.MINIMAL,
    'Species': Verbosity.MINIMAL,
    'Ecosystem': Verbosity.MINIMAL,
    'Extinction': Verbosity.MINIMAL,
    'Shutdown': Verbosity.MINIMAL,
    'Birth': Verbosity.ECO,
    'Death': Verbosity.ECO,
    'Predation': Verbosity.ECO,
    'Reproduce': Verbosity.ECO,
    'Track': Verbosity.FULL,
    'Signal': Verbosity.FULL,
}

SUMMARY_INTERVAL = 200
SUMMARY_MAX_TAGS = 8


def message_tag(message: str) -> Optional[str]:
    """'Birth' for '[Birth] ...', None for untagged lines."""
    if not message.startswith('['):
        return None
    end = message.find(']')
    return message[1:end] if end > 0 else None


class ConsoleLogger:
    """Singleton filter in front of print()."""

    _instance: Optional['ConsoleLogger'] = None

    def __init__(self):
        self.verbosity = Verbosity.ECO
        self.enabled = True
        self.suppressed: Counter = Counter()
        self.last_summary_step = 0

    @classmethod
    def get(cls) -> 'ConsoleLogger':
        if cls._instance is None:
            cls._instance = ConsoleLogger()
        return cls._instance

    @classmethod
    def reset(cls):
        cls._instance = None

    def cycle_verbosity(self) -> str:
        """Advance to the next level (wrapping) and return its display name."""
        self.verbosity = Verbosity((self.verbosity + 1) % len(Verbosity))
        return VERBOSITY_NAMES[self.verbosity]

    def set_verbosity(self, level: Union[Verbosity, int, str]):
        """Accepts a Verbosity, its int value, or its name in any case."""
        if isinstance(level, str):
            name = level.upper()
            if name not in Verbosity.__members__:
                raise ConfigurationError(f"unknown verbosity '{level}'")
            level = Verbosity[name]
        self.verbosity = Verbosity(level)

    def should_print(self, message: str) -> bool:
        if not self.enabled:
            return False
        tag = message_tag(message)
        if tag is None:
            return True
        return self.verbosity >= TAG_LEVELS.get(tag, Verbosity.FULL)

    def count_event(self, message: str):
        tag = message_tag(message)
        if tag is not None:
            self.suppressed[tag] += 1

    def get_summary(self, step: int) -> Optional[str]:
        """'[Summary] Tag:n, ...' of suppressed messages, at most every SUMMARY_INTERVAL steps."""
        if step - self.last_summary_step < SUMMARY_INTERVAL or not self.suppressed:
            return None
        self.last_summary_step = step
        parts = [f"{tag}:{n}" for tag, n in self.suppressed.most_common(SUMMARY_MAX_TAGS)]
        self.suppressed.clear()
        return f"[Summary] {', '.join(parts)}"

    def log(self, message: str, step: int = 0, force: bool = False) -> bool:
        """
        Print ``message`` if the current verbosity allows it.

        Args:
            message: Line to print, usually '[Tag] text'
            step: Simulation step of the message
            force: Print regardless of verbosity

        Returns True if the message was printed.
        """
        if force or self.should_print(message):
            print(message)
            return True
        self.count_event(message)
        return False


def console_log() -> ConsoleLogger:
    """Get singleton ConsoleLogger."""
    return ConsoleLogger.get()
