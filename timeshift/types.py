"""Type aliases and small value types shared across timeshift."""

from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import NamedTuple

# Callback receiving the current virtual instant after every change.
TimeChangeCallback = Callable[[datetime], None]


class Environment(str, Enum):
    """Runtime context used to decide whether the virtual clock may activate."""

    DEVELOPMENT = "development"
    TEST = "test"
    PRODUCTION = "production"

    def __str__(self) -> str:
        return self.value


class TimePeriod(NamedTuple):
    """A preset jump used by time controls.

    Attributes:
        label: Human-readable label, e.g. "15 minutes".
        value: Length of the period in milliseconds.
        shortcut: Compact form accepted by ``parse_time_period``.
    """

    label: str
    value: int
    shortcut: str
