"""Clock state: injectable time sources and controller configuration."""

from timeshift.state.clock import Clock
from timeshift.state.clock import ControllerClock
from timeshift.state.clock import FrozenClock
from timeshift.state.clock import OffsetClock
from timeshift.state.clock import SystemClock
from timeshift.state.clock import get_clock
from timeshift.state.clock import reset_clock
from timeshift.state.clock import set_clock
from timeshift.state.config import TimeControlOptions

__all__ = [
    "Clock",
    "ControllerClock",
    "FrozenClock",
    "OffsetClock",
    "SystemClock",
    "TimeControlOptions",
    "get_clock",
    "reset_clock",
    "set_clock",
]
