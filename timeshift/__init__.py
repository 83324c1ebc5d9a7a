"""Timeshift: a controllable virtual clock for time-dependent Python code."""

from importlib.metadata import version

from timeshift.controller import TimeController
from timeshift.controller import cleanup
from timeshift.controller import disable_time_travel
from timeshift.controller import enable_time_travel
from timeshift.controller import get_controller
from timeshift.controller import initialize
from timeshift.environment import detect_environment
from timeshift.environment import is_activation_allowed
from timeshift.exceptions import ConfigurationError
from timeshift.exceptions import InvalidCallbackError
from timeshift.exceptions import InvalidDurationError
from timeshift.exceptions import InvalidTimeError
from timeshift.exceptions import PolicyDeniedWarning
from timeshift.exceptions import SubscriberNotificationError
from timeshift.exceptions import TimeshiftError
from timeshift.hijacker import TimeHijacker
from timeshift.state.config import TimeControlOptions
from timeshift.types import Environment
from timeshift.utils import DEFAULT_TIME_PERIODS
from timeshift.utils import format_time_period
from timeshift.utils import parse_time_period

__version__ = version("timeshift")

__all__ = [
    "ConfigurationError",
    "DEFAULT_TIME_PERIODS",
    "Environment",
    "InvalidCallbackError",
    "InvalidDurationError",
    "InvalidTimeError",
    "PolicyDeniedWarning",
    "SubscriberNotificationError",
    "TimeControlOptions",
    "TimeController",
    "TimeHijacker",
    "TimeshiftError",
    "cleanup",
    "detect_environment",
    "disable_time_travel",
    "enable_time_travel",
    "format_time_period",
    "get_controller",
    "initialize",
    "is_activation_allowed",
    "parse_time_period",
]
