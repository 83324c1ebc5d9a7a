"""Injectable clocks for code that can take its time source as a parameter.

Interception redirects unmodified call sites. Code that can be changed is
better served by asking a ``Clock`` for the time, which makes the virtual
clock an explicit dependency.

Example usage:
    # Production code
    from timeshift.state import get_clock

    def is_expired(expires_at: float) -> bool:
        return get_clock().now() >= expires_at

    # Test code
    from timeshift.state import FrozenClock, set_clock

    def test_expiry():
        clock = FrozenClock(1000.0)
        set_clock(clock)

        assert not is_expired(1060.0)

        clock.advance(60.0)
        assert is_expired(1060.0)

``SystemClock`` is bound to the standard library functions as they were when
this module was imported, so it keeps reporting real time while the ``time``
module is intercepted. The controller uses it as its wall-clock source.
"""

from __future__ import annotations

import time as _time
from typing import TYPE_CHECKING
from typing import Protocol

if TYPE_CHECKING:
    from timeshift.controller import TimeController

# Bound before any interception can be installed.
_real_time = _time.time
_real_monotonic = _time.monotonic


class Clock(Protocol):
    """Protocol for injectable time sources."""

    def now(self) -> float:
        """Return current time as Unix timestamp (seconds since epoch)."""
        ...

    def monotonic(self) -> float:
        """Return monotonic clock value for measuring durations.

        This is not affected by system clock adjustments or by the virtual
        clock, and is suitable for measuring elapsed time.
        """
        ...


class SystemClock:
    """Real wall-clock time, unaffected by interception."""

    def now(self) -> float:
        """Return current time as Unix timestamp."""
        return _real_time()

    def monotonic(self) -> float:
        """Return monotonic clock value."""
        return _real_monotonic()


class FrozenClock:
    """Clock frozen at a specific time.

    Attributes:
        frozen_time: The frozen Unix timestamp.
        frozen_monotonic: The frozen monotonic value.

    Example:
        clock = FrozenClock(1700000000.0)
        assert clock.now() == 1700000000.0

        clock.advance(60.0)  # Advance by 1 minute
        assert clock.now() == 1700000060.0
    """

    def __init__(
        self,
        frozen_time: float | None = None,
        frozen_monotonic: float | None = None,
    ) -> None:
        """Initialize with specific frozen times.

        Args:
            frozen_time: Unix timestamp to freeze at. Defaults to current time.
            frozen_monotonic: Monotonic value to freeze at. Defaults to 0.0.
        """
        self._time = frozen_time if frozen_time is not None else _real_time()
        self._monotonic = frozen_monotonic if frozen_monotonic is not None else 0.0

    def now(self) -> float:
        """Return the frozen time."""
        return self._time

    def monotonic(self) -> float:
        """Return the frozen monotonic value."""
        return self._monotonic

    def advance(self, seconds: float) -> None:
        """Advance the frozen time by the given number of seconds.

        Args:
            seconds: Number of seconds to advance (can be negative).
        """
        self._time += seconds
        self._monotonic += seconds

    def set_time(self, timestamp: float) -> None:
        """Set the frozen time to a specific timestamp."""
        self._time = timestamp


class OffsetClock:
    """Clock with a fixed offset from real time.

    Attributes:
        offset: Seconds to add to real time.
    """

    def __init__(self, offset: float = 0.0) -> None:
        self._offset = offset

    def now(self) -> float:
        """Return real time plus offset."""
        return _real_time() + self._offset

    def monotonic(self) -> float:
        """Return real monotonic (offset doesn't apply to durations)."""
        return _real_monotonic()


class ControllerClock:
    """Clock that follows a ``TimeController``.

    Reports the virtual instant while the controller is active and real
    time otherwise. Durations always come from the real monotonic clock.
    """

    def __init__(self, controller: TimeController) -> None:
        self._controller = controller

    def now(self) -> float:
        """Return the virtual timestamp when active, else real time."""
        if self._controller.is_active():
            return self._controller.get_current_time().timestamp()
        return _real_time()

    def monotonic(self) -> float:
        """Return real monotonic clock value."""
        return _real_monotonic()


# Default global clock instance
_default_clock: Clock = SystemClock()


def get_clock() -> Clock:
    """Get the current default clock.

    Returns:
        The currently configured clock instance.
    """
    return _default_clock


def set_clock(clock: Clock) -> None:
    """Set the default clock.

    Args:
        clock: Clock instance to use as default.
    """
    global _default_clock
    _default_clock = clock


def reset_clock() -> None:
    """Reset the default clock to SystemClock."""
    global _default_clock
    _default_clock = SystemClock()
