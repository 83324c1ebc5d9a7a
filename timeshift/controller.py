"""The virtual clock controller.

A ``TimeController`` owns the virtual instant, the activation state, its
options and its subscribers. It is the single writer of that state: every
mutation goes through its methods, under one lock. Subscribers are notified
synchronously after the lock is released, from a snapshot taken while it was
held, so a subscriber may call back into the controller (for example to
unsubscribe itself) without deadlocking.

Typical usage::

    from timeshift import TimeController

    with TimeController(start_time="2024-01-01T12:00:00Z", environment="test") as clock:
        clock.add_days(31)
        assert datetime.datetime.now(timezone.utc) == clock.get_current_time()

Most applications keep one controller for the whole process; ``initialize``,
``get_controller`` and ``cleanup`` manage that default instance.
"""

from __future__ import annotations

import itertools
import logging
import threading
import warnings
from collections.abc import Callable
from collections.abc import Iterable
from dataclasses import fields
from dataclasses import replace
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from types import TracebackType
from typing import Any

from timeshift.constants import AUTO
from timeshift.constants import MS_PER_DAY
from timeshift.constants import MS_PER_HOUR
from timeshift.constants import MS_PER_MINUTE
from timeshift.constants import MS_PER_SECOND
from timeshift.constants import MS_PER_WEEK
from timeshift.environment import is_activation_allowed
from timeshift.environment import log_environment_info
from timeshift.environment import resolve_environment
from timeshift.exceptions import InvalidCallbackError
from timeshift.exceptions import InvalidDurationError
from timeshift.exceptions import PolicyDeniedWarning
from timeshift.exceptions import SubscriberNotificationError
from timeshift.hijacker import TimeHijacker
from timeshift.integrations.base import LibraryIntegration
from timeshift.state.clock import Clock
from timeshift.state.clock import SystemClock
from timeshift.state.config import TimeControlOptions
from timeshift.types import Environment
from timeshift.types import TimeChangeCallback
from timeshift.utils import parse_instant
from timeshift.utils import parse_time_period
from timeshift.utils import to_milliseconds

logger = logging.getLogger(__name__)


def _describe(callback: Callable[..., Any]) -> str:
    return getattr(callback, "__qualname__", None) or repr(callback)


class TimeController:
    """
    Owns the virtual instant and decides when interception is active.

    Args:
        options: Base options. Defaults to ``TimeControlOptions()``.
        integrations: Library integrations for the hijacker. Defaults to the
            built-in and entry point integrations.
        wall_clock: Source of real time, used by ``reset_to_real_time`` and
            as the default start time.
        **overrides: Option fields overriding ``options``.

    Raises:
        InvalidTimeError: If ``start_time`` is not a valid instant.
        ConfigurationError: If an option is unknown or invalid.
    """

    def __init__(
        self,
        options: TimeControlOptions | None = None,
        *,
        integrations: Iterable[LibraryIntegration] | None = None,
        wall_clock: Clock | None = None,
        **overrides: Any,
    ) -> None:
        base = options if options is not None else TimeControlOptions()
        merged = base.merge(overrides) if overrides else base

        self._lock = threading.RLock()
        self._wall_clock: Clock = wall_clock if wall_clock is not None else SystemClock()
        self._options = replace(merged, environment=resolve_environment(merged.environment))
        self._current_time = (
            parse_instant(merged.start_time) if merged.start_time is not None else self._real_now()
        )
        self._enabled = False
        self._subscribers: dict[int, TimeChangeCallback] = {}
        self._tokens = itertools.count()
        self._hijacker = TimeHijacker(self, integrations)

        if merged.enabled is True or (
            merged.enabled == AUTO and is_activation_allowed(self.environment)
        ):
            self.enable()

        log_environment_info(self.environment, self._enabled)

    def __repr__(self) -> str:
        state = "active" if self._enabled else "inactive"
        return f"<TimeController {self._current_time.isoformat()} {state} ({self.environment})>"

    def __enter__(self) -> TimeController:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.destroy()

    @property
    def environment(self) -> Environment:
        """The resolved environment this controller runs in."""
        return Environment(self._options.environment)

    @property
    def hijacker(self) -> TimeHijacker:
        """The interception manager driven by this controller."""
        return self._hijacker

    def _real_now(self) -> datetime:
        return datetime.fromtimestamp(self._wall_clock.now(), tz=timezone.utc)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def get_current_time(self) -> datetime:
        """Return the virtual instant as an aware UTC datetime."""
        return self._current_time

    def is_active(self) -> bool:
        """Whether intercepted calls currently see the virtual instant."""
        return self._enabled

    def get_options(self) -> TimeControlOptions:
        """Return the current options, with the environment resolved."""
        return self._options

    # ------------------------------------------------------------------
    # Moving the clock
    # ------------------------------------------------------------------

    def set_time(self, value: datetime | str | float) -> None:
        """Move the virtual clock to ``value``.

        Args:
            value: A datetime (naive values are local time), an ISO 8601
                string, or a number. Numbers are seconds since the Unix
                epoch, the unit of ``time.time()``, not milliseconds: use
                ``value / 1000`` for a millisecond timestamp.

        Raises:
            InvalidTimeError: If ``value`` is not a valid instant. The clock
                is left unchanged.
        """
        new_time = parse_instant(value)
        self._change_time(lambda _: new_time)

    def add_time(self, milliseconds: float | timedelta) -> None:
        """Move the virtual clock by ``milliseconds`` (negative moves back).

        Raises:
            InvalidDurationError: If the duration is not finite or would move
                the clock out of the representable range. The clock is left
                unchanged.
        """
        ms = to_milliseconds(milliseconds)

        def shift(current: datetime) -> datetime:
            try:
                return current + timedelta(milliseconds=ms)
            except OverflowError as e:
                raise InvalidDurationError(
                    milliseconds, f"Moving by {milliseconds!r} ms leaves the supported range"
                ) from e

        self._change_time(shift)

    def add_seconds(self, seconds: float) -> None:
        self.add_time(self._scaled(seconds, MS_PER_SECOND))

    def add_minutes(self, minutes: float) -> None:
        self.add_time(self._scaled(minutes, MS_PER_MINUTE))

    def add_hours(self, hours: float) -> None:
        self.add_time(self._scaled(hours, MS_PER_HOUR))

    def add_days(self, days: float) -> None:
        self.add_time(self._scaled(days, MS_PER_DAY))

    def add_weeks(self, weeks: float) -> None:
        self.add_time(self._scaled(weeks, MS_PER_WEEK))

    @staticmethod
    def _scaled(amount: float, multiplier: int) -> float:
        # bool is an int subclass
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise InvalidDurationError(amount)
        return amount * multiplier

    def travel(self, period: str) -> None:
        """Move the clock by a period shortcut such as "15m", "-2h" or "1w"."""
        text = period.strip() if isinstance(period, str) else period
        if isinstance(text, str) and text.startswith("-"):
            self.add_time(-parse_time_period(text[1:]))
        else:
            self.add_time(parse_time_period(text))

    def reset_to_real_time(self) -> None:
        """Move the virtual clock to the real current time."""
        self.set_time(self._real_now())

    def _change_time(self, compute: Callable[[datetime], datetime]) -> None:
        with self._lock:
            new_time = compute(self._current_time)
            self._current_time = new_time
            subscribers = list(self._subscribers.values())
            on_change = self._options.on_time_change
        self._notify(subscribers, new_time, on_change)

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------

    def enable(self) -> None:
        """Activate the virtual clock and install interception.

        Does nothing if already active. In an environment that forbids
        activation this logs a warning, emits ``PolicyDeniedWarning`` and
        leaves the clock inactive.
        """
        with self._lock:
            if self._enabled:
                return

            if not is_activation_allowed(self.environment):
                message = f"Cannot enable time control in {self.environment} environment"
                logger.warning(message)
                warnings.warn(PolicyDeniedWarning(message), stacklevel=2)
                return

            # Libraries first so any import they trigger sees pristine modules
            try:
                self._hijacker.install_libraries(self._options.hijack_libraries)
                self._hijacker.install_native()
            except Exception:
                self._hijacker.restore_native()
                self._hijacker.restore_libraries()
                raise

            self._enabled = True
            subscribers = list(self._subscribers.values())
            current = self._current_time

        logger.info("Time control enabled at %s", current.isoformat())
        self._notify(subscribers, current)

    def disable(self) -> None:
        """Deactivate the virtual clock and restore interception."""
        with self._lock:
            if not self._enabled:
                return

            self._enabled = False
            self._hijacker.restore_native()
            self._hijacker.restore_libraries()
            subscribers = list(self._subscribers.values())
            current = self._current_time

        logger.info("Time control disabled")
        self._notify(subscribers, current)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, callback: TimeChangeCallback) -> Callable[[], None]:
        """Register ``callback`` to receive the instant after every change.

        Returns:
            A function removing exactly this subscription. Calling it again
            does nothing.

        Raises:
            InvalidCallbackError: If ``callback`` is not callable.
        """
        if not callable(callback):
            raise InvalidCallbackError(callback)

        with self._lock:
            token = next(self._tokens)
            self._subscribers[token] = callback

        def unsubscribe() -> None:
            with self._lock:
                self._subscribers.pop(token, None)

        return unsubscribe

    def subscriber_count(self) -> int:
        """Number of live subscriptions."""
        return len(self._subscribers)

    def _notify(
        self,
        subscribers: list[TimeChangeCallback],
        instant: datetime,
        on_change: TimeChangeCallback | None = None,
    ) -> None:
        for callback in subscribers:
            self._invoke(callback, instant)
        if on_change is not None:
            self._invoke(on_change, instant)

    @staticmethod
    def _invoke(callback: TimeChangeCallback, instant: datetime) -> None:
        try:
            callback(instant)
        except Exception as e:
            error = SubscriberNotificationError(_describe(callback), e)
            logger.error("%s", error, exc_info=e)

    # ------------------------------------------------------------------
    # Options and lifecycle
    # ------------------------------------------------------------------

    def update_options(self, **changes: Any) -> None:
        """Merge ``changes`` into the options and apply their effects.

        - ``hijack_libraries``: while active, library interception is
          restored and reinstalled to match the new selection.
        - ``on_time_change``: a callback different from the current one is
          called once right away with the current instant.
        - ``enabled``: True enables, False disables, "auto" follows the
          environment policy.
        - ``environment``: re-resolved; if activation is no longer allowed
          the clock is disabled.

        Raises:
            ConfigurationError: If a field is unknown or invalid.
        """
        with self._lock:
            previous = self._options
            merged = previous.merge(changes)
            if "environment" in changes:
                merged = replace(merged, environment=resolve_environment(merged.environment))
            self._options = merged

            if self._enabled and merged.hijack_libraries != previous.hijack_libraries:
                self._hijacker.restore_libraries()
                self._hijacker.install_libraries(merged.hijack_libraries)

            current = self._current_time

        if "environment" in changes and not is_activation_allowed(self.environment):
            self.disable()

        if "enabled" in changes:
            enabled = merged.enabled
            if enabled is True or (enabled == AUTO and is_activation_allowed(self.environment)):
                self.enable()
            else:
                self.disable()

        new_callback = changes.get("on_time_change")
        if new_callback is not None and new_callback != previous.on_time_change:
            self._invoke(new_callback, current)

    def destroy(self) -> None:
        """Disable, remove all interception and drop all subscribers."""
        self.disable()
        with self._lock:
            self._hijacker.destroy()
            self._subscribers.clear()


# ----------------------------------------------------------------------
# Process-wide default controller
# ----------------------------------------------------------------------

_default_controller: TimeController | None = None
_default_lock = threading.Lock()


def _explicit_changes(
    options: TimeControlOptions | None, overrides: dict[str, Any]
) -> dict[str, Any]:
    """Fields of ``options`` that differ from the defaults, plus ``overrides``."""
    changes: dict[str, Any] = {}
    if options is not None:
        defaults = TimeControlOptions()
        for f in fields(options):
            value = getattr(options, f.name)
            if value != getattr(defaults, f.name):
                changes[f.name] = value
    changes.update(overrides)
    return changes


def initialize(options: TimeControlOptions | None = None, **overrides: Any) -> TimeController:
    """Create the default controller, destroying any previous one first."""
    global _default_controller

    with _default_lock:
        if _default_controller is not None:
            _default_controller.destroy()
            _default_controller = None
        _default_controller = TimeController(options, **overrides)
        return _default_controller


def get_controller(options: TimeControlOptions | None = None, **overrides: Any) -> TimeController:
    """Return the default controller, creating it on first use.

    When the controller already exists, options given here are applied with
    ``update_options``.
    """
    global _default_controller

    with _default_lock:
        if _default_controller is None:
            _default_controller = TimeController(options, **overrides)
            return _default_controller
        controller = _default_controller

    changes = _explicit_changes(options, overrides)
    if changes:
        controller.update_options(**changes)
    return controller


def cleanup() -> None:
    """Destroy the default controller, if there is one."""
    global _default_controller

    with _default_lock:
        controller, _default_controller = _default_controller, None
    if controller is not None:
        controller.destroy()


def enable_time_travel(start_time: datetime | str | float | None = None) -> TimeController:
    """Activate the default controller, optionally jumping to ``start_time``."""
    controller = get_controller(enabled=True)
    if start_time is not None:
        controller.set_time(start_time)
    return controller


def disable_time_travel() -> None:
    """Deactivate the default controller, if there is one."""
    controller = _default_controller
    if controller is not None:
        controller.disable()
