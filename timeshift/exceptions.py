"""Application-specific exceptions for timeshift.

Validation errors are raised at the call site that caused them and leave the
virtual clock untouched. Subscriber failures are wrapped and logged, never
propagated. Policy refusals are reported as warnings.

Exception Hierarchy:
    TimeshiftError (base)
    ├── InvalidTimeError
    ├── InvalidDurationError
    ├── InvalidCallbackError
    ├── ConfigurationError
    └── SubscriberNotificationError

    PolicyDeniedWarning (UserWarning)
"""

from typing import Any


class TimeshiftError(Exception):
    """Base exception for all timeshift errors.

    All application-specific exceptions inherit from this class,
    allowing callers to catch all timeshift errors with a single handler.
    """


class InvalidTimeError(TimeshiftError, ValueError):
    """Raised when a value does not resolve to a valid instant.

    Attributes:
        value: The rejected input.
        message: Human-readable error description.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        value: Any,
        message: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.value = value
        self.cause = cause
        self.message = message or f"Invalid time: {value!r}"
        if cause:
            self.message = f"{self.message}: {cause}"
        super().__init__(self.message)


class InvalidDurationError(TimeshiftError, ValueError):
    """Raised when a duration is not a finite amount of time.

    Attributes:
        value: The rejected duration.
        message: Human-readable error description.
    """

    def __init__(self, value: Any, message: str | None = None) -> None:
        self.value = value
        self.message = message or f"Invalid duration: {value!r}"
        super().__init__(self.message)


class InvalidCallbackError(TimeshiftError, TypeError):
    """Raised when a subscriber or change callback is not callable."""

    def __init__(self, callback: Any) -> None:
        self.callback = callback
        self.message = f"Callback must be callable, got {type(callback).__name__}"
        super().__init__(self.message)


class ConfigurationError(TimeshiftError, ValueError):
    """Raised when there is a configuration error.

    Attributes:
        parameter: The configuration parameter that is invalid.
        message: Human-readable error description.
    """

    def __init__(self, parameter: str, message: str | None = None) -> None:
        self.parameter = parameter
        self.message = message or f"Invalid configuration for '{parameter}'"
        super().__init__(self.message)


class SubscriberNotificationError(TimeshiftError):
    """A subscriber raised while being notified of a change.

    Never raised to the code that changed the clock; instances are built so
    the failure can be logged with its cause.

    Attributes:
        subscriber: Description of the failing callback.
        cause: The exception raised by the callback.
    """

    def __init__(self, subscriber: str, cause: Exception) -> None:
        self.subscriber = subscriber
        self.cause = cause
        self.message = f"Subscriber {subscriber} failed during notification: {cause!r}"
        super().__init__(self.message)


class PolicyDeniedWarning(UserWarning):
    """Activation was refused because the environment forbids it."""
