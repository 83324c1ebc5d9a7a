"""Time math shared across timeshift.

Parsing of instants and durations lives here so that the controller, the
console renderer and the period shortcuts all agree on what a valid value is.
"""

from __future__ import annotations

import math
import re
from datetime import date
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from typing import Any

from timeshift.constants import DEFAULT_PERIOD_UNIT
from timeshift.constants import MS_PER_DAY
from timeshift.constants import MS_PER_HOUR
from timeshift.constants import MS_PER_MINUTE
from timeshift.constants import MS_PER_SECOND
from timeshift.constants import MS_PER_WEEK
from timeshift.constants import PERIOD_UNIT_MULTIPLIERS
from timeshift.exceptions import InvalidDurationError
from timeshift.exceptions import InvalidTimeError
from timeshift.state.clock import SystemClock
from timeshift.types import TimePeriod

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

#: Common jumps offered by time controls
DEFAULT_TIME_PERIODS: list[TimePeriod] = [
    TimePeriod("1 minute", MS_PER_MINUTE, "1m"),
    TimePeriod("5 minutes", 5 * MS_PER_MINUTE, "5m"),
    TimePeriod("15 minutes", 15 * MS_PER_MINUTE, "15m"),
    TimePeriod("30 minutes", 30 * MS_PER_MINUTE, "30m"),
    TimePeriod("1 hour", MS_PER_HOUR, "1h"),
    TimePeriod("6 hours", 6 * MS_PER_HOUR, "6h"),
    TimePeriod("12 hours", 12 * MS_PER_HOUR, "12h"),
    TimePeriod("1 day", MS_PER_DAY, "1d"),
    TimePeriod("1 week", MS_PER_WEEK, "1w"),
]

_PERIOD_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s*([smhdw]?)$")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_instant(value: datetime | str | float) -> datetime:
    """Resolve a user-supplied time value to an aware UTC datetime.

    Accepted inputs:
        - ``datetime``: aware values are converted to UTC; naive values are
          interpreted as local time.
        - ``str``: ISO 8601. A trailing ``Z`` is accepted, and a bare date
          ("2024-01-01") means midnight UTC.
        - ``int``/``float``: seconds since the Unix epoch, as returned by
          ``time.time()``. Millisecond timestamps must be divided by 1000
          first.

    Args:
        value: The value to parse.

    Returns:
        The instant as a timezone-aware datetime in UTC.

    Raises:
        InvalidTimeError: If the value does not describe a finite instant.
    """
    if isinstance(value, datetime):
        try:
            return value.astimezone(timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise InvalidTimeError(value, cause=e) from e

    if _is_number(value):
        if not math.isfinite(value):
            raise InvalidTimeError(value)
        try:
            return EPOCH + timedelta(seconds=value)
        except OverflowError as e:
            raise InvalidTimeError(value, cause=e) from e

    if isinstance(value, str):
        return _parse_iso(value)

    raise InvalidTimeError(value, f"Unsupported time value of type {type(value).__name__}")


def _parse_iso(value: str) -> datetime:
    text = value.strip()
    if not text:
        raise InvalidTimeError(value)
    if text[-1] in "Zz":
        text = text[:-1] + "+00:00"
    try:
        if len(text) == 10:
            day = date.fromisoformat(text)
            return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
        parsed = datetime.fromisoformat(text)
        return parsed.astimezone(timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise InvalidTimeError(value, cause=e) from e


def is_valid_instant(value: Any) -> bool:
    """Return True if ``value`` would be accepted by ``parse_instant``."""
    try:
        parse_instant(value)
    except InvalidTimeError:
        return False
    return True


def to_milliseconds(value: float | timedelta) -> float:
    """Normalize a duration to milliseconds.

    Args:
        value: Milliseconds as a number, or a ``timedelta``.

    Raises:
        InvalidDurationError: If the value is not a finite duration.
    """
    if isinstance(value, timedelta):
        return value / timedelta(milliseconds=1)
    if not _is_number(value) or not math.isfinite(value):
        raise InvalidDurationError(value)
    return value


def parse_time_period(text: str) -> float:
    """Parse a period shortcut such as "15m" or "1.5h" into milliseconds.

    A bare number is read as minutes. Supported units are s, m, h, d and w.

    Raises:
        InvalidDurationError: If the text is not a period shortcut.
    """
    match = _PERIOD_PATTERN.match(text.strip().lower()) if isinstance(text, str) else None
    if match is None:
        raise InvalidDurationError(text, f"Invalid time period format: {text!r}")

    amount = float(match.group(1))
    unit = match.group(2) or DEFAULT_PERIOD_UNIT
    result = amount * PERIOD_UNIT_MULTIPLIERS[unit]
    return int(result) if result.is_integer() else result


def _one_decimal(value: float) -> str:
    return f"{round(value * 10) / 10:g}"


def format_time_period(milliseconds: float) -> str:
    """Format milliseconds as the largest fitting unit, e.g. "-1.5h".

    Examples:
        >>> format_time_period(90_000)
        '1.5m'
        >>> format_time_period(-2 * 86_400_000)
        '-2d'
    """
    sign = "-" if milliseconds < 0 else ""
    seconds = abs(milliseconds) / MS_PER_SECOND

    if seconds < 60:
        return f"{sign}{seconds:g}s"
    minutes = seconds / 60
    if minutes < 60:
        return f"{sign}{_one_decimal(minutes)}m"
    hours = minutes / 60
    if hours < 24:
        return f"{sign}{_one_decimal(hours)}h"
    days = hours / 24
    if days < 7:
        return f"{sign}{_one_decimal(days)}d"
    return f"{sign}{_one_decimal(days / 7)}w"


def format_display_date(
    value: datetime,
    show_seconds: bool = False,
    format_12_hour: bool = True,
    show_date: bool = True,
) -> str:
    """Format a datetime for display in its own timezone.

    Args:
        value: The datetime to format.
        show_seconds: Include seconds in the time part.
        format_12_hour: Use a 12-hour clock with AM/PM.
        show_date: Prefix the time with an ISO date.

    Returns:
        A string like "2024-01-01 1:05 PM" or "13:05:09".
    """
    parts: list[str] = []
    if show_date:
        parts.append(f"{value.year:04d}-{value.month:02d}-{value.day:02d}")

    seconds = f":{value.second:02d}" if show_seconds else ""
    if format_12_hour:
        hour = value.hour % 12 or 12
        suffix = "AM" if value.hour < 12 else "PM"
        parts.append(f"{hour}:{value.minute:02d}{seconds} {suffix}")
    else:
        parts.append(f"{value.hour:02d}:{value.minute:02d}{seconds}")

    return " ".join(parts)


def relative_time_description(when: datetime, reference: datetime | None = None) -> str:
    """Describe ``when`` relative to ``reference``, e.g. "3 hours ago".

    Args:
        when: The instant to describe.
        reference: The instant to compare against. Defaults to real now.
    """
    if reference is None:
        reference = datetime.fromtimestamp(SystemClock().now(), tz=timezone.utc)

    diff_ms = (when - reference) / timedelta(milliseconds=1)
    total_seconds = int(abs(diff_ms) // MS_PER_SECOND)
    minutes = total_seconds // 60
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        value, unit = days, "day"
    elif hours > 0:
        value, unit = hours, "hour"
    elif minutes > 0:
        value, unit = minutes, "minute"
    else:
        value, unit = total_seconds, "second"

    if value != 1:
        unit += "s"
    direction = "ago" if diff_ms < 0 else "from now"
    return f"{value} {unit} {direction}"


def clamp(value: float, minimum: float, maximum: float) -> float:
    """Clamp ``value`` to the closed range [minimum, maximum]."""
    return min(max(value, minimum), maximum)
