"""Tests for utility functions."""

from datetime import datetime
from datetime import timedelta
from datetime import timezone

import pytest

from timeshift.constants import MS_PER_DAY
from timeshift.constants import MS_PER_HOUR
from timeshift.constants import MS_PER_MINUTE
from timeshift.exceptions import InvalidDurationError
from timeshift.exceptions import InvalidTimeError
from timeshift.utils import DEFAULT_TIME_PERIODS
from timeshift.utils import EPOCH
from timeshift.utils import clamp
from timeshift.utils import format_display_date
from timeshift.utils import format_time_period
from timeshift.utils import is_valid_instant
from timeshift.utils import parse_instant
from timeshift.utils import parse_time_period
from timeshift.utils import relative_time_description
from timeshift.utils import to_milliseconds

NOON = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestParseInstant:
    """Tests for parse_instant function."""

    def test_iso_string_with_z(self) -> None:
        """Test an ISO string with a Z suffix."""
        assert parse_instant("2024-01-01T12:00:00Z") == NOON

    def test_iso_string_with_offset(self) -> None:
        """Test offsets are converted to UTC."""
        result = parse_instant("2024-01-01T13:00:00+01:00")
        assert result == NOON
        assert result.tzinfo == timezone.utc

    def test_date_only_is_midnight_utc(self) -> None:
        """Test a bare date means midnight UTC."""
        assert parse_instant("2024-01-01") == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_naive_string_is_local(self) -> None:
        """Test a naive ISO string is read as local time."""
        expected = datetime(2024, 1, 1, 12, 0).astimezone(timezone.utc)
        assert parse_instant("2024-01-01T12:00:00") == expected

    def test_epoch_seconds(self) -> None:
        """Test numbers are seconds since the epoch."""
        assert parse_instant(0) == EPOCH
        assert parse_instant(1704110400) == NOON
        assert parse_instant(1.5) == EPOCH + timedelta(seconds=1.5)
        assert parse_instant(-86400) == datetime(1969, 12, 31, tzinfo=timezone.utc)

    def test_aware_datetime(self) -> None:
        """Test aware datetimes are converted to UTC."""
        plus_two = timezone(timedelta(hours=2))
        result = parse_instant(datetime(2024, 1, 1, 14, 0, tzinfo=plus_two))
        assert result == NOON
        assert result.tzinfo == timezone.utc

    def test_naive_datetime_is_local(self) -> None:
        """Test naive datetimes are read as local time."""
        naive = datetime(2024, 6, 1, 8, 30)
        assert parse_instant(naive) == naive.astimezone(timezone.utc)

    @pytest.mark.parametrize(
        "value",
        [
            "not a date",
            "",
            "   ",
            "2024-13-01",
            "2024-02-30T00:00:00Z",
            float("nan"),
            float("inf"),
            1e20,
            True,
            None,
            [2024, 1, 1],
        ],
    )
    def test_invalid_values(self, value: object) -> None:
        """Test invalid values raise InvalidTimeError."""
        with pytest.raises(InvalidTimeError):
            parse_instant(value)  # type: ignore[arg-type]

    def test_invalid_time_is_value_error(self) -> None:
        """Test InvalidTimeError can be caught as ValueError."""
        with pytest.raises(ValueError, match="Invalid time"):
            parse_instant("yesterday")


class TestIsValidInstant:
    """Tests for is_valid_instant function."""

    def test_valid(self) -> None:
        """Test accepted values."""
        assert is_valid_instant("2024-01-01")
        assert is_valid_instant(NOON)
        assert is_valid_instant(0)

    def test_invalid(self) -> None:
        """Test rejected values."""
        assert not is_valid_instant("soon")
        assert not is_valid_instant(float("nan"))
        assert not is_valid_instant(None)


class TestToMilliseconds:
    """Tests for to_milliseconds function."""

    def test_numbers_pass_through(self) -> None:
        """Test numbers are already milliseconds."""
        assert to_milliseconds(250) == 250
        assert to_milliseconds(-5.5) == -5.5

    def test_timedelta(self) -> None:
        """Test timedeltas are converted."""
        assert to_milliseconds(timedelta(seconds=1.5)) == 1500
        assert to_milliseconds(timedelta(days=-1)) == -MS_PER_DAY

    @pytest.mark.parametrize("value", ["5", True, None, float("nan"), float("-inf")])
    def test_invalid(self, value: object) -> None:
        """Test non-finite or non-numeric durations raise."""
        with pytest.raises(InvalidDurationError):
            to_milliseconds(value)  # type: ignore[arg-type]


class TestParseTimePeriod:
    """Tests for parse_time_period function."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("30s", 30_000),
            ("15m", 15 * MS_PER_MINUTE),
            ("2h", 2 * MS_PER_HOUR),
            ("1d", MS_PER_DAY),
            ("1w", 7 * MS_PER_DAY),
            ("1.5h", 90 * MS_PER_MINUTE),
            ("5", 5 * MS_PER_MINUTE),
            (" 2 H ", 2 * MS_PER_HOUR),
        ],
    )
    def test_valid(self, text: str, expected: int) -> None:
        """Test supported shortcuts."""
        assert parse_time_period(text) == expected

    def test_whole_results_are_int(self) -> None:
        """Test whole millisecond results are returned as int."""
        assert isinstance(parse_time_period("1.5h"), int)
        assert parse_time_period("0.0005s") == 0.5

    @pytest.mark.parametrize("text", ["", "abc", "-5m", "5y", "m", "1..5h"])
    def test_invalid(self, text: str) -> None:
        """Test malformed shortcuts raise."""
        with pytest.raises(InvalidDurationError, match="Invalid time period format"):
            parse_time_period(text)

    def test_default_periods_round_trip(self) -> None:
        """Test every preset shortcut parses to its own value."""
        for period in DEFAULT_TIME_PERIODS:
            assert parse_time_period(period.shortcut) == period.value


class TestFormatTimePeriod:
    """Tests for format_time_period function."""

    @pytest.mark.parametrize(
        ("milliseconds", "expected"),
        [
            (0, "0s"),
            (1500, "1.5s"),
            (45_000, "45s"),
            (90_000, "1.5m"),
            (MS_PER_HOUR, "1h"),
            (36 * MS_PER_HOUR, "1.5d"),
            (14 * MS_PER_DAY, "2w"),
            (-2 * MS_PER_DAY, "-2d"),
            (-90 * MS_PER_MINUTE, "-1.5h"),
        ],
    )
    def test_format(self, milliseconds: int, expected: str) -> None:
        """Test the largest fitting unit is used."""
        assert format_time_period(milliseconds) == expected


class TestFormatDisplayDate:
    """Tests for format_display_date function."""

    def test_12_hour(self) -> None:
        """Test the default 12-hour format with date."""
        value = datetime(2024, 1, 1, 13, 5, 9)
        assert format_display_date(value) == "2024-01-01 1:05 PM"
        assert format_display_date(value, show_seconds=True) == "2024-01-01 1:05:09 PM"

    def test_24_hour(self) -> None:
        """Test the 24-hour format without date."""
        value = datetime(2024, 1, 1, 13, 5, 9)
        assert format_display_date(value, format_12_hour=False, show_date=False) == "13:05"

    def test_midnight_and_noon(self) -> None:
        """Test 12 AM and 12 PM."""
        assert format_display_date(datetime(2024, 1, 1, 0, 0), show_date=False) == "12:00 AM"
        assert format_display_date(datetime(2024, 1, 1, 12, 0), show_date=False) == "12:00 PM"


class TestRelativeTimeDescription:
    """Tests for relative_time_description function."""

    @pytest.mark.parametrize(
        ("delta", "expected"),
        [
            (timedelta(hours=-3), "3 hours ago"),
            (timedelta(days=1), "1 day from now"),
            (timedelta(seconds=-30), "30 seconds ago"),
            (timedelta(minutes=-1), "1 minute ago"),
            (timedelta(minutes=90), "1 hour from now"),
            (timedelta(0), "0 seconds from now"),
        ],
    )
    def test_descriptions(self, delta: timedelta, expected: str) -> None:
        """Test the largest whole unit is described."""
        assert relative_time_description(NOON + delta, NOON) == expected

    def test_default_reference_is_real_now(self) -> None:
        """Test omitting the reference compares with real time."""
        assert relative_time_description(NOON).endswith("ago")


class TestClamp:
    """Tests for clamp function."""

    def test_clamp(self) -> None:
        """Test values are limited to the range."""
        assert clamp(5, 0, 10) == 5
        assert clamp(-1, 0, 10) == 0
        assert clamp(11, 0, 10) == 10
