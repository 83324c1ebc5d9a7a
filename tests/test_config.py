"""Tests for TimeControlOptions."""

import dataclasses

import pytest

from timeshift.constants import AUTO
from timeshift.exceptions import ConfigurationError
from timeshift.exceptions import InvalidCallbackError
from timeshift.state.config import TimeControlOptions
from timeshift.state.config import library_enabled


class TestTimeControlOptions:
    """Tests for the TimeControlOptions dataclass."""

    def test_defaults(self) -> None:
        """Test default option values."""
        options = TimeControlOptions()
        assert options.enabled == AUTO
        assert options.start_time is None
        assert options.hijack_libraries is True
        assert options.environment == AUTO
        assert options.on_time_change is None

    def test_frozen(self) -> None:
        """Test options cannot be mutated in place."""
        options = TimeControlOptions()
        with pytest.raises(dataclasses.FrozenInstanceError):
            options.enabled = True  # type: ignore[misc]

    @pytest.mark.parametrize("enabled", ["yes", 1, None])
    def test_invalid_enabled(self, enabled: object) -> None:
        """Test enabled accepts only True, False or "auto"."""
        with pytest.raises(ConfigurationError) as exc_info:
            TimeControlOptions(enabled=enabled)  # type: ignore[arg-type]
        assert exc_info.value.parameter == "enabled"

    def test_invalid_hijack_libraries(self) -> None:
        """Test hijack_libraries must be a bool or a mapping."""
        with pytest.raises(ConfigurationError) as exc_info:
            TimeControlOptions(hijack_libraries=["arrow"])  # type: ignore[arg-type]
        assert exc_info.value.parameter == "hijack_libraries"

    def test_invalid_callback(self) -> None:
        """Test on_time_change must be callable."""
        with pytest.raises(InvalidCallbackError):
            TimeControlOptions(on_time_change="print")  # type: ignore[arg-type]

    def test_field_names(self) -> None:
        """Test the set of configurable fields."""
        assert TimeControlOptions.field_names() == {
            "enabled",
            "start_time",
            "hijack_libraries",
            "environment",
            "on_time_change",
        }


class TestMerge:
    """Tests for TimeControlOptions.merge."""

    def test_merge_returns_copy(self) -> None:
        """Test merging leaves the original untouched."""
        options = TimeControlOptions()
        merged = options.merge({"enabled": False, "environment": "test"})
        assert merged.enabled is False
        assert merged.environment == "test"
        assert options.enabled == AUTO

    def test_merge_validates(self) -> None:
        """Test merged values are validated."""
        with pytest.raises(ConfigurationError):
            TimeControlOptions().merge({"enabled": "sometimes"})

    def test_unknown_fields(self) -> None:
        """Test unknown names are reported."""
        with pytest.raises(ConfigurationError, match="Unknown option"):
            TimeControlOptions().merge({"speed": 2, "enabled": True})


class TestLibraryEnabled:
    """Tests for library_enabled."""

    def test_bool_selection(self) -> None:
        """Test a bool selects every library or none."""
        assert library_enabled(True, "arrow")
        assert not library_enabled(False, "arrow")

    def test_mapping_selection(self) -> None:
        """Test mappings select individually and default to enabled."""
        selection = {"arrow": False, "pendulum": True}
        assert not library_enabled(selection, "arrow")
        assert library_enabled(selection, "pendulum")
        assert library_enabled(selection, "when")
