"""Configuration record for the virtual clock controller."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import fields
from dataclasses import replace
from datetime import datetime
from typing import Any
from typing import Literal

from timeshift.constants import AUTO
from timeshift.exceptions import ConfigurationError
from timeshift.exceptions import InvalidCallbackError
from timeshift.types import Environment
from timeshift.types import TimeChangeCallback

LibrarySelection = bool | Mapping[str, bool]


@dataclass(frozen=True)
class TimeControlOptions:
    """
    Options for a ``TimeController``.

    Attributes:
        enabled: True or False to request an activation state, or "auto" to
            activate whenever the environment allows it. Production always
            refuses activation.
        start_time: Starting virtual instant. Defaults to real current time.
        hijack_libraries: Whether third-party date libraries are intercepted
            while active. A mapping of integration id to bool selects
            libraries individually; ids missing from the mapping are
            intercepted.
        environment: Environment override, or "auto" to detect it.
        on_time_change: Callback invoked with the new instant after every
            change to the virtual instant.
    """

    enabled: bool | Literal["auto"] = AUTO
    start_time: datetime | str | float | None = None
    hijack_libraries: LibrarySelection = True
    environment: Environment | str = AUTO
    on_time_change: TimeChangeCallback | None = None

    def __post_init__(self) -> None:
        """Validate field values."""
        if not isinstance(self.enabled, bool) and self.enabled != AUTO:
            raise ConfigurationError(
                "enabled", f"Expected True, False or 'auto', got {self.enabled!r}"
            )
        if not isinstance(self.hijack_libraries, (bool, Mapping)):
            raise ConfigurationError(
                "hijack_libraries",
                f"Expected a bool or a mapping, got {type(self.hijack_libraries).__name__}",
            )
        if self.on_time_change is not None and not callable(self.on_time_change):
            raise InvalidCallbackError(self.on_time_change)

    @classmethod
    def field_names(cls) -> frozenset[str]:
        """Names of all configurable fields."""
        return frozenset(f.name for f in fields(cls))

    def merge(self, changes: Mapping[str, Any]) -> TimeControlOptions:
        """Return a copy with ``changes`` applied.

        Raises:
            ConfigurationError: If ``changes`` names an unknown field.
        """
        unknown = set(changes) - self.field_names()
        if unknown:
            raise ConfigurationError(
                sorted(unknown)[0], f"Unknown option(s): {', '.join(sorted(unknown))}"
            )
        return replace(self, **changes)


def library_enabled(selection: LibrarySelection, library_id: str) -> bool:
    """Return whether ``library_id`` is selected for interception."""
    if isinstance(selection, Mapping):
        return bool(selection.get(library_id, True))
    return bool(selection)
