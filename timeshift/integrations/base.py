"""Base class for third-party date library integrations."""

from __future__ import annotations

import importlib
import importlib.util
from abc import ABC
from abc import abstractmethod
from types import ModuleType
from typing import TYPE_CHECKING
from typing import Any

if TYPE_CHECKING:
    from timeshift.controller import TimeController


class LibraryIntegration(ABC):
    """
    Reversible redirection of a date library's "now" entry points.

    An integration redirects only the call shapes that observe the current
    instant. Everything else the library does is left alone, and restoring
    puts back the exact objects that were replaced.

    Subclasses name the module they patch and implement ``_patch`` and
    ``_unpatch``. Instances are stateful; each hijacker owns its own.

    Example implementation::

        class WhenIntegration(LibraryIntegration):
            library_id = "when"
            module_name = "when"

            def _patch(self, module, controller):
                original = module.now
                self._originals["now"] = original

                def now():
                    if controller.is_active():
                        return controller.get_current_time()
                    return original()

                module.now = now

            def _unpatch(self, module):
                module.now = self._originals["now"]
    """

    #: Identifier used in logs and in per-library option mappings
    library_id: str = ""

    #: Importable name of the library
    module_name: str = ""

    def __init__(self) -> None:
        self._originals: dict[str, Any] = {}
        self._module: ModuleType | None = None

    @property
    def installed(self) -> bool:
        """Whether the library is currently redirected."""
        return self._module is not None

    @property
    def originals(self) -> dict[str, Any]:
        """Copy of the bindings captured at install time."""
        return dict(self._originals)

    def detect(self) -> bool:
        """Return True if the library can be imported."""
        try:
            return importlib.util.find_spec(self.module_name) is not None
        except (ImportError, ValueError):
            return False

    def install(self, controller: TimeController) -> None:
        """Redirect the library's "now" entry points to ``controller``.

        Calling this while already installed does nothing.
        """
        if self.installed:
            return
        module = importlib.import_module(self.module_name)
        self._originals = {}
        try:
            self._patch(module, controller)
        except Exception:
            # Roll back whatever was patched before the failure
            self._unpatch(module)
            self._originals = {}
            raise
        self._module = module

    def restore(self) -> None:
        """Put back the original bindings. Does nothing if not installed."""
        if self._module is None:
            return
        self._unpatch(self._module)
        self._module = None
        self._originals = {}

    @abstractmethod
    def _patch(self, module: ModuleType, controller: TimeController) -> None:
        """Capture originals into ``self._originals`` and install replacements."""

    @abstractmethod
    def _unpatch(self, module: ModuleType) -> None:
        """Restore every binding recorded in ``self._originals``."""


def restore_attributes(owner: Any, originals: dict[str, Any]) -> None:
    """Set each captured attribute back on ``owner``."""
    for name, original in originals.items():
        setattr(owner, name, original)
