"""Interception for the arrow library.

``arrow.now()``, ``arrow.utcnow()`` and a zero-argument ``arrow.get()`` all
end in the ``Arrow.now``/``Arrow.utcnow`` classmethods, which read the clock
through a ``datetime`` reference bound at import time. Patching the two
classmethods covers every entry point.
"""

from __future__ import annotations

from types import ModuleType
from typing import TYPE_CHECKING
from typing import Any

from timeshift.integrations.base import LibraryIntegration
from timeshift.integrations.base import restore_attributes

if TYPE_CHECKING:
    from timeshift.controller import TimeController


class ArrowIntegration(LibraryIntegration):
    """Redirects ``arrow.Arrow.now`` and ``arrow.Arrow.utcnow``."""

    library_id = "arrow"
    module_name = "arrow"

    def _patch(self, module: ModuleType, controller: TimeController) -> None:
        arrow_cls = module.Arrow
        # Raw classmethod objects, so restoring is exact
        original_now = arrow_cls.__dict__["now"]
        original_utcnow = arrow_cls.__dict__["utcnow"]

        def now(cls: Any, tzinfo: Any = None) -> Any:
            if not controller.is_active():
                return original_now.__get__(None, cls)(tzinfo)
            virtual = cls.fromdatetime(controller.get_current_time())
            return virtual.to(tzinfo if tzinfo is not None else "local")

        def utcnow(cls: Any) -> Any:
            if not controller.is_active():
                return original_utcnow.__get__(None, cls)()
            return cls.fromdatetime(controller.get_current_time()).to("UTC")

        self._originals["now"] = original_now
        arrow_cls.now = classmethod(now)
        self._originals["utcnow"] = original_utcnow
        arrow_cls.utcnow = classmethod(utcnow)

    def _unpatch(self, module: ModuleType) -> None:
        restore_attributes(module.Arrow, self._originals)
