"""Interception for the pendulum library.

Both the module-level ``pendulum.now`` (which ``pendulum.today``,
``pendulum.tomorrow`` and ``pendulum.yesterday`` call) and the
``pendulum.DateTime.now`` classmethod are redirected.
"""

from __future__ import annotations

from types import ModuleType
from typing import TYPE_CHECKING
from typing import Any

from timeshift.integrations.base import LibraryIntegration

if TYPE_CHECKING:
    from timeshift.controller import TimeController


class PendulumIntegration(LibraryIntegration):
    """Redirects ``pendulum.now`` and ``pendulum.DateTime.now``."""

    library_id = "pendulum"
    module_name = "pendulum"

    def _patch(self, module: ModuleType, controller: TimeController) -> None:
        datetime_cls = module.DateTime
        original_module_now = module.now
        original_class_now = datetime_cls.__dict__["now"]

        def _virtual(tz: Any) -> Any:
            virtual = module.instance(controller.get_current_time())
            return virtual.in_timezone(tz if tz is not None else module.local_timezone())

        def now(tz: Any = None) -> Any:
            if not controller.is_active():
                return original_module_now(tz)
            return _virtual(tz)

        def class_now(cls: Any, tz: Any = None) -> Any:
            if not controller.is_active():
                return original_class_now.__get__(None, cls)(tz)
            return _virtual(tz)

        self._originals["module.now"] = original_module_now
        module.now = now
        self._originals["DateTime.now"] = original_class_now
        datetime_cls.now = classmethod(class_now)

    def _unpatch(self, module: ModuleType) -> None:
        if "module.now" in self._originals:
            module.now = self._originals["module.now"]
        if "DateTime.now" in self._originals:
            module.DateTime.now = self._originals["DateTime.now"]
