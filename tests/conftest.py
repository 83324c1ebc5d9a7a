"""Shared test fixtures for timeshift tests."""

import copyreg
import datetime
import importlib.machinery
import sys
import time
from collections.abc import Callable
from collections.abc import Generator
from datetime import timezone
from types import ModuleType
from typing import Any

import pytest

from timeshift import hijacker as hijacker_module
from timeshift.controller import TimeController
from timeshift.controller import cleanup
from timeshift.hijacker import TIME_FUNCTIONS
from timeshift.integrations.base import LibraryIntegration

# Captured at collection time, before any test can intercept anything
PRISTINE_TIME_FUNCTIONS = {name: getattr(time, name) for name in TIME_FUNCTIONS}
PRISTINE_DATETIME = datetime.datetime
PRISTINE_DATE = datetime.date

START = datetime.datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

FAKE_MODULE_NAME = "timeshift_fake_datelib"


def time_surface_is_pristine() -> bool:
    """Whether ``time`` and ``datetime`` hold their original attributes."""
    return (
        all(getattr(time, name) is fn for name, fn in PRISTINE_TIME_FUNCTIONS.items())
        and datetime.datetime is PRISTINE_DATETIME
        and datetime.date is PRISTINE_DATE
        and PRISTINE_DATETIME not in copyreg.dispatch_table
        and PRISTINE_DATE not in copyreg.dispatch_table
        and not hijacker_module._native_owners
    )


def _force_restore() -> None:
    for name, fn in PRISTINE_TIME_FUNCTIONS.items():
        setattr(time, name, fn)
    datetime.datetime = PRISTINE_DATETIME  # type: ignore[misc]
    datetime.date = PRISTINE_DATE  # type: ignore[misc]
    copyreg.dispatch_table.pop(PRISTINE_DATETIME, None)
    copyreg.dispatch_table.pop(PRISTINE_DATE, None)
    hijacker_module._native_owners = ()
    hijacker_module._native_backup = None


@pytest.fixture(autouse=True)
def pristine_time_surface() -> Generator[None, None, None]:
    """Tear down the default controller and check nothing stays intercepted."""
    yield
    cleanup()
    if not time_surface_is_pristine():
        _force_restore()
        pytest.fail("time/datetime were left intercepted after the test")


class FakeIntegration(LibraryIntegration):
    """Integration over a synthetic module exposing ``now()``."""

    def __init__(
        self,
        library_id: str = "fake",
        module_name: str = FAKE_MODULE_NAME,
        fail: bool = False,
    ) -> None:
        super().__init__()
        self.library_id = library_id
        self.module_name = module_name
        self.fail = fail

    def _patch(self, module: ModuleType, controller: TimeController) -> None:
        original = module.now
        self._originals["now"] = original

        def now() -> Any:
            if controller.is_active():
                return controller.get_current_time()
            return original()

        module.now = now
        if self.fail:
            raise RuntimeError("patching failed")

    def _unpatch(self, module: ModuleType) -> None:
        if "now" in self._originals:
            module.now = self._originals["now"]


def real_now() -> str:
    return "real"


@pytest.fixture
def fake_library(monkeypatch: pytest.MonkeyPatch) -> ModuleType:
    """An importable module with a ``now()`` function returning "real"."""
    module = ModuleType(FAKE_MODULE_NAME)
    module.__spec__ = importlib.machinery.ModuleSpec(FAKE_MODULE_NAME, None)
    module.now = real_now  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, FAKE_MODULE_NAME, module)
    return module


@pytest.fixture
def make_controller() -> Generator[Callable[..., TimeController], None, None]:
    """Factory for controllers that are destroyed after the test.

    Controllers default to the test environment, the START instant and no
    library integrations.
    """
    created: list[TimeController] = []

    def factory(**kwargs: Any) -> TimeController:
        kwargs.setdefault("environment", "test")
        kwargs.setdefault("start_time", START)
        kwargs.setdefault("integrations", [])
        controller = TimeController(**kwargs)
        created.append(controller)
        return controller

    yield factory

    for controller in reversed(created):
        controller.destroy()
