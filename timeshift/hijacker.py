"""Reversible interception of the standard library's "now" surface.

Installing replaces module attributes of ``time`` and ``datetime`` so that
unmodified code calling ``time.time()``, ``datetime.datetime.now()``,
``datetime.date.today()`` and friends sees the controller's virtual instant
while the controller is active. Only the call shapes that observe the
current instant are redirected: explicit timestamps, construction, parsing
and arithmetic go to the captured functions unchanged, and nothing is
redirected while the controller is inactive.

The native shims are shared by every hijacker in the process. The first
install captures the true originals and patches the modules; later installs
only join as owners. The newest active owner's controller drives the shims,
and the last owner to restore puts the originals back. So after any sequence
of installs and restores, across any number of hijackers, the modules hold
their pristine attributes again.

While the shims are installed, ``datetime.datetime`` names the replacement
class, which pickle cannot resolve to the class of real instances. Reducers
registered with ``copyreg`` rebuild real datetimes and dates through
``_unpickle_datetime`` and ``_unpickle_date`` until the originals are back.

Call sites that bound a function or class before installation (for example
``from time import time``) keep the original and are not redirected. Such
code can take a ``timeshift.state.Clock`` instead.
"""

from __future__ import annotations

import copyreg
import datetime as _datetime_module
import functools
import logging
import threading
import time as _time_module
from collections.abc import Callable
from collections.abc import Iterable
from dataclasses import dataclass
from dataclasses import field
from datetime import date
from datetime import datetime
from datetime import timedelta
from datetime import tzinfo
from typing import TYPE_CHECKING
from typing import Any

from timeshift.integrations import default_integrations
from timeshift.integrations.base import LibraryIntegration
from timeshift.state.config import LibrarySelection
from timeshift.state.config import library_enabled
from timeshift.utils import EPOCH

if TYPE_CHECKING:
    from timeshift.controller import TimeController

logger = logging.getLogger(__name__)

#: Attributes of the ``time`` module that report the current instant
TIME_FUNCTIONS: tuple[str, ...] = ("time", "time_ns", "localtime", "gmtime", "ctime", "strftime")


@dataclass(frozen=True)
class NativeBackup:
    """Originals captured when native interception was first installed.

    Attributes:
        time_functions: Original ``time`` module functions by name.
        datetime_class: The original ``datetime.datetime``.
        date_class: The original ``datetime.date``.
        reducers: ``copyreg`` entries the two classes had before install.
    """

    time_functions: dict[str, Callable[..., Any]]
    datetime_class: type[datetime]
    date_class: type[date]
    reducers: dict[type, Any] = field(default_factory=dict)


@dataclass
class LibraryHijackRecord:
    """Bookkeeping for one installed library integration.

    Attributes:
        library_id: Integration identifier.
        integration: The integration that performed the install.
        original_binding: Bindings the integration replaced.
        installed: Whether the redirection is currently in place.
    """

    library_id: str
    integration: LibraryIntegration
    original_binding: dict[str, Any] = field(default_factory=dict)
    installed: bool = True


# Process-wide native interception state. Owners are ordered oldest first.
_native_lock = threading.Lock()
_native_backup: NativeBackup | None = None
_native_owners: tuple[TimeHijacker, ...] = ()


def _driving_controller() -> TimeController | None:
    """The newest owner's controller that is currently active, if any."""
    for owner in reversed(_native_owners):
        if owner.controller.is_active():
            return owner.controller
    return None


class _InterceptedType(type):
    """Metaclass making the replacement classes accept original instances.

    ``isinstance(value, datetime.datetime)`` must keep working for values
    created before installation or by code holding the original class.
    Subclasses of a replacement class get ordinary checks.
    """

    def __instancecheck__(cls, instance: Any) -> bool:
        original = cls.__dict__.get("_original")
        if original is not None:
            return isinstance(instance, original)
        return super().__instancecheck__(instance)

    def __subclasscheck__(cls, subclass: type) -> bool:
        original = cls.__dict__.get("_original")
        if original is not None:
            return issubclass(subclass, original)
        return super().__subclasscheck__(subclass)


def _unpickle_datetime(*args: Any) -> datetime:
    return datetime(*args)


def _unpickle_date(*args: Any) -> date:
    return date(*args)


def _reduce_datetime(value: datetime) -> tuple[Any, ...]:
    # Protocol 4 state keeps the fold bit
    return _unpickle_datetime, value.__reduce_ex__(4)[1]


def _reduce_date(value: date) -> tuple[Any, ...]:
    return _unpickle_date, value.__reduce_ex__(4)[1]


def _epoch_ns(instant: datetime) -> int:
    return (instant - EPOCH) // timedelta(microseconds=1) * 1000


def _timestamp(controller: TimeController) -> float:
    return controller.get_current_time().timestamp()


def _virtual_now(controller: TimeController, tz: tzinfo | None) -> datetime:
    """The virtual instant shaped like ``datetime.now(tz)``'s result."""
    instant = controller.get_current_time()
    if tz is None:
        return instant.astimezone().replace(tzinfo=None)
    return instant.astimezone(tz)


def _make_time_functions(originals: dict[str, Callable[..., Any]]) -> dict[str, Callable[..., Any]]:
    real_time = originals["time"]
    real_time_ns = originals["time_ns"]
    real_localtime = originals["localtime"]
    real_gmtime = originals["gmtime"]
    real_ctime = originals["ctime"]
    real_strftime = originals["strftime"]

    @functools.wraps(real_time)
    def time() -> float:
        controller = _driving_controller()
        if controller is None:
            return real_time()
        return _timestamp(controller)

    @functools.wraps(real_time_ns)
    def time_ns() -> int:
        controller = _driving_controller()
        if controller is None:
            return real_time_ns()
        return _epoch_ns(controller.get_current_time())

    @functools.wraps(real_localtime)
    def localtime(secs: float | None = None) -> _time_module.struct_time:
        if secs is None:
            controller = _driving_controller()
            if controller is not None:
                return real_localtime(_timestamp(controller))
        return real_localtime(secs)

    @functools.wraps(real_gmtime)
    def gmtime(secs: float | None = None) -> _time_module.struct_time:
        if secs is None:
            controller = _driving_controller()
            if controller is not None:
                return real_gmtime(_timestamp(controller))
        return real_gmtime(secs)

    @functools.wraps(real_ctime)
    def ctime(secs: float | None = None) -> str:
        if secs is None:
            controller = _driving_controller()
            if controller is not None:
                return real_ctime(_timestamp(controller))
        return real_ctime(secs)

    @functools.wraps(real_strftime)
    def strftime(format: str, t: Any = None) -> str:
        if t is not None:
            return real_strftime(format, t)
        controller = _driving_controller()
        if controller is None:
            return real_strftime(format)
        return real_strftime(format, real_localtime(_timestamp(controller)))

    return {
        "time": time,
        "time_ns": time_ns,
        "localtime": localtime,
        "gmtime": gmtime,
        "ctime": ctime,
        "strftime": strftime,
    }


def _make_date_class(original: type[date]) -> type[date]:
    class InterceptedDate(original, metaclass=_InterceptedType):  # type: ignore[misc]
        _original = original

        def __new__(cls, *args: Any, **kwargs: Any) -> Any:
            if cls is InterceptedDate:
                return original(*args, **kwargs)
            return super().__new__(cls, *args, **kwargs)

        @classmethod
        def today(cls) -> Any:
            controller = _driving_controller()
            if controller is None:
                return super().today()
            today = _virtual_now(controller, None).date()
            if cls is InterceptedDate:
                return today
            return cls(today.year, today.month, today.day)

    InterceptedDate.__module__ = original.__module__
    return InterceptedDate


def _make_datetime_class(original: type[datetime]) -> type[datetime]:
    class InterceptedDatetime(original, metaclass=_InterceptedType):  # type: ignore[misc]
        _original = original

        def __new__(cls, *args: Any, **kwargs: Any) -> Any:
            if cls is InterceptedDatetime:
                return original(*args, **kwargs)
            return super().__new__(cls, *args, **kwargs)

        @classmethod
        def _coerce(cls, value: datetime) -> Any:
            if cls is InterceptedDatetime:
                return value
            return cls(
                value.year,
                value.month,
                value.day,
                value.hour,
                value.minute,
                value.second,
                value.microsecond,
                value.tzinfo,
                fold=value.fold,
            )

        @classmethod
        def now(cls, tz: tzinfo | None = None) -> Any:
            controller = _driving_controller()
            if controller is None:
                return super().now(tz)
            return cls._coerce(_virtual_now(controller, tz))

        @classmethod
        def today(cls) -> Any:
            controller = _driving_controller()
            if controller is None:
                return super().today()
            return cls._coerce(_virtual_now(controller, None))

        @classmethod
        def utcnow(cls) -> Any:
            controller = _driving_controller()
            if controller is None:
                return super().utcnow()
            return cls._coerce(controller.get_current_time().replace(tzinfo=None))

    InterceptedDatetime.__module__ = original.__module__
    return InterceptedDatetime


def _patch_native() -> NativeBackup:
    datetime_class = _datetime_module.datetime
    date_class = _datetime_module.date
    backup = NativeBackup(
        time_functions={name: getattr(_time_module, name) for name in TIME_FUNCTIONS},
        datetime_class=datetime_class,
        date_class=date_class,
        reducers={
            cls: copyreg.dispatch_table[cls]
            for cls in (datetime_class, date_class)
            if cls in copyreg.dispatch_table
        },
    )

    for name, replacement in _make_time_functions(backup.time_functions).items():
        setattr(_time_module, name, replacement)
    _datetime_module.date = _make_date_class(date_class)  # type: ignore[misc]
    _datetime_module.datetime = _make_datetime_class(datetime_class)  # type: ignore[misc]
    copyreg.pickle(datetime_class, _reduce_datetime)
    copyreg.pickle(date_class, _reduce_date)
    return backup


def _unpatch_native(backup: NativeBackup) -> None:
    for name, original in backup.time_functions.items():
        setattr(_time_module, name, original)
    _datetime_module.date = backup.date_class  # type: ignore[misc]
    _datetime_module.datetime = backup.datetime_class  # type: ignore[misc]
    for cls in (backup.datetime_class, backup.date_class):
        if cls in backup.reducers:
            copyreg.dispatch_table[cls] = backup.reducers[cls]
        else:
            copyreg.dispatch_table.pop(cls, None)


class TimeHijacker:
    """Installs and removes interception shims on behalf of a controller.

    Native interception (``time`` and ``datetime``) and each library
    integration are tracked independently. Every install is a no-op when
    already installed and every restore is a no-op when not installed.

    Args:
        controller: The controller consulted by every intercepted call.
        integrations: Library integrations to manage, in order. Defaults to
            the built-in integrations followed by entry point plugins.
    """

    def __init__(
        self,
        controller: TimeController,
        integrations: Iterable[LibraryIntegration] | None = None,
    ) -> None:
        self._controller = controller
        self._integrations: list[LibraryIntegration] = (
            list(integrations) if integrations is not None else default_integrations()
        )
        self._records: dict[str, LibraryHijackRecord] = {}
        self._lock = threading.RLock()

    @property
    def controller(self) -> TimeController:
        """The controller this hijacker redirects to."""
        return self._controller

    @property
    def backup(self) -> NativeBackup | None:
        """Originals of the shared native shims, or None when not installed."""
        return _native_backup if self.is_installed() else None

    @property
    def integrations(self) -> list[LibraryIntegration]:
        """The library integrations managed by this hijacker."""
        return list(self._integrations)

    def is_installed(self) -> bool:
        """Whether this hijacker currently owns native interception."""
        return self in _native_owners

    def installed_libraries(self) -> list[str]:
        """Ids of the libraries currently redirected."""
        return [lid for lid, record in self._records.items() if record.installed]

    def install_native(self) -> None:
        """Redirect the ``time`` and ``datetime`` "now" surface.

        The first install in the process patches the modules. Later installs
        join the existing shims; while several owners are active, the newest
        one's controller is the one observed.
        """
        global _native_backup, _native_owners

        with _native_lock:
            if self in _native_owners:
                return
            if _native_backup is None:
                _native_backup = _patch_native()
                logger.debug("Installed native time interception")
            _native_owners = (*_native_owners, self)

    def restore_native(self) -> None:
        """Leave the native shims; the last owner puts the originals back."""
        global _native_backup, _native_owners

        with _native_lock:
            if self not in _native_owners:
                return
            _native_owners = tuple(owner for owner in _native_owners if owner is not self)
            if not _native_owners and _native_backup is not None:
                _unpatch_native(_native_backup)
                _native_backup = None
                logger.debug("Restored native time functions")

    def install_libraries(self, selection: LibrarySelection = True) -> None:
        """Redirect every selected library integration that is present.

        Absent libraries are skipped. A failing integration is logged and
        does not affect the others.

        Args:
            selection: True for all libraries, False for none, or a mapping
                of integration id to bool.
        """
        with self._lock:
            for integration in self._integrations:
                library_id = integration.library_id
                if not library_enabled(selection, library_id):
                    continue
                if library_id in self._records:
                    continue
                if not integration.detect():
                    logger.debug("Library %s not available, skipping", library_id)
                    continue

                try:
                    integration.install(self._controller)
                except Exception as e:
                    logger.warning("Failed to intercept library %s: %s", library_id, e)
                    continue

                self._records[library_id] = LibraryHijackRecord(
                    library_id=library_id,
                    integration=integration,
                    original_binding=integration.originals,
                )
                logger.debug("Installed interception for library %s", library_id)

    def restore_libraries(self) -> None:
        """Restore every library this hijacker redirected."""
        with self._lock:
            for library_id, record in list(self._records.items()):
                try:
                    record.integration.restore()
                except Exception as e:
                    logger.warning("Failed to restore library %s: %s", library_id, e)
                    continue
                record.installed = False
                del self._records[library_id]
                logger.debug("Restored library %s", library_id)

    def destroy(self) -> None:
        """Restore everything and discard all records."""
        with self._lock:
            self.restore_native()
            self.restore_libraries()
            self._records.clear()
