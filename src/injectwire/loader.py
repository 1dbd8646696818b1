from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

from injectwire.exceptions import InjectWireCircularDependencyError, InjectWireError
from injectwire.lock_mode import LockMode

_UNSET: Any = object()


class _PendingLoad:
    """One in-flight construction that late callers wait on."""

    __slots__ = ("done", "error", "owner", "value")

    def __init__(self) -> None:
        self.done = threading.Event()
        self.owner = threading.get_ident()
        self.value: Any = _UNSET
        self.error: BaseException | None = None

    def wait(self) -> Any:
        self.done.wait()
        error = self.error
        if isinstance(error, InjectWireError):
            # each caller tags its own copy on the way up
            raise error.copy() from error
        if error is not None:
            raise error
        return self.value


class SingletonLoader:
    """Build a value at most once and hand the same result to every caller.

    With ``LockMode.THREAD`` exactly one thread runs ``build`` at a time.
    Callers arriving while it runs block and receive its exact value, or
    their own copy of its exception. A failed build is not cached: the next
    ``load`` after the failure runs ``build`` again. With ``LockMode.NONE``
    the loader only memoizes.
    """

    __slots__ = ("_lock", "_lock_mode", "_pending", "_value")

    def __init__(self, lock_mode: LockMode = LockMode.THREAD) -> None:
        self._lock_mode = lock_mode
        self._lock = threading.Lock()
        self._pending: _PendingLoad | None = None
        self._value: Any = _UNSET

    @property
    def loaded(self) -> bool:
        return self._value is not _UNSET

    def load(self, build: Callable[[], Any]) -> Any:
        """Return the memoized value, running ``build`` if nothing is memoized yet.

        Args:
            build: Zero-argument callable producing the value.

        """
        value = self._value
        if value is not _UNSET:
            return value
        if self._lock_mode is LockMode.NONE:
            value = build()
            self._value = value
            return value

        with self._lock:
            if self._value is not _UNSET:
                return self._value
            pending = self._pending
            if pending is None:
                pending = self._pending = _PendingLoad()
                is_owner = True
            else:
                is_owner = False

        if not is_owner:
            if pending.owner == threading.get_ident():
                msg = "Lazy singleton requested itself while being constructed"
                raise InjectWireCircularDependencyError(msg)
            return pending.wait()

        try:
            value = build()
        except BaseException as error:
            pending.error = error.copy() if isinstance(error, InjectWireError) else error
            with self._lock:
                self._pending = None
            pending.done.set()
            raise

        pending.value = value
        with self._lock:
            self._value = value
            self._pending = None
        pending.done.set()
        return value
