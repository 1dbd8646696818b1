from __future__ import annotations

from enum import Enum


class LockMode(Enum):
    """Select locking behavior for lazy singleton construction.

    Pass a value as ``Injector(..., lock_mode=...)``. Child injectors inherit
    the parent's mode unless they are given their own.
    """

    THREAD = "thread"
    """Serialize first construction with ``threading.Lock`` and share the result with waiters."""

    NONE = "none"
    """Disable locking around lazy singleton construction for single-threaded use."""
