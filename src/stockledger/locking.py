"""Per-key mutual exclusion with bounded waits."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Hashable, Iterator

from .exceptions import LockTimeoutError


@dataclass(slots=True)
class _Slot:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class KeyedLock:
    """A table of locks, one per key, created on demand and dropped when idle.

    Holders of different keys never contend with each other.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._slots: dict[Hashable, _Slot] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._slots)

    @contextmanager
    def hold(self, key: Hashable, timeout: float) -> Iterator[None]:
        """Hold the lock for *key*, raising :class:`LockTimeoutError` after *timeout* seconds."""

        with self._guard:
            slot = self._slots.setdefault(key, _Slot())
            slot.users += 1

        acquired = slot.lock.acquire(timeout=timeout)
        try:
            if not acquired:
                raise LockTimeoutError(key, timeout)
            yield
        finally:
            if acquired:
                slot.lock.release()
            with self._guard:
                slot.users -= 1
                if slot.users == 0:
                    del self._slots[key]
