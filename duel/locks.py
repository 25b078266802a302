"""Per-game-code mutual exclusion for read-modify-write transitions."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
import threading


class CodeLocks:
    """Registry handing out one lock per game code.

    Entries are reference counted and dropped once no caller holds or waits
    on them, so the registry does not grow with every code ever used.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._users: dict[str, int] = {}

    @contextmanager
    def hold(self, code: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(code, threading.Lock())
            self._users[code] = self._users.get(code, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[code] -= 1
                if self._users[code] == 0:
                    del self._users[code]
                    del self._locks[code]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
