"""In-process keyed locks used to serialize writers on the same resource."""

from __future__ import annotations

import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager

from ..errors import ConcurrentConflict


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.users = 0


class KeyedLocks:
    """One re-entrant lock per key, alive only while someone holds or waits on it.

    Callers touching different keys never wait on each other. Acquisition is bounded
    by ``timeout`` seconds; giving up raises ConcurrentConflict.
    """

    def __init__(self, name: str, *, timeout: float = 30.0) -> None:
        self.name = name
        self.timeout = timeout
        self._guard = threading.Lock()
        self._entries: dict[Hashable, _Entry] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    def _checkout(self, key: Hashable) -> _Entry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1
            return entry

    def _checkin(self, key: Hashable, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[key]

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        entry = self._checkout(key)
        try:
            if not entry.lock.acquire(timeout=self.timeout):
                raise ConcurrentConflict(
                    f"Timed out waiting for {self.name} lock", resource=self.name, key=key
                )
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(key, entry)
