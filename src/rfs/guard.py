from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import ContextManager, Dict, Iterator, Protocol

from .constants import LOCK_GLOBAL, LOCK_PER_PATH


class Guard(Protocol):
    def hold(self, key: str) -> ContextManager[None]: ...


class GlobalGuard:
    """One exclusive lock for every file operation, whatever the key."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._lock:
            yield


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class PathGuard:
    """Exclusive lock per key; unrelated keys never wait on each other.

    Entries are reference counted and dropped once nobody holds or waits on
    them, so the table only grows with the number of paths in flight.
    """

    def __init__(self) -> None:
        self._table_lock = threading.Lock()
        self._entries: Dict[str, _Entry] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._table_lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._table_lock:
                entry.users -= 1
                if entry.users == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._table_lock:
            return len(self._entries)


def make_guard(mode: str) -> GlobalGuard | PathGuard:
    if mode == LOCK_GLOBAL:
        return GlobalGuard()
    if mode == LOCK_PER_PATH:
        return PathGuard()
    raise ValueError(f"unknown lock mode {mode!r}")
