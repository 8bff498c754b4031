from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Protocol


class Workers(Protocol):
    def submit(self, fn: Callable[..., object], *args: object) -> None: ...

    def shutdown(self) -> None: ...


class ThreadPerConnection:
    """A fresh daemon thread per task, no upper bound, never joined."""

    def __init__(self, name: str = "rfs-conn"):
        self.name = name
        self._count = 0

    def submit(self, fn: Callable[..., object], *args: object) -> None:
        self._count += 1
        t = threading.Thread(target=fn, args=args, name=f"{self.name}-{self._count}", daemon=True)
        t.start()

    def shutdown(self) -> None:
        pass


class BoundedWorkers:
    """At most ``max_workers`` tasks run at once; the rest queue in arrival order."""

    def __init__(self, max_workers: int, name: str = "rfs-conn"):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=name)

    def submit(self, fn: Callable[..., object], *args: object) -> None:
        self._pool.submit(fn, *args)

    def shutdown(self) -> None:
        self._pool.shutdown(wait=False, cancel_futures=True)


def make_workers(max_workers: int | None) -> ThreadPerConnection | BoundedWorkers:
    if max_workers is None:
        return ThreadPerConnection()
    return BoundedWorkers(max_workers)
