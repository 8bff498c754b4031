from __future__ import annotations

from dataclasses import dataclass

from .constants import (
    CHUNK_SIZE,
    DEFAULT_BACKLOG,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_ROOT,
    LOCK_GLOBAL,
    LOCK_PER_PATH,
    XOR_KEY,
)


@dataclass(frozen=True, slots=True)
class ServerConfig:
    root: str = DEFAULT_ROOT
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    lock_mode: str = LOCK_GLOBAL
    # None: one thread per connection, unbounded
    max_workers: int | None = None
    backlog: int = DEFAULT_BACKLOG
    chunk_size: int = CHUNK_SIZE
    xor_key: int = XOR_KEY

    def __post_init__(self) -> None:
        if self.lock_mode not in (LOCK_GLOBAL, LOCK_PER_PATH):
            raise ValueError(f"lock_mode must be {LOCK_GLOBAL!r} or {LOCK_PER_PATH!r}")
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
