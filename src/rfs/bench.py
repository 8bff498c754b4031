from __future__ import annotations

import os
import tempfile
import threading
import time
from dataclasses import dataclass
from typing import Dict, List

from .client import RfsClient
from .config import ServerConfig
from .constants import LOCK_GLOBAL
from .server import FileServer


@dataclass(frozen=True, slots=True)
class BenchmarkResult:
    clients: int
    bytes_transferred: int
    duration_s: float
    throughput_mbps: float
    lock_mode: str
    mismatches: int


def run_benchmark(
    *,
    clients: int = 4,
    size_bytes: int = 1_000_000,
    lock_mode: str = LOCK_GLOBAL,
    max_workers: int | None = None,
) -> BenchmarkResult:
    """WRITE then GET ``size_bytes`` from each of ``clients`` concurrent clients on loopback."""
    with tempfile.TemporaryDirectory() as root:
        config = ServerConfig(root=root, port=0, lock_mode=lock_mode, max_workers=max_workers)
        server = FileServer(config)
        host, port = server.start()

        payloads = {i: os.urandom(size_bytes) for i in range(clients)}
        fetched: Dict[int, bytes] = {}
        errors: List[BaseException] = []

        def runner(i: int) -> None:
            client = RfsClient(host, port)
            try:
                client.write_bytes(payloads[i], f"bench/{i}.bin")
                fetched[i] = client.get_bytes(f"bench/{i}.bin")
            except Exception as exc:  # reported below, keeps the other clients going
                errors.append(exc)

        threads = [threading.Thread(target=runner, args=(i,), daemon=True) for i in range(clients)]
        start = time.monotonic()
        try:
            for t in threads:
                t.start()
            for t in threads:
                t.join(timeout=60.0)
        finally:
            server.shutdown()
        duration_s = max(0.001, time.monotonic() - start)

    if errors:
        raise errors[0]

    mismatches = sum(1 for i, data in payloads.items() if fetched.get(i) != data)
    total = 2 * clients * size_bytes
    return BenchmarkResult(
        clients=clients,
        bytes_transferred=total,
        duration_s=duration_s,
        throughput_mbps=(total * 8 / 1_000_000) / duration_s,
        lock_mode=lock_mode,
        mismatches=mismatches,
    )
