from __future__ import annotations

import logging
import os
import socket
import threading
from dataclasses import replace
from pathlib import Path
from typing import BinaryIO, Tuple

from .config import ServerConfig
from .constants import (
    CHUNK_SIZE,
    ERR_MISSING_ARGS,
    ERR_READ_ONLY,
    ERR_UNKNOWN_COMMAND,
    ERROR_LINE,
    LINE_MAX,
    OK_LINE,
    SIZE_LINE_MAX,
)
from .errors import PermissionDenied, ProtocolError
from .guard import Guard, make_guard
from .net import TcpEndpoint, recv_chunks, recv_line
from .protocol import (
    GetRequest,
    MissingArguments,
    Permission,
    RemoveRequest,
    UnknownCommand,
    WriteRequest,
    format_size,
    parse_command,
    parse_size,
)
from .storage import FileStore
from .transform import XorObfuscator
from .workers import Workers, make_workers

ACCEPT_POLL_S = 0.2


class ProtocolEngine:
    """Runs one request/response cycle on an accepted connection.

    Parsing and directory creation happen before the guard is taken; the
    guard is then held for the whole permission check and body transfer.
    """

    def __init__(
        self,
        store: FileStore,
        guard: Guard,
        obfuscator: XorObfuscator | None = None,
        chunk_size: int = CHUNK_SIZE,
    ):
        self.store = store
        self.guard = guard
        self.obfuscator = obfuscator or XorObfuscator()
        self.chunk_size = chunk_size

    def handle(self, conn: socket.socket, addr: Tuple[str, int]) -> None:
        with conn:
            try:
                self.dispatch(conn, addr)
            # ValueError: paths with embedded NUL bytes
            except (OSError, ValueError) as exc:
                logging.warning("[%s:%d] aborted: %s", addr[0], addr[1], exc)

    def dispatch(self, conn: socket.socket, addr: Tuple[str, int]) -> None:
        line = recv_line(conn, LINE_MAX)
        if not line:
            logging.debug("[%s:%d] closed before sending a command", addr[0], addr[1])
            return

        try:
            req = parse_command(line)
        except MissingArguments:
            conn.sendall(ERR_MISSING_ARGS)
            return
        except UnknownCommand as exc:
            logging.info("[%s:%d] %s", addr[0], addr[1], exc)
            conn.sendall(ERR_UNKNOWN_COMMAND)
            return

        if isinstance(req, WriteRequest):
            try:
                size = parse_size(recv_line(conn, SIZE_LINE_MAX))
            except ProtocolError as exc:
                logging.warning("[%s:%d] WRITE %s dropped: %s", addr[0], addr[1], req.path, exc)
                return
            req = replace(req, size=size)
            logging.info("[%s:%d] WRITE %s %s size=%d", addr[0], addr[1], req.path, req.permission.value, size)
            self.handle_write(conn, req)
        elif isinstance(req, GetRequest):
            logging.info("[%s:%d] GET %s", addr[0], addr[1], req.path)
            self.handle_get(conn, req)
        else:
            logging.info("[%s:%d] RM %s", addr[0], addr[1], req.path)
            self.handle_remove(conn, req)

    def handle_write(self, conn: socket.socket, req: WriteRequest) -> None:
        full = self.store.ensure_parents(req.path)
        try:
            with self.guard.hold(self.store.lock_key(full)):
                self._receive_into(conn, full, req)
        except PermissionDenied as exc:
            logging.info("WRITE refused: %s", exc)
            conn.sendall(ERR_READ_ONLY)
            return
        conn.sendall(OK_LINE)

    def _receive_into(self, conn: socket.socket, full: Path, req: WriteRequest) -> int:
        if self.store.read_permission(full) is Permission.READABLE:
            raise PermissionDenied(req.path)

        received = 0
        with self.store.open_for_write(full) as f:
            for chunk in recv_chunks(conn, req.size, self.chunk_size):
                f.write(self.obfuscator.obfuscate(chunk))
                received += len(chunk)

        if received < req.size:
            logging.warning("WRITE %s short: got %d of %d bytes", req.path, received, req.size)
        # recorded even after a short body; the file keeps what arrived
        self.store.write_permission(full, req.permission)
        return received

    def handle_get(self, conn: socket.socket, req: GetRequest) -> None:
        full = self.store.resolve(req.path)
        with self.guard.hold(self.store.lock_key(full)):
            try:
                f = self.store.open_for_read(full)
            except OSError as exc:
                logging.info("GET %s failed: %s", req.path, exc)
                f = None
            if f is not None:
                with f:
                    self._send_from(conn, f, req.path)
        if f is None:
            conn.sendall(ERROR_LINE)

    def _send_from(self, conn: socket.socket, f: BinaryIO, path: str) -> int:
        size = os.fstat(f.fileno()).st_size
        conn.sendall(format_size(size))

        sent = 0
        while sent < size:
            try:
                chunk = f.read(min(self.chunk_size, size - sent))
            except OSError as exc:
                logging.warning("GET %s read error after %d bytes: %s", path, sent, exc)
                break
            if not chunk:
                break
            conn.sendall(self.obfuscator.restore(chunk))
            sent += len(chunk)

        if sent < size:
            logging.warning("GET %s short: sent %d of %d bytes", path, sent, size)
        return sent

    def handle_remove(self, conn: socket.socket, req: RemoveRequest) -> None:
        full = self.store.resolve(req.path)
        with self.guard.hold(self.store.lock_key(full)):
            if self.store.read_permission(full) is Permission.READABLE:
                logging.info("RM refused: %s is read-only", req.path)
                reply = ERROR_LINE
            else:
                try:
                    self.store.remove(full)
                    reply = OK_LINE
                except OSError as exc:
                    logging.info("RM %s failed: %s", req.path, exc)
                    reply = ERROR_LINE
        conn.sendall(reply)


class FileServer:
    """Accepts connections and hands each one to a worker running the engine."""

    def __init__(self, config: ServerConfig, workers: Workers | None = None):
        self.config = config
        self.store = FileStore(config.root)
        self.engine = ProtocolEngine(
            self.store,
            make_guard(config.lock_mode),
            XorObfuscator(config.xor_key),
            config.chunk_size,
        )
        self.workers = workers or make_workers(config.max_workers)
        self._endpoint: TcpEndpoint | None = None
        self._stopping = threading.Event()
        self._thread: threading.Thread | None = None

    def bind(self) -> Tuple[str, int]:
        self.store.create_root()
        self._endpoint = TcpEndpoint.listening(self.config.host, self.config.port, self.config.backlog)
        # only the listener polls, so shutdown() is noticed
        self._endpoint.sock.settimeout(ACCEPT_POLL_S)
        host, port = self._endpoint.address
        logging.info("listening on %s:%d; root=%s lock=%s", host, port, self.store.root, self.config.lock_mode)
        return host, port

    @property
    def address(self) -> Tuple[str, int]:
        if self._endpoint is None:
            raise RuntimeError("server is not bound")
        return self._endpoint.address

    def serve_forever(self) -> None:
        if self._endpoint is None:
            self.bind()
        endpoint = self._endpoint
        assert endpoint is not None
        try:
            while not self._stopping.is_set():
                try:
                    conn, addr = endpoint.accept()
                except TimeoutError:
                    continue
                except OSError as exc:
                    if self._stopping.is_set():
                        break
                    logging.warning("accept failed: %s", exc)
                    continue

                logging.debug("accepted %s:%d", addr[0], addr[1])
                try:
                    self.workers.submit(self.engine.handle, conn, addr)
                except RuntimeError as exc:
                    logging.error("could not start a worker for %s:%d: %s", addr[0], addr[1], exc)
                    conn.close()
        finally:
            endpoint.close()
            self.workers.shutdown()
            logging.info("server stopped")

    def start(self) -> Tuple[str, int]:
        """Bind if needed and serve from a background thread."""
        if self._endpoint is None:
            self.bind()
        self._thread = threading.Thread(target=self.serve_forever, name="rfs-acceptor", daemon=True)
        self._thread.start()
        return self.address

    def shutdown(self, timeout_s: float = 5.0) -> None:
        self._stopping.set()
        if self._thread is not None:
            self._thread.join(timeout_s)
        elif self._endpoint is not None:
            self._endpoint.close()

    def __enter__(self) -> "FileServer":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()
