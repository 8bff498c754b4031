from __future__ import annotations

import io
import logging
import os
from dataclasses import dataclass
from typing import BinaryIO

from .constants import CHUNK_SIZE, DEFAULT_HOST, DEFAULT_PORT, LINE_MAX
from .errors import IncompleteTransfer, ProtocolError, RemoteError
from .metrics import TransferMetrics
from .net import TcpEndpoint
from .protocol import (
    GetRequest,
    Permission,
    RemoveRequest,
    WriteRequest,
    is_error,
    is_ok,
    parse_size,
)


def _check_reply(reply: bytes) -> None:
    if is_ok(reply):
        return
    if is_error(reply):
        raise RemoteError(reply.decode("utf-8", "replace").strip())
    if not reply:
        raise ProtocolError("server closed the connection without replying")
    raise ProtocolError(f"unexpected reply {reply!r}")


@dataclass(slots=True)
class RfsClient:
    """Client half of the WRITE/GET/RM protocol; one connection per request."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    chunk_size: int = CHUNK_SIZE
    connect_timeout_s: float | None = None

    def _connect(self) -> TcpEndpoint:
        return TcpEndpoint.connecting(self.host, self.port, self.connect_timeout_s)

    def write(self, local_path: str, remote_path: str, permission: Permission = Permission.WRITABLE) -> TransferMetrics:
        with open(local_path, "rb") as f:
            size = os.fstat(f.fileno()).st_size
            return self.write_stream(f, size, remote_path, permission)

    def write_bytes(self, data: bytes, remote_path: str, permission: Permission = Permission.WRITABLE) -> TransferMetrics:
        return self.write_stream(io.BytesIO(data), len(data), remote_path, permission)

    def write_stream(self, f: BinaryIO, size: int, remote_path: str, permission: Permission) -> TransferMetrics:
        metrics = TransferMetrics()
        with self._connect() as ep:
            ep.sendall(WriteRequest(path=remote_path, permission=permission, size=size).to_bytes())
            remaining = size
            try:
                while remaining > 0:
                    chunk = f.read(min(self.chunk_size, remaining))
                    if not chunk:
                        break
                    ep.sendall(chunk)
                    metrics.bytes_transferred += len(chunk)
                    remaining -= len(chunk)
            except OSError as exc:
                # the server may already have answered (e.g. read-only); read it anyway
                logging.warning("WRITE %s stopped after %d bytes: %s", remote_path, metrics.bytes_transferred, exc)
            reply = ep.recv_line(LINE_MAX)

        metrics.finish()
        logging.debug("WRITE %s reply=%r", remote_path, reply)
        _check_reply(reply)
        return metrics

    def get(self, remote_path: str, local_path: str) -> TransferMetrics:
        # the local file is only opened once the server has promised a body
        with self._connect() as ep:
            size = self._request_size(ep, remote_path)
            with open(local_path, "wb") as out:
                return self._receive(ep, size, out)

    def get_bytes(self, remote_path: str) -> bytes:
        buf = io.BytesIO()
        self.get_stream(remote_path, buf)
        return buf.getvalue()

    def get_stream(self, remote_path: str, out: BinaryIO) -> TransferMetrics:
        with self._connect() as ep:
            size = self._request_size(ep, remote_path)
            return self._receive(ep, size, out)

    def _request_size(self, ep: TcpEndpoint, remote_path: str) -> int:
        ep.sendall(GetRequest(path=remote_path).to_bytes())
        line = ep.recv_line(LINE_MAX)
        if not line:
            raise ProtocolError("server sent no size line")
        if is_error(line):
            raise RemoteError(line.decode("utf-8", "replace").strip())
        try:
            return parse_size(line)
        except ProtocolError as exc:
            raise ProtocolError(f"invalid size from server: {line!r}") from exc

    def _receive(self, ep: TcpEndpoint, size: int, out: BinaryIO) -> TransferMetrics:
        metrics = TransferMetrics()
        for chunk in ep.recv_chunks(size, self.chunk_size):
            out.write(chunk)
            metrics.bytes_transferred += len(chunk)

        metrics.finish()
        if metrics.bytes_transferred < size:
            raise IncompleteTransfer(metrics.bytes_transferred, size)
        return metrics

    def remove(self, remote_path: str) -> None:
        with self._connect() as ep:
            ep.sendall(RemoveRequest(path=remote_path).to_bytes())
            reply = ep.recv_line(LINE_MAX)
        _check_reply(reply)
