from __future__ import annotations

import logging
import socket
from typing import Iterator, Tuple

from .constants import CHUNK_SIZE, DEFAULT_BACKLOG, LINE_MAX


def recv_line(sock: socket.socket, maxlen: int = LINE_MAX) -> bytes:
    """Read one ``\\n``-terminated line, a byte at a time.

    Stops at the newline (which is kept), at EOF, on a socket error, or once
    ``maxlen - 1`` bytes were read. Never consumes anything past the newline,
    so a binary body following the line stays in the socket. Returns ``b""``
    when the peer closed before sending anything.
    """
    buf = bytearray()
    while len(buf) < maxlen - 1:
        try:
            c = sock.recv(1)
        except OSError as exc:
            logging.debug("recv_line stopped on socket error: %s", exc)
            break
        if not c:
            break
        buf += c
        if c == b"\n":
            break
    return bytes(buf)


def recv_chunks(sock: socket.socket, size: int, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """Yield up to ``size`` bytes from ``sock`` in chunks of at most ``chunk_size``.

    A peer that closes or errors early just ends the iteration; the caller
    compares what it got against ``size``.
    """
    remaining = size
    while remaining > 0:
        try:
            chunk = sock.recv(min(chunk_size, remaining))
        except OSError as exc:
            logging.debug("recv_chunks stopped on socket error: %s", exc)
            return
        if not chunk:
            return
        remaining -= len(chunk)
        yield chunk


class TcpEndpoint:
    def __init__(self, sock: socket.socket):
        self.sock = sock

    @classmethod
    def listening(cls, host: str, port: int, backlog: int = DEFAULT_BACKLOG) -> "TcpEndpoint":
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, port))
            sock.listen(backlog)
        except OSError:
            sock.close()
            raise
        return cls(sock)

    @classmethod
    def connecting(cls, host: str, port: int, timeout_s: float | None = None) -> "TcpEndpoint":
        sock = socket.create_connection((host, port), timeout=timeout_s)
        # the timeout only bounds connect(); transfers block like the server side
        sock.settimeout(None)
        return cls(sock)

    @property
    def address(self) -> Tuple[str, int]:
        return self.sock.getsockname()[:2]

    def accept(self) -> Tuple[socket.socket, Tuple[str, int]]:
        conn, addr = self.sock.accept()
        # accepted sockets never inherit the listener's poll timeout
        conn.settimeout(None)
        return conn, addr

    def sendall(self, data: bytes) -> None:
        self.sock.sendall(data)

    def recv_line(self, maxlen: int = LINE_MAX) -> bytes:
        return recv_line(self.sock, maxlen)

    def recv_chunks(self, size: int, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        return recv_chunks(self.sock, size, chunk_size)

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> "TcpEndpoint":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
