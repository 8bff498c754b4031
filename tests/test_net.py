from __future__ import annotations

import socket

import pytest

from rfs.net import TcpEndpoint, recv_chunks, recv_line


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    yield a, b
    a.close()
    b.close()


def test_recv_line_stops_at_newline(pair):
    a, b = pair
    a.sendall(b"WRITE x.bin R\n\x00\x01rest")
    assert recv_line(b) == b"WRITE x.bin R\n"
    assert b.recv(16) == b"\x00\x01rest"


def test_recv_line_eof(pair):
    a, b = pair
    a.close()
    assert recv_line(b) == b""


def test_recv_line_without_newline(pair):
    a, b = pair
    a.sendall(b"partial")
    a.shutdown(socket.SHUT_WR)
    assert recv_line(b) == b"partial"


def test_recv_line_respects_capacity(pair):
    a, b = pair
    a.sendall(b"abcdef\n")
    assert recv_line(b, 4) == b"abc"
    assert recv_line(b, 64) == b"def\n"


def test_recv_chunks_bounded_and_short(pair):
    a, b = pair
    a.sendall(b"abcde")
    a.shutdown(socket.SHUT_WR)
    chunks = list(recv_chunks(b, 10, chunk_size=2))
    assert b"".join(chunks) == b"abcde"
    assert all(len(c) <= 2 for c in chunks)


def test_recv_chunks_stops_at_size(pair):
    a, b = pair
    a.sendall(b"0123456789extra")
    assert b"".join(recv_chunks(b, 10, chunk_size=4)) == b"0123456789"
    assert b.recv(16) == b"extra"


def test_endpoint_roundtrip():
    with TcpEndpoint.listening("127.0.0.1", 0) as listener:
        host, port = listener.address
        with TcpEndpoint.connecting(host, port, timeout_s=2.0) as c:
            conn, _ = listener.accept()
            with conn:
                assert conn.gettimeout() is None
                assert c.sock.gettimeout() is None
                c.sendall(b"RM a\n")
                assert recv_line(conn) == b"RM a\n"
