from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Union

from .constants import CMD_GET, CMD_RM, CMD_WRITE, ERROR_PREFIX, OK_LINE
from .errors import ProtocolError

# atol(3): optional leading whitespace, optional sign, digits; the rest is ignored
_LEADING_INT = re.compile(rb"\s*([+-]?\d+)")


class Permission(str, enum.Enum):
    READABLE = "R"
    WRITABLE = "W"

    @classmethod
    def from_token(cls, token: str | None) -> "Permission":
        """``R...`` selects read-only; anything else, or nothing, is writable."""
        if token and token[0] == cls.READABLE.value:
            return cls.READABLE
        return cls.WRITABLE


@dataclass(frozen=True, slots=True)
class WriteRequest:
    path: str
    permission: Permission = Permission.WRITABLE
    size: int = 0

    def to_bytes(self) -> bytes:
        return (
            f"{CMD_WRITE} {self.path} {self.permission.value}\n".encode()
            + format_size(self.size)
        )


@dataclass(frozen=True, slots=True)
class GetRequest:
    path: str

    def to_bytes(self) -> bytes:
        return f"{CMD_GET} {self.path}\n".encode()


@dataclass(frozen=True, slots=True)
class RemoveRequest:
    path: str

    def to_bytes(self) -> bytes:
        return f"{CMD_RM} {self.path}\n".encode()


Request = Union[WriteRequest, GetRequest, RemoveRequest]


class MissingArguments(ProtocolError):
    pass


class UnknownCommand(ProtocolError):
    pass


def parse_command(line: bytes) -> Request:
    """Parse a command line into a request.

    A ``WriteRequest`` comes back with ``size=0``; the size arrives on its
    own line and is filled in with :func:`parse_size`.
    """
    tokens = line.decode("utf-8", "surrogateescape").split()
    if len(tokens) < 2:
        raise MissingArguments("Missing command or path")

    cmd, path = tokens[0], tokens[1]
    if cmd == CMD_WRITE:
        perm = Permission.from_token(tokens[2] if len(tokens) > 2 else None)
        return WriteRequest(path=path, permission=perm)
    if cmd == CMD_GET:
        return GetRequest(path=path)
    if cmd == CMD_RM:
        return RemoveRequest(path=path)
    raise UnknownCommand(f"Unrecognized command {cmd!r}")


def parse_size(line: bytes) -> int:
    """Parse a positive size line; anything else is a ProtocolError."""
    m = _LEADING_INT.match(line)
    if m is None:
        raise ProtocolError(f"unparsable size line {line!r}")
    size = int(m.group(1))
    if size <= 0:
        raise ProtocolError(f"size must be positive, got {size}")
    return size


def format_size(size: int) -> bytes:
    return f"{size}\n".encode("ascii")


def is_ok(reply: bytes) -> bool:
    return reply.startswith(OK_LINE.rstrip())


def is_error(reply: bytes) -> bool:
    return reply.startswith(ERROR_PREFIX)
