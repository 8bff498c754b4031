from __future__ import annotations


class RfsError(Exception):
    pass


class ProtocolError(RfsError):
    """Malformed command/size/reply line."""


class PermissionDenied(RfsError):
    def __init__(self, path: str):
        super().__init__(f"{path} is read-only")
        self.path = path


class RemoteError(RfsError):
    """The server answered with an ERROR line."""

    def __init__(self, reply: str):
        super().__init__(reply or "ERROR")
        self.reply = reply


class IncompleteTransfer(RfsError):
    def __init__(self, received: int, expected: int):
        super().__init__(f"received {received} of {expected} bytes")
        self.received = received
        self.expected = expected
