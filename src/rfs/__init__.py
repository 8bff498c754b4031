"""rfs: a minimal remote file store.

A server keeps files under one storage root, each with a one-byte permission
sidecar (``R`` read-only, ``W`` writable), and answers three line-oriented
requests over TCP: WRITE, GET and RM. The same package holds the client half
of the wire protocol.
"""

from .client import RfsClient
from .config import ServerConfig
from .errors import IncompleteTransfer, PermissionDenied, ProtocolError, RemoteError, RfsError
from .protocol import Permission
from .server import FileServer, ProtocolEngine

__all__ = [
    "FileServer",
    "IncompleteTransfer",
    "Permission",
    "PermissionDenied",
    "ProtocolEngine",
    "ProtocolError",
    "RemoteError",
    "RfsClient",
    "RfsError",
    "ServerConfig",
]
