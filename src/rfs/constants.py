from __future__ import annotations

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 2024
DEFAULT_ROOT = "server_root"
DEFAULT_BACKLOG = 10

CHUNK_SIZE = 1024
LINE_MAX = 1024
SIZE_LINE_MAX = 64

XOR_KEY = 0xAA
META_SUFFIX = ".meta"

CMD_WRITE = "WRITE"
CMD_GET = "GET"
CMD_RM = "RM"

OK_LINE = b"OK\n"
ERROR_LINE = b"ERROR\n"
ERROR_PREFIX = b"ERROR"
ERR_MISSING_ARGS = b"ERROR: Missing command or path\n"
ERR_UNKNOWN_COMMAND = b"ERROR: Unrecognized command\n"
ERR_READ_ONLY = b"ERROR: File is read-only\n"

LOCK_GLOBAL = "global"
LOCK_PER_PATH = "path"
