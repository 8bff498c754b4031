from __future__ import annotations

import contextlib
import errno
import logging
import os
from pathlib import Path
from typing import BinaryIO

from .constants import META_SUFFIX
from .protocol import Permission


class FileStore:
    """Files under a single storage root, each with an optional permission sidecar.

    Client paths are appended to the root as plain strings: a leading ``/``
    stays inside the root, but ``..`` segments are not rejected.
    """

    def __init__(self, root: str | os.PathLike[str]):
        self.root = Path(root)

    def create_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def resolve(self, path: str) -> Path:
        return Path(f"{self.root}/{path}")

    def ensure_parents(self, path: str) -> Path:
        """Resolve ``path`` and create its directory components root-to-leaf."""
        full = self.resolve(path)
        current = self.root
        for part in Path(path.lstrip("/")).parent.parts:
            current = current / part
            try:
                current.mkdir()
            except FileExistsError:
                pass
            except OSError as exc:
                # the open that follows reports the real failure
                logging.debug("mkdir %s failed: %s", current, exc)
        return full

    @staticmethod
    def lock_key(full: Path) -> str:
        """Lexically normalized path, so `x/../a` and `a` share one key."""
        return os.path.normpath(full)

    @staticmethod
    def meta_path(full: Path) -> Path:
        return full.with_name(full.name + META_SUFFIX)

    def read_permission(self, full: Path) -> Permission:
        try:
            with open(self.meta_path(full), "rb") as m:
                marker = m.read(1)
        except OSError:
            return Permission.WRITABLE
        if marker == b"R":
            return Permission.READABLE
        return Permission.WRITABLE

    def write_permission(self, full: Path, permission: Permission) -> None:
        with open(self.meta_path(full), "wb") as m:
            m.write(permission.value.encode("ascii"))

    def open_for_write(self, full: Path) -> BinaryIO:
        return open(full, "wb")

    def open_for_read(self, full: Path) -> BinaryIO:
        return open(full, "rb")

    def remove(self, full: Path) -> None:
        """Remove a file (or an empty directory, like remove(3)) and its sidecar.

        Raises OSError when the data path cannot be removed; a missing or
        stuck sidecar is ignored.
        """
        if self.lock_key(full) == self.lock_key(self.root):
            # "." or "/" resolve to the root, which is never removed
            raise OSError(errno.EINVAL, "refusing to remove the storage root", str(full))
        try:
            os.remove(full)
        except IsADirectoryError:
            os.rmdir(full)
        except PermissionError:
            # macOS reports EPERM for unlink() on a directory
            if not full.is_dir():
                raise
            os.rmdir(full)
        with contextlib.suppress(OSError):
            os.remove(self.meta_path(full))
