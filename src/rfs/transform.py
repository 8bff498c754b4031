from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from .constants import XOR_KEY


@lru_cache(maxsize=None)
def _xor_table(key: int) -> bytes:
    return bytes(b ^ key for b in range(256))


@dataclass(frozen=True, slots=True)
class XorObfuscator:
    """Byte-wise XOR with a single-byte key, applied to file contents at rest.

    This only keeps stored files from being casually readable on the server's
    disk. It is not encryption and offers no confidentiality. XOR is its own
    inverse, so ``apply`` both obfuscates and restores.
    """

    key: int = XOR_KEY

    def __post_init__(self) -> None:
        if not 0 <= self.key <= 0xFF:
            raise ValueError(f"key must fit in one byte, got {self.key}")

    def apply(self, data: bytes) -> bytes:
        return data.translate(_xor_table(self.key))

    # direction-of-travel aliases
    obfuscate = apply
    restore = apply
