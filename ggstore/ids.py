from __future__ import annotations

import hashlib
import os
from typing import Optional, Protocol

ID_BYTES = 32
ENCRYPTION_KEY_BYTES = 32


class RandomSource(Protocol):
    def read(self, n: int) -> bytes:
        """Return exactly n cryptographically secure random bytes."""

        ...


class SystemRandom:
    """Process-wide OS random source. Safe for concurrent use."""

    def read(self, n: int) -> bytes:
        return os.urandom(n)


SYSTEM_RANDOM = SystemRandom()


def generate_id(random: Optional[RandomSource] = None) -> str:
    """Random 64-hex-character identifier for peers and sessions."""
    return (random or SYSTEM_RANDOM).read(ID_BYTES).hex()


def new_encryption_key(random: Optional[RandomSource] = None) -> bytes:
    return (random or SYSTEM_RANDOM).read(ENCRYPTION_KEY_BYTES)


def hash_key(key: str) -> str:
    # MD5: fast, not collision resistant. Cache keys only, never content addressing.
    return hashlib.md5(key.encode("utf-8"), usedforsecurity=False).hexdigest()


def sha1_hex(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()
