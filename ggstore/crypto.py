"""Streaming AES-256-CTR over file-like objects.

Wire format:

  [IV: 16 bytes][ciphertext: len(plaintext) bytes]

The IV is written in the clear; CTR only needs it unique per key. There is
no padding, no length prefix and no authentication tag, so tampered
ciphertext decrypts to silently corrupted plaintext.
"""

from __future__ import annotations

import logging
from typing import BinaryIO, Optional

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import ConfigurationError, InvalidKey, TruncatedStream
from .ids import SYSTEM_RANDOM, RandomSource

logger = logging.getLogger(__name__)

KEY_SIZE = 32    # AES-256
BLOCK_SIZE = 16  # AES block == IV length
DEFAULT_BUFFER_SIZE = 32 * 1024


def _read_exact(src: BinaryIO, n: int) -> bytes:
    buf = b""
    while len(buf) < n:
        chunk = src.read(n - len(buf))
        if not chunk:
            break
        buf += chunk
    return buf


class StreamCipher:
    """AES-256-CTR stream transform with bounded memory.

    Args:
        key: raw 32-byte symmetric key.
        random: source for IVs. Defaults to the OS random source.
        buffer_size: bytes held in memory per copy step.
    """

    def __init__(
        self,
        key: bytes,
        *,
        random: Optional[RandomSource] = None,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ):
        if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_SIZE:
            got = len(key) if isinstance(key, (bytes, bytearray)) else type(key).__name__
            raise InvalidKey(f"invalid_key: expected {KEY_SIZE} bytes, got {got}")
        if buffer_size < 1:
            raise ConfigurationError(f"invalid_buffer_size: {buffer_size}")
        self._key = bytes(key)
        self._random = random or SYSTEM_RANDOM
        self.buffer_size = buffer_size

    def _cipher(self, iv: bytes) -> Cipher:
        try:
            return Cipher(algorithms.AES(self._key), modes.CTR(iv))
        except ValueError as e:
            raise InvalidKey(f"invalid_key: {e}") from e

    def _copy(self, ctx, src: BinaryIO, dst: BinaryIO) -> int:
        written = 0
        for chunk in iter(lambda: src.read(self.buffer_size), b""):
            out = ctx.update(chunk)
            dst.write(out)
            written += len(out)
        tail = ctx.finalize()
        if tail:
            dst.write(tail)
            written += len(tail)
        return written

    def encrypt(self, src: BinaryIO, dst: BinaryIO) -> int:
        """Write IV + ciphertext of src to dst. Returns bytes written, IV included."""
        iv = self._random.read(BLOCK_SIZE)
        if len(iv) != BLOCK_SIZE:
            raise ConfigurationError(f"random_source_short_read: {len(iv)}")
        ctx = self._cipher(iv).encryptor()
        dst.write(iv)
        n = BLOCK_SIZE + self._copy(ctx, src, dst)
        logger.debug("encrypted stream (%d bytes written)", n)
        return n

    def decrypt(self, src: BinaryIO, dst: BinaryIO) -> int:
        """Read IV + ciphertext from src, write plaintext to dst. Returns plaintext bytes."""
        iv = _read_exact(src, BLOCK_SIZE)
        if len(iv) < BLOCK_SIZE:
            raise TruncatedStream(f"truncated_stream: need {BLOCK_SIZE} IV bytes, got {len(iv)}")
        ctx = self._cipher(iv).decryptor()
        n = self._copy(ctx, src, dst)
        logger.debug("decrypted stream (%d bytes written)", n)
        return n


def copy_encrypt(key: bytes, src: BinaryIO, dst: BinaryIO) -> int:
    return StreamCipher(key).encrypt(src, dst)


def copy_decrypt(key: bytes, src: BinaryIO, dst: BinaryIO) -> int:
    return StreamCipher(key).decrypt(src, dst)
