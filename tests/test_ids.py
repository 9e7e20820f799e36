from __future__ import annotations

from ggstore.ids import generate_id, hash_key, new_encryption_key, sha1_hex


class FixedRandom:
    def __init__(self, byte: int):
        self.byte = byte

    def read(self, n: int) -> bytes:
        return bytes([self.byte]) * n


def test_generate_id_shape() -> None:
    a = generate_id()
    b = generate_id()
    assert len(a) == 64
    int(a, 16)
    assert a != b


def test_generate_id_uses_injected_random() -> None:
    assert generate_id(FixedRandom(0xAB)) == "ab" * 32


def test_new_encryption_key() -> None:
    assert len(new_encryption_key()) == 32
    assert new_encryption_key(FixedRandom(1)) == b"\x01" * 32


def test_hash_key_is_md5_hex() -> None:
    assert hash_key("hello") == "5d41402abc4b2a76b9719d911017c592"
    assert len(hash_key("")) == 32


def test_sha1_hex() -> None:
    assert sha1_hex(b"hello") == "aaf4c61ddcc5e8a2dabede0f3b482cd9aea9434d"
