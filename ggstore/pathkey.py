"""Key -> on-disk path transforms.

The CAS transform hashes the key and splits the hex digest into fixed-width
segments, one directory level each:

  sha1("hello") = aaf4c61ddcc5e8a2dabede0f3b482cd9aea9434d
  path_name     = aaf4c/61ddc/c5e8a/2dabe/de0f3/b482c/d9aea/9434d
  filename      = aaf4c61ddcc5e8a2dabede0f3b482cd9aea9434d

Eight levels keep every directory small even with very many objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from .errors import ConfigurationError
from .ids import sha1_hex

SHARD_WIDTH = 5
SEPARATOR = "/"

Digest = Callable[[bytes], str]


@dataclass(frozen=True)
class PathKey:
    path_name: str
    filename: str

    def first_segment(self) -> str:
        return self.path_name.split(SEPARATOR)[0]

    def full_path(self) -> str:
        return f"{self.path_name}{SEPARATOR}{self.filename}"


PathTransform = Callable[[str], PathKey]


def shard(digest_hex: str, width: int = SHARD_WIDTH) -> list[str]:
    """Split into consecutive width-sized chunks; a trailing partial chunk is dropped."""
    n = len(digest_hex) // width
    return [digest_hex[i * width:(i + 1) * width] for i in range(n)]


@dataclass(frozen=True)
class CASPathTransform:
    width: int = SHARD_WIDTH
    digest: Digest = field(default=sha1_hex)

    def __post_init__(self) -> None:
        if not isinstance(self.width, int) or self.width < 1:
            raise ConfigurationError(f"invalid_shard_width: {self.width!r}")
        n = len(self.digest(b""))
        if self.width > n:
            raise ConfigurationError(f"invalid_shard_width: {self.width} exceeds {n}-char digest")

    def __call__(self, key: str) -> PathKey:
        h = self.digest(key.encode("utf-8"))
        return PathKey(path_name=SEPARATOR.join(shard(h, self.width)), filename=h)


cas_path_transform = CASPathTransform()


def identity_path_transform(key: str) -> PathKey:
    return PathKey(path_name=key, filename=key)


def get_path_transform(name: str, width: int = SHARD_WIDTH) -> PathTransform:
    n = (name or "").strip().lower()
    if n in ("cas", "sha1", "sharded"):
        return CASPathTransform(width=width)
    if n in ("identity", "flat", "default"):
        return identity_path_transform
    raise ConfigurationError(f"unknown path transform: {name!r}")
