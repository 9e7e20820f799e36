from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .crypto import DEFAULT_BUFFER_SIZE
from .errors import ConfigurationError
from .pathkey import SHARD_WIDTH, PathTransform, get_path_transform
from .store import DEFAULT_ROOT_FOLDER_NAME, Store, StoreOptions

"""ggstore configuration.

YAML file with top-level keys:
  - store: root, path_transform (cas|identity), shard_width
  - stream: buffer_size
  - logging: level

Environment overrides:
- `GG_STORE_ROOT`: store root directory
- `GG_LOG_LEVEL`: log level name (DEBUG, INFO, ...)
- `GG_BUFFER_SIZE`: stream buffer size in bytes
"""


def _expand(p: str) -> str:
    return os.path.expandvars(os.path.expanduser(p))


def env_str(*names: str, default: str = "") -> str:
    for n in names:
        v = os.environ.get(n)
        if v is not None and str(v) != "":
            return str(v)
    return default


def env_int(*names: str, default: int) -> int:
    v = env_str(*names, default="")
    if v == "":
        return int(default)
    try:
        return int(str(v).strip())
    except Exception:
        return int(default)


@dataclass(frozen=True)
class StoreConfig:
    raw: Dict[str, Any] = field(default_factory=dict)

    def _section(self, name: str) -> Dict[str, Any]:
        v = self.raw.get(name)
        return v if isinstance(v, dict) else {}

    # -------------------------
    # Store
    # -------------------------
    @property
    def root(self) -> Path:
        r = env_str("GG_STORE_ROOT", default="")
        if not r:
            r = str(self._section("store").get("root") or DEFAULT_ROOT_FOLDER_NAME)
        return Path(_expand(r))

    @property
    def path_transform_name(self) -> str:
        return str(self._section("store").get("path_transform", "cas"))

    def _int(self, section: str, name: str, default: int) -> int:
        v = self._section(section).get(name, default)
        try:
            return int(v)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"invalid_config: {section}.{name} must be an integer, got {v!r}") from e

    @property
    def shard_width(self) -> int:
        return self._int("store", "shard_width", SHARD_WIDTH)

    @property
    def path_transform(self) -> PathTransform:
        return get_path_transform(self.path_transform_name, self.shard_width)

    # -------------------------
    # Streaming
    # -------------------------
    @property
    def buffer_size(self) -> int:
        n = env_int("GG_BUFFER_SIZE", default=self._int("stream", "buffer_size", DEFAULT_BUFFER_SIZE))
        if n < 1:
            raise ConfigurationError(f"invalid_config: stream.buffer_size must be positive, got {n}")
        return n

    # -------------------------
    # Logging
    # -------------------------
    @property
    def log_level(self) -> str:
        return env_str("GG_LOG_LEVEL", default=str(self._section("logging").get("level", "INFO"))).upper()

    def store_options(self) -> StoreOptions:
        return StoreOptions(root=str(self.root), path_transform=self.path_transform, buffer_size=self.buffer_size)

    def build_store(self) -> Store:
        return Store(self.store_options())


def default_config_path() -> Path:
    return (Path(__file__).resolve().parents[1] / "config" / "ggstore.yaml").resolve()


def load_config(path: Optional[str | Path]) -> StoreConfig:
    if path is None:
        return StoreConfig({})
    p = Path(path).resolve()
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except OSError as e:
        raise ConfigurationError(f"invalid_config: cannot read {p}: {e}") from e
    if not isinstance(raw, dict) or "store" not in raw:
        raise ConfigurationError("invalid_config: missing top-level 'store' key")
    return StoreConfig(raw)
