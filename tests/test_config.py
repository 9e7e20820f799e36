from __future__ import annotations

from pathlib import Path

import pytest

from ggstore.config import StoreConfig, default_config_path, load_config
from ggstore.errors import ConfigurationError
from ggstore.pathkey import CASPathTransform, identity_path_transform


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GG_BUFFER_SIZE", raising=False)
    monkeypatch.delenv("GG_STORE_ROOT", raising=False)
    monkeypatch.delenv("GG_LOG_LEVEL", raising=False)
    cfg = load_config(None)
    assert cfg.root == Path("ggnetwork")
    assert cfg.path_transform_name == "cas"
    assert cfg.shard_width == 5
    assert cfg.buffer_size == 32 * 1024
    assert cfg.log_level == "INFO"


def test_load_yaml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GG_BUFFER_SIZE", raising=False)
    monkeypatch.delenv("GG_STORE_ROOT", raising=False)
    monkeypatch.delenv("GG_LOG_LEVEL", raising=False)
    p = tmp_path / "ggstore.yaml"
    _write(
        p,
        "\n".join(
            [
                "store:",
                f"  root: {tmp_path / 'data'}",
                "  path_transform: identity",
                "stream:",
                "  buffer_size: 1024",
                "logging:",
                "  level: debug",
            ]
        )
        + "\n",
    )
    cfg = load_config(p)
    assert cfg.root == tmp_path / "data"
    assert cfg.path_transform is identity_path_transform
    assert cfg.buffer_size == 1024
    assert cfg.log_level == "DEBUG"

    store = cfg.build_store()
    assert store.opts.root == str(tmp_path / "data")
    assert store.opts.buffer_size == 1024


def test_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GG_STORE_ROOT", str(tmp_path / "env-root"))
    monkeypatch.setenv("GG_LOG_LEVEL", "warning")
    monkeypatch.setenv("GG_BUFFER_SIZE", "4096")
    cfg = StoreConfig({"store": {"root": "ignored", "shard_width": 4}})
    assert cfg.root == tmp_path / "env-root"
    assert cfg.log_level == "WARNING"
    assert cfg.buffer_size == 4096
    assert cfg.build_store().opts.buffer_size == 4096
    t = cfg.path_transform
    assert isinstance(t, CASPathTransform)
    assert t.width == 4


def test_missing_store_key(tmp_path: Path) -> None:
    p = tmp_path / "bad.yaml"
    _write(p, "stream:\n  buffer_size: 10\n")
    with pytest.raises(ConfigurationError, match="invalid_config"):
        load_config(p)


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_config(tmp_path / "nope.yaml")


def test_invalid_buffer_size() -> None:
    with pytest.raises(ConfigurationError):
        StoreConfig({"store": {}, "stream": {"buffer_size": 0}}).buffer_size


def test_shipped_default_config_loads() -> None:
    cfg = load_config(default_config_path())
    assert cfg.path_transform_name == "cas"
    assert cfg.shard_width == 5


def test_env_buffer_size_falls_back_on_garbage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GG_BUFFER_SIZE", "lots")
    assert StoreConfig({"store": {}, "stream": {"buffer_size": 2048}}).buffer_size == 2048


@pytest.mark.parametrize("width", ["x", None, 0, 41])
def test_invalid_shard_width(width) -> None:
    cfg = StoreConfig({"store": {"shard_width": width}})
    with pytest.raises(ConfigurationError):
        cfg.path_transform


def test_non_integer_buffer_size(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GG_BUFFER_SIZE", raising=False)
    with pytest.raises(ConfigurationError, match="stream.buffer_size"):
        StoreConfig({"store": {}, "stream": {"buffer_size": "big"}}).buffer_size
