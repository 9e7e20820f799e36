from __future__ import annotations

import argparse
import json
import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from .config import StoreConfig, default_config_path, load_config
from .crypto import StreamCipher
from .errors import ConfigurationError, StoreError
from .ids import generate_id, new_encryption_key

logger = logging.getLogger(__name__)


def _load(args) -> StoreConfig:
    path = args.config
    if path is None and default_config_path().exists():
        path = default_config_path()
    cfg = load_config(path)
    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return cfg


def _key_from_hex(s: str) -> bytes:
    try:
        return bytes.fromhex(s)
    except ValueError as e:
        raise ConfigurationError(f"invalid_key: not hex: {e}") from e


@contextmanager
def _input(path: Optional[str]) -> Iterator[BinaryIO]:
    if not path or path == "-":
        yield sys.stdin.buffer
        return
    with open(path, "rb") as f:
        yield f


@contextmanager
def _output(path: Optional[str]) -> Iterator[BinaryIO]:
    if not path or path == "-":
        yield sys.stdout.buffer
        sys.stdout.buffer.flush()
        return
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        yield f


def _emit(obj) -> None:
    print(json.dumps(obj, indent=2, sort_keys=True))


def cmd_put(args) -> int:
    store = _load(args).build_store()
    with _input(args.file) as src:
        n = store.write(args.id, args.key, src)
    _emit({"id": args.id, "key": args.key, "bytes_written": n, "path": str(store.full_path(args.id, args.key))})
    return 0


def cmd_put_decrypt(args) -> int:
    store = _load(args).build_store()
    enc_key = _key_from_hex(args.enc_key)
    with _input(args.file) as src:
        n = store.write_decrypt(enc_key, args.id, args.key, src)
    _emit({"id": args.id, "key": args.key, "bytes_written": n, "path": str(store.full_path(args.id, args.key))})
    return 0


def cmd_get(args) -> int:
    store = _load(args).build_store()
    with store.open(args.id, args.key) as (size, src), _output(args.out) as dst:
        for chunk in iter(lambda: src.read(store.opts.buffer_size), b""):
            dst.write(chunk)
    logger.debug("read %d bytes for %s/%s", size, args.id, args.key)
    return 0


def cmd_has(args) -> int:
    store = _load(args).build_store()
    presence = store.probe(args.id, args.key)
    _emit({"id": args.id, "key": args.key, "exists": store.exists(args.id, args.key), "presence": presence.value})
    return 0


def cmd_delete(args) -> int:
    store = _load(args).build_store()
    shard = store.path_key(args.key).first_segment()
    store.delete_shard(args.id, args.key)
    _emit({"id": args.id, "key": args.key, "deleted_shard": shard})
    return 0


def cmd_clear(args) -> int:
    store = _load(args).build_store()
    if not args.yes:
        print(f"refusing to clear {store.root} without --yes", file=sys.stderr)
        return 2
    store.clear()
    _emit({"cleared": str(store.root)})
    return 0


def cmd_path(args) -> int:
    store = _load(args).build_store()
    pk = store.path_key(args.key)
    out = {"path_name": pk.path_name, "filename": pk.filename, "first_segment": pk.first_segment()}
    if args.id:
        out["full_path"] = str(store.full_path(args.id, args.key))
    _emit(out)
    return 0


def cmd_encrypt(args) -> int:
    cfg = _load(args)
    cipher = StreamCipher(_key_from_hex(args.enc_key), buffer_size=cfg.buffer_size)
    with _input(args.input) as src, _output(args.out) as dst:
        cipher.encrypt(src, dst)
    return 0


def cmd_decrypt(args) -> int:
    cfg = _load(args)
    cipher = StreamCipher(_key_from_hex(args.enc_key), buffer_size=cfg.buffer_size)
    with _input(args.input) as src, _output(args.out) as dst:
        cipher.decrypt(src, dst)
    return 0


def cmd_gen_id(args) -> int:
    print(generate_id())
    return 0


def cmd_gen_key(args) -> int:
    print(new_encryption_key().hex())
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ggstore", description="ggstore content store CLI")
    p.add_argument("--config", default=None, help=f"YAML config (default: {default_config_path()} if present)")
    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("put", help="Store a file (or stdin) under id/key")
    s.add_argument("id")
    s.add_argument("key")
    s.add_argument("--file", default=None)
    s.set_defaults(func=cmd_put)

    s = sub.add_parser("put-decrypt", help="Decrypt an IV-prefixed stream into id/key")
    s.add_argument("id")
    s.add_argument("key")
    s.add_argument("--enc-key", required=True, help="32-byte key as hex")
    s.add_argument("--file", default=None)
    s.set_defaults(func=cmd_put_decrypt)

    s = sub.add_parser("get")
    s.add_argument("id")
    s.add_argument("key")
    s.add_argument("--out", default=None)
    s.set_defaults(func=cmd_get)

    s = sub.add_parser("has")
    s.add_argument("id")
    s.add_argument("key")
    s.set_defaults(func=cmd_has)

    s = sub.add_parser("delete", help="Remove the first-level shard directory holding id/key")
    s.add_argument("id")
    s.add_argument("key")
    s.set_defaults(func=cmd_delete)

    s = sub.add_parser("clear", help="Remove the whole store root")
    s.add_argument("--yes", action="store_true")
    s.set_defaults(func=cmd_clear)

    s = sub.add_parser("path", help="Show the on-disk path for a key")
    s.add_argument("key")
    s.add_argument("--id", default=None)
    s.set_defaults(func=cmd_path)

    for name, func in (("encrypt", cmd_encrypt), ("decrypt", cmd_decrypt)):
        s = sub.add_parser(name)
        s.add_argument("--enc-key", required=True, help="32-byte key as hex")
        s.add_argument("--in", dest="input", default=None)
        s.add_argument("--out", default=None)
        s.set_defaults(func=func)

    s = sub.add_parser("gen-id")
    s.set_defaults(func=cmd_gen_id)

    s = sub.add_parser("gen-key")
    s.set_defaults(func=cmd_gen_key)

    return p


def main(argv=None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    try:
        return args.func(args)
    except StoreError as e:
        _emit({"error": type(e).__name__, "detail": str(e)})
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
