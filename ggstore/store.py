from __future__ import annotations

import enum
import logging
import os
import shutil
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Tuple

from .crypto import DEFAULT_BUFFER_SIZE, StreamCipher
from .errors import InvalidPath, IOFailure, NotFound, StoreError
from .pathkey import PathKey, PathTransform, identity_path_transform

logger = logging.getLogger(__name__)

DEFAULT_ROOT_FOLDER_NAME = "ggnetwork"


class Presence(enum.Enum):
    PRESENT = "present"
    ABSENT = "absent"
    UNKNOWN = "unknown"  # stat failed for a reason other than not-found


@dataclass(frozen=True)
class StoreOptions:
    # Folder containing every namespace and file of the store.
    root: str = DEFAULT_ROOT_FOLDER_NAME
    path_transform: PathTransform = field(default=identity_path_transform)
    buffer_size: int = DEFAULT_BUFFER_SIZE


class Store:
    """Namespaced content store on the local filesystem.

    Layout:
      root/
        <id>/<path_name>/<filename>

    With the CAS transform ``path_name`` is eight 5-char digest segments and
    ``filename`` the full digest; with the identity transform both are the key.

    No locking is done here. Concurrent writers to the same id/key must be
    coordinated by the caller.
    """

    def __init__(self, opts: Optional[StoreOptions] = None):
        opts = opts or StoreOptions()
        if not opts.root:
            opts = replace(opts, root=DEFAULT_ROOT_FOLDER_NAME)
        if opts.path_transform is None:
            opts = replace(opts, path_transform=identity_path_transform)
        self.opts = opts

    @property
    def root(self) -> Path:
        return Path(self.opts.root)

    def path_key(self, key: str) -> PathKey:
        return self.opts.path_transform(key)

    def _namespace_dir(self, id: str) -> Path:
        if not id:
            raise InvalidPath("invalid_namespace_id: empty")
        ns = self._checked(self.root, self.root / id)
        if ns.resolve() == self.root.resolve():
            raise InvalidPath(f"invalid_namespace_id: {id!r}")
        return ns

    def _checked(self, base: Path, p: Path) -> Path:
        base_r = base.resolve()
        p_r = p.resolve()
        if p_r != base_r and base_r not in p_r.parents:
            raise InvalidPath(f"invalid_key_escape: {p}")
        return p

    def full_path(self, id: str, key: str) -> Path:
        ns = self._namespace_dir(id)
        return self._checked(ns, ns / self.path_key(key).full_path())

    # -------------------------
    # Presence
    # -------------------------
    def probe(self, id: str, key: str) -> Presence:
        p = self.full_path(id, key)
        try:
            os.stat(p)
        except FileNotFoundError:
            return Presence.ABSENT
        except OSError as e:
            logger.debug("stat %s failed: %s", p, e)
            return Presence.UNKNOWN
        return Presence.PRESENT

    def exists(self, id: str, key: str) -> bool:
        """True unless the file is confirmed absent.

        Stat failures other than not-found (e.g. permission denied) count as
        present. Use ``probe`` to tell them apart.
        """
        return self.probe(id, key) is not Presence.ABSENT

    # -------------------------
    # Removal
    # -------------------------
    def clear(self) -> None:
        """Remove the whole root: every namespace and every file. Irreversible."""
        try:
            shutil.rmtree(self.root)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise IOFailure(f"clear_failed: {self.root}: {e}") from e
        logger.info("cleared store root %s", self.root)

    def delete_shard(self, id: str, key: str) -> None:
        """Remove the first-level shard directory holding ``key``.

        Every other key of ``id`` whose path starts with the same first segment
        is removed along with it.
        """
        pk = self.path_key(key)
        first = pk.first_segment()
        if not first:
            raise InvalidPath(f"invalid_key: empty first path segment for {key!r}")
        ns = self._namespace_dir(id)
        target = self._checked(ns, ns / first)
        if target.resolve() == ns.resolve():
            raise InvalidPath(f"invalid_key: first path segment of {key!r} is the namespace itself")
        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            else:
                target.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise IOFailure(f"delete_failed: {target}: {e}") from e
        logger.info("deleted [%s] from disk", pk.filename)

    def delete(self, id: str, key: str) -> None:
        """Delete ``key`` by removing its whole first-level shard (see ``delete_shard``)."""
        self.delete_shard(id, key)

    # -------------------------
    # Writes
    # -------------------------
    def _open_for_writing(self, id: str, key: str) -> Tuple[Path, BinaryIO]:
        p = self.full_path(id, key)
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            return p, open(p, "wb")
        except OSError as e:
            raise IOFailure(f"open_for_write_failed: {p}: {e}") from e

    def write(self, id: str, key: str, src: BinaryIO) -> int:
        """Stream ``src`` unmodified into the file for id/key. Returns bytes copied.

        A failed copy leaves a truncated file behind.
        """
        p, f = self._open_for_writing(id, key)
        n = 0
        try:
            with f:
                for chunk in iter(lambda: src.read(self.opts.buffer_size), b""):
                    f.write(chunk)
                    n += len(chunk)
        except StoreError:
            raise
        except OSError as e:
            raise IOFailure(f"write_failed: {p}: {e}") from e
        logger.debug("wrote %d bytes to %s", n, p)
        return n

    def write_decrypt(self, enc_key: bytes, id: str, key: str, src: BinaryIO) -> int:
        """Decrypt an IV-prefixed AES-CTR stream into the file for id/key.

        Returns plaintext bytes written.
        """
        cipher = StreamCipher(enc_key, buffer_size=self.opts.buffer_size)
        p, f = self._open_for_writing(id, key)
        try:
            with f:
                n = cipher.decrypt(src, f)
        except StoreError:
            raise
        except OSError as e:
            raise IOFailure(f"write_failed: {p}: {e}") from e
        logger.debug("wrote %d decrypted bytes to %s", n, p)
        return n

    # -------------------------
    # Reads
    # -------------------------
    def read(self, id: str, key: str) -> Tuple[int, BinaryIO]:
        """Open the file for id/key. Returns (size, handle); the caller closes the handle."""
        p = self.full_path(id, key)
        try:
            f = open(p, "rb")
        except FileNotFoundError as e:
            raise NotFound(f"not_found: {id}/{key}") from e
        except OSError as e:
            raise IOFailure(f"open_failed: {p}: {e}") from e
        try:
            size = os.fstat(f.fileno()).st_size
        except OSError as e:
            f.close()
            raise IOFailure(f"stat_failed: {p}: {e}") from e
        logger.debug("opened %s (%d bytes)", p, size)
        return size, f

    @contextmanager
    def open(self, id: str, key: str) -> Iterator[Tuple[int, BinaryIO]]:
        size, f = self.read(id, key)
        with f:
            yield size, f

    def read_bytes(self, id: str, key: str) -> bytes:
        with self.open(id, key) as (_, f):
            return f.read()
