"""Content-addressed object store.

Objects live under ``<metadata>/<area>/<digest>`` (``files`` for blobs,
``dirs`` for trees, ``commits`` for commits), zlib-compressed. Writes go to a
temporary file in the same area and are published with ``os.replace`` so a
half-written object is never visible under its digest.
"""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
import zlib
from dataclasses import replace
from pathlib import Path
from typing import Protocol, runtime_checkable

from gyat.config.models import StoreConfig
from gyat.errors import CorruptObject, IOFailure, ObjectNotFound
from gyat.objects.codec import (
    compute_digest,
    decode_commit,
    decode_tree,
    encode_commit,
    encode_tree,
)
from gyat.objects.models import Commit, ObjectKind, Tree, is_digest

logger = logging.getLogger(__name__)

_TMP_PREFIX = ".tmp-"


@runtime_checkable
class ObjectStore(Protocol):
    """Durable key/value storage for blobs, trees and commits keyed by digest."""

    def put(self, kind: ObjectKind, content: bytes) -> str: ...

    def put_file(self, path: Path, digest: str | None = None) -> str: ...

    def get(self, kind: ObjectKind, digest: str) -> bytes: ...

    def exists(self, kind: ObjectKind, digest: str) -> bool: ...

    def digests(self, kind: ObjectKind) -> list[str]: ...


class FileObjectStore:
    """ObjectStore backed by the repository metadata directory."""

    def __init__(self, root: Path, config: StoreConfig | None = None) -> None:
        self.root = Path(root)
        self.config = config or StoreConfig()

    # -- helpers ---------------------------------------------------------------

    def object_path(self, kind: ObjectKind, digest: str) -> Path:
        return self.root / kind.area / digest

    def _open_temp(self, kind: ObjectKind) -> tuple[int, Path]:
        area = self.root / kind.area
        try:
            area.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=area, prefix=_TMP_PREFIX)
        except OSError as e:
            raise IOFailure("create temporary object", area, e) from e
        return fd, Path(tmp)

    def _publish(self, tmp: Path, dest: Path) -> None:
        try:
            os.replace(tmp, dest)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise IOFailure("publish object", dest, e) from e

    # -- ObjectStore protocol --------------------------------------------------

    def put(self, kind: ObjectKind, content: bytes) -> str:
        """Store *content* under its digest. Repeating the call is a no-op."""
        digest = compute_digest(content)
        dest = self.object_path(kind, digest)
        if dest.exists():
            logger.debug("%s %s already stored", kind.value, digest)
            return digest

        fd, tmp = self._open_temp(kind)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(zlib.compress(content, self.config.compression_level))
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise IOFailure(f"write {kind.value}", dest, e) from e
        self._publish(tmp, dest)
        logger.debug("stored %s %s (%d bytes)", kind.value, digest, len(content))
        return digest

    def put_file(self, path: Path, digest: str | None = None) -> str:
        """Store a file's bytes as a blob, streaming hash and compression.

        When *digest* is given and already stored, the file is not read at all.
        If the streamed content no longer matches *digest* the file changed
        underneath us and the write is abandoned.
        """
        kind = ObjectKind.blob
        if digest is not None and self.exists(kind, digest):
            logger.debug("blob %s already stored", digest)
            return digest

        fd, tmp = self._open_temp(kind)
        hasher = hashlib.sha1()
        compressor = zlib.compressobj(self.config.compression_level)
        try:
            with os.fdopen(fd, "wb") as out, open(path, "rb") as src:
                while chunk := src.read(self.config.chunk_size):
                    hasher.update(chunk)
                    out.write(compressor.compress(chunk))
                out.write(compressor.flush())
                out.flush()
                os.fsync(out.fileno())
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise IOFailure("store blob", path, e) from e

        actual = hasher.hexdigest()
        if digest is not None and actual != digest:
            tmp.unlink(missing_ok=True)
            raise IOFailure(
                "store blob", path, OSError(f"content changed while reading ({digest} -> {actual})")
            )
        dest = self.object_path(kind, actual)
        if dest.exists():
            tmp.unlink(missing_ok=True)
            return actual
        self._publish(tmp, dest)
        logger.debug("stored blob %s from %s", actual, path)
        return actual

    def get(self, kind: ObjectKind, digest: str) -> bytes:
        """Return the decompressed canonical bytes of an object."""
        src = self.object_path(kind, digest)
        if not is_digest(digest) or not src.is_file():
            raise ObjectNotFound(kind.value, digest)
        try:
            compressed = src.read_bytes()
        except OSError as e:
            raise IOFailure(f"read {kind.value}", src, e) from e
        try:
            content = zlib.decompress(compressed)
        except zlib.error as e:
            raise CorruptObject(kind.value, digest, str(e)) from e
        if compute_digest(content) != digest:
            raise CorruptObject(kind.value, digest, "content does not match digest")
        return content

    def exists(self, kind: ObjectKind, digest: str) -> bool:
        return is_digest(digest) and self.object_path(kind, digest).is_file()

    def digests(self, kind: ObjectKind) -> list[str]:
        area = self.root / kind.area
        if not area.is_dir():
            return []
        return sorted(p.name for p in area.iterdir() if is_digest(p.name))


class MemoryObjectStore:
    """In-memory ObjectStore for tests and dry runs."""

    def __init__(self) -> None:
        self._objects: dict[tuple[ObjectKind, str], bytes] = {}

    def put(self, kind: ObjectKind, content: bytes) -> str:
        digest = compute_digest(content)
        self._objects.setdefault((kind, digest), bytes(content))
        return digest

    def put_file(self, path: Path, digest: str | None = None) -> str:
        """Same contract as FileObjectStore.put_file, without the streaming."""
        if digest is not None and self.exists(ObjectKind.blob, digest):
            return digest
        try:
            content = Path(path).read_bytes()
        except OSError as e:
            raise IOFailure("store blob", path, e) from e
        actual = compute_digest(content)
        if digest is not None and actual != digest:
            raise IOFailure(
                "store blob", path, OSError(f"content changed while reading ({digest} -> {actual})")
            )
        return self.put(ObjectKind.blob, content)

    def get(self, kind: ObjectKind, digest: str) -> bytes:
        try:
            return self._objects[(kind, digest)]
        except KeyError:
            raise ObjectNotFound(kind.value, digest) from None

    def exists(self, kind: ObjectKind, digest: str) -> bool:
        return (kind, digest) in self._objects

    def digests(self, kind: ObjectKind) -> list[str]:
        return sorted(d for k, d in self._objects if k is kind)


# ── Typed access ──────────────────────────────────────────────────────


def write_tree(store: ObjectStore, tree: Tree) -> str:
    return store.put(ObjectKind.tree, encode_tree(tree))


def read_tree(store: ObjectStore, digest: str) -> Tree:
    data = store.get(ObjectKind.tree, digest)
    try:
        return decode_tree(data)
    except ValueError as e:
        raise CorruptObject(ObjectKind.tree.value, digest, str(e)) from e


def write_commit(store: ObjectStore, commit: Commit) -> Commit:
    """Store *commit* and return a copy carrying its digest."""
    digest = store.put(ObjectKind.commit, encode_commit(commit))
    return replace(commit, digest=digest)


def read_commit(store: ObjectStore, digest: str) -> Commit:
    data = store.get(ObjectKind.commit, digest)
    try:
        return decode_commit(data, digest=digest)
    except ValueError as e:
        raise CorruptObject(ObjectKind.commit.value, digest, str(e)) from e


def iter_tree(store: ObjectStore, digest: str, prefix: str = ""):
    """Yield ``(path, entry)`` for every entry below a tree, depth first.

    Subtrees are yielded before their contents; paths use ``/`` separators.
    """
    for entry in read_tree(store, digest):
        path = f"{prefix}/{entry.name}" if prefix else entry.name
        yield path, entry
        if entry.kind is ObjectKind.tree:
            yield from iter_tree(store, entry.digest, path)
