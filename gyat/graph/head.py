"""The head reference: the only mutable piece of committed state."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable

from gyat.errors import CorruptObject, IOFailure
from gyat.objects.models import is_digest

logger = logging.getLogger(__name__)


@runtime_checkable
class HeadRef(Protocol):
    """Holds the digest of the most recent commit, or None before the first one."""

    def read(self) -> str | None: ...

    def write(self, digest: str) -> None: ...


def atomic_write(path: Path, data: bytes, operation: str) -> None:
    """Write *data* to a sibling temp file and rename it over *path*."""
    try:
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}-")
    except OSError as e:
        raise IOFailure(operation, path, e) from e
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except OSError as e:
        Path(tmp).unlink(missing_ok=True)
        raise IOFailure(operation, path, e) from e


class FileHead:
    """HEAD file in the metadata directory. An empty file means no commits yet."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def read(self) -> str | None:
        try:
            content = self.path.read_text().strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise IOFailure("read head", self.path, e) from e
        if not content:
            return None
        if not is_digest(content):
            raise CorruptObject("head", content[:40], f"{self.path} does not hold a digest")
        return content

    def write(self, digest: str) -> None:
        if not is_digest(digest):
            raise ValueError(f"head must point at a full digest, got {digest!r}")
        atomic_write(self.path, f"{digest}\n".encode("ascii"), "write head")
        logger.debug("head -> %s", digest)


class MemoryHead:
    """In-memory HeadRef for tests."""

    def __init__(self, digest: str | None = None) -> None:
        self.digest = digest

    def read(self) -> str | None:
        return self.digest

    def write(self, digest: str) -> None:
        if not is_digest(digest):
            raise ValueError(f"head must point at a full digest, got {digest!r}")
        self.digest = digest
