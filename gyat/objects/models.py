"""Data models for stored objects."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

DIGEST_LENGTH = 40
_DIGEST_RE = re.compile(r"[a-f0-9]{40}")


def is_digest(value: str) -> bool:
    """True if *value* is a full lowercase hex SHA-1 digest."""
    return bool(_DIGEST_RE.fullmatch(value))


class ObjectKind(str, Enum):
    """The three kinds of stored objects."""

    blob = "blob"
    tree = "tree"
    commit = "commit"

    @property
    def area(self) -> str:
        """Name of the directory under the metadata dir holding this kind."""
        return _AREAS[self]


_AREAS = {
    ObjectKind.blob: "files",
    ObjectKind.tree: "dirs",
    ObjectKind.commit: "commits",
}


@dataclass(frozen=True)
class TreeEntry:
    """One named child of a tree: either a blob or a subtree."""

    name: str
    kind: ObjectKind
    digest: str

    def __post_init__(self) -> None:
        if self.kind is ObjectKind.commit:
            raise ValueError("tree entries must be blobs or trees")
        if not self.name or self.name in (".", "..") or "/" in self.name:
            raise ValueError(f"invalid entry name {self.name!r}")
        if not is_digest(self.digest):
            raise ValueError(f"digest must be 40-char hex, got {self.digest!r}")


@dataclass(frozen=True)
class Tree:
    """A directory snapshot: entries ordered by name."""

    entries: tuple[TreeEntry, ...] = ()

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.entries, key=lambda e: e.name.encode("utf-8")))
        names = [e.name for e in ordered]
        if len(set(names)) != len(names):
            raise ValueError("duplicate entry names in tree")
        object.__setattr__(self, "entries", ordered)

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, name: str) -> TreeEntry | None:
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None

    def as_dict(self) -> dict[str, TreeEntry]:
        return {e.name: e for e in self.entries}


@dataclass(frozen=True)
class Commit:
    """A snapshot node: root tree, parent digests, message and timestamp.

    ``parents`` is an ordered sequence so the stored format can carry merge
    commits later; the commit graph currently allows at most one parent.
    ``digest`` is filled in once the commit has been encoded and stored.
    """

    tree: str
    message: str
    timestamp: datetime
    parents: tuple[str, ...] = ()
    digest: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        if not is_digest(self.tree):
            raise ValueError(f"tree digest must be 40-char hex, got {self.tree!r}")
        for parent in self.parents:
            if not is_digest(parent):
                raise ValueError(f"parent digest must be 40-char hex, got {parent!r}")
        if self.timestamp.tzinfo is None:
            raise ValueError("commit timestamp must be timezone-aware")

    @property
    def parent(self) -> str | None:
        return self.parents[0] if self.parents else None
