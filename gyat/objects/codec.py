"""Canonical byte encodings and digests for blobs, trees and commits.

The encodings are the identity of every object, so they must be byte-for-byte
reproducible on any platform:

* blob   -- the raw file bytes, untouched.
* tree   -- one line per entry, sorted by UTF-8 name:
            ``<kind> <digest> <name-length>:<name>\\n``. The length prefix makes
            names containing spaces, colons or newlines unambiguous.
* commit -- ``parents <n>`` followed by ``n`` ``parent <digest>`` lines, then
            ``tree <digest>``, ``message <byte-length>`` plus the raw message
            and a newline, and finally ``timestamp <ISO-8601 UTC>``.
"""

from __future__ import annotations

import hashlib
import unicodedata
from datetime import datetime, timezone
from pathlib import Path, PurePath

from gyat.objects.models import Commit, ObjectKind, Tree, TreeEntry

HASH_ALGORITHM = "sha1"


def compute_digest(content: bytes) -> str:
    """SHA-1 hex digest of *content*."""
    return hashlib.sha1(content).hexdigest()


def compute_file_digest(path: Path, chunk_size: int = 65536) -> str:
    """Hash a file from disk without loading it into memory at once."""
    hasher = hashlib.sha1()
    with open(path, "rb") as f:
        while chunk := f.read(chunk_size):
            hasher.update(chunk)
    return hasher.hexdigest()


def normalize_name(name: str) -> str:
    """Normalize a single path component for storage.

    Names are stored NFC-normalized so a directory hashes the same on
    filesystems that decompose Unicode (macOS) and ones that don't.
    """
    return unicodedata.normalize("NFC", name)


def to_posix(path: PurePath | str) -> str:
    """Render a relative path with ``/`` separators and normalized components."""
    parts = PurePath(path).parts
    return "/".join(normalize_name(p) for p in parts)


# ── Trees ─────────────────────────────────────────────────────────────


def encode_tree(tree: Tree) -> bytes:
    out = bytearray()
    for entry in tree.entries:
        name = entry.name.encode("utf-8")
        out += f"{entry.kind.value} {entry.digest} {len(name)}:".encode("ascii")
        out += name
        out += b"\n"
    return bytes(out)


def decode_tree(data: bytes) -> Tree:
    """Parse the canonical tree encoding. Raises ValueError on malformed input."""
    entries: list[TreeEntry] = []
    pos = 0
    while pos < len(data):
        colon = data.index(b":", pos)
        header = data[pos:colon].decode("ascii")
        kind, digest, length = header.split(" ")
        start = colon + 1
        end = start + int(length)
        if data[end:end + 1] != b"\n":
            raise ValueError(f"tree entry at offset {pos} is not newline terminated")
        name = data[start:end].decode("utf-8")
        entries.append(TreeEntry(name=name, kind=ObjectKind(kind), digest=digest))
        pos = end + 1
    return Tree(tuple(entries))


def tree_digest(tree: Tree) -> str:
    return compute_digest(encode_tree(tree))


# ── Commits ───────────────────────────────────────────────────────────


def format_timestamp(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat(timespec="microseconds")


def encode_commit(commit: Commit) -> bytes:
    message = commit.message.encode("utf-8")
    lines = [f"parents {len(commit.parents)}\n"]
    lines.extend(f"parent {p}\n" for p in commit.parents)
    lines.append(f"tree {commit.tree}\n")
    lines.append(f"message {len(message)}\n")
    head = "".join(lines).encode("ascii")
    tail = f"\ntimestamp {format_timestamp(commit.timestamp)}\n".encode("ascii")
    return head + message + tail


def _take_line(data: bytes, pos: int, key: str) -> tuple[str, int]:
    end = data.index(b"\n", pos)
    line = data[pos:end].decode("ascii")
    label, _, value = line.partition(" ")
    if label != key:
        raise ValueError(f"expected {key!r} field, found {label!r}")
    return value, end + 1


def decode_commit(data: bytes, digest: str = "") -> Commit:
    """Parse the canonical commit encoding. Raises ValueError on malformed input."""
    count, pos = _take_line(data, 0, "parents")
    parents = []
    for _ in range(int(count)):
        parent, pos = _take_line(data, pos, "parent")
        parents.append(parent)
    tree, pos = _take_line(data, pos, "tree")
    length, pos = _take_line(data, pos, "message")
    end = pos + int(length)
    message = data[pos:end].decode("utf-8")
    if data[end:end + 1] != b"\n":
        raise ValueError("commit message is not newline terminated")
    stamp, pos = _take_line(data, end + 1, "timestamp")
    if pos != len(data):
        raise ValueError("trailing bytes after commit timestamp")
    return Commit(
        tree=tree,
        message=message,
        timestamp=datetime.fromisoformat(stamp),
        parents=tuple(parents),
        digest=digest,
    )
