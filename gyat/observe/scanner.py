"""Working-tree scanner.

Walks the working directory once, before anything is hashed or stored, so an
unsupported entry anywhere aborts the observe pass without partial staging.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from gyat.errors import IOFailure, UnsupportedEntry
from gyat.objects.codec import normalize_name

logger = logging.getLogger(__name__)


@dataclass
class WorkingDir:
    """A directory on disk: normalized name -> file path or subdirectory."""

    path: Path
    rel: str = ""
    entries: dict[str, Path | WorkingDir] = field(default_factory=dict)

    def file_count(self) -> int:
        return sum(
            e.file_count() if isinstance(e, WorkingDir) else 1 for e in self.entries.values()
        )


def _join(prefix: str, name: str) -> str:
    return f"{prefix}/{name}" if prefix else name


class Reach(Enum):
    """Where a path sits relative to the set of paths an observe pass covers."""

    inside = "inside"
    above = "above"
    outside = "outside"


def reach_of(rel: str, scope: frozenset[str] | None) -> Reach:
    """Classify *rel* against *scope*; a None scope covers the whole tree.

    ``above`` means *rel* is a directory on the way to a covered path: only
    part of its contents are looked at.
    """
    if scope is None:
        return Reach.inside
    for covered in scope:
        if rel == covered or rel.startswith(covered + "/"):
            return Reach.inside
    if any(covered.startswith(rel + "/") for covered in scope):
        return Reach.above
    return Reach.outside


def _printable(name: str) -> str:
    return os.fsencode(name).decode("utf-8", "backslashreplace")


def scan_working_tree(
    root: Path,
    metadata_dir: str = ".gyat",
    scope: frozenset[str] | None = None,
) -> WorkingDir:
    """Scan *root* recursively, skipping the metadata directory at the top.

    With *scope*, only the covered paths and the directories leading to them
    are scanned. Raises UnsupportedEntry for symlinks, special files, names
    that are not valid UTF-8 and two names that collapse to the same
    normalized form.
    """
    root = Path(root).resolve()
    tree = _scan_dir(root, "", skip=metadata_dir, scope=scope)
    logger.debug("scanned %s: %d files", root, tree.file_count())
    return tree


def _scan_dir(
    path: Path,
    rel: str,
    skip: str | None = None,
    scope: frozenset[str] | None = None,
) -> WorkingDir:
    node = WorkingDir(path=path, rel=rel)
    try:
        with os.scandir(path) as it:
            dir_entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        raise IOFailure("scan directory", path, e) from e

    for entry in dir_entries:
        if skip is not None and entry.name == skip:
            continue
        try:
            entry.name.encode("utf-8")
        except UnicodeEncodeError:
            raise UnsupportedEntry(
                _join(rel, _printable(entry.name)), "name is not valid UTF-8"
            ) from None
        name = normalize_name(entry.name)
        child_rel = _join(rel, name)
        reach = reach_of(child_rel, scope)
        if reach is Reach.outside:
            continue
        if name in node.entries:
            raise UnsupportedEntry(child_rel, "name collides with another entry after normalization")
        try:
            if entry.is_symlink():
                raise UnsupportedEntry(child_rel, "symbolic link")
            if entry.is_dir(follow_symlinks=False):
                sub_scope = scope if reach is Reach.above else None
                node.entries[name] = _scan_dir(Path(entry.path), child_rel, scope=sub_scope)
            elif entry.is_file(follow_symlinks=False):
                node.entries[name] = Path(entry.path)
            else:
                raise UnsupportedEntry(child_rel, "not a regular file or directory")
        except OSError as e:
            raise IOFailure("stat", entry.path, e) from e
    return node
