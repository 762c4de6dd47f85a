"""Fallback: resolve a (possibly abbreviated) commit digest and restore it.

Resolution walks the chain from head to the root commit. Reconstruction first
reads every tree of the target so a missing object aborts before the working
directory is touched. It then refuses with WorkingTreeConflict if restoring
would delete untracked content, removes the files tracked by the current head
and writes the target tree out. A failure midway through writing is reported but
not rolled back; head only moves once everything has been written.
"""

from __future__ import annotations

import logging
from pathlib import Path

from gyat.errors import (
    AmbiguousHash,
    CommitNotFound,
    IOFailure,
    ObjectNotFound,
    WorkingTreeConflict,
)
from gyat.graph.commits import CommitGraph
from gyat.objects.codec import to_posix
from gyat.objects.models import Commit, ObjectKind, TreeEntry
from gyat.objects.store import ObjectStore, iter_tree

logger = logging.getLogger(__name__)


class FallbackEngine:
    """Reverts a working directory to an earlier commit."""

    def __init__(
        self,
        store: ObjectStore,
        graph: CommitGraph,
        work_root: Path,
        metadata_dir: str = ".gyat",
    ) -> None:
        self.store = store
        self.graph = graph
        self.work_root = Path(work_root)
        self.metadata_dir = metadata_dir

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, prefix: str) -> Commit:
        """Find the single commit reachable from head whose digest starts with *prefix*.

        A digest equal to *prefix* wins even if it is also a prefix of another.
        """
        wanted = prefix.strip().lower()
        if not wanted:
            raise ValueError("commit hash cannot be empty")

        matches: list[Commit] = []
        for commit in self.graph.walk():
            logger.debug("visiting %s", commit.digest)
            if commit.digest == wanted:
                return commit
            if commit.digest.startswith(wanted):
                matches.append(commit)

        if not matches:
            raise CommitNotFound(prefix)
        if len(matches) > 1:
            raise AmbiguousHash(prefix, [c.digest for c in matches])
        return matches[0]

    # ------------------------------------------------------------------
    # Reconstruction
    # ------------------------------------------------------------------

    def _local(self, rel: str) -> Path:
        return self.work_root.joinpath(*rel.split("/"))

    def _load_target(self, commit: Commit) -> list[tuple[str, TreeEntry]]:
        entries = []
        for rel, entry in iter_tree(self.store, commit.tree):
            if rel.split("/", 1)[0] == self.metadata_dir:
                logger.warning("skipping %s: inside the metadata directory", rel)
                continue
            if entry.kind is ObjectKind.blob and not self.store.exists(ObjectKind.blob, entry.digest):
                raise ObjectNotFound(ObjectKind.blob.value, entry.digest)
            entries.append((rel, entry))
        return entries

    def _tracked(self) -> dict[str, TreeEntry]:
        """Every path recorded in the head tree, outside the metadata directory."""
        head_tree = self.graph.head_tree()
        if head_tree is None:
            return {}
        return {
            rel: entry
            for rel, entry in iter_tree(self.store, head_tree)
            if rel.split("/", 1)[0] != self.metadata_dir
        }

    @staticmethod
    def _is_tracked(path: Path, rel: str, tracked: dict[str, TreeEntry]) -> bool:
        entry = tracked.get(rel)
        if entry is None:
            return False
        return (entry.kind is ObjectKind.tree) == path.is_dir()

    def _check_obstacles(
        self, entries: list[tuple[str, TreeEntry]], tracked: dict[str, TreeEntry]
    ) -> None:
        """Refuse to restore over untracked content that would have to be deleted."""
        for rel, entry in entries:
            target = self._local(rel)
            if target.is_symlink():
                continue
            if entry.kind is ObjectKind.tree:
                if target.is_file() and not self._is_tracked(target, rel, tracked):
                    raise WorkingTreeConflict(rel, "an untracked file is in the way of a directory")
            elif target.is_dir():
                for inner in sorted(target.rglob("*")):
                    inner_rel = to_posix(inner.relative_to(self.work_root))
                    if not self._is_tracked(inner, inner_rel, tracked):
                        raise WorkingTreeConflict(
                            rel, f"the directory in its place holds untracked {inner_rel}"
                        )

    def _remove_tracked(self, tracked: dict[str, TreeEntry]) -> None:
        """Delete the files recorded in the head tree, then their emptied directories."""
        dirs: list[Path] = []
        for rel, entry in tracked.items():
            target = self._local(rel)
            if entry.kind is ObjectKind.tree:
                dirs.append(target)
                continue
            try:
                if target.is_file() or target.is_symlink():
                    target.unlink()
            except OSError as e:
                raise IOFailure("remove tracked file", target, e) from e

        for directory in sorted(dirs, key=lambda p: len(p.parts), reverse=True):
            try:
                if directory.is_dir() and not any(directory.iterdir()):
                    directory.rmdir()
            except OSError as e:
                raise IOFailure("remove tracked directory", directory, e) from e

    def _clear_obstacle(self, target: Path, want_dir: bool) -> None:
        if target.is_symlink():
            logger.warning("removing symbolic link %s", target)
            target.unlink()
        elif not want_dir and target.is_dir():
            # Only an empty untracked directory can be left here.
            target.rmdir()

    def reconstruct(self, commit: Commit) -> None:
        """Make the working directory match *commit*'s tree.

        Raises WorkingTreeConflict, before anything is touched, when restoring
        would delete untracked files or directories.
        """
        entries = self._load_target(commit)
        tracked = self._tracked()
        self._check_obstacles(entries, tracked)
        self._remove_tracked(tracked)

        for rel, entry in entries:
            target = self._local(rel)
            try:
                if entry.kind is ObjectKind.tree:
                    self._clear_obstacle(target, want_dir=True)
                    target.mkdir(parents=True, exist_ok=True)
                else:
                    self._clear_obstacle(target, want_dir=False)
                    target.parent.mkdir(parents=True, exist_ok=True)
                    content = self.store.get(ObjectKind.blob, entry.digest)
                    target.write_bytes(content)
            except OSError as e:
                raise IOFailure("restore", target, e) from e
            logger.debug("restored %s", rel)

    def fallback(self, prefix: str) -> Commit:
        """Resolve *prefix*, rewrite the working directory and move head."""
        target = self.resolve(prefix)
        logger.info("falling back to %s", target.digest)
        self.reconstruct(target)
        self.graph.head.write(target.digest)
        return target
