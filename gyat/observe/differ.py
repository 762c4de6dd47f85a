"""Tree builder/differ: compares the working tree against the head tree.

The walk is bottom-up. Files are hashed and compared to the entry recorded at
the same path in the reference tree; only new or modified blobs are stored.
Once every child of a directory is resolved, its tree is built. A directory
whose children are all unchanged keeps the reference digest as-is, without
re-serializing (Merkle property).
"""

from __future__ import annotations

import logging
from pathlib import Path

from gyat.errors import IOFailure
from gyat.objects.codec import compute_file_digest, tree_digest
from gyat.objects.models import ObjectKind, Tree, TreeEntry
from gyat.objects.store import ObjectStore, iter_tree, read_tree, write_tree
from gyat.observe.models import Change, ChangeStatus, StagedState
from gyat.observe.scanner import Reach, WorkingDir, reach_of

logger = logging.getLogger(__name__)

EMPTY_TREE = tree_digest(Tree())


def _join(prefix: str, name: str) -> str:
    return f"{prefix}/{name}" if prefix else name


class TreeDiffer:
    """Builds a staged tree and change list for one working tree."""

    def __init__(self, store: ObjectStore, chunk_size: int = 65536) -> None:
        self.store = store
        self.chunk_size = chunk_size

    def diff(
        self,
        working: WorkingDir,
        reference: str | None,
        base: str | None = None,
        scope: frozenset[str] | None = None,
    ) -> StagedState:
        """Compare *working* against the tree digest *reference*.

        *reference* is None before the first commit, in which case every path
        is ``added``. *base* is the head commit the reference tree came from.
        With *scope*, only the covered paths are compared; every other entry
        of the reference tree is carried into the staged tree unchanged.
        """
        changes: list[Change] = []
        root = self._diff_dir(working, reference, changes, scope)
        changes.sort(key=lambda c: c.path)
        staged = StagedState(base=base, root=root, changes=tuple(changes))
        logger.info(
            "observed %s: %s",
            root[:12],
            ", ".join(f"{n} {s.value}" for s, n in staged.counts().items() if n),
        )
        return staged

    # ------------------------------------------------------------------
    # Walk
    # ------------------------------------------------------------------

    def _diff_dir(
        self,
        working: WorkingDir,
        reference: str | None,
        changes: list[Change],
        scope: frozenset[str] | None = None,
    ) -> str:
        prior_entries = read_tree(self.store, reference).as_dict() if reference else {}
        unchanged = reference is not None
        entries: list[TreeEntry] = []

        for name, node in working.entries.items():
            prior = prior_entries.pop(name, None)
            entry = self._diff_entry(name, node, working.rel, prior, changes, scope)
            if entry is not None:
                entries.append(entry)
            if entry != prior:
                unchanged = False

        for name, prior in sorted(prior_entries.items()):
            entry = self._diff_missing(name, working, prior, changes, scope)
            if entry is not None:
                entries.append(entry)
            if entry != prior:
                unchanged = False

        if unchanged:
            return reference
        return write_tree(self.store, Tree(tuple(entries)))

    def _diff_entry(
        self,
        name: str,
        node: Path | WorkingDir,
        parent_rel: str,
        prior: TreeEntry | None,
        changes: list[Change],
        scope: frozenset[str] | None,
    ) -> TreeEntry | None:
        rel = _join(parent_rel, name)
        reach = reach_of(rel, scope)
        is_dir = isinstance(node, WorkingDir)
        if reach is Reach.outside:
            return prior

        if reach is Reach.above:
            if is_dir and (prior is None or prior.kind is ObjectKind.tree):
                digest = self._diff_dir(node, prior.digest if prior else None, changes, scope)
                if prior is None and digest == EMPTY_TREE:
                    return None
                return TreeEntry(name=name, kind=ObjectKind.tree, digest=digest)
            if not is_dir and (prior is None or prior.kind is ObjectKind.blob):
                # The covered path lies below a plain file: nothing to look at.
                return prior

        if is_dir:
            digest = self._diff_subdir(node, rel, prior, changes)
            return TreeEntry(name=name, kind=ObjectKind.tree, digest=digest)
        digest = self._diff_file(node, rel, prior, changes)
        return TreeEntry(name=name, kind=ObjectKind.blob, digest=digest)

    def _diff_missing(
        self,
        name: str,
        parent: WorkingDir,
        prior: TreeEntry,
        changes: list[Change],
        scope: frozenset[str] | None,
    ) -> TreeEntry | None:
        """Handle a reference entry with no counterpart in the working tree."""
        rel = _join(parent.rel, name)
        reach = reach_of(rel, scope)
        if reach is Reach.outside:
            return prior
        if reach is Reach.above:
            if prior.kind is ObjectKind.blob:
                return prior
            gone = WorkingDir(path=parent.path / name, rel=rel)
            digest = self._diff_dir(gone, prior.digest, changes, scope)
            if digest == EMPTY_TREE:
                return None
            return TreeEntry(name=name, kind=ObjectKind.tree, digest=digest)
        self._record_deleted(rel, prior, changes)
        return None

    def _diff_subdir(
        self,
        node: WorkingDir,
        rel: str,
        prior: TreeEntry | None,
        changes: list[Change],
    ) -> str:
        if prior is None:
            digest = self._diff_dir(node, None, changes)
            if not node.entries:
                changes.append(
                    Change(path=rel, status=ChangeStatus.added, kind=ObjectKind.tree, digest=digest)
                )
            return digest
        if prior.kind is ObjectKind.tree:
            return self._diff_dir(node, prior.digest, changes)

        # File replaced by a directory: the new subtree is built and staged,
        # but only the directory itself is reported.
        digest = self._diff_dir(node, None, [])
        changes.append(
            Change(
                path=rel,
                status=ChangeStatus.kind_changed,
                kind=ObjectKind.tree,
                digest=digest,
                previous_kind=prior.kind,
                previous=prior.digest,
            )
        )
        logger.warning("%s changed from a file to a directory", rel)
        return digest

    def _diff_file(
        self,
        path: Path,
        rel: str,
        prior: TreeEntry | None,
        changes: list[Change],
    ) -> str:
        try:
            digest = compute_file_digest(path, self.chunk_size)
        except OSError as e:
            raise IOFailure("hash file", path, e) from e

        if prior is None:
            status = ChangeStatus.added
        elif prior.kind is ObjectKind.tree:
            status = ChangeStatus.kind_changed
            logger.warning("%s changed from a directory to a file", rel)
        elif prior.digest == digest:
            status = ChangeStatus.unchanged
        else:
            status = ChangeStatus.modified

        if status is not ChangeStatus.unchanged:
            self.store.put_file(path, digest)
        logger.debug("%s %s %s", status.value, rel, digest[:12])
        changes.append(
            Change(
                path=rel,
                status=status,
                kind=ObjectKind.blob,
                digest=digest,
                previous_kind=prior.kind if prior else None,
                previous=prior.digest if prior else None,
            )
        )
        return digest

    def _record_deleted(self, rel: str, prior: TreeEntry, changes: list[Change]) -> None:
        """Report every file below a vanished entry as deleted.

        A vanished directory that holds no files at all is reported itself.
        """
        if prior.kind is ObjectKind.blob:
            changes.append(
                Change(
                    path=rel,
                    status=ChangeStatus.deleted,
                    previous_kind=ObjectKind.blob,
                    previous=prior.digest,
                )
            )
            return

        found = False
        for path, entry in iter_tree(self.store, prior.digest, rel):
            if entry.kind is ObjectKind.blob:
                found = True
                changes.append(
                    Change(
                        path=path,
                        status=ChangeStatus.deleted,
                        previous_kind=ObjectKind.blob,
                        previous=entry.digest,
                    )
                )
        if not found:
            changes.append(
                Change(
                    path=rel,
                    status=ChangeStatus.deleted,
                    previous_kind=ObjectKind.tree,
                    previous=prior.digest,
                )
            )
