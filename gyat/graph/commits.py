"""Commit graph: an append-only, backward-linked chain of commits."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from datetime import datetime, timezone
from itertools import islice

from gyat.errors import NothingToCommit, ObjectNotFound
from gyat.graph.head import HeadRef
from gyat.objects.models import Commit, ObjectKind
from gyat.objects.store import ObjectStore, read_commit, write_commit

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CommitGraph:
    """Creates commits and moves head forward.

    The stored commit format carries a sequence of parents; this graph keeps
    history linear by allowing at most ``MAX_PARENTS`` of them.
    """

    MAX_PARENTS = 1

    def __init__(
        self,
        store: ObjectStore,
        head: HeadRef,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.head = head
        self.clock = clock

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def get(self, digest: str) -> Commit:
        return read_commit(self.store, digest)

    def head_commit(self) -> Commit | None:
        digest = self.head.read()
        return self.get(digest) if digest else None

    def head_tree(self) -> str | None:
        """Root tree digest of the head commit, or None before the first commit."""
        commit = self.head_commit()
        return commit.tree if commit else None

    def walk(self, start: str | None = None) -> Iterator[Commit]:
        """Yield commits from *start* (default: head) back to the root commit."""
        digest = start if start is not None else self.head.read()
        while digest:
            commit = self.get(digest)
            yield commit
            digest = commit.parent

    def log(self, limit: int | None = None) -> list[Commit]:
        """The most recent *limit* commits, newest first."""
        return list(islice(self.walk(), limit))

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def commit(
        self,
        root: str,
        message: str,
        parents: tuple[str, ...] | None = None,
    ) -> Commit:
        """Record *root* as a new commit on top of head and advance head.

        The very first commit is always accepted. Later ones must change the
        root tree, otherwise NothingToCommit is raised.
        """
        if not message.strip():
            raise ValueError("commit message cannot be empty")
        if parents is None:
            current = self.head.read()
            parents = (current,) if current else ()
        if len(parents) > self.MAX_PARENTS:
            raise ValueError(
                f"a commit may have at most {self.MAX_PARENTS} parent(s), got {len(parents)}"
            )
        if parents and self.get(parents[0]).tree == root:
            raise NothingToCommit()
        if not self.store.exists(ObjectKind.tree, root):
            raise ObjectNotFound(ObjectKind.tree.value, root)

        commit = write_commit(
            self.store,
            Commit(tree=root, message=message, timestamp=self.clock(), parents=tuple(parents)),
        )
        self.head.write(commit.digest)
        logger.info("committed %s (tree %s)", commit.digest, root[:12])
        return commit
