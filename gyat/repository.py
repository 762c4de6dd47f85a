"""Repository facade: wires the store, head, staging area and commit graph."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from gyat.config.models import GyatConfig
from gyat.errors import IOFailure, RepositoryExists, RepositoryNotFound
from gyat.fallback import FallbackEngine
from gyat.graph.commits import CommitGraph
from gyat.graph.head import FileHead, HeadRef
from gyat.objects.codec import to_posix
from gyat.objects.models import Commit, ObjectKind
from gyat.objects.store import FileObjectStore, ObjectStore
from gyat.observe.differ import TreeDiffer
from gyat.observe.models import StagedState
from gyat.observe.scanner import scan_working_tree
from gyat.staging import StagingArea

logger = logging.getLogger(__name__)

HEAD_FILE = "HEAD"
INDEX_FILE = "index"


def find_repo_root(path: Path | str = ".", metadata_dir: str = ".gyat") -> Path | None:
    """Walk up from *path* to the first directory holding *metadata_dir*."""
    current = Path(path).resolve()
    for candidate in (current, *current.parents):
        if (candidate / metadata_dir).is_dir():
            return candidate
    return None


class Repository:
    """A working directory plus its metadata directory.

    Every collaborator can be injected, so tests can run against
    ``MemoryObjectStore``/``MemoryHead`` and an in-memory ``StagingArea``.
    """

    def __init__(
        self,
        root: Path,
        config: GyatConfig | None = None,
        *,
        store: ObjectStore | None = None,
        head: HeadRef | None = None,
        staging: StagingArea | None = None,
    ) -> None:
        self.root = Path(root).resolve()
        self.config = config or GyatConfig()
        self.metadata_path = self.root / self.config.metadata_dir
        self.store = store or FileObjectStore(self.metadata_path, self.config.store)
        self.head = head or FileHead(self.metadata_path / HEAD_FILE)
        self.staging = staging or StagingArea(self.metadata_path / INDEX_FILE)
        self.graph = CommitGraph(self.store, self.head)

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    @classmethod
    def create(cls, path: Path | str = ".", config: GyatConfig | None = None) -> Repository:
        """Create a repository at *path*, making the directory if needed."""
        config = config or GyatConfig()
        root = Path(path)
        if root.exists() and not root.is_dir():
            raise IOFailure("create repository", root, NotADirectoryError(f"{root} is not a directory"))
        existing = find_repo_root(root, config.metadata_dir)
        if existing is not None:
            raise RepositoryExists(existing)

        metadata = root / config.metadata_dir
        try:
            root.mkdir(parents=True, exist_ok=True)
            metadata.mkdir()
            for kind in ObjectKind:
                (metadata / kind.area).mkdir()
            (metadata / HEAD_FILE).write_text("")
            (metadata / INDEX_FILE).write_text("")
        except OSError as e:
            raise IOFailure("create repository", metadata, e) from e
        logger.info("initialized empty repository in %s", root.resolve())
        return cls(root, config)

    @classmethod
    def open(cls, path: Path | str = ".", config: GyatConfig | None = None) -> Repository:
        """Open the repository containing *path*."""
        config = config or GyatConfig()
        root = find_repo_root(path, config.metadata_dir)
        if root is None:
            raise RepositoryNotFound(Path(path).resolve())
        return cls(root, config)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def scope_for(self, paths: list[Path | str] | None) -> frozenset[str] | None:
        """Turn *paths* (absolute or relative to cwd) into repository-relative paths.

        None or an empty list, or any path naming the repository root, covers
        the whole tree. Paths need not exist, so deletions can be observed.
        """
        if not paths:
            return None
        scope: set[str] = set()
        for raw in paths:
            absolute = Path(os.path.normpath(Path(raw).absolute()))
            target = absolute.parent.resolve() / absolute.name if absolute.name else absolute
            try:
                rel = target.relative_to(self.root)
            except ValueError:
                raise ValueError(f"{raw} is outside the repository at {self.root}") from None
            if not rel.parts:
                return None
            if rel.parts[0] == self.config.metadata_dir:
                raise ValueError(f"{raw} is inside the metadata directory")
            scope.add(to_posix(rel))
        return frozenset(scope)

    def status(self, paths: list[Path | str] | None = None) -> StagedState:
        """Diff the working tree against head without touching the staging area.

        With *paths*, only those paths are compared; everything else keeps
        its state from the head commit.
        """
        scope = self.scope_for(paths)
        working = scan_working_tree(self.root, self.config.metadata_dir, scope)
        differ = TreeDiffer(self.store, chunk_size=self.config.store.chunk_size)
        head = self.head.read()
        reference = self.graph.get(head).tree if head else None
        return differ.diff(working, reference, base=head, scope=scope)

    def observe(self, paths: list[Path | str] | None = None) -> StagedState:
        """Diff against head and replace the staged state with the result."""
        staged = self.status(paths)
        self.staging.replace(staged)
        return staged

    def discard(self) -> None:
        self.staging.discard()

    def track(self, message: str, track_all: bool = False) -> Commit:
        """Commit the staged state. With *track_all*, observe first."""
        if track_all:
            self.observe()
        return self.staging.commit(message, self.graph)

    def fallback(self, prefix: str) -> Commit:
        """Restore the working tree to the commit matching *prefix* and move head."""
        engine = FallbackEngine(self.store, self.graph, self.root, self.config.metadata_dir)
        target = engine.fallback(prefix)
        self.staging.discard()
        return target

    def log(self, limit: int | None = None) -> list[Commit]:
        return self.graph.log(limit)
