"""Tests for commit resolution and working-tree reconstruction."""

from __future__ import annotations

import shutil
from datetime import datetime, timezone
from pathlib import Path

import pytest

from gyat.errors import AmbiguousHash, CommitNotFound, ObjectNotFound, WorkingTreeConflict
from gyat.fallback import FallbackEngine
from gyat.objects import Commit, ObjectKind, compute_digest


def _snapshot(root: Path, metadata_dir: str = ".gyat") -> dict[str, bytes | None]:
    """Relative path -> file bytes, or None for a directory."""
    result: dict[str, bytes | None] = {}
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root)
        if rel.parts[0] == metadata_dir:
            continue
        result[rel.as_posix()] = path.read_bytes() if path.is_file() else None
    return result


# ── Resolution ────────────────────────────────────────────────────────


class _StubGraph:
    """Just enough of CommitGraph for resolve(): a fixed chain of commits."""

    def __init__(self, digests: list[str]) -> None:
        ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
        tree = compute_digest(b"")
        self.commits = [Commit(tree=tree, message=d[:4], timestamp=ts, digest=d) for d in digests]

    def walk(self, start=None):
        return iter(self.commits)


A1B2 = "a1b2" + "0" * 36
A1C3 = "a1c3" + "0" * 36
FF00 = "ff00" + "1" * 36


@pytest.fixture
def engine(memory_store, tmp_path):
    return FallbackEngine(memory_store, _StubGraph([FF00, A1C3, A1B2]), tmp_path)


class TestResolve:
    def test_unique_prefix(self, engine):
        assert engine.resolve("a1b").digest == A1B2
        assert engine.resolve("ff").digest == FF00

    def test_full_digest(self, engine):
        assert engine.resolve(A1C3).digest == A1C3

    def test_case_and_whitespace_ignored(self, engine):
        assert engine.resolve("  A1B2 ").digest == A1B2

    def test_ambiguous(self, engine):
        with pytest.raises(AmbiguousHash) as exc_info:
            engine.resolve("a1")
        assert sorted(exc_info.value.matches) == sorted([A1B2, A1C3])

    def test_not_found(self, engine):
        with pytest.raises(CommitNotFound) as exc_info:
            engine.resolve("zz")
        assert exc_info.value.prefix == "zz"

    def test_empty_prefix(self, engine):
        with pytest.raises(ValueError):
            engine.resolve("   ")

    def test_no_history(self, memory_store, tmp_path):
        engine = FallbackEngine(memory_store, _StubGraph([]), tmp_path)
        with pytest.raises(CommitNotFound):
            engine.resolve("a")


# ── Reconstruction (through a real repository) ────────────────────────


class TestReconstruct:
    def test_round_trip(self, repo, project):
        before = _snapshot(project)
        first = repo.track("first", track_all=True)

        (project / "README.md").write_text("rewritten\n")
        (project / "src" / "pkg" / "deep.py").unlink()
        (project / "new").mkdir()
        (project / "new" / "file.txt").write_text("added later\n")
        repo.track("second", track_all=True)

        repo.fallback(first.digest[:8])
        assert _snapshot(project) == before
        assert repo.head.read() == first.digest

    def test_deleted_file_restored(self, repo, project):
        first = repo.track("first", track_all=True)
        (project / "docs" / "guide.md").unlink()
        repo.track("remove guide", track_all=True)
        assert not (project / "docs" / "guide.md").exists()

        repo.fallback(first.digest)
        assert (project / "docs" / "guide.md").read_text() == "# Guide\n"

    def test_untracked_files_left_alone(self, repo, project):
        first = repo.track("first", track_all=True)
        (project / "scratch.txt").write_text("mine")
        repo.fallback(first.digest)
        assert (project / "scratch.txt").read_text() == "mine"

    def test_empty_directory_restored(self, repo, project):
        (project / "empty").mkdir()
        first = repo.track("first", track_all=True)
        (project / "empty").rmdir()
        repo.track("second", track_all=True)
        repo.fallback(first.digest)
        assert (project / "empty").is_dir()

    def test_file_turned_directory_restored(self, repo, project):
        first = repo.track("first", track_all=True)
        (project / "README.md").unlink()
        (project / "README.md").mkdir()
        (project / "README.md" / "inner.txt").write_text("x")
        repo.track("kind change", track_all=True)

        repo.fallback(first.digest)
        assert (project / "README.md").read_text() == "# My project\n"

    def test_directory_blocked_by_untracked_file(self, repo, project):
        first = repo.track("first", track_all=True)
        shutil.rmtree(project / "docs")
        (project / "docs").write_text("in the way")
        before = _snapshot(project)
        with pytest.raises(WorkingTreeConflict, match="untracked file") as exc_info:
            repo.fallback(first.digest)
        assert exc_info.value.path == "docs"
        assert _snapshot(project) == before
        assert repo.head.read() == first.digest

    def test_untracked_files_in_directory_block_file_restore(self, repo, project):
        first = repo.track("first", track_all=True)
        (project / "README.md").unlink()
        (project / "README.md").mkdir()
        (project / "README.md" / "inner.txt").write_text("x")
        second = repo.track("kind change", track_all=True)
        (project / "README.md" / "precious.txt").write_text("keep me")
        before = _snapshot(project)

        with pytest.raises(WorkingTreeConflict, match="README.md/precious.txt"):
            repo.fallback(first.digest)
        assert _snapshot(project) == before
        assert repo.head.read() == second.digest

    def test_empty_untracked_directory_replaced_by_file(self, repo, project):
        first = repo.track("first", track_all=True)
        (project / "README.md").unlink()
        repo.track("removed", track_all=True)
        (project / "README.md").mkdir()
        repo.fallback(first.digest)
        assert (project / "README.md").read_text() == "# My project\n"

    def test_fallback_clears_staging(self, repo, project):
        first = repo.track("first", track_all=True)
        (project / "README.md").write_text("edit\n")
        repo.observe()
        repo.fallback(first.digest)
        assert repo.staging.current() is None

    def test_history_kept_after_fallback(self, repo, project):
        first = repo.track("first", track_all=True)
        (project / "README.md").write_text("edit\n")
        second = repo.track("second", track_all=True)
        repo.fallback(first.digest)
        assert repo.store.exists(ObjectKind.commit, second.digest)
        assert [c.digest for c in repo.log()] == [first.digest]

    def test_unknown_hash_leaves_everything(self, repo, project):
        first = repo.track("first", track_all=True)
        (project / "README.md").write_text("edit\n")
        before = _snapshot(project)
        with pytest.raises(CommitNotFound):
            repo.fallback("zz")
        assert _snapshot(project) == before
        assert repo.head.read() == first.digest

    def test_missing_blob_aborts_before_writing(self, repo, project):
        first = repo.track("first", track_all=True)
        (project / "README.md").write_text("edit\n")
        repo.track("second", track_all=True)

        guide = compute_digest(b"# Guide\n")
        repo.store.object_path(ObjectKind.blob, guide).unlink()
        before = _snapshot(project)
        head = repo.head.read()

        with pytest.raises(ObjectNotFound):
            repo.fallback(first.digest)
        assert _snapshot(project) == before
        assert repo.head.read() == head
