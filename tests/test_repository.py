"""Tests for the Repository facade: create/open and the observe/track workflow."""

from __future__ import annotations

import pytest

from gyat.config import GyatConfig
from gyat.errors import (
    IOFailure,
    NothingStaged,
    NothingToCommit,
    RepositoryExists,
    RepositoryNotFound,
    StaleStaging,
)
from gyat.graph import MemoryHead
from gyat.objects import MemoryObjectStore, ObjectKind
from gyat.observe import ChangeStatus
from gyat.repository import Repository, find_repo_root
from gyat.staging import StagingArea


# ── Create / open ─────────────────────────────────────────────────────


class TestCreate:
    def test_layout(self, tmp_path):
        Repository.create(tmp_path / "proj")
        meta = tmp_path / "proj" / ".gyat"
        assert sorted(p.name for p in meta.iterdir()) == ["HEAD", "commits", "dirs", "files", "index"]
        assert (meta / "HEAD").read_text() == ""

    def test_existing_directory_contents_untouched(self, project):
        Repository.create(project)
        assert (project / "README.md").read_text() == "# My project\n"

    def test_twice_raises(self, repo, project):
        with pytest.raises(RepositoryExists):
            Repository.create(project)

    def test_nested_inside_existing_raises(self, repo, project):
        with pytest.raises(RepositoryExists):
            Repository.create(project / "src")

    def test_path_is_a_file(self, tmp_path):
        (tmp_path / "file").write_text("x")
        with pytest.raises(IOFailure):
            Repository.create(tmp_path / "file")

    def test_custom_metadata_dir(self, tmp_path):
        config = GyatConfig(metadata_dir=".vcs")
        repo = Repository.create(tmp_path, config)
        assert (tmp_path / ".vcs" / "files").is_dir()
        (tmp_path / "a.txt").write_text("a")
        staged = repo.observe()
        assert [c.path for c in staged.changes] == ["a.txt"]


class TestOpen:
    def test_from_subdirectory(self, repo, project):
        opened = Repository.open(project / "src" / "pkg")
        assert opened.root == project.resolve()

    def test_outside_repository(self, tmp_path):
        with pytest.raises(RepositoryNotFound):
            Repository.open(tmp_path)

    def test_find_repo_root_none(self, tmp_path):
        assert find_repo_root(tmp_path) is None


# ── Workflow ──────────────────────────────────────────────────────────


class TestWorkflow:
    def test_observe_then_track(self, repo):
        staged = repo.observe()
        assert staged.counts()[ChangeStatus.added] == 5
        commit = repo.track("first")
        assert commit.tree == staged.root
        assert repo.log() == [commit]

    def test_track_without_observe(self, repo):
        with pytest.raises(NothingStaged):
            repo.track("nothing")

    def test_staging_survives_reopen(self, repo, project):
        staged = repo.observe()
        commit = Repository.open(project).track("first")
        assert commit.tree == staged.root

    def test_status_does_not_stage(self, repo):
        staged = repo.status()
        assert staged.has_changes
        assert repo.staging.current() is None

    def test_observe_is_idempotent(self, repo):
        repo.track("first", track_all=True)
        one = repo.observe()
        two = repo.observe()
        assert one.root == two.root
        assert not two.has_changes
        with pytest.raises(NothingToCommit):
            repo.track("again")

    def test_first_commit_of_empty_directory(self, tmp_path):
        repo = Repository.create(tmp_path / "empty")
        commit = repo.track("empty", track_all=True)
        assert commit.parents == ()

    def test_discard(self, repo):
        repo.observe()
        repo.discard()
        with pytest.raises(NothingStaged):
            repo.track("nothing")

    def test_stale_staging_rejected(self, repo, project):
        old = repo.observe()
        repo.track("first")
        repo.staging.replace(old)
        (project / "README.md").write_text("edit\n")
        with pytest.raises(StaleStaging):
            repo.track("late")

    def test_track_all_picks_up_edits(self, repo, project):
        first = repo.track("first", track_all=True)
        (project / "README.md").write_text("edit\n")
        second = repo.track("second", track_all=True)
        assert second.parents == (first.digest,)
        assert [c.message for c in repo.log()] == ["second", "first"]
        assert [c.message for c in repo.log(1)] == ["second"]

    def test_staged_objects_written_before_track(self, repo):
        staged = repo.observe()
        assert repo.store.exists(ObjectKind.tree, staged.root)
        for change in staged.changes:
            assert repo.store.exists(ObjectKind.blob, change.digest)


class TestPartialObserve:
    def test_only_named_paths_staged(self, repo, project):
        repo.track("first", track_all=True)
        (project / "README.md").write_text("edit\n")
        (project / "src" / "main.py").write_text("print('bye')\n")
        staged = repo.observe([project / "src"])
        assert [c.path for c in staged.pending()] == ["src/main.py"]

    def test_track_keeps_unobserved_content(self, repo, project):
        repo.track("first", track_all=True)
        (project / "README.md").write_text("edit\n")
        (project / "docs" / "guide.md").write_text("# New guide\n")
        repo.observe([project / "docs"])
        second = repo.track("docs only")

        repo.fallback(second.digest[:10])
        assert (project / "README.md").read_text() == "# My project\n"
        assert (project / "docs" / "guide.md").read_text() == "# New guide\n"

    def test_paths_relative_to_cwd(self, repo, project, monkeypatch):
        repo.track("first", track_all=True)
        (project / "src" / "pkg" / "deep.py").write_text("VALUE = 2\n")
        (project / "src" / "main.py").write_text("print('bye')\n")
        monkeypatch.chdir(project / "src")
        staged = repo.status(["pkg"])
        assert [c.path for c in staged.pending()] == ["src/pkg/deep.py"]

    def test_deleted_path_can_be_named(self, repo, project):
        repo.track("first", track_all=True)
        (project / "docs" / "guide.md").unlink()
        staged = repo.status([project / "docs" / "guide.md"])
        assert {c.path: c.status for c in staged.pending()} == {
            "docs/guide.md": ChangeStatus.deleted
        }

    def test_root_path_observes_everything(self, repo, project):
        assert repo.scope_for([project]) is None
        assert repo.scope_for([]) is None
        staged = repo.status([project])
        assert staged.counts()[ChangeStatus.added] == 5

    def test_path_outside_repository(self, repo, tmp_path):
        with pytest.raises(ValueError, match="outside the repository"):
            repo.observe([tmp_path / "elsewhere"])
        assert repo.staging.current() is None

    def test_metadata_path_rejected(self, repo, project):
        with pytest.raises(ValueError, match="metadata directory"):
            repo.observe([project / ".gyat" / "HEAD"])


class TestInMemoryRepository:
    def test_runs_without_metadata_dir(self, project):
        repo = Repository(
            project,
            store=MemoryObjectStore(),
            head=MemoryHead(),
            staging=StagingArea(),
        )
        repo.observe()
        commit = repo.track("in memory")
        assert repo.head.read() == commit.digest
        assert not (project / ".gyat").exists()
