"""Shared test fixtures for gyat."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from gyat.graph import CommitGraph, MemoryHead
from gyat.objects import MemoryObjectStore
from gyat.repository import Repository


@pytest.fixture(autouse=True)
def isolated_home(tmp_path_factory, monkeypatch):
    """Keep a user-global ~/.gyat/config.yaml out of every test."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def memory_store():
    return MemoryObjectStore()


@pytest.fixture
def memory_head():
    return MemoryHead()


class TickingClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        current = self.now
        self.now += timedelta(seconds=1)
        return current


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def graph(memory_store, memory_head, clock):
    return CommitGraph(memory_store, memory_head, clock=clock)


def _make_project(root: Path) -> None:
    """Create a small project with nested directories."""
    (root / "src" / "pkg").mkdir(parents=True)
    (root / "src" / "main.py").write_text("print('hello')\n")
    (root / "src" / "util.py").write_text("def helper():\n    pass\n")
    (root / "src" / "pkg" / "deep.py").write_text("VALUE = 1\n")
    (root / "docs").mkdir()
    (root / "docs" / "guide.md").write_text("# Guide\n")
    (root / "README.md").write_text("# My project\n")


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "work"
    root.mkdir()
    _make_project(root)
    return root


@pytest.fixture
def repo(project):
    """A repository created over the sample project, nothing tracked yet."""
    return Repository.create(project)
