"""gyat - a small local version-control engine.

Records snapshots of a directory tree in a content-addressed object store,
diffs the working tree against the last snapshot and restores earlier ones.
"""

from gyat.config import GyatConfig, load_config
from gyat.errors import (
    AmbiguousHash,
    CommitNotFound,
    GyatError,
    IOFailure,
    NothingStaged,
    NothingToCommit,
    ObjectNotFound,
    UnsupportedEntry,
    WorkingTreeConflict,
)
from gyat.objects import Commit, ObjectKind, Tree, TreeEntry
from gyat.observe import Change, ChangeStatus, StagedState
from gyat.repository import Repository, find_repo_root

__version__ = "0.1.0"

__all__ = [
    "AmbiguousHash",
    "Change",
    "ChangeStatus",
    "Commit",
    "CommitNotFound",
    "GyatConfig",
    "GyatError",
    "IOFailure",
    "NothingStaged",
    "NothingToCommit",
    "ObjectKind",
    "ObjectNotFound",
    "Repository",
    "StagedState",
    "Tree",
    "TreeEntry",
    "UnsupportedEntry",
    "WorkingTreeConflict",
    "find_repo_root",
    "load_config",
]
