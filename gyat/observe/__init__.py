"""Observe: scan the working tree and diff it against the head tree."""

from gyat.observe.differ import TreeDiffer
from gyat.observe.models import Change, ChangeStatus, StagedState
from gyat.observe.scanner import WorkingDir, scan_working_tree

__all__ = [
    "Change",
    "ChangeStatus",
    "StagedState",
    "TreeDiffer",
    "WorkingDir",
    "scan_working_tree",
]
