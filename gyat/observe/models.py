"""Models for the result of an observe pass."""

from __future__ import annotations

from collections import Counter
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from gyat.objects.models import ObjectKind


class ChangeStatus(str, Enum):
    """How a path compares to the head commit's tree."""

    unchanged = "unchanged"
    added = "added"
    modified = "modified"
    deleted = "deleted"
    kind_changed = "kind-changed"


class Change(BaseModel):
    """One path in the change list.

    ``kind``/``digest`` describe the working tree; ``previous_kind``/``previous``
    describe the head tree. Deleted paths have no current side, added paths no
    previous side.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    status: ChangeStatus
    kind: ObjectKind | None = None
    digest: str | None = None
    previous_kind: ObjectKind | None = None
    previous: str | None = None


class StagedState(BaseModel):
    """A staged root tree plus the change list that produced it."""

    model_config = ConfigDict(frozen=True)

    version: int = 1
    base: str | None = Field(default=None, description="Head digest the pass compared against")
    root: str
    changes: tuple[Change, ...] = ()

    @property
    def has_changes(self) -> bool:
        return any(c.status is not ChangeStatus.unchanged for c in self.changes)

    def counts(self) -> dict[ChangeStatus, int]:
        counter = Counter(c.status for c in self.changes)
        return {status: counter.get(status, 0) for status in ChangeStatus}

    def with_status(self, *statuses: ChangeStatus) -> list[Change]:
        return [c for c in self.changes if c.status in statuses]

    def pending(self) -> list[Change]:
        """Every change that is not ``unchanged``."""
        return [c for c in self.changes if c.status is not ChangeStatus.unchanged]
