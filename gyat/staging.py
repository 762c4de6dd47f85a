"""Staging area: the single provisional result of the last observe pass.

On disk the staged state lives as JSON in the metadata ``index`` file so that
observe and track can run as separate invocations. Staged state is always
recomputable, so an unreadable index is treated as nothing staged.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from gyat.errors import IOFailure, NothingStaged, StaleStaging
from gyat.graph.head import atomic_write
from gyat.objects.models import Commit
from gyat.observe.models import StagedState

if TYPE_CHECKING:
    from gyat.graph.commits import CommitGraph

logger = logging.getLogger(__name__)


class StagingArea:
    """Holds exactly one staged state at a time, or none.

    With *path* set, every change is written through to that file; without it
    the area is purely in memory.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = Path(path) if path is not None else None
        self._state: StagedState | None = None
        self._loaded = self.path is None

    def _load(self) -> StagedState | None:
        try:
            raw = self.path.read_text()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise IOFailure("read index", self.path, e) from e
        if not raw.strip():
            return None
        try:
            return StagedState.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("ignoring unreadable index %s: %s", self.path, e)
            return None

    def current(self) -> StagedState | None:
        if not self._loaded:
            self._state = self._load()
            self._loaded = True
        return self._state

    def replace(self, state: StagedState) -> None:
        """Swap in the result of a new observe pass, dropping any previous one."""
        if self.path is not None:
            atomic_write(self.path, state.model_dump_json(indent=2).encode("utf-8"), "write index")
        self._state = state
        self._loaded = True

    def discard(self) -> None:
        """Forget the staged state. Objects it stored stay in the store."""
        if self.path is not None:
            atomic_write(self.path, b"", "clear index")
        self._state = None
        self._loaded = True

    def require(self, head: str | None) -> StagedState:
        """Return the staged state, checking it was computed against *head*."""
        state = self.current()
        if state is None:
            raise NothingStaged()
        if state.base != head:
            raise StaleStaging(state.base, head)
        return state

    def commit(self, message: str, graph: CommitGraph) -> Commit:
        """Finalize the staged state into a commit on *graph* and clear it."""
        state = self.require(graph.head.read())
        commit = graph.commit(state.root, message)
        self.discard()
        return commit
