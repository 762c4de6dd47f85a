"""Exception hierarchy for gyat.

Every error raised by the core derives from :class:`GyatError` and carries
enough context (path, digest, operation) for the caller to diagnose it.
"""

from __future__ import annotations

from pathlib import Path


class GyatError(Exception):
    """Base class for all gyat errors."""


class RepositoryNotFound(GyatError):
    def __init__(self, path: Path | str) -> None:
        self.path = str(path)
        super().__init__(f"not a gyat repository (or any parent): {self.path}")


class RepositoryExists(GyatError):
    def __init__(self, path: Path | str) -> None:
        self.path = str(path)
        super().__init__(f"already inside a gyat repository: {self.path}")


class ObjectNotFound(GyatError):
    """Object store lookup miss."""

    def __init__(self, kind: str, digest: str) -> None:
        self.kind = kind
        self.digest = digest
        super().__init__(f"{kind} object not found: {digest}")


class CorruptObject(GyatError):
    """Stored bytes could not be decompressed or decoded."""

    def __init__(self, kind: str, digest: str, reason: str) -> None:
        self.kind = kind
        self.digest = digest
        self.reason = reason
        super().__init__(f"corrupt {kind} object {digest}: {reason}")


class UnsupportedEntry(GyatError):
    """Working-tree entry of a kind the object model cannot represent."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"unsupported entry {self.path}: {reason}")


class NothingToCommit(GyatError):
    def __init__(self, message: str = "nothing to commit, working tree matches head") -> None:
        super().__init__(message)


class NothingStaged(NothingToCommit):
    def __init__(self) -> None:
        super().__init__("nothing staged, run observe first")


class StaleStaging(GyatError):
    """Staged state was computed against a head that has since moved."""

    def __init__(self, staged_base: str | None, head: str | None) -> None:
        self.staged_base = staged_base
        self.head = head
        super().__init__(
            f"staged changes were observed against {staged_base or '<none>'} "
            f"but head is now {head or '<none>'}, run observe again"
        )


class CommitNotFound(GyatError):
    def __init__(self, prefix: str) -> None:
        self.prefix = prefix
        super().__init__(f"no commit matches {prefix!r}")


class AmbiguousHash(GyatError):
    def __init__(self, prefix: str, matches: list[str]) -> None:
        self.prefix = prefix
        self.matches = list(matches)
        listed = ", ".join(m[:12] for m in self.matches)
        super().__init__(f"hash prefix {prefix!r} is ambiguous: {listed}")


class IOFailure(GyatError):
    """Wraps an underlying filesystem failure with the operation that hit it."""

    def __init__(self, operation: str, path: Path | str, cause: OSError) -> None:
        self.operation = operation
        self.path = str(path)
        super().__init__(f"{operation} failed for {self.path}: {cause}")
        self.__cause__ = cause


class WorkingTreeConflict(GyatError):
    """Restoring a commit would overwrite untracked content in the working tree."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"cannot restore {self.path}: {reason}")
