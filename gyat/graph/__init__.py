"""Head reference and commit graph."""

from gyat.graph.commits import CommitGraph
from gyat.graph.head import FileHead, HeadRef, MemoryHead

__all__ = [
    "CommitGraph",
    "FileHead",
    "HeadRef",
    "MemoryHead",
]
