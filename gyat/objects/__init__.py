"""Object model, canonical encodings and the content-addressed store."""

from gyat.objects.codec import (
    compute_digest,
    compute_file_digest,
    decode_commit,
    decode_tree,
    encode_commit,
    encode_tree,
    tree_digest,
)
from gyat.objects.models import Commit, ObjectKind, Tree, TreeEntry, is_digest
from gyat.objects.store import (
    FileObjectStore,
    MemoryObjectStore,
    ObjectStore,
    iter_tree,
    read_commit,
    read_tree,
    write_commit,
    write_tree,
)

__all__ = [
    "Commit",
    "FileObjectStore",
    "MemoryObjectStore",
    "ObjectKind",
    "ObjectStore",
    "Tree",
    "TreeEntry",
    "compute_digest",
    "compute_file_digest",
    "decode_commit",
    "decode_tree",
    "encode_commit",
    "encode_tree",
    "is_digest",
    "iter_tree",
    "read_commit",
    "read_tree",
    "tree_digest",
    "write_commit",
    "write_tree",
]
