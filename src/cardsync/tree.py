"""Low-level tree manipulation for the in-process object store.

Provides path normalization and a recursive tree rebuild on top of
dulwich's object model. SHAs are 40-char hex ``bytes`` (dulwich native).
"""

from __future__ import annotations

import os
from collections import defaultdict

from dulwich.objects import Tree

GIT_FILEMODE_TREE = 0o040000
GIT_FILEMODE_BLOB = 0o100644
GIT_FILEMODE_BLOB_EXECUTABLE = 0o100755


def _normalize_path(path: str | os.PathLike[str]) -> str:
    """Normalize a path: strip leading/trailing slashes, reject bad segments."""
    path = os.fspath(path)
    if os.name == "nt":
        path = path.replace("\\", "/")
    path = path.strip("/")
    if not path:
        raise ValueError("Path must not be empty")
    segments = path.split("/")
    for seg in segments:
        if not seg:
            raise ValueError(f"Empty segment in path: {path!r}")
        if seg in (".", ".."):
            raise ValueError(f"Invalid path segment: {seg!r}")
    return "/".join(segments)


def rebuild_tree(object_store, base_tree_id: bytes | None, writes: dict[str, tuple[bytes, int]]) -> bytes:
    """Rebuild a tree with *writes* applied on top of *base_tree_id*.

    Only the ancestor chain from changed leaves to root is rebuilt.
    Sibling subtrees are shared by hash reference.

    Args:
        object_store: dulwich object store holding the trees and blobs.
        base_tree_id: SHA of the existing tree (or None for empty).
        writes: Mapping of normalized path to ``(blob_sha, filemode)``.

    Returns:
        SHA of the new root tree.
    """
    sub_writes: dict[str, dict[str, tuple[bytes, int]]] = defaultdict(dict)
    leaf_writes: dict[str, tuple[bytes, int]] = {}
    for path, value in writes.items():
        parts = path.split("/", 1)
        if len(parts) == 1:
            leaf_writes[parts[0]] = value
        else:
            sub_writes[parts[0]][parts[1]] = value

    tree = Tree()
    existing: dict[str, tuple[int, bytes]] = {}
    if base_tree_id is not None:
        for entry in object_store[base_tree_id].iteritems():
            tree.add(entry.path, entry.mode, entry.sha)
            existing[entry.path.decode()] = (entry.mode, entry.sha)

    for name, (sha, mode) in leaf_writes.items():
        tree.add(name.encode(), mode, sha)

    for subdir, writes_below in sub_writes.items():
        current = existing.get(subdir)
        # A blob at this name is replaced by the new subtree
        base_sub = current[1] if current and current[0] == GIT_FILEMODE_TREE else None
        tree.add(subdir.encode(), GIT_FILEMODE_TREE, rebuild_tree(object_store, base_sub, writes_below))

    object_store.add_object(tree)
    return tree.id


def entry_at_path(object_store, tree_id: bytes, path: str) -> tuple[bytes, int] | None:
    """Return ``(sha, filemode)`` of the entry at *path*, or None if missing."""
    segments = path.split("/")
    tree = object_store[tree_id]
    for i, seg in enumerate(segments):
        if not isinstance(tree, Tree):
            return None
        try:
            mode, sha = tree[seg.encode()]
        except KeyError:
            return None
        if i < len(segments) - 1:
            tree = object_store[sha]
        else:
            return (sha, mode)
    return None


def flatten_tree(object_store, tree_id: bytes | None, prefix: str = "") -> dict[str, tuple[bytes, int]]:
    """Map every blob path under *tree_id* to ``(sha, filemode)``."""
    if tree_id is None:
        return {}
    result: dict[str, tuple[bytes, int]] = {}
    for entry in object_store[tree_id].iteritems():
        name = entry.path.decode()
        child = f"{prefix}/{name}" if prefix else name
        if entry.mode == GIT_FILEMODE_TREE:
            result.update(flatten_tree(object_store, entry.sha, child))
        else:
            result[child] = (entry.sha, entry.mode)
    return result
