"""Logical path handling and node tree walking."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from flatrepo.backend import Node, NodeType

logger = logging.getLogger(__name__)


def split_path(path: Optional[str]) -> Tuple[str, ...]:
    """Split a logical path into its non-empty segments.

    Leading, trailing and repeated slashes never produce segments, so
    "a//b/" and "/a/b" both give ("a", "b"). The root is ().
    """
    if not path:
        return ()
    return tuple(segment for segment in path.split("/") if segment)


def normalize_path(path: Optional[str]) -> str:
    """Canonical string form of a logical path ("a/b")."""
    return "/".join(split_path(path))


def join_path(parent: str, name: str) -> str:
    """Append a child name to a logical path; the root has no prefix."""
    return f"{parent}/{name}" if parent else name


def resolve(root: Node, path: Optional[str], create_if_missing: bool = False) -> Optional[Node]:
    """
    Walk a logical path down from root.

    Args:
        root: Node to start from
        path: Slash separated logical path
        create_if_missing: Create missing segments as folder nodes

    Returns:
        The node at path, or None if a segment is missing and
        create_if_missing is False

    Raises:
        StoreError: if the backing store fails
    """
    node = root
    for segment in split_path(path):
        if node.has_node(segment):
            node = node.get_node(segment)
        elif create_if_missing:
            child = node.add_node(segment, NodeType.FOLDER)
            node.save()
            child.save()
            logger.debug(f"Created folder node '{segment}' while resolving '{path}'")
            node = child
        else:
            return None
    return node
