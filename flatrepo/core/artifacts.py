"""
Artifact classification.

Turns raw store nodes into the two caller-facing artifact kinds: folders
(projects, deployments and plain folders) and resources (file nodes).
Lock markers are internal bookkeeping and never become artifacts.
"""

from __future__ import annotations

import logging
from typing import Any, BinaryIO, List, Optional, Sequence, Tuple, Union

from flatrepo.backend import Node, NodeType, Props, StoreError
from flatrepo.core.paths import split_path
from flatrepo.models import VersionInfo

logger = logging.getLogger(__name__)


class _BaseArtifact:
    __slots__ = ("_node", "_path")

    def __init__(self, node: Node, path: Tuple[str, ...]):
        self._node = node
        self._path = path

    @property
    def node(self) -> Node:
        return self._node

    @property
    def path(self) -> Tuple[str, ...]:
        """Logical path segments of the artifact."""
        return self._path

    @property
    def name(self) -> str:
        return self._node.name

    def has_property(self, name: str) -> bool:
        return self._node.has_property(name)

    def get_property(self, name: str) -> Any:
        return self._node.get_property(name)

    def version_info(self) -> VersionInfo:
        """Revision metadata, read from the node every time it is asked for."""
        node = self._node
        revision = int(node.get_property(Props.REVISION)) if node.has_property(Props.REVISION) else 0
        created_by = node.get_property(Props.CREATED_BY) if node.has_property(Props.CREATED_BY) else None
        created_at = node.get_property(Props.CREATED_AT) if node.has_property(Props.CREATED_AT) else None
        return VersionInfo(revision=revision, created_by=created_by, created_at=created_at)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({'/'.join(self._path)!r})"


class ResourceArtifact(_BaseArtifact):
    """A leaf file with readable content."""

    __slots__ = ()

    def open(self) -> BinaryIO:
        """Open the content stream. The caller must close it."""
        return self._node.get_content()

    def size(self) -> Optional[int]:
        return self._node.get_content_length()


class FolderArtifact(_BaseArtifact):
    """A folder-shaped artifact with children and revision history."""

    __slots__ = ()

    def children(self) -> List["Artifact"]:
        """
        Classified children in the store's native order.

        Children that cannot be classified are skipped. A failure to
        enumerate this folder's own children is raised.
        """
        result: List[Artifact] = []
        for child in self._node.get_nodes():
            try:
                artifact = _classify_child(child, self._path)
            except StoreError as e:
                logger.debug(f"Failed to get a child node of '{'/'.join(self._path)}': {e}")
                continue
            if artifact is not None:
                result.append(artifact)
        return result

    def is_empty(self) -> bool:
        return not self.children()

    def versions(self) -> Sequence[int]:
        return self._node.get_versions()

    def versions_count(self) -> int:
        return len(self._node.get_versions())

    def at_version(self, revision: int) -> "FolderArtifact":
        """
        Frozen state of this folder at a revision.

        Raises:
            VersionNotFound: if the store has no such revision
        """
        return FolderArtifact(self._node.get_version(revision), self._path)


Artifact = Union[FolderArtifact, ResourceArtifact]


def classify(node: Node, path: Union[str, Sequence[str]]) -> Optional[Artifact]:
    """
    Classify a node addressed by a caller.

    Args:
        node: Resolved store node
        path: Logical path the node was resolved from

    Returns:
        ResourceArtifact for file nodes, None for lock markers,
        FolderArtifact otherwise
    """
    segments = split_path(path) if isinstance(path, str) else tuple(path)
    if node.is_node_type(NodeType.LOCK):
        logger.error(f"Incorrect node type {NodeType.LOCK} at '{'/'.join(segments)}'")
        return None
    return _build(node, segments)


def _classify_child(node: Node, parent_path: Tuple[str, ...]) -> Optional[Artifact]:
    if node.is_node_type(NodeType.LOCK):
        return None
    return _build(node, parent_path + (node.name,))


def _build(node: Node, segments: Tuple[str, ...]) -> Artifact:
    if node.is_node_type(NodeType.FILE):
        return ResourceArtifact(node, segments)
    return FolderArtifact(node, segments)
