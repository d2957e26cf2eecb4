"""
Backing Store Contracts

Abstract interfaces for the hierarchical, versioned node store that
flatrepo reads from. Concrete stores live outside this package; the
repository only ever talks to these contracts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntFlag
from typing import Any, BinaryIO, Callable, Iterable, Iterator, Optional, Sequence


class StoreError(Exception):
    """Failure raised by a backing store (I/O, protocol, repository state)."""


class VersionNotFound(StoreError):
    """A well-formed revision number that the store does not know."""

    def __init__(self, revision: int, path: str = ""):
        super().__init__(f"Version {revision} not found for '{path}'")
        self.revision = revision
        self.path = path


class NodeType:
    """Node type names understood by the store."""

    FOLDER = "flat:folder"
    PROJECT = "flat:project"
    FILE = "flat:file"
    LOCK = "flat:lock"
    # Super type of every versioned entity; change events are filtered on it
    COMMON_ENTITY = "flat:entity"


class Props:
    """Well known node property names."""

    VERSION_COMMENT = "flat:versionComment"
    MARKED_FOR_DELETION = "flat:markedForDeletion"
    REVISION = "flat:revision"
    CREATED_BY = "flat:createdBy"
    CREATED_AT = "flat:createdAt"


class EventType(IntFlag):
    """Raw change notification kinds."""

    NODE_ADDED = 1
    NODE_REMOVED = 2
    PROPERTY_ADDED = 4
    PROPERTY_REMOVED = 8
    PROPERTY_CHANGED = 16


@dataclass(frozen=True)
class Event:
    """A single low-level change notification."""

    type: EventType
    path: str
    property_name: Optional[str] = None


EventListener = Callable[[Iterable[Event]], None]


class Node(ABC):
    """
    Handle to a node in the backing store.

    Handles are session scoped. flatrepo never mutates node content; the
    only write it performs is creating intermediate folders on request.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Node name (last path segment)."""
        pass

    @abstractmethod
    def is_node_type(self, node_type: str) -> bool:
        """Whether the node is of the given type or a subtype of it."""
        pass

    # ==================== Children ====================

    @abstractmethod
    def has_node(self, name: str) -> bool:
        pass

    @abstractmethod
    def get_node(self, name: str) -> "Node":
        """Get a direct child. Raises StoreError if it does not exist."""
        pass

    @abstractmethod
    def get_nodes(self) -> Iterator["Node"]:
        """Iterate direct children in the store's native order."""
        pass

    @abstractmethod
    def add_node(self, name: str, node_type: str) -> "Node":
        """Create a direct child of the given type (unsaved)."""
        pass

    @abstractmethod
    def save(self) -> None:
        """Persist pending changes of this node."""
        pass

    # ==================== Properties ====================

    @abstractmethod
    def has_property(self, name: str) -> bool:
        pass

    @abstractmethod
    def get_property(self, name: str) -> Any:
        """Get a property value. Raises StoreError if it is not set."""
        pass

    # ==================== Versions ====================

    @abstractmethod
    def get_versions(self) -> Sequence[int]:
        """Revision numbers of the stored versions, in native order."""
        pass

    @abstractmethod
    def get_version(self, revision: int) -> "Node":
        """
        Get the frozen state of this node at a revision.

        Raises:
            VersionNotFound: if the revision does not exist
        """
        pass

    # ==================== Content ====================

    @abstractmethod
    def get_content(self) -> BinaryIO:
        """Open the binary content of a file node."""
        pass

    @abstractmethod
    def get_content_length(self) -> Optional[int]:
        """Content length in bytes, or None if the store cannot tell."""
        pass


class ObservationManager(ABC):
    """Raw change feed of the backing store."""

    @abstractmethod
    def add_event_listener(
        self,
        listener: EventListener,
        event_types: EventType,
        abs_path: str,
        is_deep: bool,
        node_type_names: Optional[Sequence[str]] = None,
    ) -> None:
        """
        Register a listener for batches of events.

        Args:
            listener: Called with each batch of matching events
            event_types: Bit mask of EventType values to deliver
            abs_path: Root of the observed subtree
            is_deep: Whether to observe the whole subtree below abs_path
            node_type_names: Only deliver events on nodes of these types
        """
        pass

    @abstractmethod
    def remove_event_listener(self, listener: EventListener) -> None:
        pass


class Session(ABC):
    """Authenticated connection to the backing store."""

    @property
    @abstractmethod
    def root_node(self) -> Node:
        pass

    @property
    @abstractmethod
    def observation_manager(self) -> ObservationManager:
        pass

    @abstractmethod
    def is_live(self) -> bool:
        pass

    @abstractmethod
    def logout(self) -> None:
        pass
