"""
Repository Abstraction Layer

Flat, path-addressed view of a hierarchical node store.
Implementations: ZipNodeRepository (read-only, folders served as zip archives).
"""

from __future__ import annotations

import io
import logging
from abc import ABC, abstractmethod
from contextlib import closing
from typing import BinaryIO, Callable, List, Optional

from flatrepo.backend import Session, StoreError
from flatrepo.config import RepositorySettings, get_settings
from flatrepo.core.archive import ArchiveSerializer
from flatrepo.core.artifacts import Artifact, FolderArtifact, ResourceArtifact, classify
from flatrepo.core.events import ChangeEventBridge
from flatrepo.core.history import VersionHistoryResolver, parse_version
from flatrepo.core.paths import join_path, normalize_path, resolve
from flatrepo.core.records import create_file_data
from flatrepo.errors import RepositoryIOError, UnsupportedOperationError
from flatrepo.models import Features, FileData, FileItem

logger = logging.getLogger(__name__)


class Repository(ABC):
    """
    Abstract base class for flat repositories.

    All implementations must provide:
    - listing, metadata and content reads by logical path
    - history listing and reads at a version
    - save/delete operations (which may be unsupported)
    - a single change listener
    """

    @abstractmethod
    def list(self, path: str) -> List[FileData]:
        """
        List the artifacts directly below a path.

        Names are relative logical paths with no leading slash, so children
        of the root come back as "project1" rather than "/project1". Both
        forms resolve to the same artifact.

        Args:
            path: Logical path prefix ("" for the root)

        Returns:
            List of FileData, empty if the path does not exist. Children
            that cannot be read are left out.
        """
        pass

    @abstractmethod
    def check(self, name: str) -> Optional[FileData]:
        """
        Get the current metadata of an artifact without its content.

        Returns:
            FileData or None if not found
        """
        pass

    @abstractmethod
    def read(self, name: str) -> Optional[FileItem]:
        """
        Get the current metadata and content of an artifact.

        Returns:
            FileItem or None if not found
        """
        pass

    @abstractmethod
    def save(self, data: FileData, stream: BinaryIO) -> FileData:
        pass

    @abstractmethod
    def save_batch(self, items: List[FileItem]) -> List[FileData]:
        pass

    @abstractmethod
    def delete(self, data: FileData) -> bool:
        pass

    @abstractmethod
    def set_listener(self, callback: Optional[Callable[[], None]]) -> None:
        """Register the single change callback; None removes it."""
        pass

    @abstractmethod
    def list_history(self, name: str) -> List[FileData]:
        """
        List the versions of an artifact.

        Returns:
            List of FileData in the store's version order
        """
        pass

    @abstractmethod
    def check_history(self, name: str, version: Optional[str]) -> Optional[FileData]:
        """
        Get the metadata of an artifact at a version.

        Args:
            name: Logical path
            version: Revision number as a string, None for the current state

        Raises:
            InvalidVersionFormat: if version is not a number
        """
        pass

    @abstractmethod
    def read_history(self, name: str, version: Optional[str]) -> Optional[FileItem]:
        """Get the metadata and content of an artifact at a version."""
        pass

    @abstractmethod
    def delete_history(self, data: FileData) -> bool:
        pass

    @abstractmethod
    def copy_history(self, src_name: str, dest_data: FileData, version: Optional[str]) -> FileData:
        pass

    @abstractmethod
    def supports(self) -> Features:
        """Capabilities of this repository."""
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ZipNodeRepository(Repository):
    """
    Read-only repository over a versioned node store session.

    Folders are served as zip archives of their subtree, resources as raw
    content. Nothing is cached; every call walks the tree again.
    """

    def __init__(self, session: Session, settings: Optional[RepositorySettings] = None):
        """
        Initialize the repository and start listening for store changes.

        Args:
            session: Live backing store session
            settings: Optional settings instance, uses cached settings if not provided
        """
        self.settings = settings or get_settings()
        self.session = session
        self.history = VersionHistoryResolver(
            hide_technical_revisions=self.settings.hide_technical_revisions
        )
        self.archiver = ArchiveSerializer(
            compression=self.settings.archive.compression,
            compress_level=self.settings.archive.compress_level,
        )
        self.events = ChangeEventBridge(listener_timeout=self.settings.listener_timeout)
        try:
            self.events.activate(session)
        except StoreError as e:
            raise RepositoryIOError(f"Failed to subscribe to repository changes: {e}") from e

    # ==================== Reads ====================

    def list(self, path: str) -> List[FileData]:
        path = normalize_path(path)
        try:
            node = resolve(self.session.root_node, path)
            if node is None:
                return []
            parent = FolderArtifact(node, tuple(path.split("/")) if path else ())
            projects = self._child_folders(parent)

            if path == self.settings.deploy_prefix:
                entries = []
                for deployment in projects:
                    prefix = join_path(path, deployment.name)
                    for artifact in self._child_folders(deployment, quiet=True):
                        entries.append((join_path(prefix, artifact.name), artifact))
            else:
                entries = [(join_path(path, project.name), project) for project in projects]
        except StoreError as e:
            raise RepositoryIOError(f"Failed to list '{path}': {e}") from e

        result = []
        for name, artifact in entries:
            try:
                result.append(create_file_data(name, artifact))
            except StoreError as e:
                logger.debug(f"Skipping '{name}' in listing: {e}", extra={"path": name})
        return result

    def check(self, name: str) -> Optional[FileData]:
        name = normalize_path(name)
        try:
            artifact = self._get_artifact(name)
            if artifact is None:
                return None
            return create_file_data(name, artifact)
        except StoreError as e:
            raise RepositoryIOError(f"Failed to get an artifact '{name}': {e}") from e

    def read(self, name: str) -> Optional[FileItem]:
        name = normalize_path(name)
        try:
            artifact = self._get_artifact(name)
            if artifact is None:
                return None
            return self._create_file_item(name, artifact)
        except StoreError as e:
            raise RepositoryIOError(f"Failed to read an artifact '{name}': {e}") from e

    # ==================== History ====================

    def list_history(self, name: str) -> List[FileData]:
        name = normalize_path(name)
        try:
            artifact = self._get_artifact(name)
            if not isinstance(artifact, FolderArtifact):
                return []
            return self.history.list_history(name, artifact)
        except StoreError as e:
            raise RepositoryIOError(f"Failed to list history of '{name}': {e}") from e

    def check_history(self, name: str, version: Optional[str]) -> Optional[FileData]:
        if version is None:
            return self.check(name)
        revision = parse_version(version)
        name = normalize_path(name)
        try:
            artifact = self._get_artifact(name)
            if not isinstance(artifact, FolderArtifact):
                return None
            return create_file_data(name, artifact.at_version(revision))
        except StoreError as e:
            raise RepositoryIOError(f"Failed to get version {version} of '{name}': {e}") from e

    def read_history(self, name: str, version: Optional[str]) -> Optional[FileItem]:
        if version is None:
            return self.read(name)
        revision = parse_version(version)
        name = normalize_path(name)
        try:
            artifact = self._get_artifact(name)
            if not isinstance(artifact, FolderArtifact):
                return None
            return self._create_file_item(name, artifact.at_version(revision))
        except StoreError as e:
            raise RepositoryIOError(f"Failed to read version {version} of '{name}': {e}") from e

    # ==================== Unsupported writes ====================

    def save(self, data: FileData, stream: BinaryIO) -> FileData:
        raise UnsupportedOperationError("save")

    def save_batch(self, items: List[FileItem]) -> List[FileData]:
        raise UnsupportedOperationError("save")

    def delete(self, data: FileData) -> bool:
        raise UnsupportedOperationError("delete")

    def delete_history(self, data: FileData) -> bool:
        raise UnsupportedOperationError("deleteHistory")

    def copy_history(self, src_name: str, dest_data: FileData, version: Optional[str]) -> FileData:
        raise UnsupportedOperationError("copyHistory")

    # ==================== Lifecycle ====================

    def set_listener(self, callback: Optional[Callable[[], None]]) -> None:
        self.events.set_listener(callback)

    def supports(self) -> Features:
        return Features(versions=True, mutable=False)

    def close(self) -> None:
        self.set_listener(None)
        self.events.deactivate()
        try:
            if self.session.is_live():
                self.session.logout()
        except StoreError as e:
            logger.debug(f"release: {e}")

    # ==================== Helpers ====================

    def _get_artifact(self, name: str) -> Optional[Artifact]:
        node = resolve(self.session.root_node, name)
        if node is None:
            return None
        return classify(node, name)

    def _child_folders(self, folder: FolderArtifact, quiet: bool = False) -> List[FolderArtifact]:
        try:
            children = folder.children()
        except StoreError as e:
            if not quiet:
                raise
            logger.debug(f"Failed to get children of '{'/'.join(folder.path)}': {e}")
            return []
        return [child for child in children if isinstance(child, FolderArtifact)]

    def _create_file_item(self, name: str, artifact: Artifact) -> FileItem:
        data = create_file_data(name, artifact)
        if isinstance(artifact, ResourceArtifact):
            with closing(artifact.open()) as content:
                return FileItem(data, io.BytesIO(content.read()))
        return FileItem(data, self.archiver.open_archive(artifact), content_type="application/zip")
