"""Revision lookup and history listings for folder artifacts."""

from __future__ import annotations

import logging
from typing import List, Optional

from flatrepo.core.artifacts import FolderArtifact
from flatrepo.core.records import create_file_data
from flatrepo.errors import InvalidVersionFormat
from flatrepo.models import FileData

logger = logging.getLogger(__name__)


def parse_version(token: Optional[str]) -> Optional[int]:
    """
    Parse a caller supplied version token.

    None means the current state and is returned unchanged.

    Raises:
        InvalidVersionFormat: if the token is not an integer
    """
    if token is None:
        return None
    try:
        return int(str(token).strip())
    except ValueError:
        raise InvalidVersionFormat(token) from None


def is_technical_revision(data: FileData) -> bool:
    """Internal checkpoint revision: an empty folder saved without a comment.

    A folder with content has an unknown size (None) and never matches.
    """
    return data.size == 0 and not (data.comment or "").strip()


class VersionHistoryResolver:
    """Enumerates and selects revisions of folder artifacts."""

    def __init__(self, hide_technical_revisions: bool = True):
        self.hide_technical_revisions = hide_technical_revisions

    def list_history(self, name: str, folder: FolderArtifact) -> List[FileData]:
        """
        One record per stored revision, in the store's native order.

        Args:
            name: Logical name to report in each record
            folder: Folder whose history is listed

        Raises:
            StoreError: if the store fails to produce a revision
        """
        revisions = folder.versions()
        if not revisions:
            return []

        result = []
        for revision in revisions:
            data = create_file_data(name, folder.at_version(revision))
            if self.hide_technical_revisions and is_technical_revision(data):
                logger.debug(f"Skipping technical revision {revision} of '{name}'")
                continue
            result.append(data)
        return result

    def resolve_version(self, folder: FolderArtifact, token: Optional[str]) -> FolderArtifact:
        """
        Folder at the requested version; None selects the current state.

        Raises:
            InvalidVersionFormat: if token is not a number
            VersionNotFound: if the revision does not exist
        """
        revision = parse_version(token)
        if revision is None:
            return folder
        return folder.at_version(revision)
