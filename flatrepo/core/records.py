"""Summary records for artifacts."""

from __future__ import annotations

from flatrepo.backend import Props
from flatrepo.core.artifacts import Artifact, FolderArtifact
from flatrepo.models import FileData


def create_file_data(name: str, artifact: Artifact) -> FileData:
    """
    Describe an artifact under a logical name.

    Folders with content report no size: it equals the size of the zip
    archive, which is only known once the archive is built.
    """
    data = FileData(name=name)

    if isinstance(artifact, FolderArtifact):
        if artifact.is_empty():
            data.size = 0
    else:
        data.size = artifact.size()

    data.deleted = artifact.has_property(Props.MARKED_FOR_DELETION)

    if artifact.has_property(Props.VERSION_COMMENT):
        data.comment = str(artifact.get_property(Props.VERSION_COMMENT))

    info = artifact.version_info()
    data.author = info.created_by
    data.modified_at = info.created_at
    data.version = str(info.revision)
    return data
