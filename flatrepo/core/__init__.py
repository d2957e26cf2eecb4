"""
Tree-to-flat projection engine.

- paths: logical path splitting and node tree walking
- artifacts: node classification into folders and resources
- records: summary records for artifacts
- history: revision lookup and history listings
- archive: zip serialization of folder subtrees
- events: change notification bridge
"""

from flatrepo.core.archive import ArchiveSerializer
from flatrepo.core.artifacts import Artifact, FolderArtifact, ResourceArtifact, classify
from flatrepo.core.events import ChangeEventBridge
from flatrepo.core.history import VersionHistoryResolver, is_technical_revision, parse_version
from flatrepo.core.paths import join_path, normalize_path, resolve, split_path
from flatrepo.core.records import create_file_data

__all__ = [
    "ArchiveSerializer",
    "Artifact",
    "FolderArtifact",
    "ResourceArtifact",
    "classify",
    "ChangeEventBridge",
    "VersionHistoryResolver",
    "is_technical_revision",
    "parse_version",
    "join_path",
    "normalize_path",
    "resolve",
    "split_path",
    "create_file_data",
]
