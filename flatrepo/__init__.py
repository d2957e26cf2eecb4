"""
flatrepo: flat, read-only repository view of a versioned node store.

Contains:
- backend: abstract contracts of the backing node store
- core: path walking, classification, history, archiving and change events
- repository: the Repository contract and the ZipNodeRepository facade
- api: FastAPI read surface
- config: Pydantic settings and logging setup
"""

from flatrepo.errors import (
    InvalidVersionFormat,
    RepositoryError,
    RepositoryIOError,
    UnsupportedOperationError,
)
from flatrepo.models import Features, FileData, FileItem, VersionInfo
from flatrepo.repository import Repository, ZipNodeRepository

__all__ = [
    # Errors
    "InvalidVersionFormat",
    "RepositoryError",
    "RepositoryIOError",
    "UnsupportedOperationError",
    # Models
    "Features",
    "FileData",
    "FileItem",
    "VersionInfo",
    # Repository
    "Repository",
    "ZipNodeRepository",
]
