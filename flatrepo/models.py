"""
Repository data contracts.

Plain records returned by listing, check and read operations.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Optional


@dataclass
class VersionInfo:
    """Revision metadata of a node at its current state."""
    revision: int
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class FileData:
    """Summary of an artifact (current or historical)."""
    name: str  # Full logical path, e.g. "project/sub"
    size: Optional[int] = None  # None when only known after archiving
    author: Optional[str] = None
    modified_at: Optional[datetime] = None
    version: Optional[str] = None
    comment: Optional[str] = None
    deleted: bool = False


@dataclass
class FileItem:
    """An artifact summary together with its content stream."""
    data: FileData
    stream: BinaryIO
    content_type: str = "application/octet-stream"  # application/zip for folders

    def close(self) -> None:
        self.stream.close()

    def __enter__(self) -> "FileItem":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


@dataclass(frozen=True)
class Features:
    """Capabilities advertised by a repository."""
    versions: bool = True
    mutable: bool = False
