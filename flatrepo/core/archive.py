"""
Zip serialization of folder subtrees.

Every resource below the folder becomes one zip entry named after its
position relative to the folder ("sub/leaf.txt"). Folders only appear
implicitly through entry names.
"""

from __future__ import annotations

import io
import logging
import zipfile
from contextlib import closing
from typing import Optional

from flatrepo.backend import StoreError
from flatrepo.core.artifacts import FolderArtifact, ResourceArtifact

logger = logging.getLogger(__name__)

# Fixed entry timestamp so that an unchanged subtree gives identical archives
ENTRY_DATE_TIME = (1980, 1, 1, 0, 0, 0)

COMPRESSION_METHODS = {
    "deflated": zipfile.ZIP_DEFLATED,
    "stored": zipfile.ZIP_STORED,
}


class ArchiveSerializer:
    """Builds an in-memory zip archive of a folder artifact."""

    def __init__(self, compression: str = "deflated", compress_level: Optional[int] = None):
        """
        Args:
            compression: 'deflated' or 'stored'
            compress_level: Deflate level 0-9, None for the zlib default
        """
        try:
            self.compression = COMPRESSION_METHODS[compression]
        except KeyError:
            raise ValueError(f"Unknown archive compression: {compression}") from None
        self.compress_level = compress_level

    def serialize(self, folder: FolderArtifact) -> bytes:
        """
        Zip the whole subtree of folder.

        The archive is complete (central directory written) on return.

        Raises:
            StoreError: if the children of folder itself cannot be read
        """
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, mode="w", compression=self.compression) as zf:
            self._write_folder(zf, folder, "", root=True)
        return buffer.getvalue()

    def open_archive(self, folder: FolderArtifact) -> io.BytesIO:
        """Serialize folder and return the archive as a readable stream."""
        return io.BytesIO(self.serialize(folder))

    def _write_folder(self, zf: zipfile.ZipFile, folder: FolderArtifact, prefix: str, root: bool = False) -> None:
        try:
            children = folder.children()
        except StoreError as e:
            if root:
                raise
            logger.warning(f"Skipping unreadable folder '{prefix}' in archive: {e}")
            return

        for child in children:
            if isinstance(child, ResourceArtifact):
                self._write_resource(zf, child, prefix + child.name)
            else:
                self._write_folder(zf, child, prefix + child.name + "/")

    def _write_resource(self, zf: zipfile.ZipFile, resource: ResourceArtifact, entry_name: str) -> None:
        # Drain the content before writing so a failed read never leaves a partial entry
        try:
            with closing(resource.open()) as content:
                payload = content.read()
        except StoreError as e:
            logger.warning(f"Skipping unreadable resource '{entry_name}' in archive: {e}")
            return

        info = zipfile.ZipInfo(entry_name, date_time=ENTRY_DATE_TIME)
        info.compress_type = self.compression
        info.external_attr = 0o644 << 16
        zf.writestr(info, payload, compresslevel=self.compress_level)
