"""Zip compression for export bundles.

Responsibilities:
- Compress named audio blobs plus the outline manifest into one archive blob.
- Build the archive fully in memory so callers never see a partial bundle.
"""

from __future__ import annotations

from collections.abc import Mapping
import io
from typing import Protocol
import zipfile

from ..errors import ArchiveError

MANIFEST_MEMBER_NAME = "structure.md"


class Archiver(Protocol):
    """Protocol for the compression primitive used by export."""

    def compress(
        self,
        root_folder: str,
        members: Mapping[str, bytes],
        manifest_text: str,
    ) -> bytes:
        """Return one archive blob holding `members` and the manifest under `root_folder`."""


class ZipArchiver:
    """Deflate-compressed zip archiver with deterministic member order and timestamps."""

    _FIXED_TIMESTAMP = (1980, 1, 1, 0, 0, 0)

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED) -> None:
        """Initialize archiver compression method."""

        self.compression = compression

    def compress(
        self,
        root_folder: str,
        members: Mapping[str, bytes],
        manifest_text: str,
    ) -> bytes:
        """Write members and manifest into an in-memory zip and return its bytes."""

        if not root_folder:
            raise ArchiveError(
                "Archive root folder name is empty.",
                hint="Provide an app or feature name, or let export substitute a timestamp.",
            )
        buffer = io.BytesIO()
        try:
            with zipfile.ZipFile(buffer, "w", compression=self.compression) as archive:
                for name, data in members.items():
                    if not name:
                        raise ArchiveError("Archive member name is empty.")
                    archive.writestr(self._entry(f"{root_folder}/{name}"), data)
                archive.writestr(
                    self._entry(f"{root_folder}/{MANIFEST_MEMBER_NAME}"),
                    manifest_text.encode("utf-8"),
                )
        except ArchiveError:
            raise
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, TypeError, ValueError) as exc:
            raise ArchiveError(f"Failed to create zip file: {exc}") from exc
        return buffer.getvalue()

    def _entry(self, name: str) -> zipfile.ZipInfo:
        """Create a zip entry with a fixed timestamp and the configured compression."""

        info = zipfile.ZipInfo(name, date_time=self._FIXED_TIMESTAMP)
        info.compress_type = self.compression
        return info
