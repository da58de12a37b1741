"""
Asset storage port.

The engine hands uploaded bytes to the storage collaborator and keeps only the
returned descriptor (url, mime type, size). Implementations: local filesystem
(quillpress.adapters.local_storage); cloud buckets plug in behind the same port.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO, Protocol


class AssetStorageError(Exception):
    """Base exception for asset storage operations."""


class AssetRejectedError(AssetStorageError):
    """The upload itself is unacceptable (empty, too large)."""


@dataclass(frozen=True)
class StoredAsset:
    """Descriptor returned by asset storage."""

    url: str
    mime_type: str
    size: int


class AssetStoragePort(Protocol):
    def put(self, filename: str, data: bytes | BinaryIO, mime_type: str) -> StoredAsset:
        """
        Store the uploaded file.

        Raises:
            AssetRejectedError: If the upload is empty or too large
            AssetStorageError: If the file cannot be stored
        """
        ...
