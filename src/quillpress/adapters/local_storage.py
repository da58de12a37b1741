"""
Local Filesystem Asset Storage Adapter.

Implements AssetStoragePort using the local filesystem, for development and
single-server deployments. Files are content-addressed: the stored name is the
sha256 of the bytes plus the original extension, so re-uploading identical bytes
returns the same URL and never overwrites a different file.
"""

from __future__ import annotations

import hashlib
import os
import tempfile
from pathlib import Path, PurePath
from typing import BinaryIO

from quillpress.ports.storage import AssetRejectedError, AssetStorageError, StoredAsset


class LocalAssetStorage:
    """
    Local filesystem implementation of AssetStoragePort.

    Directory structure: {base_path}/{sha[:2]}/{sha}{ext}
    URL structure:       {base_url}/{sha[:2]}/{sha}{ext}
    """

    def __init__(
        self,
        base_path: str | Path,
        *,
        base_url: str = "/uploads",
        max_bytes: int | None = None,
        create_dirs: bool = True,
    ) -> None:
        self.base_path = Path(base_path)
        self.base_url = base_url.rstrip("/")
        self.max_bytes = max_bytes

        if create_dirs:
            self.base_path.mkdir(parents=True, exist_ok=True)

    def _read_all(self, data: bytes | BinaryIO) -> bytes:
        if isinstance(data, bytes):
            return data

        # Stream from file-like object
        chunks = []
        while True:
            chunk = data.read(8192)
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)

    def _key_for(self, filename: str, sha256_hex: str) -> str:
        # Only the extension of the client filename is kept (no directory traversal)
        ext = PurePath(filename).suffix.lower()
        if not ext[1:].isalnum():
            ext = ""
        return f"{sha256_hex[:2]}/{sha256_hex}{ext}"

    def put(self, filename: str, data: bytes | BinaryIO, mime_type: str) -> StoredAsset:
        payload = self._read_all(data)
        if not payload:
            raise AssetRejectedError("Uploaded file is empty")
        if self.max_bytes is not None and len(payload) > self.max_bytes:
            raise AssetRejectedError(f"Uploaded file exceeds {self.max_bytes} bytes")

        sha256_hex = hashlib.sha256(payload).hexdigest()
        key = self._key_for(filename, sha256_hex)
        path = self.base_path / key

        try:
            if not path.exists():
                path.parent.mkdir(parents=True, exist_ok=True)
                # Unique temp name per writer; identical bytes may race to the same key.
                with tempfile.NamedTemporaryFile(
                    dir=path.parent, prefix=".upload-", delete=False
                ) as f:
                    f.write(payload)
                os.replace(f.name, path)
        except OSError as e:
            raise AssetStorageError(f"Could not store {filename}") from e

        return StoredAsset(url=f"{self.base_url}/{key}", mime_type=mime_type, size=len(payload))

