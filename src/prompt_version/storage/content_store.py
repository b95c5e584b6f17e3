"""Deduplicating content-addressed blob store.

Each distinct content is written once to objects/<sha256> and never
rewritten. The objects directory is created by workspace initialization;
the store itself never creates it.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from ..errors import StorageIOError, StoreCorruptionError
from ..hashing import hash_content

logger = logging.getLogger(__name__)


class ContentStore:
    """Stores immutable UTF-8 text blobs addressed by their SHA-256 hash."""

    def __init__(self, objects_dir: Path):
        """
        Initialize the content store.

        Args:
            objects_dir: Existing directory holding one file per content hash
        """
        self.objects_dir = objects_dir

    def object_path(self, content_hash: str) -> Path:
        return self.objects_dir / content_hash

    def exists(self, content_hash: str) -> bool:
        return self.object_path(content_hash).is_file()

    def put(self, content: str) -> str:
        """Store content if not already present and return its hash.

        Re-putting existing content is a no-op. The blob is written to a
        temporary file and renamed into place, so a blob is either absent or
        complete.

        Raises:
            StorageIOError: If the blob cannot be written
        """
        content_hash = hash_content(content)
        object_path = self.object_path(content_hash)

        if object_path.exists():
            logger.debug(f"Blob {content_hash[:12]} already stored")
            return content_hash

        try:
            tmp_fd, tmp_path = tempfile.mkstemp(
                dir=str(self.objects_dir), prefix=f".{content_hash[:12]}_", suffix=".tmp"
            )
        except OSError as e:
            raise StorageIOError(f"Failed to write object {content_hash}: {e}") from e

        try:
            with os.fdopen(tmp_fd, "wb") as f:
                f.write(content.encode("utf-8"))
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, str(object_path))
        except OSError as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise StorageIOError(f"Failed to write object {content_hash}: {e}") from e

        logger.debug(f"Stored blob {content_hash[:12]} ({len(content)} chars)")
        return content_hash

    def get(self, content_hash: str) -> Optional[str]:
        """Load a blob by hash.

        Returns:
            The stored content, or None if no blob exists for the hash

        Raises:
            StorageIOError: If the blob exists but cannot be read
            StoreCorruptionError: If the blob bytes do not decode or do not
                match the hash they are stored under
        """
        object_path = self.object_path(content_hash)
        if not object_path.is_file():
            return None

        try:
            data = object_path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageIOError(f"Failed to read object {content_hash}: {e}") from e

        try:
            content = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise StoreCorruptionError(
                f"Object {content_hash} is not valid UTF-8: {e}"
            ) from e

        if hash_content(content) != content_hash:
            raise StoreCorruptionError(
                f"Object {content_hash} does not match its content hash"
            )

        return content
