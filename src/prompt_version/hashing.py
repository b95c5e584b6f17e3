"""Content hashing helpers for the object store and version identifiers."""

import hashlib
import re

VERSION_ID_LENGTH = 12
SHORT_HASH_LENGTH = 8

_HEX_PATTERN = re.compile(r"^[a-f0-9]+$")


def hash_content(content: str) -> str:
    """Generate a SHA-256 hash of content.

    Args:
        content: Text to hash (encoded as UTF-8)

    Returns:
        64-character lowercase hex digest
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def short_hash(content: str, length: int = SHORT_HASH_LENGTH) -> str:
    """Generate a short hash (first ``length`` characters of the SHA-256)."""
    return hash_content(content)[:length]


def generate_version_id(content_hash: str, timestamp: int) -> str:
    """Derive a version id from a content hash and creation timestamp.

    Args:
        content_hash: Full SHA-256 of the committed content
        timestamp: Creation time in milliseconds since epoch

    Returns:
        12-character hex identifier
    """
    return hash_content(f"{content_hash}:{timestamp}")[:VERSION_ID_LENGTH]


def is_valid_hash(value: str) -> bool:
    """Validate a hash format (short hash, version id, or full digest)."""
    return bool(_HEX_PATTERN.match(value)) and len(value) in (
        SHORT_HASH_LENGTH,
        VERSION_ID_LENGTH,
        64,
    )


def contents_match(content1: str, content2: str) -> bool:
    """Check if two contents are identical by comparing hashes."""
    return hash_content(content1) == hash_content(content2)
