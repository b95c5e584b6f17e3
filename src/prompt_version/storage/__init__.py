"""Content-addressed object store and per-file version index."""

from .content_store import ContentStore
from .index_lock import IndexLock
from .models import BranchInfo, PromptVersionStore, VersionEntry, VersionMetadata
from .version_store import VersionStorage

__all__ = [
    "ContentStore",
    "IndexLock",
    "BranchInfo",
    "PromptVersionStore",
    "VersionEntry",
    "VersionMetadata",
    "VersionStorage",
]
