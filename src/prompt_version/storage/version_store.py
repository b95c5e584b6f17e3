"""
Per-file version graphs persisted in a single index file.

Layout under the workspace root:

    .prompt-versions/
        objects/<sha256>   immutable content blobs (see ContentStore)
        store.json         {normalized path: PromptVersionStore}
        index.lock         advisory lock for store.json writers

store.json is rewritten wholesale on every mutation. Each mutation holds the
index lock from the read through the write, and the write itself is an
atomic replace, so a failed call leaves the previous index intact.
"""

import json
import logging
import os
import tempfile
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

from pydantic import ValidationError

from ..config import VERSION_DIR_NAME, VersionConfig
from ..errors import (
    CollisionError,
    NotInitializedError,
    StorageIOError,
    StoreCorruptionError,
)
from ..hashing import generate_version_id
from .content_store import ContentStore
from .index_lock import IndexLock
from .models import (
    DEFAULT_BRANCH,
    BranchInfo,
    PromptVersionStore,
    VersionEntry,
    VersionMetadata,
)

logger = logging.getLogger(__name__)

STORE_FILE = "store.json"
OBJECTS_DIR = "objects"
LOCK_FILE = "index.lock"

_clock_lock = threading.Lock()
_last_timestamp = 0


def _next_timestamp(floor: int = 0) -> int:
    """Milliseconds since epoch, strictly increasing within this process."""
    global _last_timestamp
    with _clock_lock:
        now = int(time.time() * 1000)
        timestamp = max(now, _last_timestamp + 1, floor + 1)
        _last_timestamp = timestamp
        return timestamp


class VersionStorage:
    """CRUD over per-file version graphs plus branch and tag bookkeeping."""

    def __init__(
        self,
        base_path: Union[str, Path],
        config: Optional[VersionConfig] = None,
    ):
        """
        Initialize version storage.

        Args:
            base_path: Workspace root; tracked paths are stored relative to it
            config: Workspace configuration (defaults if omitted)
        """
        self.base_path = Path(os.path.abspath(base_path))
        self.config = config or VersionConfig()
        self.version_dir = self.base_path / VERSION_DIR_NAME
        self.objects_dir = self.version_dir / OBJECTS_DIR
        self.store_path = self.version_dir / STORE_FILE
        self.content_store = ContentStore(self.objects_dir)
        self.lock = IndexLock(
            self.version_dir / LOCK_FILE,
            timeout=self.config.lock_timeout,
            poll_interval=self.config.lock_poll_interval,
        )

    def is_initialized(self) -> bool:
        return self.version_dir.is_dir()

    def initialize(self) -> None:
        """Create the on-disk layout if absent. Safe to call repeatedly."""
        try:
            self.version_dir.mkdir(parents=True, exist_ok=True)
            self.objects_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageIOError(f"Failed to create {self.version_dir}: {e}") from e

        with self.lock:
            if not self.store_path.exists():
                self._write_index({})
                logger.info(f"Initialized prompt versioning in {self.version_dir}")

    # ------------------------------------------------------------------
    # Index persistence
    # ------------------------------------------------------------------

    def _require_initialized(self) -> None:
        if not self.is_initialized():
            raise NotInitializedError()

    def _read_index(self) -> Dict[str, PromptVersionStore]:
        """Load the whole index. A missing file is an empty index."""
        try:
            raw = self.store_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StorageIOError(f"Failed to read {self.store_path}: {e}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StoreCorruptionError(f"Corrupted index {self.store_path}: {e}") from e

        if not isinstance(data, dict):
            raise StoreCorruptionError(
                f"Corrupted index {self.store_path}: expected an object, got {type(data).__name__}"
            )

        try:
            return {
                key: PromptVersionStore.model_validate(value)
                for key, value in data.items()
            }
        except ValidationError as e:
            raise StoreCorruptionError(f"Corrupted index {self.store_path}: {e}") from e

    def _write_index(self, stores: Dict[str, PromptVersionStore]) -> None:
        """Atomically replace the index file."""
        payload = {key: store.model_dump(by_alias=True) for key, store in stores.items()}

        try:
            tmp_fd, tmp_path = tempfile.mkstemp(
                dir=str(self.version_dir), prefix=".store_", suffix=".tmp"
            )
        except OSError as e:
            raise StorageIOError(f"Failed to write {self.store_path}: {e}") from e

        try:
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, str(self.store_path))
        except OSError as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise StorageIOError(f"Failed to write {self.store_path}: {e}") from e

    @contextmanager
    def _locked_index(self) -> Iterator[Dict[str, PromptVersionStore]]:
        """Hold the index lock for a read-modify-write cycle.

        Callers that change the yielded mapping must call _write_index
        before leaving the block.
        """
        self._require_initialized()
        with self.lock:
            yield self._read_index()

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def normalize_file_path(self, file_path: Union[str, Path]) -> str:
        """Normalize a path to a POSIX path relative to the workspace root.

        Paths outside the workspace fall back to their base name.
        """
        resolved = Path(os.path.abspath(self.base_path / file_path))
        try:
            return resolved.relative_to(self.base_path).as_posix()
        except ValueError:
            return resolved.name

    def get_store(self, prompt_file: Union[str, Path]) -> Optional[PromptVersionStore]:
        """Get the aggregate for a tracked file, or None if untracked."""
        return self._read_index().get(self.normalize_file_path(prompt_file))

    def save_store(self, prompt_file: Union[str, Path], store: PromptVersionStore) -> None:
        """Replace one aggregate, re-reading the rest of the index under the lock."""
        with self._locked_index() as stores:
            stores[self.normalize_file_path(prompt_file)] = store
            self._write_index(stores)

    def create_new_store(self, prompt_file: Union[str, Path]) -> PromptVersionStore:
        return PromptVersionStore(
            prompt_file=self.normalize_file_path(prompt_file),
            branches=[BranchInfo(name=DEFAULT_BRANCH, created_at=_next_timestamp())],
            current_branch=DEFAULT_BRANCH,
        )

    def get_tracked_files(self) -> List[str]:
        return list(self._read_index().keys())

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def save_content(self, content: str) -> str:
        return self.content_store.put(content)

    def load_content(self, content_hash: str) -> Optional[str]:
        return self.content_store.get(content_hash)

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    def _allocate_version_id(
        self, store: PromptVersionStore, content_hash: str
    ) -> Tuple[int, str]:
        """Pick a timestamp and an id that is not already used in this store."""
        existing_ids = {version.id for version in store.versions}
        floor = max((version.timestamp for version in store.versions), default=0)

        for _ in range(self.config.max_id_retries):
            timestamp = _next_timestamp(floor)
            version_id = generate_version_id(content_hash, timestamp)
            if version_id not in existing_ids:
                return timestamp, version_id
            logger.warning(
                f"Version id {version_id} already exists in {store.prompt_file}, retrying"
            )
            floor = timestamp

        raise CollisionError(
            f"Could not allocate a unique version id for {store.prompt_file} "
            f"after {self.config.max_id_retries} attempts"
        )

    def add_version(
        self,
        prompt_file: Union[str, Path],
        content: str,
        message: str,
        author: str,
    ) -> VersionMetadata:
        """Record a new version, or return the existing one with identical content.

        Returns:
            Metadata of the new version, or of the earlier version holding the
            same content (in which case nothing is written and no head moves)
        """
        with self._locked_index() as stores:
            key = self.normalize_file_path(prompt_file)
            store = stores.get(key) or self.create_new_store(prompt_file)

            content_hash = self.save_content(content)

            existing = store.find_by_content_hash(content_hash)
            if existing:
                logger.info(
                    f"Content of {key} matches existing version {existing.id}, not recording"
                )
                return existing

            branch = store.active_branch()
            parent_id = branch.head_id if branch and branch.head_id else None
            timestamp, version_id = self._allocate_version_id(store, content_hash)

            metadata = VersionMetadata(
                id=version_id,
                content_hash=content_hash,
                message=message,
                author=author,
                timestamp=timestamp,
                parent_id=parent_id,
                branch=store.current_branch,
            )
            store.versions.append(metadata)
            if branch:
                branch.head_id = version_id

            stores[key] = store
            self._write_index(stores)

        logger.info(f"Created version {version_id} of {key} on {metadata.branch}")
        return metadata

    def get_history(self, prompt_file: Union[str, Path]) -> List[VersionMetadata]:
        """All versions of a file, newest first."""
        store = self.get_store(prompt_file)
        if not store:
            return []
        return sorted(store.versions, key=lambda v: v.timestamp, reverse=True)

    def get_version(
        self, prompt_file: Union[str, Path], version_id: str
    ) -> Optional[VersionEntry]:
        """Resolve a version by id or id prefix and load its content."""
        store = self.get_store(prompt_file)
        if not store:
            return None

        version = store.find_version(version_id)
        if not version:
            return None

        content = self.load_content(version.content_hash)
        if content is None:
            logger.warning(
                f"Blob {version.content_hash} for version {version.id} is missing"
            )
            return None

        return VersionEntry(metadata=version, content=content)

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def add_tag(self, prompt_file: Union[str, Path], version_id: str, tag_name: str) -> bool:
        """Tag a version. Fails if the version is unknown or the tag exists."""
        if not tag_name:
            return False

        with self._locked_index() as stores:
            key = self.normalize_file_path(prompt_file)
            store = stores.get(key)
            if not store:
                return False

            version = store.find_version(version_id)
            if not version:
                return False

            if tag_name in store.tags:
                return False

            store.tags[tag_name] = version.id
            version.tags.append(tag_name)
            self._write_index(stores)

        logger.info(f"Tagged {key}@{version.id} as {tag_name}")
        return True

    def remove_tag(self, prompt_file: Union[str, Path], tag_name: str) -> bool:
        with self._locked_index() as stores:
            key = self.normalize_file_path(prompt_file)
            store = stores.get(key)
            if not store or tag_name not in store.tags:
                return False

            version_id = store.tags.pop(tag_name)
            for version in store.versions:
                if version.id == version_id:
                    version.tags = [t for t in version.tags if t != tag_name]

            self._write_index(stores)

        logger.info(f"Removed tag {tag_name} from {key}")
        return True

    def get_version_by_tag(
        self, prompt_file: Union[str, Path], tag_name: str
    ) -> Optional[VersionEntry]:
        store = self.get_store(prompt_file)
        if not store:
            return None

        version_id = store.tags.get(tag_name)
        if not version_id:
            return None

        return self.get_version(prompt_file, version_id)

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    def create_branch(
        self,
        prompt_file: Union[str, Path],
        branch_name: str,
        from_version_id: Optional[str] = None,
        description: Optional[str] = None,
    ) -> bool:
        """Create a branch starting at a version or at the current head.

        Fails if the file is untracked, the name is taken, or the starting
        version does not resolve.
        """
        if not branch_name:
            return False

        with self._locked_index() as stores:
            key = self.normalize_file_path(prompt_file)
            store = stores.get(key)
            if not store or store.find_branch(branch_name):
                return False

            if from_version_id:
                version = store.find_version(from_version_id)
                if not version:
                    return False
                head_id = version.id
            else:
                current = store.active_branch()
                head_id = current.head_id if current else ""

            store.branches.append(
                BranchInfo(
                    name=branch_name,
                    head_id=head_id,
                    created_at=_next_timestamp(),
                    description=description,
                )
            )
            self._write_index(stores)

        logger.info(f"Created branch {branch_name} of {key} at {head_id or '(empty)'}")
        return True

    def switch_branch(self, prompt_file: Union[str, Path], branch_name: str) -> bool:
        with self._locked_index() as stores:
            key = self.normalize_file_path(prompt_file)
            store = stores.get(key)
            if not store or not store.find_branch(branch_name):
                return False

            store.current_branch = branch_name
            self._write_index(stores)

        logger.info(f"Switched {key} to branch {branch_name}")
        return True

    def list_branches(self, prompt_file: Union[str, Path]) -> List[BranchInfo]:
        store = self.get_store(prompt_file)
        if not store:
            return []
        return list(store.branches)
