"""
Version control operations for prompt files.

VersionCore is the public surface shared by the CLI and library callers. It
composes VersionStorage with diffing and reports every expected failure as a
structured result so callers working through many files can keep going.
Only store corruption escapes as an exception.
"""

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .config import CONFIG_FILE_NAME, VERSION_DIR_NAME, ConfigManager, VersionConfig
from .diffing import Change, diff_lines, summarize
from .errors import (
    CollisionError,
    IndexLockError,
    NotInitializedError,
    StorageIOError,
)
from .file_access import FileAccess, LocalFileAccess
from .hashing import hash_content
from .storage.models import DEFAULT_BRANCH, BranchInfo, VersionEntry, VersionMetadata
from .storage.version_store import VersionStorage

logger = logging.getLogger(__name__)

NOT_INITIALIZED_MESSAGE = str(NotInitializedError())

# Failures that are reported as results rather than raised
EXPECTED_ERRORS = (
    NotInitializedError,
    CollisionError,
    StorageIOError,
    IndexLockError,
)


@dataclass
class OperationResult:
    """Uniform outcome of a version control operation."""

    success: bool
    message: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class CommitResult(OperationResult):
    version_id: Optional[str] = None
    is_duplicate: bool = False


@dataclass
class LogEntry:
    version: VersionMetadata
    is_head: bool
    tags: List[str]


@dataclass
class DiffResult:
    v1: VersionMetadata
    v2: VersionMetadata
    changes: List[Change]
    additions: int
    deletions: int
    unchanged: int


@dataclass
class StatusResult:
    tracked: bool
    modified: bool
    versions: int
    current_branch: str
    error: Optional[str] = None
    tags: List[str] = field(default_factory=list)


class VersionCore:
    """Commit, log, diff, checkout, tag, branch and status for prompt files."""

    def __init__(
        self,
        base_path: Optional[Union[str, Path]] = None,
        file_access: Optional[FileAccess] = None,
        config: Optional[VersionConfig] = None,
    ):
        """
        Initialize the version core.

        Args:
            base_path: Workspace root holding .prompt-versions/ (default: cwd)
            file_access: Access to tracked files (default: local disk relative to cwd)
            config: Workspace configuration (default: loaded from the workspace)
        """
        self.base_path = Path(os.path.abspath(base_path or Path.cwd()))
        self.config_manager = ConfigManager(
            self.base_path / VERSION_DIR_NAME / CONFIG_FILE_NAME
        )
        self.config = config or self.config_manager.load()
        self.storage = VersionStorage(self.base_path, self.config)
        self.file_access = file_access or LocalFileAccess(encoding=self.config.encoding)

    def init(self) -> OperationResult:
        """Initialize version control in the workspace root."""
        if self.storage.is_initialized():
            return OperationResult(
                success=False,
                message="Version control already initialized in this directory",
            )

        try:
            self.storage.initialize()
            self.config_manager.save(self.config)
        except StorageIOError as e:
            return OperationResult(success=False, error=str(e))
        except OSError as e:
            return OperationResult(success=False, error=f"Failed to write config: {e}")

        return OperationResult(
            success=True,
            message=f"Initialized prompt version control in {VERSION_DIR_NAME}/",
        )

    def is_initialized(self) -> bool:
        return self.storage.is_initialized()

    def commit(
        self,
        file_path: Union[str, Path],
        message: str,
        author: str = "anonymous",
    ) -> CommitResult:
        """Commit the current content of a file.

        Content identical to an existing version is reported as a successful
        duplicate carrying that version's id.
        """
        if not self.is_initialized():
            return CommitResult(success=False, error=NOT_INITIALIZED_MESSAGE)

        path = self.file_access.resolve(file_path)
        if not self.file_access.exists(path):
            return CommitResult(success=False, error=f"File not found: {file_path}")

        try:
            content = self.file_access.read(path)
        except (OSError, UnicodeDecodeError) as e:
            return CommitResult(success=False, error=f"Failed to read {file_path}: {e}")

        content_hash = hash_content(content)

        try:
            for version in self.storage.get_history(path):
                if version.content_hash == content_hash:
                    return CommitResult(
                        success=True,
                        version_id=version.id,
                        message="Content unchanged from existing version",
                        is_duplicate=True,
                    )

            metadata = self.storage.add_version(path, content, message, author)
        except EXPECTED_ERRORS as e:
            logger.warning(f"Commit of {file_path} failed: {e}")
            return CommitResult(success=False, error=str(e))

        return CommitResult(
            success=True,
            version_id=metadata.id,
            message=f"Created version {metadata.id}",
        )

    def log(self, file_path: Union[str, Path], limit: Optional[int] = None) -> List[LogEntry]:
        """History of a file, newest first, marking the current branch head."""
        path = self.file_access.resolve(file_path)
        try:
            store = self.storage.get_store(path)
            if not store:
                return []
            history = self.storage.get_history(path)
        except EXPECTED_ERRORS as e:
            logger.warning(f"Failed to read history of {file_path}: {e}")
            return []

        current = store.active_branch()
        head_id = current.head_id if current else ""

        if limit is not None:
            history = history[:limit]

        return [
            LogEntry(version=version, is_head=version.id == head_id, tags=list(version.tags))
            for version in history
        ]

    def diff(
        self, file_path: Union[str, Path], version_id1: str, version_id2: str
    ) -> Optional[DiffResult]:
        """Line diff between two versions, or None if either does not resolve."""
        path = self.file_access.resolve(file_path)
        try:
            v1 = self.storage.get_version(path, version_id1)
            v2 = self.storage.get_version(path, version_id2)
        except EXPECTED_ERRORS as e:
            logger.warning(f"Failed to load versions of {file_path}: {e}")
            return None
        if not v1 or not v2:
            return None

        changes = diff_lines(v1.content, v2.content)
        additions, deletions, unchanged = summarize(changes)

        return DiffResult(
            v1=v1.metadata,
            v2=v2.metadata,
            changes=changes,
            additions=additions,
            deletions=deletions,
            unchanged=unchanged,
        )

    def checkout(self, file_path: Union[str, Path], version_id: str) -> OperationResult:
        """Overwrite the file with a version, resolved by id first and tag second."""
        if not self.is_initialized():
            return OperationResult(success=False, error=NOT_INITIALIZED_MESSAGE)

        path = self.file_access.resolve(file_path)
        try:
            entry = self.storage.get_version(path, version_id)
            if entry:
                message = f"Checked out version {entry.metadata.id}"
            else:
                entry = self.storage.get_version_by_tag(path, version_id)
                if not entry:
                    return OperationResult(
                        success=False, error=f"Version or tag not found: {version_id}"
                    )
                message = f'Checked out tag "{version_id}" (version {entry.metadata.id})'
        except EXPECTED_ERRORS as e:
            return OperationResult(success=False, error=str(e))

        try:
            self.file_access.write(path, entry.content)
        except OSError as e:
            return OperationResult(success=False, error=f"Failed to write {file_path}: {e}")

        logger.info(f"Checked out {entry.metadata.id} into {path}")
        return OperationResult(success=True, message=message)

    def tag(
        self,
        file_path: Union[str, Path],
        tag_name: str,
        version_id: Optional[str] = None,
    ) -> OperationResult:
        """Tag a version; the newest version is tagged when none is given."""
        if not self.is_initialized():
            return OperationResult(success=False, error=NOT_INITIALIZED_MESSAGE)

        path = self.file_access.resolve(file_path)
        try:
            if not version_id:
                history = self.storage.get_history(path)
                if not history:
                    return OperationResult(success=False, error="No versions found")
                version_id = history[0].id

            if not self.storage.add_tag(path, version_id, tag_name):
                store = self.storage.get_store(path)
                if store and tag_name in store.tags:
                    error = f'Tag "{tag_name}" already exists'
                elif not tag_name:
                    error = "Tag name must not be empty"
                else:
                    error = f"Version not found: {version_id}"
                return OperationResult(success=False, error=error)
        except EXPECTED_ERRORS as e:
            return OperationResult(success=False, error=str(e))

        return OperationResult(
            success=True, message=f'Tagged version {version_id} as "{tag_name}"'
        )

    def untag(self, file_path: Union[str, Path], tag_name: str) -> OperationResult:
        if not self.is_initialized():
            return OperationResult(success=False, error=NOT_INITIALIZED_MESSAGE)

        path = self.file_access.resolve(file_path)
        try:
            removed = self.storage.remove_tag(path, tag_name)
        except EXPECTED_ERRORS as e:
            return OperationResult(success=False, error=str(e))

        if not removed:
            return OperationResult(success=False, error=f'Tag "{tag_name}" not found')
        return OperationResult(success=True, message=f'Removed tag "{tag_name}"')

    def branch(
        self,
        file_path: Union[str, Path],
        branch_name: str,
        from_version: Optional[str] = None,
        description: Optional[str] = None,
    ) -> OperationResult:
        """Create a branch from a version, or from the current branch head."""
        if not self.is_initialized():
            return OperationResult(success=False, error=NOT_INITIALIZED_MESSAGE)
        if not branch_name:
            return OperationResult(success=False, error="Branch name must not be empty")

        path = self.file_access.resolve(file_path)
        try:
            store = self.storage.get_store(path)
            if not store:
                return OperationResult(
                    success=False, error=f"File is not tracked: {file_path}"
                )
            if from_version and not store.find_version(from_version):
                return OperationResult(
                    success=False, error=f"Version not found: {from_version}"
                )

            created = self.storage.create_branch(
                path, branch_name, from_version, description
            )
        except EXPECTED_ERRORS as e:
            return OperationResult(success=False, error=str(e))

        if not created:
            return OperationResult(
                success=False, error=f'Branch "{branch_name}" already exists'
            )
        return OperationResult(success=True, message=f'Created branch "{branch_name}"')

    def switch_branch(self, file_path: Union[str, Path], branch_name: str) -> OperationResult:
        if not self.is_initialized():
            return OperationResult(success=False, error=NOT_INITIALIZED_MESSAGE)

        path = self.file_access.resolve(file_path)
        try:
            switched = self.storage.switch_branch(path, branch_name)
        except EXPECTED_ERRORS as e:
            return OperationResult(success=False, error=str(e))

        if not switched:
            return OperationResult(
                success=False, error=f'Branch "{branch_name}" not found'
            )
        return OperationResult(success=True, message=f'Switched to branch "{branch_name}"')

    def list_branches(self, file_path: Union[str, Path]) -> List[BranchInfo]:
        try:
            return self.storage.list_branches(self.file_access.resolve(file_path))
        except EXPECTED_ERRORS as e:
            logger.warning(f"Failed to list branches of {file_path}: {e}")
            return []

    def get_version(
        self, file_path: Union[str, Path], version_id: str
    ) -> Optional[VersionEntry]:
        try:
            return self.storage.get_version(self.file_access.resolve(file_path), version_id)
        except EXPECTED_ERRORS as e:
            logger.warning(f"Failed to load version {version_id} of {file_path}: {e}")
            return None

    def get_tracked_files(self) -> List[str]:
        try:
            return self.storage.get_tracked_files()
        except EXPECTED_ERRORS as e:
            logger.warning(f"Failed to list tracked files: {e}")
            return []

    def status(self, file_path: Union[str, Path]) -> StatusResult:
        """Whether a file is tracked and whether it differs from its newest version."""
        path = self.file_access.resolve(file_path)
        try:
            store = self.storage.get_store(path)
            history = self.storage.get_history(path) if store else []
        except EXPECTED_ERRORS as e:
            return StatusResult(
                tracked=False,
                modified=False,
                versions=0,
                current_branch=DEFAULT_BRANCH,
                error=str(e),
            )

        if not store:
            return StatusResult(
                tracked=False, modified=False, versions=0, current_branch=DEFAULT_BRANCH
            )

        result = StatusResult(
            tracked=True,
            modified=False,
            versions=len(history),
            current_branch=store.current_branch,
            tags=sorted(store.tags),
        )

        if self.file_access.exists(path):
            try:
                current_hash = hash_content(self.file_access.read(path))
            except (OSError, UnicodeDecodeError) as e:
                result.error = f"Failed to read {file_path}: {e}"
                return result
            if history:
                result.modified = current_hash != history[0].content_hash
            else:
                result.modified = True

        return result
