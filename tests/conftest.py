"""
Shared pytest fixtures for Prompt Version tests.

Provides initialized workspaces, a VersionCore bound to a temporary
directory, and an in-memory FileAccess for tests that must not touch the
tracked file on disk.
"""

from pathlib import Path
from typing import Dict, Union

import pytest

from prompt_version.core import VersionCore
from prompt_version.file_access import FileAccess, LocalFileAccess
from prompt_version.storage.version_store import VersionStorage


class InMemoryFileAccess(FileAccess):
    """FileAccess backed by a dict keyed by absolute path."""

    def __init__(self, root: Path):
        self.root = root
        self.files: Dict[Path, str] = {}
        self.writes = 0

    def resolve(self, file_path: Union[str, Path]) -> Path:
        return self.root / file_path

    def exists(self, file_path: Union[str, Path]) -> bool:
        return self.resolve(file_path) in self.files

    def read(self, file_path: Union[str, Path]) -> str:
        path = self.resolve(file_path)
        if path not in self.files:
            raise FileNotFoundError(str(path))
        return self.files[path]

    def write(self, file_path: Union[str, Path], content: str) -> None:
        self.writes += 1
        self.files[self.resolve(file_path)] = content


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Empty directory used as the workspace root."""
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def storage(workspace: Path) -> VersionStorage:
    """Initialized VersionStorage rooted at the workspace."""
    version_storage = VersionStorage(workspace)
    version_storage.initialize()
    return version_storage


@pytest.fixture
def core(workspace: Path) -> VersionCore:
    """Initialized VersionCore reading tracked files relative to the workspace."""
    version_core = VersionCore(
        base_path=workspace, file_access=LocalFileAccess(working_dir=workspace)
    )
    result = version_core.init()
    assert result.success
    return version_core


@pytest.fixture
def memory_files(workspace: Path) -> InMemoryFileAccess:
    return InMemoryFileAccess(workspace)


@pytest.fixture
def memory_core(workspace: Path, memory_files: InMemoryFileAccess) -> VersionCore:
    """Initialized VersionCore whose tracked files live in memory."""
    version_core = VersionCore(base_path=workspace, file_access=memory_files)
    version_core.init()
    return version_core


@pytest.fixture
def write_prompt(workspace: Path):
    """Factory writing a tracked prompt file into the workspace."""

    def _write(name: str, content: str) -> Path:
        path = workspace / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8", newline="")
        return path

    return _write
