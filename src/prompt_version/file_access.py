"""
File access interface for tracked prompt files.

Commit and checkout read and write live files outside the object store.
VersionCore goes through this interface so the versioning logic can run
against something other than the real filesystem.
"""

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union


class FileAccess(ABC):
    """Abstract interface for reading and writing tracked files."""

    @abstractmethod
    def resolve(self, file_path: Union[str, Path]) -> Path:
        """
        Resolve a user-supplied path to an absolute path.

        Returns:
            Absolute path of the tracked file
        """
        pass

    @abstractmethod
    def exists(self, file_path: Union[str, Path]) -> bool:
        pass

    @abstractmethod
    def read(self, file_path: Union[str, Path]) -> str:
        """
        Read the full text of a file.

        Raises:
            FileNotFoundError: If the file does not exist
            OSError: If the file cannot be read
        """
        pass

    @abstractmethod
    def write(self, file_path: Union[str, Path], content: str) -> None:
        """
        Replace the full text of a file.

        Raises:
            OSError: If the file cannot be written
        """
        pass


class LocalFileAccess(FileAccess):
    """Reads and writes files on local disk relative to a working directory."""

    def __init__(self, working_dir: Optional[Path] = None, encoding: str = "utf-8"):
        self.working_dir = Path(os.path.abspath(working_dir or Path.cwd()))
        self.encoding = encoding

    def resolve(self, file_path: Union[str, Path]) -> Path:
        return Path(os.path.abspath(self.working_dir / file_path))

    def exists(self, file_path: Union[str, Path]) -> bool:
        return self.resolve(file_path).is_file()

    def read(self, file_path: Union[str, Path]) -> str:
        # newline="" keeps line endings byte-exact so hashes match the file
        with open(self.resolve(file_path), "r", encoding=self.encoding, newline="") as f:
            return f.read()

    def write(self, file_path: Union[str, Path], content: str) -> None:
        with open(self.resolve(file_path), "w", encoding=self.encoding, newline="") as f:
            f.write(content)
