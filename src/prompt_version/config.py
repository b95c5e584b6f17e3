"""Configuration management for Prompt Version."""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

VERSION_DIR_NAME = ".prompt-versions"
CONFIG_FILE_NAME = "config.json"

# Limit workspace discovery to a reasonable depth
MAX_DISCOVERY_DEPTH = 10


class VersionConfig(BaseModel):
    """Main configuration for a prompt versioning workspace."""

    default_author: str = Field(
        default="anonymous", description="Author recorded when none is given"
    )
    default_message: str = Field(
        default="Update prompt", description="Commit message used when none is given"
    )
    log_limit: int = Field(
        default=10, description="Number of log entries shown by default"
    )
    lock_timeout: float = Field(
        default=10.0, description="Seconds to wait for the index lock"
    )
    lock_poll_interval: float = Field(
        default=0.05, description="Seconds between index lock attempts"
    )
    max_id_retries: int = Field(
        default=5,
        description="Attempts to generate a version id that does not collide",
    )
    encoding: str = Field(
        default="utf-8", description="Encoding used to read and write tracked files"
    )

    @field_validator("log_limit", "max_id_retries")
    @classmethod
    def positive_int(cls, v: int) -> int:
        """Reject zero or negative counts."""
        if v < 1:
            raise ValueError(f"Expected a positive integer, got {v}")
        return v

    @field_validator("lock_timeout", "lock_poll_interval")
    @classmethod
    def positive_float(cls, v: float) -> float:
        """Reject zero or negative durations."""
        if v <= 0:
            raise ValueError(f"Expected a positive duration, got {v}")
        return v


class ConfigManager:
    """Manages configuration loading, saving, and workspace discovery."""

    DEFAULT_CONFIG_PATH = Path(VERSION_DIR_NAME) / CONFIG_FILE_NAME

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or self.DEFAULT_CONFIG_PATH
        self._config: Optional[VersionConfig] = None

    @property
    def workspace_root(self) -> Path:
        """Directory containing the .prompt-versions/ directory."""
        return self.config_path.parent.parent

    def load(self) -> VersionConfig:
        """Load configuration from file, falling back to defaults."""
        if self.config_path.exists():
            try:
                with open(self.config_path, "r") as f:
                    data = json.load(f)
                self._config = VersionConfig(**data)
            except Exception as e:
                raise ValueError(f"Failed to load config from {self.config_path}: {e}")
        else:
            self._config = VersionConfig()

        return self._config

    def save(self, config: Optional[VersionConfig] = None) -> None:
        """Save configuration to file."""
        if config is None:
            config = self._config

        if config is None:
            raise ValueError("No configuration to save")

        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, "w") as f:
            json.dump(config.model_dump(), f, indent=2, sort_keys=True)

    def get_config(self) -> VersionConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            self.load()
        if self._config is None:
            raise RuntimeError("Failed to load configuration")
        return self._config

    def update_config(self, **kwargs: Any) -> VersionConfig:
        """Update configuration with new values."""
        config_dict = self.get_config().model_dump()
        config_dict.update(kwargs)

        new_config = VersionConfig(**config_dict)
        self._config = new_config
        self.save()
        return new_config

    @staticmethod
    def find_workspace_root(start_dir: Optional[Path] = None) -> Optional[Path]:
        """Find the directory holding .prompt-versions/ by walking up the tree.

        Args:
            start_dir: Directory to start searching from (default: current directory)

        Returns:
            Workspace root if found, None otherwise
        """
        current = (start_dir or Path.cwd()).resolve()

        for path in [current] + list(current.parents)[:MAX_DISCOVERY_DEPTH]:
            try:
                if (path / VERSION_DIR_NAME).is_dir():
                    return path
            except (PermissionError, OSError):
                continue

        return None

    @classmethod
    def create_with_backtrack(cls, start_dir: Optional[Path] = None) -> "ConfigManager":
        """Create ConfigManager by finding the workspace through directory backtracking.

        If no workspace is found, the config path points into start_dir so a
        later init creates the workspace there.
        """
        root = cls.find_workspace_root(start_dir)
        if root is None:
            root = (start_dir or Path.cwd()).resolve()
        else:
            logger.debug(f"Found prompt versioning workspace at {root}")
        return cls(root / VERSION_DIR_NAME / CONFIG_FILE_NAME)
