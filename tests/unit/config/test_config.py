"""Unit tests for VersionConfig and ConfigManager."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from prompt_version.config import ConfigManager, VersionConfig


class TestVersionConfig:
    def test_defaults(self):
        config = VersionConfig()

        assert config.default_author == "anonymous"
        assert config.default_message == "Update prompt"
        assert config.log_limit == 10
        assert config.lock_timeout == 10.0
        assert config.max_id_retries == 5
        assert config.encoding == "utf-8"

    @pytest.mark.parametrize(
        "field,value",
        [
            ("log_limit", 0),
            ("max_id_retries", -1),
            ("lock_timeout", 0),
            ("lock_poll_interval", -0.5),
        ],
    )
    def test_rejects_non_positive_values(self, field, value):
        with pytest.raises(ValidationError):
            VersionConfig(**{field: value})


class TestConfigManager:
    def test_load_without_file_returns_defaults(self, tmp_path: Path):
        manager = ConfigManager(tmp_path / ".prompt-versions" / "config.json")

        assert manager.load() == VersionConfig()
        assert manager.workspace_root == tmp_path

    def test_save_and_load(self, tmp_path: Path):
        config_path = tmp_path / ".prompt-versions" / "config.json"
        manager = ConfigManager(config_path)

        manager.save(VersionConfig(default_author="alice"))

        assert json.loads(config_path.read_text())["default_author"] == "alice"
        assert ConfigManager(config_path).load().default_author == "alice"

    def test_save_without_config_raises(self, tmp_path: Path):
        with pytest.raises(ValueError, match="No configuration to save"):
            ConfigManager(tmp_path / "config.json").save()

    def test_load_invalid_json(self, tmp_path: Path):
        config_path = tmp_path / "config.json"
        config_path.write_text("{broken")

        with pytest.raises(ValueError, match="Failed to load config"):
            ConfigManager(config_path).load()

    def test_update_config_persists(self, tmp_path: Path):
        config_path = tmp_path / ".prompt-versions" / "config.json"
        manager = ConfigManager(config_path)

        updated = manager.update_config(log_limit=25)

        assert updated.log_limit == 25
        assert ConfigManager(config_path).load().log_limit == 25

    def test_update_config_validates(self, tmp_path: Path):
        manager = ConfigManager(tmp_path / ".prompt-versions" / "config.json")

        with pytest.raises(ValidationError):
            manager.update_config(log_limit=0)


class TestWorkspaceDiscovery:
    def test_finds_root_from_nested_directory(self, tmp_path: Path):
        (tmp_path / ".prompt-versions").mkdir()
        nested = tmp_path / "a" / "b" / "c"
        nested.mkdir(parents=True)

        assert ConfigManager.find_workspace_root(nested) == tmp_path.resolve()

    def test_returns_none_without_workspace(self, tmp_path: Path):
        nested = tmp_path / "a"
        nested.mkdir()

        assert ConfigManager.find_workspace_root(nested) is None

    def test_create_with_backtrack_uses_found_root(self, tmp_path: Path):
        (tmp_path / ".prompt-versions").mkdir()
        nested = tmp_path / "sub"
        nested.mkdir()

        manager = ConfigManager.create_with_backtrack(nested)

        assert manager.config_path == tmp_path.resolve() / ".prompt-versions" / "config.json"

    def test_create_with_backtrack_falls_back_to_start(self, tmp_path: Path):
        nested = tmp_path / "fresh"
        nested.mkdir()

        manager = ConfigManager.create_with_backtrack(nested)

        assert manager.workspace_root == nested.resolve()
