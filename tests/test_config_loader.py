"""
Unit tests for configuration loader.

Tests multi-layer config merging, environment variable overrides,
caching, layered .env loading and XDG directory handling.
"""

import json
import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from tasksync.core.config import (
    clear_cache,
    get_project_config_path,
    get_user_config_path,
    load_config,
    load_layered_env,
)
from tasksync.core.config.loader import (
    apply_env_overrides,
    deep_merge,
    get_default_config,
    get_xdg_config_home,
    load_json_file,
)
from tasksync.core.config.models import RemoteConfig, TaskSyncConfig

# ==============================================================================
# Helper Functions Tests
# ==============================================================================


class TestDeepMerge:
    """Test the deep_merge helper function."""

    def test_nested_merge(self):
        """Test merging nested dicts."""
        base = {"a": 1, "b": {"x": 10, "y": 20}}
        override = {"b": {"y": 30, "z": 40}, "c": 3}
        assert deep_merge(base, override) == {"a": 1, "b": {"x": 10, "y": 30, "z": 40}, "c": 3}

    def test_does_not_mutate_base(self):
        base = {"a": {"x": 1}}
        deep_merge(base, {"a": {"x": 2}})
        assert base == {"a": {"x": 1}}


class TestLoadJsonFile:
    """Test JSON file loading."""

    def test_missing_file(self, tmp_path):
        assert load_json_file(tmp_path / "missing.json") is None

    def test_valid_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text('{"user_id": "alice"}')
        assert load_json_file(path) == {"user_id": "alice"}

    def test_invalid_json_warns(self, tmp_path, caplog):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        assert load_json_file(path) is None
        assert "Failed to parse config" in caplog.text

    def test_non_object_ignored(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2, 3]")
        assert load_json_file(path) is None


class TestPaths:
    def test_xdg_config_home(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert get_xdg_config_home() == tmp_path
        assert get_user_config_path() == tmp_path / "tasksync" / "config.json"

    def test_xdg_fallback(self, monkeypatch):
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        assert get_xdg_config_home() == Path.home() / ".config"

    def test_project_config_path(self, tmp_path):
        assert get_project_config_path(tmp_path) == tmp_path / ".tasksync.json"


# ==============================================================================
# Environment Overrides
# ==============================================================================


class TestApplyEnvOverrides:
    """Test TASKSYNC_* environment variables."""

    def test_user_and_db(self, monkeypatch):
        monkeypatch.setenv("TASKSYNC_USER", "alice")
        monkeypatch.setenv("TASKSYNC_DB", "/tmp/tasks.db")
        result = apply_env_overrides({})
        assert result["user_id"] == "alice"
        assert result["store"] == {"path": "/tmp/tasks.db"}

    def test_remote_url_selects_http(self, monkeypatch):
        monkeypatch.setenv("TASKSYNC_REMOTE_URL", "https://store.example.com")
        monkeypatch.setenv("TASKSYNC_REMOTE_TOKEN", "secret")
        result = apply_env_overrides({"remote": {"collection": "todos"}})
        assert result["remote"] == {
            "collection": "todos",
            "kind": "http",
            "base_url": "https://store.example.com",
            "token": "secret",
        }

    def test_remote_dir_selects_directory(self, monkeypatch):
        monkeypatch.setenv("TASKSYNC_REMOTE_DIR", "/srv/tasks")
        result = apply_env_overrides({})
        assert result["remote"] == {"kind": "directory", "directory": "/srv/tasks"}

    def test_remote_url_wins_over_dir(self, monkeypatch):
        monkeypatch.setenv("TASKSYNC_REMOTE_URL", "https://store.example.com")
        monkeypatch.setenv("TASKSYNC_REMOTE_DIR", "/srv/tasks")
        assert apply_env_overrides({})["remote"]["kind"] == "http"

    def test_record_attempts(self, monkeypatch):
        monkeypatch.setenv("TASKSYNC_RECORD_ATTEMPTS", "3")
        result = apply_env_overrides({"sync": {"journal": True}})
        assert result["sync"] == {"journal": True, "record_attempts": 3}

    @pytest.mark.parametrize("value", ["zero", "0", "-2"])
    def test_bad_record_attempts_ignored(self, monkeypatch, caplog, value):
        monkeypatch.setenv("TASKSYNC_RECORD_ATTEMPTS", value)
        result = apply_env_overrides({})
        assert "sync" not in result
        assert "TASKSYNC_RECORD_ATTEMPTS" in caplog.text

    def test_does_not_mutate_input(self, monkeypatch):
        monkeypatch.setenv("TASKSYNC_DB", "/tmp/tasks.db")
        original = {"store": {"path": "/old.db"}}
        apply_env_overrides(original)
        assert original == {"store": {"path": "/old.db"}}


# ==============================================================================
# Full Loading
# ==============================================================================


class TestLoadConfig:
    """Test the full precedence chain."""

    def test_defaults(self, tmp_path):
        config = load_config(project_dir=tmp_path, use_cache=False)
        assert config == TaskSyncConfig(**get_default_config())
        assert config.user_id is None
        assert config.remote_configured is False
        assert config.sync.record_attempts == 1

    def test_user_then_project_then_env(self, tmp_path, monkeypatch):
        user_config = get_user_config_path()
        user_config.parent.mkdir(parents=True)
        user_config.write_text(
            json.dumps({"user_id": "from-user", "sync": {"record_attempts": 2, "journal": True}})
        )
        project = tmp_path / "project"
        project.mkdir()
        (project / ".tasksync.json").write_text(
            json.dumps({"user_id": "from-project", "sync": {"record_attempts": 4}})
        )
        monkeypatch.setenv("TASKSYNC_USER", "from-env")

        config = load_config(project_dir=project, use_cache=False)

        assert config.user_id == "from-env"
        assert config.sync.record_attempts == 4
        assert config.sync.journal is True

    def test_invalid_config_raises(self, tmp_path):
        (tmp_path / ".tasksync.json").write_text(json.dumps({"remote": {"kind": "ftp"}}))
        with pytest.raises(ValidationError):
            load_config(project_dir=tmp_path, use_cache=False)

    def test_cache(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TASKSYNC_USER", "first")
        first = load_config(project_dir=tmp_path)

        monkeypatch.setenv("TASKSYNC_USER", "second")
        assert load_config(project_dir=tmp_path) is first

        clear_cache()
        assert load_config(project_dir=tmp_path).user_id == "second"


class TestRemoteConfig:
    def test_http_requires_base_url(self):
        with pytest.raises(ValidationError, match="base_url is required"):
            RemoteConfig(kind="http")

    def test_directory_requires_directory(self):
        with pytest.raises(ValidationError, match="directory is required"):
            RemoteConfig(kind="directory")

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            RemoteConfig(timeout_seconds=0)


# ==============================================================================
# Layered .env
# ==============================================================================


class TestLoadLayeredEnv:
    """Test .env precedence: OS env > project .env > user .env."""

    def test_precedence(self, tmp_path, monkeypatch):
        user_env = tmp_path / "user.env"
        user_env.write_text("TASKSYNC_USER=user-file\nTASKSYNC_DB=/user.db\n")
        project_env = tmp_path / "project.env"
        project_env.write_text("TASKSYNC_USER=project-file\nTASKSYNC_REMOTE_DIR=/proj\n")
        monkeypatch.setenv("TASKSYNC_REMOTE_DIR", "/from-shell")
        for key in ("TASKSYNC_USER", "TASKSYNC_DB"):
            # Registers the keys so monkeypatch removes them again afterwards
            monkeypatch.setenv(key, "")
            monkeypatch.delenv(key)

        applied = load_layered_env(user_env_paths=[user_env], project_env_paths=[project_env])

        assert applied == {"TASKSYNC_USER": "project-file", "TASKSYNC_DB": "/user.db"}
        assert os.environ["TASKSYNC_USER"] == "project-file"
        assert os.environ["TASKSYNC_DB"] == "/user.db"
        assert os.environ["TASKSYNC_REMOTE_DIR"] == "/from-shell"

    def test_missing_files_are_fine(self, tmp_path):
        load_layered_env(
            user_env_paths=[tmp_path / "nope.env"],
            project_env_paths=[tmp_path / "nope2.env"],
        )
