"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import TaskSyncConfig

logger = logging.getLogger(__name__)

# Global cache to avoid reloading config multiple times per process
_config_cache: TaskSyncConfig | None = None


def get_xdg_config_home() -> Path:
    """$XDG_CONFIG_HOME, or ~/.config when unset."""
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """Path to ~/.config/tasksync/config.json (or XDG equivalent)."""
    return get_xdg_config_home() / "tasksync" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """Path to .tasksync.json in the given (or current) directory."""
    if cwd is None:
        cwd = Path.cwd()
    return cwd / ".tasksync.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Recursively merge ``override`` onto a copy of ``base``.

    Example:
        >>> base = {"a": 1, "b": {"x": 10, "y": 20}}
        >>> override = {"b": {"y": 30, "z": 40}, "c": 3}
        >>> deep_merge(base, override)
        {'a': 1, 'b': {'x': 10, 'y': 30, 'z': 40}, 'c': 3}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    One config layer from a JSON file.

    A missing file is simply no layer. An unreadable file or one that does
    not hold a JSON object is logged and skipped; the other layers still
    apply.
    """
    if not path.is_file():
        return None

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None

    if not isinstance(data, dict):
        logger.warning("Ignoring config at %s: expected a JSON object", path)
        return None
    return data


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Supported env vars:
        TASKSYNC_USER - overrides user_id
        TASKSYNC_DB - overrides store.path
        TASKSYNC_REMOTE_URL - sets remote.kind=http and remote.base_url
        TASKSYNC_REMOTE_TOKEN - overrides remote.token
        TASKSYNC_REMOTE_DIR - sets remote.kind=directory and remote.directory
        TASKSYNC_RECORD_ATTEMPTS - overrides sync.record_attempts

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = config_dict.copy()

    def section(name: str) -> dict[str, Any]:
        current = result.get(name)
        current = dict(current) if isinstance(current, dict) else {}
        result[name] = current
        return current

    if user := os.environ.get("TASKSYNC_USER"):
        result["user_id"] = user

    if db_path := os.environ.get("TASKSYNC_DB"):
        section("store")["path"] = db_path

    if remote_url := os.environ.get("TASKSYNC_REMOTE_URL"):
        remote = section("remote")
        remote["kind"] = "http"
        remote["base_url"] = remote_url
    elif remote_dir := os.environ.get("TASKSYNC_REMOTE_DIR"):
        remote = section("remote")
        remote["kind"] = "directory"
        remote["directory"] = remote_dir

    if token := os.environ.get("TASKSYNC_REMOTE_TOKEN"):
        section("remote")["token"] = token

    if attempts_str := os.environ.get("TASKSYNC_RECORD_ATTEMPTS"):
        try:
            attempts = int(attempts_str)
            if attempts < 1:
                logger.warning(
                    "TASKSYNC_RECORD_ATTEMPTS must be >= 1, got %d, ignoring", attempts
                )
            else:
                section("sync")["record_attempts"] = attempts
        except ValueError:
            logger.warning("Invalid TASKSYNC_RECORD_ATTEMPTS value '%s', ignoring", attempts_str)

    return result


def get_default_config() -> dict[str, Any]:
    """Hardcoded default configuration."""
    return {
        "remote": {"kind": "none", "collection": "tasks", "timeout_seconds": 10.0},
        "sync": {
            "record_attempts": 1,
            "retry_base_delay": 0.5,
            "auto_sync_on_reconnect": True,
            "journal": False,
        },
    }


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> TaskSyncConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (TASKSYNC_*)
        2. Project config (.tasksync.json)
        3. User config (~/.config/tasksync/config.json)
        4. Hardcoded defaults

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()
    for path in (get_user_config_path(), get_project_config_path(project_dir)):
        layer = load_json_file(path)
        if layer:
            logger.debug("Applying config layer %s", path)
            merged = deep_merge(merged, layer)

    config = TaskSyncConfig.model_validate(apply_env_overrides(merged))
    _config_cache = config
    return config


def clear_cache() -> None:
    """Forget the cached configuration (tests, or after editing config files)."""
    global _config_cache
    _config_cache = None
