"""
Layered .env loading.

Precedence, highest first:
    variables already exported in the shell
    project .env (in the working directory)
    user .env (~/.config/tasksync/.env)

A .env value never replaces something exported in the shell, so one-off
overrides like ``TASKSYNC_USER=bob tasksync task list`` keep working.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from dotenv import dotenv_values

logger = logging.getLogger(__name__)


def get_user_env_path() -> Path:
    xdg_home = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(xdg_home) / "tasksync" / ".env"


def read_env_file(path: Path) -> dict[str, str]:
    """Key/value pairs from a .env file; empty if the file is missing."""
    if not path.is_file():
        return {}
    return {k: v for k, v in dotenv_values(path).items() if k and v is not None}


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
) -> dict[str, str]:
    """
    Copy values from user and project .env files into os.environ.

    Args:
        project_dir: Directory holding the project .env (defaults to cwd)
        user_env_paths: Override the user-level .env locations
        project_env_paths: Override the project-level .env locations

    Returns:
        The variables that were set, with their values.
    """
    if user_env_paths is None:
        user_env_paths = [get_user_env_path()]
    if project_env_paths is None:
        project_env_paths = [(project_dir or Path.cwd()) / ".env"]

    shell_keys = set(os.environ)
    applied: dict[str, str] = {}

    # Later layers win over earlier ones, but never over the shell
    for path in [*user_env_paths, *project_env_paths]:
        for key, value in read_env_file(Path(path)).items():
            if key in shell_keys:
                continue
            os.environ[key] = value
            applied[key] = value

    if applied:
        logger.debug("Loaded from .env: %s", ", ".join(sorted(applied)))
    return applied
