"""
Configuration loader — reads shivvie.yml and SHIVVIE_* variables into Settings.

Precedence, lowest to highest:
    built-in defaults  <  shivvie.yml  <  environment variables

The file is optional. When no explicit path is given, it is searched
for upward from the current directory, so a settings file at the root
of a module registry applies to every command run inside it.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from shivvie.core.errors import ConfigError

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "shivvie.yml"

# Environment variable → Settings field
ENV_OVERRIDES = {
    "SHIVVIE_CACHE_DIR": "cache_dir",
    "SHIVVIE_TEMP_DIR": "temp_dir",
    "SHIVVIE_MAX_DEPTH": "max_delegation_depth",
    "SHIVVIE_GIT_HOST": "git_host",
    "SHIVVIE_PACKAGE_MANAGER": "package_manager",
    "SHIVVIE_SHELL": "shell",
}


def _default_cache_dir() -> Path:
    return Path.home() / ".cache" / "shivvie"


def _default_temp_dir() -> Path:
    return Path(tempfile.gettempdir()) / "shivvie"


class Settings(BaseModel):
    """Process-wide engine settings."""

    cache_dir: Path = Field(default_factory=_default_cache_dir)
    temp_dir: Path = Field(default_factory=_default_temp_dir)
    max_delegation_depth: int = Field(default=32, ge=1)
    git_host: str = "https://github.com"
    package_manager: Literal["npm", "yarn", "pnpm"] | None = None
    shell: str | None = None


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for shivvie.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to shivvie.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_settings(
    path: Path | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """Load settings from an optional YAML file plus environment overrides.

    Args:
        path: Explicit path to shivvie.yml. If None, searches upward.
        environ: Environment mapping (default: os.environ).

    Raises:
        ConfigError: If the file is unreadable or any value is invalid.
    """
    data: dict = {}

    if path is None:
        path = find_config_file()
    elif not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    if path is not None:
        logger.debug("Loading settings from %s", path)
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e

        try:
            loaded = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Expected a YAML mapping in {path}, got {type(loaded).__name__}")
        data.update(loaded)

    env = os.environ if environ is None else environ
    for var, field_name in ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            data[field_name] = value

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e

    return settings
