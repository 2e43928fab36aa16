"""
Process context — the active settings and the shared on-disk roots.

The settings are set ONCE at startup by the CLI (main.py) and read
everywhere else. Tests set them per test through a fixture.

The temp root and the npm cache are process-wide directories: created
on first use, never torn down within a run. Concurrent resolutions stay
apart by allocating a fresh uuid-named subdirectory each time instead
of taking locks.
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Optional

from shivvie.core.config.loader import Settings


_settings: Optional[Settings] = None


def set_settings(settings: Settings) -> None:
    """Register the settings for the current process."""
    global _settings
    _settings = settings


def get_settings() -> Settings:
    """Return the active settings, falling back to built-in defaults."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Forget the registered settings (defaults apply again)."""
    global _settings
    _settings = None


def temp_root() -> Path:
    """Shared temp root, created on first use."""
    root = get_settings().temp_dir
    root.mkdir(parents=True, exist_ok=True)
    return root


def fresh_temp_dir() -> Path:
    """A new, uniquely named directory under the temp root."""
    path = temp_root() / uuid.uuid4().hex
    path.mkdir(parents=True)
    return path


def npm_cache_dir() -> Path:
    """Shared package cache for the npm backend, created on first use."""
    path = get_settings().cache_dir / "npm"
    path.mkdir(parents=True, exist_ok=True)
    return path
