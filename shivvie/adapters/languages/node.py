"""
Node.js adapter — npm/yarn/pnpm dependency operations.

Detects which package manager a directory uses and adds, removes or
installs dependencies there. Every failure surfaces as InstallError.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from shivvie.adapters.base import Adapter
from shivvie.adapters.shell.command import run_command
from shivvie.core.errors import InstallError

logger = logging.getLogger(__name__)

PACKAGE_MANIFEST = "package.json"

# Sub-commands per package manager
_COMMANDS: dict[str, dict[str, list[str]]] = {
    "npm": {
        "add": ["install"],
        "add_dev": ["install", "--save-dev"],
        "remove": ["uninstall"],
        "install": ["install"],
    },
    "yarn": {
        "add": ["add"],
        "add_dev": ["add", "--dev"],
        "remove": ["remove"],
        "install": ["install"],
    },
    "pnpm": {
        "add": ["add"],
        "add_dev": ["add", "--save-dev"],
        "remove": ["remove"],
        "install": ["install"],
    },
}


class NodePackageManager(Adapter):
    """Dependency operations against a directory's package.json.

    The package manager is, in order: the configured one, the
    ``packageManager`` field of package.json, the lock file present,
    or npm.
    """

    def __init__(self, preferred: str | None = None, timeout: float = 600):
        self._preferred = preferred
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "node"

    @property
    def executable(self) -> str:
        return self._preferred or "npm"

    def detect(self, cwd: Path) -> str:
        """Pick the package manager for ``cwd``."""
        if self._preferred:
            return self._preferred

        manifest = cwd / PACKAGE_MANIFEST
        if manifest.is_file():
            try:
                declared = json.loads(manifest.read_text(encoding="utf-8")).get("packageManager", "")
            except (OSError, ValueError, AttributeError):
                declared = ""
            pm = str(declared).split("@", 1)[0]
            if pm in _COMMANDS:
                return pm

        if (cwd / "pnpm-lock.yaml").exists():
            return "pnpm"
        if (cwd / "yarn.lock").exists():
            return "yarn"
        return "npm"

    async def add(self, cwd: Path, name: str, dev: bool = False) -> None:
        await self._exec(cwd, "add_dev" if dev else "add", [name])

    async def remove(self, cwd: Path, name: str) -> None:
        await self._exec(cwd, "remove", [name])

    async def install(self, cwd: Path) -> None:
        await self._exec(cwd, "install", [])

    async def _exec(self, cwd: Path, operation: str, extra: list[str]) -> None:
        pm = self.detect(cwd)
        cmd = [pm, *_COMMANDS[pm][operation], *extra]
        try:
            result = await run_command(cmd, cwd=cwd, timeout=self._timeout)
        except FileNotFoundError as e:
            raise InstallError(f"'{pm}' is not installed: {e}") from e
        except (OSError, TimeoutError) as e:
            raise InstallError(f"{' '.join(cmd)} failed: {e}") from e

        if not result.ok:
            raise InstallError(
                f"{result.command} failed in {cwd}: "
                f"{result.stderr.strip() or f'exit code {result.return_code}'}"
            )
        logger.debug("%s → %s", result.command, result.stdout.strip())
