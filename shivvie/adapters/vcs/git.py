"""
Git adapter — fetch module repositories.

Clones ``scope/name`` from the configured host into a destination
directory, at an optional branch, tag or commit, and strips the ``.git``
directory so the result is a plain source tree. Uses the git CLI.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from pathlib import Path

from shivvie.adapters.base import Adapter
from shivvie.adapters.shell.command import CommandResult, run_command
from shivvie.core.errors import InstallError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


def _log_progress(message: str) -> None:
    logger.info("git: %s", message)


class GitFetcher(Adapter):
    """Shallow-clone module repositories.

    Progress notices (git's stderr lines plus our own milestones) go to
    ``on_progress``; by default they are logged at INFO.
    """

    def __init__(
        self,
        host: str = "https://github.com",
        on_progress: ProgressCallback | None = None,
        timeout: float = 300,
    ):
        self._host = host.rstrip("/")
        self._on_progress = on_progress or _log_progress
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "git"

    @property
    def executable(self) -> str:
        return "git"

    def url_for(self, repo: str) -> str:
        return f"{self._host}/{repo}.git"

    async def clone(self, repo: str, dest: Path, ref: str = "") -> None:
        """Clone ``repo`` (``scope/name``) into ``dest``.

        Tries a shallow clone of ``ref`` first. Commit hashes cannot be
        cloned by name, so on failure it falls back to a full clone
        followed by a checkout.

        Raises:
            InstallError: If git is missing or any git command fails.
        """
        self.require()
        url = self.url_for(repo)
        label = f"{repo}#{ref}" if ref else repo
        self._on_progress(f"cloning {label} to {dest}")

        args = ["git", "clone", "--depth", "1"]
        if ref:
            args += ["--branch", ref]
        result = await self._git([*args, url, str(dest)])

        if not result.ok and ref:
            shutil.rmtree(dest, ignore_errors=True)
            self._on_progress(f"'{ref}' is not a branch or tag, fetching full history")
            result = await self._git(["git", "clone", url, str(dest)])
            if result.ok:
                result = await self._git(["git", "-C", str(dest), "checkout", "--quiet", ref])

        if not result.ok:
            raise InstallError(f"Failed to clone {label}: {result.stderr.strip() or result.return_code}")

        shutil.rmtree(dest / ".git", ignore_errors=True)
        self._on_progress(f"cloned {label}")

    async def _git(self, args: list[str]) -> CommandResult:
        try:
            result = await run_command(args, timeout=self._timeout)
        except (OSError, TimeoutError) as e:
            raise InstallError(f"git failed: {e}") from e
        for line in result.stderr.splitlines():
            if line.strip():
                self._on_progress(line.strip())
        return result
