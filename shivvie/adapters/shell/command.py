"""
Shell command adapter — run commands and scripted shell procedures.

Two layers live here:

- ``run_command`` runs one argv list and captures its output. The git
  and node adapters are built on it.
- The script scope: a script action runs its procedure inside
  ``within(cwd, shell)``, and every ``sh(...)`` call the procedure makes
  runs through that shell, in that directory. The scope is a context
  variable, so the process working directory is never touched and
  concurrent scopes cannot leak into each other.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import shutil
import time
from collections.abc import Iterator
from contextvars import ContextVar
from dataclasses import dataclass, field
from pathlib import Path

from shivvie.adapters.base import Adapter
from shivvie.core.errors import CommandError

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Outcome of one finished command."""

    command: str
    return_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.return_code == 0


async def run_command(
    args: list[str],
    cwd: Path | str | None = None,
    env: dict[str, str] | None = None,
    timeout: float | None = None,
) -> CommandResult:
    """Run ``args`` and capture stdout/stderr.

    Raises:
        FileNotFoundError: If the executable does not exist.
        TimeoutError: If ``timeout`` elapses; the process is killed.
    """
    command = " ".join(args)
    logger.debug("Executing: %s (cwd=%s)", command, cwd)
    start = time.monotonic()

    proc = await asyncio.create_subprocess_exec(
        *args,
        cwd=cwd,
        env=env,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        proc.kill()
        await proc.wait()
        raise TimeoutError(f"Command timed out after {timeout}s: {command}") from None

    return CommandResult(
        command=command,
        return_code=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
        duration_ms=int((time.monotonic() - start) * 1000),
    )


class ShellAdapter(Adapter):
    """Locates the shell used by script actions.

    Prefers the configured shell, then bash, then sh.
    """

    def __init__(self, preferred: str | None = None):
        self._preferred = preferred

    @property
    def name(self) -> str:
        return "shell"

    @property
    def executable(self) -> str:
        return self._preferred or "bash"

    def resolve(self) -> str:
        """Absolute path of the shell to use (falls back to plain 'sh')."""
        for candidate in (self._preferred, "bash", "sh"):
            if candidate:
                found = shutil.which(candidate)
                if found:
                    return found
        return "sh"


# ── Script scope ────────────────────────────────────────────────────


@dataclass(frozen=True)
class ShellScope:
    """Where and how ``sh`` runs commands."""

    cwd: Path
    shell: str
    env: dict[str, str] = field(default_factory=dict)


_scope: ContextVar[ShellScope | None] = ContextVar("shivvie_shell_scope", default=None)


def current_scope() -> ShellScope:
    """The active scope, or one rooted at the process cwd."""
    scope = _scope.get()
    if scope is None:
        scope = ShellScope(cwd=Path.cwd(), shell=ShellAdapter().resolve())
    return scope


@contextlib.contextmanager
def within(cwd: Path, shell: str, env: dict[str, str] | None = None) -> Iterator[ShellScope]:
    """Run the enclosed code with ``sh`` bound to ``cwd`` and ``shell``."""
    scope = ShellScope(cwd=Path(cwd), shell=shell, env={"FORCE_COLOR": "1", **(env or {})})
    token = _scope.set(scope)
    try:
        yield scope
    finally:
        _scope.reset(token)


async def sh(command: str, *, check: bool = True, timeout: float | None = None) -> CommandResult:
    """Run a shell command from inside a script action.

    Output lines are logged. With ``check`` (the default), a non-zero
    exit raises CommandError.
    """
    scope = current_scope()
    logger.info("$ %s", command)

    result = await run_command(
        [scope.shell, "-c", command],
        cwd=scope.cwd,
        env={**os.environ, **scope.env},
        timeout=timeout,
    )
    for line in result.stdout.splitlines():
        logger.info("  %s", line)
    for line in result.stderr.splitlines():
        logger.info("  %s", line)

    if check and not result.ok:
        raise CommandError(command, result.return_code, result.stderr)
    return result
