"""
Error taxonomy — every failure the engine reports on purpose.

All errors derive from ShivvieError so entry points can catch one type.
I/O errors raised while applying actions are NOT wrapped: they bubble up
as the OSError subclasses the standard library raises.
"""

from __future__ import annotations

from typing import Any


class ShivvieError(Exception):
    """Base class for all shivvie errors."""


class ConfigError(ShivvieError):
    """Raised when shivvie.yml or a SHIVVIE_* variable is invalid."""


class InvalidUriError(ShivvieError):
    """A module reference does not match the URI grammar."""

    def __init__(self, uri: str, reason: str = ""):
        self.uri = uri
        self.reason = reason
        message = f'invalid shivvie uri "{uri}"'
        if reason:
            message += f": {reason}"
        super().__init__(message)


class NotFoundError(ShivvieError):
    """A local module path (or a sub-path inside a clone) does not exist."""


class InstallError(ShivvieError):
    """Fetching a repository or installing packages failed."""


class ModuleLoadError(ShivvieError):
    """A module entry point could not be imported or has the wrong shape."""


class InvalidInputError(ShivvieError):
    """Input data failed the module's schema validation."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        self.errors = errors or []
        super().__init__(message)


class ActionProductionError(ShivvieError):
    """A module's action stream yielded something that is not an action."""


class UnknownActionError(ShivvieError):
    """The executor received an action outside the closed set."""


class DelegationDepthError(ShivvieError):
    """Delegate actions nested deeper than the configured ceiling."""


class TemplateError(ShivvieError):
    """A template could not be parsed."""


class PatchError(ShivvieError):
    """A patch preset is unknown or its recipe returned a bad value."""


class CommandError(ShivvieError):
    """A shell command run from a script action exited non-zero."""

    def __init__(self, command: str, return_code: int, stderr: str = ""):
        self.command = command
        self.return_code = return_code
        self.stderr = stderr
        detail = stderr.strip() or f"exit code {return_code}"
        super().__init__(f"Command '{command}' failed: {detail}")
