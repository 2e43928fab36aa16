"""
Adapter base — the contract between the engine and external tools.

Each adapter wraps one command-line tool (git, a node package manager,
the shell). The engine only talks to these tools through adapters, so
tests can swap in fakes with the same surface.
"""

from __future__ import annotations

import shutil
from abc import ABC, abstractmethod

from shivvie.core.errors import InstallError


class Adapter(ABC):
    """Abstract base class for all adapters.

    To create a new adapter:
        1. Subclass Adapter
        2. Implement name and executable
        3. Add it to the Toolchain
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'git', 'node', 'shell')."""

    @property
    @abstractmethod
    def executable(self) -> str:
        """The command this adapter shells out to."""

    def is_available(self) -> bool:
        """Check if the underlying tool is on PATH. Fast, never raises."""
        return shutil.which(self.executable) is not None

    def require(self) -> str:
        """Absolute path of the executable, or InstallError if missing."""
        path = shutil.which(self.executable)
        if path is None:
            raise InstallError(f"'{self.executable}' is required by the {self.name} adapter but was not found on PATH")
        return path

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
