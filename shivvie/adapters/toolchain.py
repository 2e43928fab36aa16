"""
Toolchain — the adapters one engine run talks to.

The executor and the resolver never construct adapters themselves;
they receive a Toolchain, so tests can substitute fakes.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from shivvie.adapters.languages.node import NodePackageManager
from shivvie.adapters.shell.command import ShellAdapter
from shivvie.adapters.vcs.git import GitFetcher
from shivvie.core.config.loader import Settings


@dataclass
class Toolchain:
    """Git fetcher, package manager and shell for one run."""

    git: GitFetcher = field(default_factory=GitFetcher)
    packages: NodePackageManager = field(default_factory=NodePackageManager)
    shell: ShellAdapter = field(default_factory=ShellAdapter)

    @classmethod
    def from_settings(cls, settings: Settings) -> Toolchain:
        return cls(
            git=GitFetcher(host=settings.git_host),
            packages=NodePackageManager(preferred=settings.package_manager),
            shell=ShellAdapter(preferred=settings.shell),
        )
