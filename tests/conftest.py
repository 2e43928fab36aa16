"""
Shared test fixtures and configuration.

Engine tests never reach the network or a real package manager: the
``toolchain`` fixture bundles a fake git fetcher (cloning from local
directories) and a fake package manager (recording calls) with the
real shell adapter.
"""

from __future__ import annotations

import shutil
import textwrap
from pathlib import Path

import pytest

from shivvie.adapters.languages.node import NodePackageManager
from shivvie.adapters.shell.command import ShellAdapter
from shivvie.adapters.toolchain import Toolchain
from shivvie.adapters.vcs.git import GitFetcher
from shivvie.core import context
from shivvie.core.config.loader import Settings
from shivvie.core.errors import InstallError


class FakeGitFetcher(GitFetcher):
    """Clones ``scope/name`` by copying a registered local directory."""

    def __init__(self, repos: dict[str, Path] | None = None):
        super().__init__(host="https://git.invalid")
        self.repos: dict[str, Path] = dict(repos or {})
        self.clones: list[tuple[str, Path, str]] = []

    async def clone(self, repo: str, dest: Path, ref: str = "") -> None:
        self.clones.append((repo, dest, ref))
        source = self.repos.get(repo)
        if source is None:
            raise InstallError(f"Failed to clone {repo}: repository not found")
        shutil.copytree(source, dest, dirs_exist_ok=True)


class FakePackageManager(NodePackageManager):
    """Records every operation instead of running npm.

    ``add`` into a directory with a ``node_modules`` layout copies a
    registered package there, so the npm backend can be exercised.
    """

    def __init__(self, packages: dict[str, Path] | None = None):
        super().__init__(preferred="npm")
        self.packages: dict[str, Path] = dict(packages or {})
        self.calls: list[tuple] = []

    async def add(self, cwd: Path, name: str, dev: bool = False) -> None:
        self.calls.append(("add", Path(cwd), name, dev))
        source = self.packages.get(name)
        if source is not None:
            shutil.copytree(source, Path(cwd) / "node_modules" / name, dirs_exist_ok=True)

    async def remove(self, cwd: Path, name: str) -> None:
        self.calls.append(("remove", Path(cwd), name))

    async def install(self, cwd: Path) -> None:
        self.calls.append(("install", Path(cwd)))


@pytest.fixture(autouse=True)
def settings(tmp_path: Path):
    """Point the temp and cache roots into the test's tmp dir."""
    configured = Settings(cache_dir=tmp_path / "cache", temp_dir=tmp_path / "tmp")
    context.set_settings(configured)
    yield configured
    context.reset_settings()


@pytest.fixture
def git() -> FakeGitFetcher:
    return FakeGitFetcher()


@pytest.fixture
def packages() -> FakePackageManager:
    return FakePackageManager()


@pytest.fixture
def toolchain(git: FakeGitFetcher, packages: FakePackageManager) -> Toolchain:
    return Toolchain(git=git, packages=packages, shell=ShellAdapter())


@pytest.fixture
def make_module(tmp_path: Path):
    """Factory writing a module directory.

    Usage:
        module_dir = make_module("hello", config=\"\"\"...\"\"\", files={"a.txt": "{{name}}"})
    """

    def _make(
        name: str,
        config: str,
        files: dict[str, str | bytes] | None = None,
        root: Path | None = None,
    ) -> Path:
        module_dir = (root or tmp_path / "modules") / name
        module_dir.mkdir(parents=True, exist_ok=True)
        (module_dir / "shivvie_config.py").write_text(textwrap.dedent(config), encoding="utf-8")
        for rel, content in (files or {}).items():
            path = module_dir / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding="utf-8")
        return module_dir

    return _make


@pytest.fixture
def hello_module(make_module) -> Path:
    """A module rendering README.md from a template and a cascaded tree."""
    return make_module(
        "hello",
        config="""\
            from pydantic import BaseModel

            from shivvie import define_module


            class Input(BaseModel):
                name: str
                private: bool = False


            def actions(sv):
                return [
                    sv.a.render("README.md.hbs", to="README.md"),
                    sv.a.cascade("template", to="."),
                ]


            module = define_module(input=Input, actions=actions)
        """,
        files={
            "README.md.hbs": "# {{name}}\n",
            "template/src/main.txt": "hello {{name}}\n",
            "template/.gitignore": "node_modules\n",
        },
    )
