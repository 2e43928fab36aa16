"""
Service facade — what a module's ``actions`` function receives.

    sv.i    validated input (the module's pydantic model instance)
    sv.p    path helpers: from_cwd / from_source / from_target
    sv.r    render a string against the input (plus extra data)
    sv.a    action builders, one per action type
    sv.u    utilities (temp files)

Builders make their path arguments absolute, render them against the
input, and return frozen action values. They never touch the filesystem.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tomllib
import uuid
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from shivvie.core import context
from shivvie.core.errors import PatchError
from shivvie.core.models.action import (
    CascadeAction,
    DelegateAction,
    PackageAction,
    PatchAction,
    RenderAction,
    ScriptAction,
)
from shivvie.core.patch import PRESETS
from shivvie.core.render import render

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

# Keyword that marks a package as a module registry
REGISTRY_KEYWORD = "shivvie-registry"

# Prefix of delegate sources resolved against the registry anchor
REGISTRY_PREFIX = "@:"


def _absolute(path: Path) -> Path:
    # Lexical only: builders must not hit the filesystem.
    return Path(os.path.abspath(path))


def _declares_registry(directory: Path) -> bool:
    package_json = directory / "package.json"
    if package_json.is_file():
        try:
            keywords = json.loads(package_json.read_text(encoding="utf-8")).get("keywords") or []
        except (OSError, ValueError, AttributeError):
            keywords = []
        if REGISTRY_KEYWORD in keywords:
            return True

    pyproject = directory / "pyproject.toml"
    if pyproject.is_file():
        try:
            project = tomllib.loads(pyproject.read_text(encoding="utf-8")).get("project", {})
        except (OSError, tomllib.TOMLDecodeError):
            project = {}
        if REGISTRY_KEYWORD in (project.get("keywords") or []):
            return True

    return False


def find_registry_anchor(source_dir: Path) -> Path:
    """Nearest ancestor (or self) marked as a module registry.

    Falls back to ``source_dir`` when no ancestor carries the marker.
    """
    start = source_dir.resolve()
    for directory in (start, *start.parents):
        if _declares_registry(directory):
            return directory
    return start


@dataclass(frozen=True)
class PathService:
    """Absolute path helpers."""

    source_dir: Path
    target_dir: Path

    def from_cwd(self, *segments: str | Path) -> Path:
        return _absolute(Path.cwd().joinpath(*segments))

    def from_source(self, *segments: str | Path) -> Path:
        return _absolute(self.source_dir.joinpath(*segments))

    def from_target(self, *segments: str | Path) -> Path:
        return _absolute(self.target_dir.joinpath(*segments))


class ActionService:
    """One builder per action type."""

    def __init__(
        self,
        data: dict[str, Any],
        paths: PathService,
        registry_dir: Path,
        shell: str,
    ):
        self._data = data
        self._paths = paths
        self._registry_dir = registry_dir
        self._shell = shell

    def _r(self, value: str | Path, data: dict[str, Any] | None = None) -> str:
        return render(str(value), self._data if data is None else data)

    def _merged(self, data: dict[str, Any] | None) -> dict[str, Any]:
        return {**self._data, **(data or {})}

    def render(
        self,
        source: str,
        to: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> RenderAction:
        """Render ``source`` (from the module) to ``to`` (in the target, default: same name)."""
        rendering_data = self._merged(data)
        return RenderAction(
            source=self._r(self._paths.from_source(source), rendering_data),
            target=self._r(self._paths.from_target(to or source), rendering_data),
            rendering_data=rendering_data,
        )

    def cascade(
        self,
        source: str,
        to: str | None = None,
        ignore: Iterable[str] | None = None,
        data: dict[str, Any] | None = None,
    ) -> CascadeAction:
        """Render every file under ``source`` into ``to``."""
        rendering_data = self._merged(data)
        return CascadeAction(
            source=self._r(self._paths.from_source(source), rendering_data),
            target=self._r(self._paths.from_target(to or source), rendering_data),
            ignore=tuple(ignore or ()),
            rendering_data=rendering_data,
        )

    def patch(
        self,
        preset: str,
        path: str,
        manipulator: Callable[[Any], Any],
        touch: bool = False,
    ) -> PatchAction:
        """Edit a target file through a patch preset ('json', 'yaml' or 'text')."""
        if preset not in PRESETS:
            raise PatchError(f"Unknown patch preset '{preset}'. Valid: {', '.join(sorted(PRESETS))}")
        return PatchAction(
            path=self._r(self._paths.from_target(path)),
            preset=preset,
            manipulator=manipulator,
            touch=touch,
        )

    def script(self, fn: Callable[[], Awaitable[Any]]) -> ScriptAction:
        """Run ``fn`` with ``shivvie.sh`` bound to the target directory."""
        return ScriptAction(fn=fn, cwd=self._paths.from_target(), shell=self._shell)

    def delegate(
        self,
        source: str,
        to: str = ".",
        input_data: dict[str, Any] | None = None,
    ) -> DelegateAction:
        """Run another module. ``@:name`` resolves against the registry anchor."""
        if source.startswith(REGISTRY_PREFIX):
            module_dir = _absolute(self._registry_dir / source[len(REGISTRY_PREFIX):])
        else:
            module_dir = self._paths.from_source(source)
        return DelegateAction(
            source=self._r(module_dir),
            target=self._r(self._paths.from_target(to)),
            input_data=input_data or {},
        )

    def install(
        self,
        cwd: str = ".",
        names: Iterable[str] | None = None,
        dev: bool = False,
    ) -> PackageAction:
        """Add ``names`` (or install everything declared, if none)."""
        return PackageAction(
            cwd=self._r(self._paths.from_target(cwd)),
            names=tuple(names or ()),
            dev=dev,
            rm=False,
        )

    def uninstall(self, names: Iterable[str], cwd: str = ".") -> PackageAction:
        """Remove ``names`` from the manifest in ``cwd``."""
        return PackageAction(
            cwd=self._r(self._paths.from_target(cwd)),
            names=tuple(names),
            dev=False,
            rm=True,
        )


class UtilsService:
    """Helpers that do touch the filesystem, for use inside scripts."""

    async def temp_write(self, name: str, text: str) -> Path:
        """Write ``text`` to a fresh temp file called ``name`` and return its path."""
        path = context.temp_root() / uuid.uuid4().hex / name
        await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(path.write_text, text, encoding="utf-8")
        return path


@dataclass
class Service(Generic[T]):
    """The facade bound to one module execution."""

    i: T
    p: PathService
    a: ActionService
    u: UtilsService
    data: dict[str, Any]

    def r(self, template: str, additional: dict[str, Any] | None = None) -> str:
        """Render ``template`` against the input merged with ``additional``."""
        return render(template, {**self.data, **(additional or {})})


def create_service(
    i: T,
    source_dir: Path,
    target_dir: Path,
    shell: str,
) -> Service[T]:
    """Bind a Service to a validated input and a source/target pair."""
    data = i.model_dump()
    paths = PathService(source_dir=source_dir.resolve(), target_dir=target_dir.resolve())
    registry_dir = find_registry_anchor(source_dir)
    logger.debug("Registry anchor for %s: %s", source_dir, registry_dir)

    return Service(
        i=i,
        p=paths,
        a=ActionService(data=data, paths=paths, registry_dir=registry_dir, shell=shell),
        u=UtilsService(),
        data=data,
    )
