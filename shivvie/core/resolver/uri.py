"""
URI resolver — turn a module reference into a local directory.

Grammar:  [<backend>:]<locator>

    <path>                      local directory (same as file:<path>)
    file:<path>                 local directory
    gh:<scope>/<name>[#<ref>][/<subpath>]
                                git repository, cloned fresh per call
    npm:<name> | npm:@<scope>/<name>
                                package installed into the shared cache

Every locator is checked against its grammar before anything touches
the filesystem, so a malformed reference never leaves a temp directory
behind.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

from shivvie.adapters.languages.node import PACKAGE_MANIFEST
from shivvie.adapters.toolchain import Toolchain
from shivvie.core import context
from shivvie.core.errors import InstallError, InvalidUriError, NotFoundError
from shivvie.core.models.module import GitLocator, ModuleRef, ResolvedModule

logger = logging.getLogger(__name__)

_URI_RE = re.compile(r"^(?:(?P<backend>\w+):)?(?P<locator>[^:]+)$")

_GIT_RE = re.compile(
    r"^(?P<scope>[^/#]+)/(?P<name>[^/#]+)"
    r"(?:#(?P<ref>[^/#]+))?"
    r"(?P<subpath>(?:/[^/]+)+/?)?$"
)

_NPM_RE = re.compile(r"^(?P<name>[^@/]+|@[^@/]+/[^@/]+)$")

BACKENDS = ("file", "gh", "npm")

# Throwaway manifest of the npm backend's shared cache
_NPM_CACHE_MANIFEST = {
    "name": "shivvie-npm-cache",
    "private": True,
    "license": "MIT",
}


def parse_uri(uri: str) -> ModuleRef:
    """Split ``uri`` into backend and locator.

    Raises:
        InvalidUriError: On a malformed reference or an unknown backend.
    """
    match = _URI_RE.match(uri)
    if not match:
        raise InvalidUriError(uri)

    backend = match.group("backend") or "file"
    if backend not in BACKENDS:
        raise InvalidUriError(uri, f'unknown backend "{backend}"')

    return ModuleRef(backend=backend, locator=match.group("locator"))


def parse_git_locator(locator: str) -> GitLocator:
    """Parse ``scope/name[#ref][/subpath]``.

    Raises:
        InvalidUriError: If the locator does not match.
    """
    match = _GIT_RE.match(locator)
    if not match:
        raise InvalidUriError(f"gh:{locator}", "expected <scope>/<name>[#<ref>][/<subpath>]")

    subpath = (match.group("subpath") or "").strip("/")
    segments = [match.group("scope"), match.group("name"), *subpath.split("/")]
    if any(segment in (".", "..") for segment in segments):
        raise InvalidUriError(f"gh:{locator}", "'.' and '..' are not allowed in the path")

    return GitLocator(
        scope=match.group("scope"),
        name=match.group("name"),
        ref=match.group("ref") or "",
        subpath=subpath,
    )


def parse_registry_locator(locator: str) -> str:
    """Validate an npm package name (optionally scoped) and return it.

    Raises:
        InvalidUriError: If the name does not match.
    """
    match = _NPM_RE.match(locator)
    if not match:
        raise InvalidUriError(f"npm:{locator}", "expected <name> or @<scope>/<name>")
    return match.group("name")


async def resolve_module(uri: str, toolchain: Toolchain | None = None) -> ResolvedModule:
    """Materialize the module ``uri`` points at and return its location.

    Raises:
        InvalidUriError: Malformed reference.
        NotFoundError: Local path or clone sub-path missing.
        InstallError: Clone or package installation failed.
    """
    ref = parse_uri(uri)
    toolchain = toolchain or Toolchain.from_settings(context.get_settings())

    if ref.backend == "file":
        source_dir = _resolve_file(ref.locator)
    elif ref.backend == "gh":
        source_dir = await _resolve_git(parse_git_locator(ref.locator), toolchain)
    else:
        source_dir = await _resolve_registry(parse_registry_locator(ref.locator), toolchain)

    logger.debug("Resolved '%s' → %s", uri, source_dir)
    return ResolvedModule.at(source_dir)


# ── Backends ────────────────────────────────────────────────────────


def _resolve_file(locator: str) -> Path:
    try:
        path = Path(locator).expanduser().resolve(strict=True)
    except FileNotFoundError as e:
        raise NotFoundError(f"Module path does not exist: {locator}") from e
    if not path.is_dir():
        raise NotFoundError(f"Module path is not a directory: {path}")
    return path


async def _resolve_git(locator: GitLocator, toolchain: Toolchain) -> Path:
    # The fetcher owns caching; the resolver always clones somewhere new.
    clone_root = context.fresh_temp_dir()
    await toolchain.git.clone(locator.repo, clone_root, locator.ref)

    module_dir = clone_root / locator.subpath if locator.subpath else clone_root
    if not module_dir.is_dir():
        raise NotFoundError(f"'{locator.subpath}' does not exist in {locator.repo}")

    if (module_dir / PACKAGE_MANIFEST).is_file() or (clone_root / PACKAGE_MANIFEST).is_file():
        logger.info("Installing module dependencies in %s...", module_dir)
        await toolchain.packages.install(module_dir)

    return module_dir


async def _resolve_registry(name: str, toolchain: Toolchain) -> Path:
    cache = context.npm_cache_dir()
    manifest = cache / PACKAGE_MANIFEST
    if not manifest.is_file():
        manifest.write_text(json.dumps(_NPM_CACHE_MANIFEST, indent=2) + "\n", encoding="utf-8")

    logger.info("Fetching '%s' into %s...", name, cache)
    await toolchain.packages.add(cache, name)

    module_dir = cache / "node_modules" / name
    if not (module_dir / PACKAGE_MANIFEST).is_file():
        raise InstallError(f"Package '{name}' was not installed into {cache}")
    return module_dir.resolve()
