"""
Engine executor — apply a module's actions to a target directory.

Flow:
    module dir → load + validate → actions(sv) → collect → apply in order

Actions run strictly one after another. The only fan-out is inside a
cascade, whose per-file renders write disjoint paths and run together.
A delegate re-enters ``exec_module`` for the sub-module and finishes
completely before the next outer action starts.

Errors are not caught here: the first failure aborts the sequence and
propagates to the caller. Nothing already written is rolled back.
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
import os
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from shivvie.adapters.shell.command import within
from shivvie.adapters.toolchain import Toolchain
from shivvie.core import context
from shivvie.core.engine.collector import collect_actions
from shivvie.core.engine.loader import prepare_module
from shivvie.core.errors import DelegationDepthError, UnknownActionError
from shivvie.core.models.action import (
    Action,
    CascadeAction,
    DelegateAction,
    PackageAction,
    PatchAction,
    Receipt,
    RenderAction,
    ScriptAction,
    describe,
)
from shivvie.core.patch import patch
from shivvie.core.render import render

logger = logging.getLogger(__name__)


@dataclass
class ExecutionReport:
    """Result of executing one module."""

    module_dir: str = ""
    target_dir: str = ""
    depth: int = 0
    receipts: list[Receipt] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.receipts)

    @property
    def applied(self) -> int:
        return sum(1 for r in self.receipts if r.ok)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.receipts if r.status == "skipped")

    def to_dict(self) -> dict:
        return {
            "module_dir": self.module_dir,
            "target_dir": self.target_dir,
            "depth": self.depth,
            "total": self.total,
            "applied": self.applied,
            "skipped": self.skipped,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


async def exec_module(
    module_dir: Path,
    target_dir: Path,
    input_data: dict[str, Any],
    *,
    toolchain: Toolchain | None = None,
    depth: int = 0,
) -> ExecutionReport:
    """Run the module at ``module_dir`` against ``target_dir``.

    This is also the re-entry point of delegate actions, which pass
    ``depth + 1``.

    Raises:
        DelegationDepthError: If ``depth`` exceeds the configured ceiling.
        ShivvieError / OSError: Whatever loading, validation, collection
            or an action raised.
    """
    settings = context.get_settings()
    if depth > settings.max_delegation_depth:
        raise DelegationDepthError(
            f"Delegation deeper than {settings.max_delegation_depth} levels at {module_dir} "
            "(does a module delegate to itself?)"
        )

    toolchain = toolchain or Toolchain.from_settings(settings)
    module_dir = Path(module_dir).resolve()
    target_dir = Path(target_dir).resolve()

    prepared = prepare_module(module_dir, target_dir, input_data, shell=toolchain.shell.resolve())
    actions = await collect_actions(prepared.production)
    logger.debug("Module %s produced %d actions", module_dir, len(actions))

    await asyncio.to_thread(target_dir.mkdir, parents=True, exist_ok=True)

    report = ExecutionReport(module_dir=str(module_dir), target_dir=str(target_dir), depth=depth)
    report.receipts = await execute_actions(actions, toolchain=toolchain, depth=depth)
    return report


async def execute_actions(
    actions: list[Action],
    *,
    toolchain: Toolchain,
    depth: int = 0,
) -> list[Receipt]:
    """Apply ``actions`` in order, each awaited before the next starts."""
    receipts: list[Receipt] = []
    for index, action in enumerate(actions, 1):
        logger.debug("[%d/%d] %s (depth %d)", index, len(actions), describe(action), depth)
        receipts.append(await apply_action(action, toolchain=toolchain, depth=depth))
    return receipts


async def apply_action(
    action: Action,
    *,
    toolchain: Toolchain,
    depth: int = 0,
) -> Receipt:
    """Apply one action and return its receipt.

    Raises:
        UnknownActionError: If ``action`` is not one of the action types.
    """
    start = time.monotonic()

    if isinstance(action, RenderAction):
        receipt = await _apply_render(action)
    elif isinstance(action, CascadeAction):
        receipt = await _apply_cascade(action)
    elif isinstance(action, ScriptAction):
        receipt = await _apply_script(action)
    elif isinstance(action, DelegateAction):
        receipt = await _apply_delegate(action, toolchain, depth)
    elif isinstance(action, PatchAction):
        receipt = await _apply_patch(action)
    elif isinstance(action, PackageAction):
        receipt = await _apply_package(action, toolchain)
    else:
        raise UnknownActionError(f"Unknown action: {action!r}")

    receipt.duration_ms = int((time.monotonic() - start) * 1000)
    return receipt


# ── Per-type effects ────────────────────────────────────────────────


def _render_file(source: Path, target: Path, data: dict[str, Any]) -> bool:
    """Render one file. Returns False when it was copied verbatim."""
    raw = source.read_bytes()
    target.parent.mkdir(parents=True, exist_ok=True)
    try:
        template = raw.decode("utf-8")
    except UnicodeDecodeError:
        shutil.copyfile(source, target)
        return False
    target.write_text(render(template, data), encoding="utf-8")
    return True


async def _apply_render(action: RenderAction) -> Receipt:
    logger.info("Rendering '%s' to '%s'...", action.source, action.target)
    rendered = await asyncio.to_thread(_render_file, action.source, action.target, action.rendering_data)
    return Receipt.success(
        tag=action.tag,
        target=str(action.target),
        metadata={"source": str(action.source), "rendered": rendered},
    )


def _match_parts(parts: tuple[str, ...], pattern: tuple[str, ...]) -> bool:
    """Glob match by path segment: ``*`` stays in one segment, ``**`` spans any number."""
    if not pattern:
        return not parts
    head, rest = pattern[0], pattern[1:]
    if head == "**":
        return any(_match_parts(parts[i:], rest) for i in range(len(parts) + 1))
    return bool(parts) and fnmatch.fnmatchcase(parts[0], head) and _match_parts(parts[1:], rest)


def _is_ignored(relative: str, patterns: tuple[str, ...]) -> bool:
    parts = tuple(relative.split("/"))
    return any(_match_parts(parts, tuple(p.strip("/").split("/"))) for p in patterns)


def cascade_entries(action: CascadeAction) -> list[RenderAction]:
    """The render actions a cascade expands to, in sorted walk order.

    An ignored directory is pruned with everything below it.
    """
    entries: list[RenderAction] = []
    for dirpath, dirnames, filenames in os.walk(action.source):
        base = Path(dirpath).relative_to(action.source)
        dirnames[:] = sorted(
            d for d in dirnames if not _is_ignored((base / d).as_posix(), action.ignore)
        )
        for name in sorted(filenames):
            relative = (base / name).as_posix()
            if _is_ignored(relative, action.ignore):
                continue
            entries.append(
                RenderAction(
                    source=Path(dirpath) / name,
                    target=action.target / relative,
                    rendering_data=action.rendering_data,
                )
            )
    return entries


async def _apply_cascade(action: CascadeAction) -> Receipt:
    logger.info("Cascading '%s' to '%s'...", action.source, action.target)
    entries = await asyncio.to_thread(cascade_entries, action)
    await asyncio.gather(*(_apply_render(entry) for entry in entries))
    return Receipt.success(
        tag=action.tag,
        target=str(action.target),
        output=f"{len(entries)} files",
        metadata={"source": str(action.source), "files": len(entries)},
    )


async def _apply_script(action: ScriptAction) -> Receipt:
    logger.info("Executing script at '%s'...", action.cwd)
    with within(action.cwd, action.shell):
        await action.fn()
    return Receipt.success(tag=action.tag, target=str(action.cwd))


async def _apply_delegate(action: DelegateAction, toolchain: Toolchain, depth: int) -> Receipt:
    logger.info("Executing module '%s' to '%s'...", action.source, action.target)
    report = await exec_module(
        action.source,
        action.target,
        action.input_data,
        toolchain=toolchain,
        depth=depth + 1,
    )
    return Receipt.success(
        tag=action.tag,
        target=str(action.target),
        output=f"{report.total} actions",
        metadata={"source": str(action.source), "actions": report.total},
    )


def _patch_file(path: Path, preset: str, manipulator: Any, touch: bool) -> None:
    if touch and not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch()
    original = path.read_text(encoding="utf-8")
    path.write_text(patch(original, preset, manipulator), encoding="utf-8")


async def _apply_patch(action: PatchAction) -> Receipt:
    logger.info("Patching %s file '%s'...", action.preset, action.path)
    await asyncio.to_thread(_patch_file, action.path, action.preset, action.manipulator, action.touch)
    return Receipt.success(tag=action.tag, target=str(action.path), metadata={"preset": action.preset})


async def _apply_package(action: PackageAction, toolchain: Toolchain) -> Receipt:
    names = list(action.names)
    plural = "" if len(names) == 1 else "s"
    packages = toolchain.packages

    if action.rm:
        if not names:
            return Receipt.skip(tag=action.tag, target=str(action.cwd), reason="nothing to remove")
        logger.info("Removing package%s '%s' at '%s'...", plural, ", ".join(names), action.cwd)
        for name in names:
            await packages.remove(action.cwd, name)
        operation = "remove"
    elif names:
        logger.info("Installing package%s '%s' at '%s'...", plural, ", ".join(names), action.cwd)
        for name in names:
            await packages.add(action.cwd, name, dev=action.dev)
        operation = "add"
    else:
        logger.info("Installing dependencies at '%s'...", action.cwd)
        await packages.install(action.cwd)
        operation = "install"

    return Receipt.success(
        tag=action.tag,
        target=str(action.cwd),
        metadata={"operation": operation, "names": names, "dev": action.dev},
    )
