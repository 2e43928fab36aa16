"""
Module models — references, resolved locations, and the entry-point contract.

A module is a directory holding ``shivvie_config.py``. That file exports
``module = define_module(input=..., actions=...)``: a pydantic model
describing the accepted input, and a function turning a Service into
the module's actions.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

# Conventional entry point inside every module directory
ENTRY_POINT = "shivvie_config.py"

Backend = Literal["file", "gh", "npm"]


class ModuleRef(BaseModel):
    """A parsed module reference: ``[backend:]locator``."""

    model_config = ConfigDict(frozen=True)

    backend: Backend = "file"
    locator: str


class GitLocator(BaseModel):
    """The ``scope/name[#ref][/subpath]`` part of a ``gh:`` reference."""

    model_config = ConfigDict(frozen=True)

    scope: str
    name: str
    ref: str = ""
    subpath: str = ""

    @property
    def repo(self) -> str:
        return f"{self.scope}/{self.name}"


class ResolvedModule(BaseModel):
    """A module materialized on the local filesystem."""

    model_config = ConfigDict(frozen=True)

    source_dir: Path
    config_path: Path

    @classmethod
    def at(cls, source_dir: Path) -> ResolvedModule:
        return cls(source_dir=source_dir, config_path=source_dir / ENTRY_POINT)


@dataclass(frozen=True)
class ShivvieModule:
    """What a module's entry point exports."""

    input: type[BaseModel]
    actions: Callable[[Any], Any]

    def input_schema(self) -> dict[str, Any]:
        """JSON schema of the accepted input, for ``shivvie info``."""
        return self.input.model_json_schema()


def define_module(
    input: type[BaseModel],
    actions: Callable[[Any], Any],
) -> ShivvieModule:
    """Declare a module. Use as ``module = define_module(...)`` in shivvie_config.py."""
    return ShivvieModule(input=input, actions=actions)
