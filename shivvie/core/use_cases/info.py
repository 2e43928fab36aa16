"""
Info use case — describe the input a module accepts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from shivvie.adapters.toolchain import Toolchain
from shivvie.core.engine.loader import load_module
from shivvie.core.errors import ShivvieError
from shivvie.core.resolver.uri import resolve_module

logger = logging.getLogger(__name__)


@dataclass
class InfoResult:
    """A module's location and input schema."""

    module_ref: str = ""
    module_dir: Path | None = None
    input_schema: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @property
    def fields(self) -> list[tuple[str, str, bool]]:
        """(name, type, required) per top-level input property."""
        props = self.input_schema.get("properties", {})
        required = set(self.input_schema.get("required", []))
        rows = []
        for name, spec in props.items():
            type_name = spec.get("type") or " | ".join(
                str(option.get("type", option.get("$ref", "?"))) for option in spec.get("anyOf", [])
            ) or "any"
            rows.append((name, type_name, name in required))
        return rows

    def to_dict(self) -> dict:
        if self.error:
            return {"module_ref": self.module_ref, "error": self.error}
        return {
            "module_ref": self.module_ref,
            "module_dir": str(self.module_dir),
            "input": self.input_schema,
        }


async def get_info(module_ref: str, toolchain: Toolchain | None = None) -> InfoResult:
    """Resolve and load ``module_ref`` and read its input schema."""
    result = InfoResult(module_ref=module_ref)
    try:
        resolved = await resolve_module(module_ref, toolchain=toolchain)
        result.module_dir = resolved.source_dir
        result.input_schema = load_module(resolved.source_dir).input_schema()
    except (ShivvieError, OSError) as e:
        logger.debug("info %s failed", module_ref, exc_info=True)
        result.error = str(e)
    return result
