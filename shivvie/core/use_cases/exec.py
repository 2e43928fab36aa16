"""
Exec use case — resolve a module reference and run it against a directory.

This is the full vertical slice behind ``shivvie exec``:
    reference → resolve → load + validate → collect → apply → report

Engine errors are captured into the result so the CLI can report them;
callers wanting exceptions use ``exec_module`` directly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from shivvie.adapters.toolchain import Toolchain
from shivvie.core.engine.executor import ExecutionReport, exec_module
from shivvie.core.errors import InvalidInputError, ShivvieError
from shivvie.core.resolver.uri import resolve_module

logger = logging.getLogger(__name__)


@dataclass
class ExecResult:
    """Result of running one module reference."""

    module_ref: str = ""
    module_dir: Path | None = None
    target_dir: Path | None = None
    report: ExecutionReport | None = None
    error: str | None = None
    error_type: str | None = None
    validation_errors: list[dict[str, Any]] | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        result: dict = {"module_ref": self.module_ref}
        if self.error:
            result["error"] = self.error
            result["error_type"] = self.error_type
            if self.validation_errors:
                result["validation_errors"] = self.validation_errors
            return result

        result["module_dir"] = str(self.module_dir)
        result["target_dir"] = str(self.target_dir)
        if self.report:
            result["report"] = self.report.to_dict()
        return result


async def run_exec(
    module_ref: str,
    target_dir: Path,
    input_data: dict[str, Any] | None = None,
    toolchain: Toolchain | None = None,
) -> ExecResult:
    """Resolve ``module_ref`` and execute it into ``target_dir``."""
    result = ExecResult(module_ref=module_ref, target_dir=target_dir.resolve())

    try:
        resolved = await resolve_module(module_ref, toolchain=toolchain)
        result.module_dir = resolved.source_dir
        result.report = await exec_module(
            resolved.source_dir,
            result.target_dir,
            input_data or {},
            toolchain=toolchain,
        )
    except InvalidInputError as e:
        result.error = str(e)
        result.error_type = type(e).__name__
        result.validation_errors = e.errors
    except (ShivvieError, OSError) as e:
        logger.debug("exec %s failed", module_ref, exc_info=True)
        result.error = str(e)
        result.error_type = type(e).__name__

    return result
