"""
Module loader — import a module's entry point, validate input, bind a Service.

Flow:
    shivvie_config.py → ShivvieModule → validated input → Service → production

The production is whatever the module's ``actions`` function returned;
the collector turns it into a flat list.
"""

from __future__ import annotations

import importlib.util
import logging
import sys
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from shivvie.core.errors import InvalidInputError, ModuleLoadError, NotFoundError
from shivvie.core.models.module import ENTRY_POINT, ShivvieModule
from shivvie.core.services.service import Service, create_service

logger = logging.getLogger(__name__)


@dataclass
class PreparedModule:
    """A loaded, validated module whose actions have been requested."""

    module: ShivvieModule
    service: Service
    production: Any


def load_module(module_dir: Path) -> ShivvieModule:
    """Import ``<module_dir>/shivvie_config.py`` and return its ``module`` export.

    Raises:
        NotFoundError: If the entry point does not exist.
        ModuleLoadError: If importing fails or the export is malformed.
    """
    entry = module_dir / ENTRY_POINT
    if not entry.is_file():
        raise NotFoundError(f"No {ENTRY_POINT} in {module_dir}")

    logger.info("Loading module from '%s'", entry)

    # Unique name per load: the same file may be loaded again by a delegate.
    name = f"shivvie_module_{uuid.uuid4().hex}"
    spec = importlib.util.spec_from_file_location(name, entry)
    if spec is None or spec.loader is None:
        raise ModuleLoadError(f"Cannot import {entry}")

    py_module = importlib.util.module_from_spec(spec)
    # Registered only while importing so pydantic can resolve the module's annotations.
    sys.modules[name] = py_module
    try:
        try:
            spec.loader.exec_module(py_module)
        except Exception as e:
            raise ModuleLoadError(f"Error while importing {entry}: {e}") from e

        exported = getattr(py_module, "module", None)
        if exported is None:
            raise ModuleLoadError(f"{entry} does not define 'module' (use shivvie.define_module)")

        schema = getattr(exported, "input", None)
        actions = getattr(exported, "actions", None)
        if not (isinstance(schema, type) and issubclass(schema, BaseModel)):
            raise ModuleLoadError(f"'module.input' in {entry} must be a pydantic model class")
        if not callable(actions):
            raise ModuleLoadError(f"'module.actions' in {entry} must be callable")
        schema.model_rebuild(raise_errors=False)
    finally:
        sys.modules.pop(name, None)

    if isinstance(exported, ShivvieModule):
        return exported
    return ShivvieModule(input=schema, actions=actions)


def validate_input(module: ShivvieModule, data: dict[str, Any]) -> BaseModel:
    """Validate raw input against the module's schema.

    Raises:
        InvalidInputError: With pydantic's error list attached.
    """
    try:
        return module.input.model_validate(data)
    except ValidationError as e:
        raise InvalidInputError(f"Invalid input: {e}", errors=e.errors(include_url=False)) from e


def prepare_module(
    module_dir: Path,
    target_dir: Path,
    input_data: dict[str, Any],
    shell: str,
) -> PreparedModule:
    """Load, validate, bind a Service and call the module's ``actions``."""
    module = load_module(module_dir)
    validated = validate_input(module, input_data)
    service = create_service(validated, source_dir=module_dir, target_dir=target_dir, shell=shell)
    production = module.actions(service)
    return PreparedModule(module=module, service=service, production=production)
