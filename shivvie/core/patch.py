"""
Patch presets — structured edits of JSON, YAML and plain-text files.

A preset parses the file text, hands the parsed value to the module's
recipe, and serializes the result back. Recipes may mutate the value
in place (returning None) or return a replacement.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from typing import Any

import yaml

from shivvie.core.errors import PatchError

Recipe = Callable[[Any], Any]

_INDENT_RE = re.compile(r"^\{\s*\n([ \t]+)\S", re.MULTILINE)


def _patch_json(text: str, recipe: Recipe) -> str:
    data = json.loads(text) if text.strip() else {}
    result = recipe(data)
    if result is not None:
        data = result

    indent: int | str = 2
    match = _INDENT_RE.match(text)
    if match:
        ws = match.group(1)
        indent = ws if "\t" in ws else len(ws)

    return json.dumps(data, indent=indent, ensure_ascii=False) + "\n"


def _patch_yaml(text: str, recipe: Recipe) -> str:
    data = yaml.safe_load(text) if text.strip() else {}
    result = recipe(data)
    if result is not None:
        data = result
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False, allow_unicode=True)


def _patch_text(text: str, recipe: Recipe) -> str:
    result = recipe(text)
    if not isinstance(result, str):
        raise PatchError(f"text recipe must return str, got {type(result).__name__}")
    return result


PRESETS: dict[str, Callable[[str, Recipe], str]] = {
    "json": _patch_json,
    "yaml": _patch_yaml,
    "text": _patch_text,
}


def patch(text: str, preset: str, recipe: Recipe) -> str:
    """Apply ``recipe`` to ``text`` through the named preset."""
    fn = PRESETS.get(preset)
    if fn is None:
        raise PatchError(f"Unknown patch preset '{preset}'. Valid: {', '.join(sorted(PRESETS))}")
    return fn(text, recipe)
