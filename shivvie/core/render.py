"""
Template engine — Handlebars-flavoured ``{{ }}`` substitution.

Supported syntax:
  1. Variables:  {{ name }}, {{ author.email }}, {{{ raw }}}, {{ this }}
  2. Comments:   {{! ignored }}
  3. Blocks:     {{#if x}} … {{else}} … {{/if}}
                 {{#unless x}} … {{/unless}}
                 {{#each items}} {{@index}} {{this}} … {{else}} … {{/each}}
                 {{#with author}} {{name}} {{/with}}

Nothing is HTML-escaped: output goes to source files, not web pages.
Missing values render as the empty string. Inside a block, names that
the inner context lacks are looked up in the enclosing contexts.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from shivvie.core.errors import TemplateError

_TAG_RE = re.compile(r"\{\{\{(.*?)\}\}\}|\{\{(.*?)\}\}", re.DOTALL)

_BLOCK_HELPERS = frozenset({"if", "unless", "each", "with"})

_MISSING = object()


@dataclass
class _Var:
    path: str


@dataclass
class _Block:
    helper: str
    arg: str
    body: list = field(default_factory=list)
    inverse: list = field(default_factory=list)
    in_inverse: bool = False

    @property
    def active(self) -> list:
        return self.inverse if self.in_inverse else self.body


def render(template: str, data: Mapping[str, Any]) -> str:
    """Render ``template`` against ``data``."""
    nodes = _parse(template)
    out: list[str] = []
    _emit(nodes, [data], {}, out)
    return "".join(out)


# ── Parsing ─────────────────────────────────────────────────────────


def _parse(template: str) -> list:
    root: list = []
    stack: list[_Block] = []
    current = root
    pos = 0

    for m in _TAG_RE.finditer(template):
        if m.start() > pos:
            current.append(template[pos:m.start()])
        pos = m.end()

        if m.group(1) is not None:
            current.append(_Var(m.group(1).strip()))
            continue

        expr = m.group(2).strip()
        if expr.startswith("!"):
            continue

        if expr.startswith("#"):
            helper, _, arg = expr[1:].strip().partition(" ")
            if helper not in _BLOCK_HELPERS:
                raise TemplateError(f"Unknown block helper '#{helper}'")
            block = _Block(helper=helper, arg=arg.strip())
            current.append(block)
            stack.append(block)
            current = block.body
        elif expr.startswith("/"):
            name = expr[1:].strip()
            if not stack or stack[-1].helper != name:
                raise TemplateError(f"Unexpected closing tag '{{{{/{name}}}}}'")
            stack.pop()
            current = stack[-1].active if stack else root
        elif expr == "else":
            if not stack:
                raise TemplateError("'{{else}}' outside of a block")
            stack[-1].in_inverse = True
            current = stack[-1].inverse
        else:
            current.append(_Var(expr))

    if pos < len(template):
        current.append(template[pos:])
    if stack:
        raise TemplateError(f"Unclosed block '{{{{#{stack[-1].helper}}}}}'")

    return root


# ── Evaluation ──────────────────────────────────────────────────────


def _emit(nodes: list, scopes: list[Any], frame: dict[str, Any], out: list[str]) -> None:
    for node in nodes:
        if isinstance(node, str):
            out.append(node)
        elif isinstance(node, _Var):
            out.append(_stringify(_lookup(node.path, scopes, frame)))
        else:
            _emit_block(node, scopes, frame, out)


def _emit_block(block: _Block, scopes: list[Any], frame: dict[str, Any], out: list[str]) -> None:
    value = _lookup(block.arg, scopes, frame)
    present = value is not _MISSING and bool(value)

    if block.helper == "if":
        _emit(block.body if present else block.inverse, scopes, frame, out)
    elif block.helper == "unless":
        _emit(block.inverse if present else block.body, scopes, frame, out)
    elif block.helper == "with":
        if present:
            _emit(block.body, [*scopes, value], frame, out)
        else:
            _emit(block.inverse, scopes, frame, out)
    elif block.helper == "each":
        if not present:
            _emit(block.inverse, scopes, frame, out)
            return
        if isinstance(value, Mapping):
            items = list(value.items())
        else:
            items = list(enumerate(value))
        last = len(items) - 1
        for index, (key, item) in enumerate(items):
            inner = {"index": index, "key": key, "first": index == 0, "last": index == last}
            _emit(block.body, [*scopes, item], inner, out)


def _lookup(path: str, scopes: list[Any], frame: dict[str, Any]) -> Any:
    if not path:
        return _MISSING
    if path in ("this", "."):
        return scopes[-1]
    if path.startswith("@"):
        return frame.get(path[1:], _MISSING)

    parts = path.split(".")
    if parts[0] == "this":
        value = scopes[-1]
        parts = parts[1:]
    else:
        value = _MISSING
        for scope in reversed(scopes):
            value = _get(scope, parts[0])
            if value is not _MISSING:
                break
        parts = parts[1:]

    for part in parts:
        if value is _MISSING:
            break
        value = _get(value, part)
    return value


def _get(obj: Any, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key, _MISSING)
    if isinstance(obj, (list, tuple)) and key.isdigit():
        index = int(key)
        return obj[index] if index < len(obj) else _MISSING
    if isinstance(obj, (str, int, float, bool)) or obj is None:
        return _MISSING
    return getattr(obj, key, _MISSING)


def _stringify(value: Any) -> str:
    if value is _MISSING or value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_stringify(v) for v in value)
    return str(value)
