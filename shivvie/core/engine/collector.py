"""
Action collector — drain a module's production into one ordered list.

A production is whatever ``actions(sv)`` returned: a list, a generator,
an async generator, or a coroutine resolving to any of those. Each
element is an action, an awaitable, or a sequence of actions; exactly
one level of nesting is flattened.

Elements are consumed strictly in emission order, one at a time, so
the resulting order never depends on how long an awaitable takes.
"""

from __future__ import annotations

import inspect
from collections.abc import AsyncIterable, AsyncIterator, Iterable, Mapping
from typing import Any

from shivvie.core.errors import ActionProductionError
from shivvie.core.models.action import Action, is_action


def _is_sequence(value: Any) -> bool:
    if isinstance(value, AsyncIterable):
        return True
    return isinstance(value, Iterable) and not isinstance(value, (str, bytes, Mapping))


async def _iterate(value: Any) -> AsyncIterator[Any]:
    if isinstance(value, AsyncIterable):
        async for item in value:
            yield item
    else:
        for item in value:
            yield item


def _bad_element(value: Any, where: str) -> ActionProductionError:
    return ActionProductionError(
        f"{where} yielded {type(value).__name__} ({value!r:.80}), expected an action"
    )


async def collect_actions(production: Any) -> list[Action]:
    """Flatten ``production`` into a list of actions.

    Raises:
        ActionProductionError: If an element is neither an action nor a
            sequence (or awaitable) of actions.
    """
    if inspect.isawaitable(production):
        production = await production

    if is_action(production):
        return [production]
    if not _is_sequence(production):
        raise ActionProductionError(
            f"actions() must return actions or a sequence of them, got {type(production).__name__}"
        )

    collected: list[Action] = []
    async for element in _iterate(production):
        if inspect.isawaitable(element):
            element = await element

        if is_action(element):
            collected.append(element)
            continue
        if not _is_sequence(element):
            raise _bad_element(element, "module")

        async for item in _iterate(element):
            if inspect.isawaitable(item):
                item = await item
            if not is_action(item):
                raise _bad_element(item, "nested sequence")
            collected.append(item)

    return collected
