"""
Tests for the action collector — flattening and ordering of productions.
"""

import asyncio
from pathlib import Path

import pytest

from shivvie.core.engine.collector import collect_actions
from shivvie.core.errors import ActionProductionError
from shivvie.core.models import PackageAction, RenderAction


def _render(name: str) -> RenderAction:
    return RenderAction(source=Path(f"/m/{name}"), target=Path(f"/t/{name}"))


def _names(actions) -> list[str]:
    return [a.source.name for a in actions]


async def _later(value, delay: float):
    await asyncio.sleep(delay)
    return value


class TestProductions:
    @pytest.mark.asyncio
    async def test_list(self):
        assert _names(await collect_actions([_render("a"), _render("b")])) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_bare_action(self):
        assert _names(await collect_actions(_render("a"))) == ["a"]

    @pytest.mark.asyncio
    async def test_empty(self):
        assert await collect_actions([]) == []

    @pytest.mark.asyncio
    async def test_coroutine_production(self):
        async def actions():
            return [_render("a")]

        assert _names(await collect_actions(actions())) == ["a"]

    @pytest.mark.asyncio
    async def test_generator(self):
        def actions():
            yield _render("a")
            yield [_render("b"), _render("c")]

        assert _names(await collect_actions(actions())) == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_async_generator(self):
        async def actions():
            yield _render("a")
            await asyncio.sleep(0)
            yield _render("b")

        assert _names(await collect_actions(actions())) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_nested_async_iterable(self):
        async def more():
            yield _render("b")
            yield _render("c")

        assert _names(await collect_actions([_render("a"), more()])) == ["a", "b", "c"]


class TestOrdering:
    @pytest.mark.asyncio
    async def test_awaitables_keep_emission_order(self):
        production = [
            _later(_render("slow"), 0.05),
            _later(_render("fast"), 0),
            _render("plain"),
        ]
        assert _names(await collect_actions(production)) == ["slow", "fast", "plain"]

    @pytest.mark.asyncio
    async def test_awaitable_resolving_to_sequence(self):
        production = [_later([_render("a"), _render("b")], 0), _render("c")]
        assert _names(await collect_actions(production)) == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_awaitables_inside_nested_sequence(self):
        production = [[_later(_render("a"), 0.02), _render("b")]]
        assert _names(await collect_actions(production)) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_mixed_types(self):
        pkg = PackageAction(cwd=Path("/t"), names=("x",))
        collected = await collect_actions([_render("a"), pkg])
        assert collected[1] is pkg


class TestRejections:
    @pytest.mark.asyncio
    async def test_non_sequence_production(self):
        with pytest.raises(ActionProductionError):
            await collect_actions(42)

    @pytest.mark.asyncio
    async def test_string_production(self):
        with pytest.raises(ActionProductionError):
            await collect_actions("render")

    @pytest.mark.asyncio
    async def test_none_element(self):
        with pytest.raises(ActionProductionError):
            await collect_actions([_render("a"), None])

    @pytest.mark.asyncio
    async def test_dict_element(self):
        with pytest.raises(ActionProductionError):
            await collect_actions([{"tag": "render", "source": "/a", "target": "/b"}])

    @pytest.mark.asyncio
    async def test_doubly_nested(self):
        with pytest.raises(ActionProductionError, match="nested sequence"):
            await collect_actions([[[_render("a")]]])

    @pytest.mark.asyncio
    async def test_awaitable_resolving_to_junk(self):
        with pytest.raises(ActionProductionError):
            await collect_actions([_later(3, 0)])
