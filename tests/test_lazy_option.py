"""Tests for async interop: awaitable callbacks and LazyOption chains."""

from __future__ import annotations

import asyncio
import logging
from typing import NoReturn

import pytest

from optionflow import LazyOption, Nothing, Option, Some


async def double(n: int) -> Option[int]:
    await asyncio.sleep(0)
    return Some(n * 2)


async def triple(n: int) -> Option[int]:
    await asyncio.sleep(0)
    return Some(n * 3)


async def quadruple(n: int) -> Option[int]:
    await asyncio.sleep(0)
    return Some(n * 4)


def supply(value: int):
    async def supplier() -> Option[int]:
        await asyncio.sleep(0)
        return Some(value)

    return supplier


def must_not_run(*_: object) -> NoReturn:
    pytest.fail("callback must not be invoked")


class TestPendingCallbacks:
    """Sync Option combinators given async callbacks produce a LazyOption."""

    async def test_map_async_callback(self) -> None:
        async def add(n: int) -> int:
            return n + 291

        pending = Some(42).map(add)
        assert isinstance(pending, LazyOption)
        assert await pending == Some(333)

    async def test_map_async_callback_on_nothing(self) -> None:
        option: Option[int] = Nothing()
        assert await option.lazy().map(must_not_run) == Nothing()
        assert option.map(must_not_run) == Nothing()

    async def test_and_then_async_callback(self) -> None:
        pending = Some(42).and_then(double)
        assert isinstance(pending, LazyOption)
        assert await pending == Some(84)

    async def test_none_map(self) -> None:
        async def add(n: int) -> int:
            return n + 291

        option: Option[int] = Nothing()
        assert await option.map(add) == Nothing()

    async def test_none_and_then(self) -> None:
        option: Option[int] = Nothing()
        assert await option.and_then(double) == Nothing()

    async def test_some_or_else_skips_async_supplier(self) -> None:
        assert await Some(5).or_else(supply(1)) == Some(5)

    async def test_skipped_step_continues_async_chain(self) -> None:
        assert await Some(1).filter(lambda n: n > 3).and_then(double) == Nothing()
        assert await Some(5).filter(lambda n: n > 3).and_then(double) == Some(10)

    async def test_awaiting_settled_option_returns_it(self) -> None:
        option = Some(3)
        assert await option is option

    async def test_sync_callback_returning_option_is_not_deferred(self) -> None:
        result = Some(2).and_then(lambda n: Some(n + 1))
        assert not isinstance(result, LazyOption)
        assert result == Some(3)

    async def test_or_else_async_callback(self) -> None:
        assert await Nothing().or_else(supply(7)) == Some(7)

    async def test_filter_async_predicate(self) -> None:
        async def positive(n: int) -> bool:
            return n > 0

        assert await Some(3).filter(positive) == Some(3)
        assert await Some(-3).filter(positive) == Nothing()

    async def test_tee_async_side_effect(self) -> None:
        seen: list[int] = []

        async def record(n: int) -> None:
            seen.append(n)

        assert await Some(5).tee(record) == Some(5)
        assert seen == [5]


class TestChainedPromises:
    """Chains with async callbacks settle like their synchronous equivalent."""

    async def test_and_then_chain(self) -> None:
        result = await Some(12).and_then(double).and_then(triple).and_then(quadruple)
        assert result == Some(12 * 2 * 3 * 4)

    async def test_or_else_then_and_then_chain(self) -> None:
        result = await Nothing().or_else(supply(321)).and_then(double).and_then(triple).and_then(quadruple)
        assert result == Some(321 * 2 * 3 * 4)

    async def test_or_else_then_double(self) -> None:
        assert await Nothing().or_else(supply(55)).and_then(double) == Some(110)

    async def test_chain_changes_type(self) -> None:
        async def describe(n: int) -> Option[str]:
            return Some(f"{n} * 3")

        result = await Nothing().or_else(supply(55)).and_then(double).and_then(describe)
        assert result == Some("110 * 3")

    async def test_matches_sync_chain(self) -> None:
        sync = Some(4).and_then(lambda n: Some(n * 2)).map(lambda n: n + 1).filter(lambda n: n > 5)
        lazy = await Some(4).and_then(double).map(lambda n: n + 1).filter(lambda n: n > 5)
        assert lazy == sync

    async def test_steps_run_in_chain_order(self) -> None:
        order: list[str] = []

        async def first(n: int) -> Option[int]:
            await asyncio.sleep(0.01)
            order.append("first")
            return Some(n)

        def second(n: int) -> Option[int]:
            order.append("second")
            return Some(n)

        await Some(1).and_then(first).and_then(second)
        assert order == ["first", "second"]


class TestLazyOption:
    """Tests for LazyOption built explicitly."""

    async def test_lazy_some_map(self) -> None:
        assert await LazyOption.some(5).map(lambda x: x * 2).collect() == Some(10)

    async def test_lazy_nothing_map_skips(self) -> None:
        assert (await LazyOption.nothing().map(must_not_run).collect()).is_nothing()

    async def test_lazy_and_then(self) -> None:
        assert await LazyOption.some(5).and_then(lambda x: Some(x * 2)).collect() == Some(10)

    async def test_lazy_or_else(self) -> None:
        assert await LazyOption.nothing().or_else(lambda: Some(42)).collect() == Some(42)

    async def test_lazy_and(self) -> None:
        assert await LazyOption.some(1).and_(Some("b")) == Some("b")
        assert await LazyOption.nothing().and_(Some("b")) == Nothing()

    async def test_lazy_or(self) -> None:
        assert await LazyOption.some(1).or_(Some(2)) == Some(1)
        assert await LazyOption.nothing().or_(Some(2)) == Some(2)

    async def test_lazy_or_with_pending_other(self) -> None:
        assert await LazyOption.nothing().or_(Some(20).and_then(double)) == Some(40)

    async def test_lazy_filter(self) -> None:
        assert await LazyOption.some(5).filter(lambda x: x > 3).collect() == Some(5)
        assert (await LazyOption.some(2).filter(lambda x: x > 3).collect()).is_nothing()

    async def test_lazy_tee(self) -> None:
        captured: list[int] = []
        result = await LazyOption.some(5).tee(lambda x: captured.append(x)).collect()
        assert result == Some(5)
        assert captured == [5]

    async def test_lazy_inspect_nothing(self) -> None:
        called: list[bool] = []
        result = await LazyOption.nothing().inspect_nothing(lambda: called.append(True)).collect()
        assert result.is_nothing()
        assert called == [True]

    async def test_lazy_flatten(self) -> None:
        assert await LazyOption.some(Some(42)).flatten().collect() == Some(42)

    async def test_lazy_complex_chain(self) -> None:
        result = await LazyOption.some(5).map(lambda x: x * 2).filter(lambda x: x > 5).map(str).collect()
        assert result == Some("10")

    async def test_lazy_from_option(self) -> None:
        assert await LazyOption.from_option(Some(42)).map(lambda x: x + 1).collect() == Some(43)

    async def test_lazy_from_awaitable(self) -> None:
        assert await LazyOption.from_awaitable(double(21)).map(lambda x: x + 1).collect() == Some(43)

    async def test_some_lazy(self) -> None:
        assert await Some(5).lazy().map(lambda x: x * 2).collect() == Some(10)

    async def test_nothing_lazy(self) -> None:
        assert (await Nothing().lazy().map(lambda x: x * 2).collect()).is_nothing()


class TestLazyQueries:
    async def test_is_some(self) -> None:
        assert await Some(1).and_then(double).is_some() is True
        assert await LazyOption.nothing().is_some() is False

    async def test_is_nothing(self) -> None:
        assert await LazyOption.nothing().is_nothing() is True
        assert await Some(1).and_then(double).is_nothing() is False

    async def test_unwrap(self) -> None:
        assert await Some(4).and_then(double).unwrap() == 8

    async def test_unwrap_or(self) -> None:
        assert await LazyOption.nothing().unwrap_or(3) == 3


class TestSettling:
    async def test_await_twice(self) -> None:
        pending = Some(3).and_then(double)
        assert await pending == Some(6)
        assert await pending == Some(6)

    async def test_source_settles_once(self) -> None:
        calls: list[int] = []

        async def counted() -> Option[int]:
            calls.append(1)
            return Some(1)

        source = LazyOption.from_awaitable(counted())
        left = source.map(lambda x: x + 1)
        right = source.map(lambda x: x + 2)
        assert await left == Some(2)
        assert await right == Some(3)
        assert calls == [1]

    async def test_cancelled_chain_leaves_siblings_running(self) -> None:
        release = asyncio.Event()

        async def slow() -> Option[int]:
            await release.wait()
            return Some(1)

        source = LazyOption.from_awaitable(slow())
        left = source.map(lambda x: x + 1)
        right = source.map(lambda x: x + 2)

        async def consume() -> Option[int]:
            return await left

        task = asyncio.ensure_future(consume())
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        release.set()
        assert await right == Some(3)

    async def test_chain_is_lazy_until_awaited(self) -> None:
        calls: list[int] = []

        def record(n: int) -> Option[int]:
            calls.append(n)
            return Some(n)

        chain = LazyOption.some(1).and_then(record)
        assert calls == []
        await chain
        assert calls == [1]

    async def test_unwrap_error_propagates(self) -> None:
        from optionflow.exceptions import EmptyOptionError

        with pytest.raises(EmptyOptionError):
            await LazyOption.nothing().map(lambda x: x).unwrap()

    async def test_callback_error_propagates(self) -> None:
        async def boom(_: int) -> Option[int]:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await Some(1).and_then(boom).map(lambda x: x + 1)

    async def test_logs_settling_at_debug(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="optionflow.option"):
            await Some(1).and_then(double).map(str)
        assert "Settling deferred option with 1 pending operation(s)" in caplog.text
        assert "settled to Some(2)" in caplog.text


class TestAsyncMethods:
    """Tests for the explicit *_async coroutine methods."""

    async def test_map_async_on_some(self) -> None:
        async def add_one(x: int) -> int:
            return x + 1

        assert await Some(5).map_async(add_one) == Some(6)

    async def test_map_async_on_nothing(self) -> None:
        option: Option[int] = Nothing()
        assert (await option.map_async(must_not_run)).is_nothing()

    async def test_and_then_async_on_some(self) -> None:
        assert await Some(5).and_then_async(double) == Some(10)

    async def test_and_then_async_on_nothing(self) -> None:
        option: Option[int] = Nothing()
        assert (await option.and_then_async(double)).is_nothing()

    async def test_or_else_async_on_some(self) -> None:
        assert await Some(5).or_else_async(supply(42)) == Some(5)

    async def test_or_else_async_on_nothing(self) -> None:
        option: Option[int] = Nothing()
        assert await option.or_else_async(supply(42)) == Some(42)
