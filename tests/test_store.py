"""
Tests for the document store's change feed and subscription lifetime.
"""

from __future__ import annotations

import asyncio

import pytest
from conftest import next_snapshot

from carservice.errors import NotFound, UnknownError
from carservice.store import DocumentStore


async def test_write_wakes_only_its_collection(store: DocumentStore) -> None:
    calls = {"a": 0, "b": 0}

    async def query_a():
        calls["a"] += 1
        return calls["a"]

    async def query_b():
        calls["b"] += 1
        return calls["b"]

    async with store.subscribe("a", query_a) as snaps_a, store.subscribe("b", query_b) as snaps_b:
        assert await next_snapshot(snaps_a) == 1
        assert await next_snapshot(snaps_b) == 1

        store.notify("a")
        assert await next_snapshot(snaps_a) == 2
        with pytest.raises(asyncio.TimeoutError):
            await next_snapshot(snaps_b, timeout=0.1)


async def test_pending_changes_are_coalesced(store: DocumentStore) -> None:
    calls = 0

    async def query():
        nonlocal calls
        calls += 1
        return calls

    async with store.subscribe("c", query) as snapshots:
        assert await next_snapshot(snapshots) == 1
        store.notify("c")
        store.notify("c")
        store.notify("c")
        assert await next_snapshot(snapshots) == 2
        with pytest.raises(asyncio.TimeoutError):
            await next_snapshot(snapshots, timeout=0.1)


async def test_unchanged_result_is_not_redelivered(store: DocumentStore) -> None:
    results = iter([[1], [1], [1, 2]])

    async def query():
        return next(results)

    async with store.subscribe("d", query) as snapshots:
        assert await next_snapshot(snapshots) == [1]
        pending = asyncio.create_task(next_snapshot(snapshots))
        await asyncio.sleep(0.01)
        store.notify("d")
        # the equal [1] is skipped; the next wake-up delivers [1, 2]
        await asyncio.sleep(0.01)
        store.notify("d")
        assert await pending == [1, 2]


async def test_query_failure_closes_stream(store: DocumentStore) -> None:
    async def broken():
        raise RuntimeError("connection lost")

    async with store.subscribe("e", broken) as snapshots:
        with pytest.raises(UnknownError, match="connection lost"):
            await next_snapshot(snapshots)
        with pytest.raises(StopAsyncIteration):
            await snapshots.__anext__()
    assert store.listener_count("e") == 0


async def test_domain_errors_pass_through(store: DocumentStore) -> None:
    async def missing():
        raise NotFound()

    async with store.subscribe("f", missing) as snapshots:
        with pytest.raises(NotFound):
            await next_snapshot(snapshots)


async def test_cancelled_consumer_releases_listener(store: DocumentStore) -> None:
    async def query():
        return 0

    started = asyncio.Event()

    async def consume():
        async with store.subscribe("g", query) as snapshots:
            async for _ in snapshots:
                started.set()

    task = asyncio.create_task(consume())
    await asyncio.wait_for(started.wait(), 2)
    assert store.listener_count("g") == 1

    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
    assert store.listener_count("g") == 0


async def test_failed_write_does_not_notify(store: DocumentStore) -> None:
    async def query():
        return "x"

    async with store.subscribe("h", query) as snapshots:
        await next_snapshot(snapshots)
        with pytest.raises(ValueError):
            async with store.write("h"):
                raise ValueError("rolled back")
        with pytest.raises(asyncio.TimeoutError):
            await next_snapshot(snapshots, timeout=0.1)
