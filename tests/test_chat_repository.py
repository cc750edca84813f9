from __future__ import annotations

from conftest import message, next_snapshot

from carservice.repositories import ChatRepository
from carservice.schemas import UserRole
from carservice.store import CHAT_MESSAGES

THREAD = "req-1"


async def _seed(chat_repo: ChatRepository) -> None:
    await chat_repo.send(message(THREAD, "client1", "Hello", 1000))
    await chat_repo.send(message(THREAD, "client1", "Any news?", 2000))
    await chat_repo.send(message(THREAD, "emp1", "Working on it", 3000, role=UserRole.EMPLOYEE))
    await chat_repo.send(message("req-2", "client2", "Other thread", 1500))


async def test_send_assigns_id_and_stores_verbatim(chat_repo: ChatRepository) -> None:
    raw = message(THREAD, "client1", "  spaced out  ", 1000)
    sent = (await chat_repo.send(raw)).value
    assert sent.id
    assert sent.content == "  spaced out  "
    assert sent.is_read is False
    assert await chat_repo.messages(THREAD) == [sent]


async def test_thread_is_ascending_and_isolated(chat_repo: ChatRepository) -> None:
    await _seed(chat_repo)
    thread = await chat_repo.messages(THREAD)
    assert [m.content for m in thread] == ["Hello", "Any news?", "Working on it"]
    assert {m.service_request_id for m in thread} == {THREAD}


async def test_unread_count_scenario(chat_repo: ChatRepository) -> None:
    await chat_repo.send(message(THREAD, "client1", "Hello", 1000))
    await chat_repo.send(message(THREAD, "client1", "Any news?", 2000))

    assert await chat_repo.count_unread(THREAD, "emp1") == 2
    assert (await chat_repo.mark_read(THREAD, "emp1")).value == 2
    assert await chat_repo.count_unread(THREAD, "emp1") == 0
    assert await chat_repo.count_unread(THREAD, "client1") == 0


async def test_mark_read_is_idempotent_and_skips_own_messages(chat_repo: ChatRepository) -> None:
    await _seed(chat_repo)

    first = await chat_repo.mark_read(THREAD, "emp1")
    after_once = {m.id: m.is_read for m in await chat_repo.messages(THREAD)}
    second = await chat_repo.mark_read(THREAD, "emp1")
    after_twice = {m.id: m.is_read for m in await chat_repo.messages(THREAD)}

    assert first.value == 2
    assert second.value == 0
    assert after_once == after_twice

    by_sender = {m.sender_id: m.is_read for m in await chat_repo.messages(THREAD)}
    assert by_sender["emp1"] is False
    assert by_sender["client1"] is True
    # other threads untouched
    assert await chat_repo.count_unread("req-2", "emp1") == 1


async def test_unread_count_matches_definition(chat_repo: ChatRepository) -> None:
    await _seed(chat_repo)
    for user in ("client1", "emp1", "someone-else"):
        thread = await chat_repo.messages(THREAD)
        expected = sum(1 for m in thread if m.sender_id != user and not m.is_read)
        assert await chat_repo.count_unread(THREAD, user) == expected

    await chat_repo.mark_read(THREAD, "client1")
    assert await chat_repo.count_unread(THREAD, "client1") == 0
    assert await chat_repo.count_unread(THREAD, "emp1") == 2


async def test_watch_redelivers_full_thread(chat_repo: ChatRepository) -> None:
    async with chat_repo.watch(THREAD) as snapshots:
        assert await next_snapshot(snapshots) == []

        await chat_repo.send(message(THREAD, "client1", "Hello", 1000))
        assert [m.content for m in await next_snapshot(snapshots)] == ["Hello"]

        await chat_repo.send(message(THREAD, "emp1", "Hi", 2000, role=UserRole.EMPLOYEE))
        assert [m.content for m in await next_snapshot(snapshots)] == ["Hello", "Hi"]


async def test_live_unread_count(chat_repo: ChatRepository) -> None:
    async with chat_repo.unread_count(THREAD, "emp1") as counts:
        assert await next_snapshot(counts) == 0
        await chat_repo.send(message(THREAD, "client1", "Hello", 1000))
        assert await next_snapshot(counts) == 1
        await chat_repo.send(message(THREAD, "client1", "Again", 2000))
        assert await next_snapshot(counts) == 2
        await chat_repo.mark_read(THREAD, "emp1")
        assert await next_snapshot(counts) == 0


async def test_watch_releases_listener_on_error(store, chat_repo: ChatRepository) -> None:
    try:
        async with chat_repo.watch(THREAD) as snapshots:
            await next_snapshot(snapshots)
            assert store.listener_count(CHAT_MESSAGES) == 1
            raise ValueError("screen crashed")
    except ValueError:
        pass
    assert store.listener_count(CHAT_MESSAGES) == 0
