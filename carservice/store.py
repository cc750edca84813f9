"""
Document store facade over the SQLAlchemy engine.

Writes go through `write(collection)`, which commits one transaction and then
wakes every continuous subscription on that collection. A subscription
re-runs its query on each wake-up and yields the full result, so consumers
always replace their local state instead of applying deltas.

Change notification is in-process: subscribers only see writes made through
the same `DocumentStore` instance.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from .database import create_engine, create_sessionmaker, init_db
from .errors import wrap

logger = logging.getLogger(__name__)

T = TypeVar("T")

USERS = "users"
SERVICE_REQUESTS = "service_requests"
CHAT_MESSAGES = "chat_messages"

_MISSING = object()


class DocumentStore:
    def __init__(self, engine=None) -> None:
        self.engine = engine if engine is not None else create_engine()
        self._sessions = create_sessionmaker(self.engine)
        self._listeners: dict[str, set[asyncio.Queue]] = defaultdict(set)

    @classmethod
    def from_url(cls, url: str) -> "DocumentStore":
        return cls(create_engine(url))

    async def init(self) -> None:
        await init_db(self.engine)

    async def close(self) -> None:
        await self.engine.dispose()

    # ────────────────────────────── READS / WRITES ──────────────────────────────

    @asynccontextmanager
    async def read(self) -> AsyncIterator[AsyncSession]:
        async with self._sessions() as session:
            yield session

    @asynccontextmanager
    async def write(self, collection: str) -> AsyncIterator[AsyncSession]:
        """One transaction; listeners on `collection` are woken after commit."""
        async with self._sessions() as session:
            async with session.begin():
                yield session
        self.notify(collection)

    def notify(self, collection: str) -> None:
        for changes in self._listeners.get(collection, ()):
            # a pending wake-up already covers this write
            if changes.empty():
                changes.put_nowait(None)

    def listener_count(self, collection: str) -> int:
        return len(self._listeners.get(collection, ()))

    # ────────────────────────────── SUBSCRIPTIONS ──────────────────────────────

    @asynccontextmanager
    async def subscribe(
        self,
        collection: str,
        query: Callable[[], Awaitable[T]],
    ) -> AsyncIterator[AsyncIterator[T]]:
        """
        Continuous subscription to `query` over `collection`.

        Yields an async iterator that delivers the current result immediately
        and again after every committed write that changes it. The listener is
        registered before the first read and removed when the block exits,
        whatever the exit path.
        """
        changes: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._listeners[collection].add(changes)
        logger.debug("Listener added on %s (%d live)", collection, self.listener_count(collection))
        snapshots = self._snapshots(collection, query, changes)
        try:
            yield snapshots
        finally:
            live = self._listeners.get(collection)
            if live is not None:
                live.discard(changes)
                if not live:
                    del self._listeners[collection]
            logger.debug("Listener removed from %s", collection)
            await snapshots.aclose()

    async def _snapshots(self, collection, query, changes) -> AsyncIterator:
        last = _MISSING
        while True:
            try:
                snapshot = await query()
            except Exception as e:
                logger.warning("Subscription on %s closed: %s", collection, e)
                error = wrap(e)
                if error is e:
                    raise
                raise error from e
            if last is _MISSING or snapshot != last:
                last = snapshot
                yield snapshot
            await changes.get()
