"""Chat adapter over the `chat_messages` collection."""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import func, select, update

from .. import models
from ..errors import Result
from ..schemas import ChatMessage, to_document
from ..store import CHAT_MESSAGES, DocumentStore

logger = logging.getLogger(__name__)


def _unread_from_others(service_request_id: str, user_id: str):
    return (
        models.ChatMessage.service_request_id == service_request_id,
        models.ChatMessage.sender_id != user_id,
        models.ChatMessage.is_read.is_(False),
    )


class ChatRepository:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def send(self, message: ChatMessage) -> Result[ChatMessage]:
        """Store the message as given; only the id is assigned here."""
        try:
            sent = message.model_copy(update={"id": uuid.uuid4().hex})
            async with self._store.write(CHAT_MESSAGES) as db:
                db.add(models.ChatMessage(**to_document(sent)))
            logger.debug("Message %s sent in %s", sent.id, sent.service_request_id)
            return Result.success(sent)
        except Exception as e:
            logger.exception("Could not send message in %s", message.service_request_id)
            return Result.failure(e)

    async def messages(self, service_request_id: str) -> list[ChatMessage]:
        stmt = (
            select(models.ChatMessage)
            .where(models.ChatMessage.service_request_id == service_request_id)
            .order_by(models.ChatMessage.timestamp.asc(), models.ChatMessage.id)
        )
        async with self._store.read() as db:
            rows = (await db.scalars(stmt)).all()
        return [ChatMessage.model_validate(row) for row in rows]

    async def count_unread(self, service_request_id: str, user_id: str) -> int:
        stmt = select(func.count()).select_from(models.ChatMessage).where(
            *_unread_from_others(service_request_id, user_id)
        )
        async with self._store.read() as db:
            return await db.scalar(stmt)

    async def mark_read(self, service_request_id: str, user_id: str) -> Result[int]:
        """
        Flip `is_read` on every unread message in the thread not sent by
        `user_id`, as one batch. Returns how many messages changed.
        """
        try:
            async with self._store.write(CHAT_MESSAGES) as db:
                result = await db.execute(
                    update(models.ChatMessage)
                    .where(*_unread_from_others(service_request_id, user_id))
                    .values(is_read=True)
                    .execution_options(synchronize_session=False)
                )
                changed = result.rowcount
            return Result.success(changed)
        except Exception as e:
            logger.exception("Could not mark %s read for %s", service_request_id, user_id)
            return Result.failure(e)

    @asynccontextmanager
    async def watch(self, service_request_id: str) -> AsyncIterator[AsyncIterator[list[ChatMessage]]]:
        async with self._store.subscribe(
            CHAT_MESSAGES,
            lambda: self.messages(service_request_id),
        ) as snapshots:
            yield snapshots

    @asynccontextmanager
    async def unread_count(self, service_request_id: str, user_id: str) -> AsyncIterator[AsyncIterator[int]]:
        async with self._store.subscribe(
            CHAT_MESSAGES,
            lambda: self.count_unread(service_request_id, user_id),
        ) as snapshots:
            yield snapshots
