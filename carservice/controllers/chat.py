from __future__ import annotations

from typing import Optional

from ..repositories import ChatRepository
from ..schemas import ChatMessage, User
from ..state import Observable
from .base import Controller


class ChatController(Controller):
    """
    One open thread (`messages`, `unread_count`) plus per-request unread
    badges for list screens.

    Badges live in `unread_counts`, one independent subscription per request
    id; `track_unread` on an id that is already tracked replaces it, and
    `untrack_unread` releases it.
    """

    def __init__(self, repository: ChatRepository) -> None:
        super().__init__()
        self._repository = repository
        self.thread_id: Optional[str] = None
        self.messages: Observable[list[ChatMessage]] = Observable([])
        self.unread_count = Observable(0)
        self.unread_counts: Observable[dict[str, int]] = Observable({})

    def open_thread(self, service_request_id: str) -> None:
        if service_request_id != self.thread_id:
            self.messages.set([])
        self.thread_id = service_request_id
        self._launch("messages", lambda: self._repository.watch(service_request_id), self.messages.set)

    def watch_unread_count(self, service_request_id: str, user_id: str) -> None:
        self._launch(
            "unread_count",
            lambda: self._repository.unread_count(service_request_id, user_id),
            self.unread_count.set,
        )

    async def send_message(self, service_request_id: str, sender: User, content: str) -> Optional[ChatMessage]:
        if not content.strip():
            return None
        message = ChatMessage(
            service_request_id=service_request_id,
            sender_id=sender.id,
            sender_name=sender.name,
            sender_role=sender.role,
            content=content,
        )
        result = await self._repository.send(message)
        if result.is_failure:
            self.last_error = result.error_message()
        return result.value

    async def mark_read(self, service_request_id: str, user_id: str) -> None:
        result = await self._repository.mark_read(service_request_id, user_id)
        if result.is_failure:
            self.last_error = result.error_message()

    # per-request badges

    def track_unread(self, service_request_id: str, user_id: str) -> None:
        def publish(count: int) -> None:
            self.unread_counts.set({**self.unread_counts.value, service_request_id: count})

        self._launch(
            f"unread:{service_request_id}",
            lambda: self._repository.unread_count(service_request_id, user_id),
            publish,
        )

    async def untrack_unread(self, service_request_id: str) -> None:
        await self.cancel_and_wait(f"unread:{service_request_id}")
        counts = dict(self.unread_counts.value)
        counts.pop(service_request_id, None)
        self.unread_counts.set(counts)

    @property
    def tracked_requests(self) -> list[str]:
        return [key.split(":", 1)[1] for key in self.active_subscriptions if key.startswith("unread:")]
