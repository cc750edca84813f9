from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

from ..errors import CarServiceError

logger = logging.getLogger(__name__)


class Controller:
    """
    Owns the live subscriptions of one UI scope.

    Every subscription runs as a task keyed by name. Launching a key that is
    already live cancels the old task first, so state is replaced, never
    merged. `aclose()` (or leaving `async with`) cancels them all, which
    releases the store listeners.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, asyncio.Task] = {}
        self.last_error: Optional[str] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    @property
    def active_subscriptions(self) -> list[str]:
        return [key for key, task in self._jobs.items() if not task.done()]

    def _launch(
        self,
        key: str,
        open_stream: Callable[[], Any],
        on_value: Callable[[Any], None],
        on_error: Optional[Callable[[str], None]] = None,
    ) -> asyncio.Task:
        self.cancel(key)
        task = asyncio.create_task(self._collect(key, open_stream, on_value, on_error))
        self._jobs[key] = task
        return task

    async def _collect(self, key, open_stream, on_value, on_error) -> None:
        try:
            async with open_stream() as snapshots:
                async for value in snapshots:
                    on_value(value)
        except CarServiceError as e:
            # streams do not reconnect; the caller has to subscribe again
            logger.warning("Subscription %s closed: %s", key, e)
            self._fail(e.message, on_error)
        except Exception as e:
            logger.exception("Subscription %s failed", key)
            self._fail(str(e) or type(e).__name__, on_error)

    def _fail(self, message: str, on_error) -> None:
        self.last_error = message
        if on_error is not None:
            on_error(message)

    def cancel(self, key: str) -> bool:
        task = self._jobs.pop(key, None)
        if task is None:
            return False
        task.cancel()
        return True

    async def cancel_and_wait(self, key: str) -> bool:
        task = self._jobs.pop(key, None)
        if task is None:
            return False
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return True

    async def aclose(self) -> None:
        tasks = list(self._jobs.values())
        self._jobs.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
