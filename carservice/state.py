"""UI-facing state values and the observable holder the controllers publish them through."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class Success(Generic[T]):
    payload: T


@dataclass(frozen=True)
class Error:
    message: str


ActionState = Union[Idle, Loading, Success, Error]

IDLE = Idle()
LOADING = Loading()


def from_result(result) -> ActionState:
    if result.is_success:
        return Success(result.value)
    return Error(result.error_message() or "Unknown error")


class Observable(Generic[T]):
    """A current value plus a way to wait for it to change."""

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._changed = asyncio.Event()

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        self._value = value
        # wake current waiters, then re-arm for the next change
        self._changed.set()
        self._changed = asyncio.Event()

    async def wait_for(self, predicate: Callable[[Any], bool], timeout: float = 5.0) -> T:
        async def _wait() -> T:
            while not predicate(self._value):
                await self._changed.wait()
            return self._value

        return await asyncio.wait_for(_wait(), timeout)

    def __repr__(self) -> str:
        return f"Observable({self._value!r})"
