from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from carservice.identity import IdentityService
from carservice.repositories import AuthRepository, ChatRepository, ServiceRepository
from carservice.schemas import ChatMessage, ServiceRequest, UserRole
from carservice.store import DocumentStore


def sqlite_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'carservice.db'}"


@pytest.fixture
async def store(tmp_path: Path):
    s = DocumentStore.from_url(sqlite_url(tmp_path))
    await s.init()
    yield s
    await s.close()


@pytest.fixture
def identity(store: DocumentStore) -> IdentityService:
    return IdentityService(store)


@pytest.fixture
def auth_repo(store: DocumentStore, identity: IdentityService) -> AuthRepository:
    return AuthRepository(store, identity)


@pytest.fixture
def service_repo(store: DocumentStore) -> ServiceRepository:
    return ServiceRepository(store)


@pytest.fixture
def chat_repo(store: DocumentStore) -> ChatRepository:
    return ChatRepository(store)


def oil_change(client_id: str = "client1", **kw) -> ServiceRequest:
    fields = dict(
        client_id=client_id,
        title="Oil change",
        description="5W-30, filter too",
        car_model="Toyota Camry",
        car_year=2020,
    )
    fields.update(kw)
    return ServiceRequest(**fields)


def message(thread: str, sender_id: str, content: str, timestamp: int, role=UserRole.CLIENT) -> ChatMessage:
    return ChatMessage(
        service_request_id=thread,
        sender_id=sender_id,
        sender_name=sender_id.title(),
        sender_role=role,
        content=content,
        timestamp=timestamp,
    )


async def next_snapshot(snapshots, timeout: float = 2.0):
    return await asyncio.wait_for(snapshots.__anext__(), timeout)
