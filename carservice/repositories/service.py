"""Service-request adapter over the `service_requests` collection."""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import select, update

from .. import models
from ..errors import AlreadyAccepted, NotFound, Result
from ..schemas import ServiceNote, ServiceRequest, ServiceStatus, to_document
from ..store import SERVICE_REQUESTS, DocumentStore
from ..utils import now_millis

logger = logging.getLogger(__name__)

STATUS_PROGRESS = {
    ServiceStatus.PENDING: 0,
    ServiceStatus.ACCEPTED: 20,
    ServiceStatus.IN_PROGRESS: 50,
    ServiceStatus.PAUSED: 50,
    ServiceStatus.COMPLETED: 100,
    ServiceStatus.CANCELLED: 0,
}


def progress_for(status: ServiceStatus) -> int:
    return STATUS_PROGRESS[ServiceStatus(status)]


def _request_not_found() -> NotFound:
    return NotFound("Service request not found")


def _decode(rows) -> list[ServiceRequest]:
    return [ServiceRequest.model_validate(row) for row in rows]


class ServiceRepository:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    # ────────────────────────────── POINT READS / WRITES ──────────────────────────────

    async def create(self, request: ServiceRequest) -> Result[ServiceRequest]:
        try:
            created = request.model_copy(update={"id": uuid.uuid4().hex})
            async with self._store.write(SERVICE_REQUESTS) as db:
                db.add(models.ServiceRequest(**to_document(created)))
            logger.info("Service request %s created by client %s", created.id, created.client_id)
            return Result.success(created)
        except Exception as e:
            logger.exception("Could not create service request")
            return Result.failure(e)

    async def _load(self, request_id: str) -> Optional[ServiceRequest]:
        async with self._store.read() as db:
            row = await db.get(models.ServiceRequest, request_id)
        return ServiceRequest.model_validate(row) if row is not None else None

    async def get(self, request_id: str) -> Result[ServiceRequest]:
        try:
            request = await self._load(request_id)
        except Exception as e:
            logger.exception("Could not read service request %s", request_id)
            return Result.failure(e)
        if request is None:
            return Result.failure(_request_not_found())
        return Result.success(request)

    async def update(self, request: ServiceRequest) -> Result[ServiceRequest]:
        """Full replace of the document with a fresh `updated_at`."""
        try:
            updated = request.model_copy(update={"updated_at": now_millis()})
            async with self._store.write(SERVICE_REQUESTS) as db:
                if await db.get(models.ServiceRequest, updated.id) is None:
                    raise _request_not_found()
                await db.merge(models.ServiceRequest(**to_document(updated)))
            return Result.success(updated)
        except Exception as e:
            return Result.failure(e)

    async def accept(self, request_id: str, employee_id: str) -> Result[ServiceRequest]:
        """
        Assign the request to `employee_id`.

        A single conditional UPDATE ("iff employee_id is null"), so two
        employees accepting at once cannot both win.
        """
        try:
            async with self._store.write(SERVICE_REQUESTS) as db:
                result = await db.execute(
                    update(models.ServiceRequest)
                    .where(models.ServiceRequest.id == request_id)
                    .where(models.ServiceRequest.employee_id.is_(None))
                    .values(
                        employee_id=employee_id,
                        status=ServiceStatus.ACCEPTED.value,
                        progress=progress_for(ServiceStatus.ACCEPTED),
                        updated_at=now_millis(),
                    )
                )
                accepted = result.rowcount == 1
                if not accepted:
                    exists = await db.get(models.ServiceRequest, request_id)
                    raise AlreadyAccepted() if exists is not None else _request_not_found()
        except Exception as e:
            logger.info("Accept of %s by %s refused: %s", request_id, employee_id, e)
            return Result.failure(e)

        logger.info("Service request %s accepted by %s", request_id, employee_id)
        return await self.get(request_id)

    async def update_status(
        self,
        request_id: str,
        status: ServiceStatus,
        progress: Optional[int] = None,
    ) -> Result[ServiceRequest]:
        """
        Move the request to `status`. Any status is accepted from any caller.

        `progress` is stored as given; when omitted it is derived from the
        status. COMPLETED stamps `completed_at` unless already set.
        """
        try:
            status = ServiceStatus(status)
            if progress is None:
                progress = progress_for(status)
            async with self._store.write(SERVICE_REQUESTS) as db:
                row = await db.get(models.ServiceRequest, request_id, with_for_update=True)
                if row is None:
                    raise _request_not_found()
                now = now_millis()
                row.status = status.value
                row.progress = progress
                row.updated_at = now
                if status is ServiceStatus.COMPLETED and row.completed_at is None:
                    row.completed_at = now
                updated = ServiceRequest.model_validate(row)
            logger.info("Service request %s -> %s (%d%%)", request_id, status.value, progress)
            return Result.success(updated)
        except Exception as e:
            return Result.failure(e)

    async def add_note(self, request_id: str, note: ServiceNote) -> Result[ServiceRequest]:
        try:
            async with self._store.write(SERVICE_REQUESTS) as db:
                row = await db.get(models.ServiceRequest, request_id, with_for_update=True)
                if row is None:
                    raise _request_not_found()
                stored = note.model_copy(update={"id": uuid.uuid4().hex})
                # reassign so the JSON column is flagged dirty
                row.notes = list(row.notes or []) + [to_document(stored)]
                row.updated_at = now_millis()
                updated = ServiceRequest.model_validate(row)
            return Result.success(updated)
        except Exception as e:
            return Result.failure(e)

    # ────────────────────────────── CONTINUOUS SUBSCRIPTIONS ──────────────────────────────

    @asynccontextmanager
    async def watch(self, request_id: str) -> AsyncIterator[AsyncIterator[Optional[ServiceRequest]]]:
        async with self._store.subscribe(SERVICE_REQUESTS, lambda: self._load(request_id)) as snapshots:
            yield snapshots

    async def _query(self, *criteria, order_by) -> list[ServiceRequest]:
        stmt = select(models.ServiceRequest).where(*criteria).order_by(order_by.desc())
        async with self._store.read() as db:
            rows = (await db.scalars(stmt)).all()
        return _decode(rows)

    @asynccontextmanager
    async def _list(self, *criteria, order_by) -> AsyncIterator[AsyncIterator[list[ServiceRequest]]]:
        async with self._store.subscribe(
            SERVICE_REQUESTS,
            lambda: self._query(*criteria, order_by=order_by),
        ) as snapshots:
            yield snapshots

    def list_by_client(self, client_id: str):
        return self._list(
            models.ServiceRequest.client_id == client_id,
            order_by=models.ServiceRequest.created_at,
        )

    def list_available(self):
        return self._list(
            models.ServiceRequest.status == ServiceStatus.PENDING.value,
            models.ServiceRequest.employee_id.is_(None),
            order_by=models.ServiceRequest.created_at,
        )

    def list_by_employee(self, employee_id: str):
        return self._list(
            models.ServiceRequest.employee_id == employee_id,
            order_by=models.ServiceRequest.updated_at,
        )

    def list_all(self):
        return self._list(order_by=models.ServiceRequest.created_at)
