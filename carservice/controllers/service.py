from __future__ import annotations

from typing import Optional

from ..repositories import ServiceRepository
from ..schemas import ServiceNote, ServiceRequest, ServiceStatus
from ..state import IDLE, LOADING, Observable, from_result
from .base import Controller


class ServiceController(Controller):
    def __init__(self, repository: ServiceRepository) -> None:
        super().__init__()
        self._repository = repository
        self.create_request_state = Observable(IDLE)
        self.accept_state = Observable(IDLE)
        self.status_update_state = Observable(IDLE)
        self.note_state = Observable(IDLE)
        self.current_request: Observable[Optional[ServiceRequest]] = Observable(None)
        self.client_requests: Observable[list[ServiceRequest]] = Observable([])
        self.available_requests: Observable[list[ServiceRequest]] = Observable([])
        self.employee_requests: Observable[list[ServiceRequest]] = Observable([])
        self.all_requests: Observable[list[ServiceRequest]] = Observable([])

    async def create_request(
        self,
        client_id: str,
        title: str,
        description: str,
        car_model: str,
        car_year: int,
    ) -> None:
        self.create_request_state.set(LOADING)
        request = ServiceRequest(
            client_id=client_id,
            title=title,
            description=description,
            car_model=car_model,
            car_year=car_year,
        )
        result = await self._repository.create(request)
        self.create_request_state.set(from_result(result))

    def reset_create_request_state(self) -> None:
        self.create_request_state.set(IDLE)

    # live views

    def watch_request(self, request_id: str) -> None:
        self._launch("current_request", lambda: self._repository.watch(request_id), self.current_request.set)

    def watch_client_requests(self, client_id: str) -> None:
        self._launch("client_requests", lambda: self._repository.list_by_client(client_id), self.client_requests.set)

    def watch_available_requests(self) -> None:
        self._launch("available_requests", self._repository.list_available, self.available_requests.set)

    def watch_employee_requests(self, employee_id: str) -> None:
        self._launch(
            "employee_requests",
            lambda: self._repository.list_by_employee(employee_id),
            self.employee_requests.set,
        )

    def watch_all_requests(self) -> None:
        self._launch("all_requests", self._repository.list_all, self.all_requests.set)

    # employee actions

    async def accept_request(self, request_id: str, employee_id: str) -> None:
        self.accept_state.set(LOADING)
        result = await self._repository.accept(request_id, employee_id)
        self.accept_state.set(from_result(result))

    async def update_status(self, request_id: str, status: ServiceStatus, progress: Optional[int] = None) -> None:
        self.status_update_state.set(LOADING)
        result = await self._repository.update_status(request_id, status, progress)
        self.status_update_state.set(from_result(result))

    async def add_note(self, request_id: str, note: ServiceNote) -> None:
        self.note_state.set(LOADING)
        result = await self._repository.add_note(request_id, note)
        self.note_state.set(from_result(result))
