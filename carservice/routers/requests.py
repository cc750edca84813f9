from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from .. import schemas
from ..repositories import ServiceRepository
from .deps import first_snapshot, get_current_user, get_service_repository, require_employee, unwrap

router = APIRouter(prefix="/requests", tags=["Requests"])


@router.post("/", response_model=schemas.ServiceRequest, status_code=201)
async def create_request(
    req: schemas.RequestCreate,
    user: schemas.User = Depends(get_current_user),
    repo: ServiceRepository = Depends(get_service_repository),
):
    new = schemas.ServiceRequest(
        client_id=user.id,
        title=req.title,
        description=req.description,
        car_model=req.car_model,
        car_year=req.car_year,
    )
    return unwrap(await repo.create(new))


@router.get("/", response_model=List[schemas.ServiceRequest])
async def list_requests(
    client_id: Optional[str] = None,
    employee_id: Optional[str] = None,
    available: bool = False,
    user: schemas.User = Depends(get_current_user),
    repo: ServiceRepository = Depends(get_service_repository),
):
    if available:
        return await first_snapshot(repo.list_available)
    if client_id:
        return await first_snapshot(lambda: repo.list_by_client(client_id))
    if employee_id:
        return await first_snapshot(lambda: repo.list_by_employee(employee_id))
    if user.role == schemas.UserRole.CLIENT:
        return await first_snapshot(lambda: repo.list_by_client(user.id))
    return await first_snapshot(repo.list_all)


@router.get("/{request_id}", response_model=schemas.ServiceRequest)
async def get_request(
    request_id: str,
    user: schemas.User = Depends(get_current_user),
    repo: ServiceRepository = Depends(get_service_repository),
):
    return unwrap(await repo.get(request_id))


@router.post("/{request_id}/accept", response_model=schemas.ServiceRequest)
async def accept_request(
    request_id: str,
    employee: schemas.User = Depends(require_employee),
    repo: ServiceRepository = Depends(get_service_repository),
):
    return unwrap(await repo.accept(request_id, employee.id))


@router.patch("/{request_id}/status", response_model=schemas.ServiceRequest)
async def update_status(
    request_id: str,
    req: schemas.StatusUpdate,
    employee: schemas.User = Depends(require_employee),
    repo: ServiceRepository = Depends(get_service_repository),
):
    return unwrap(await repo.update_status(request_id, req.status, req.progress))


@router.post("/{request_id}/notes", response_model=schemas.ServiceRequest)
async def add_note(
    request_id: str,
    req: schemas.NoteCreate,
    user: schemas.User = Depends(get_current_user),
    repo: ServiceRepository = Depends(get_service_repository),
):
    if not req.content.strip():
        raise HTTPException(status_code=422, detail="Note is empty")
    note = schemas.ServiceNote(
        author_id=user.id,
        author_name=user.name,
        author_role=user.role,
        content=req.content,
    )
    return unwrap(await repo.add_note(request_id, note))
