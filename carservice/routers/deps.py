from fastapi import Depends, HTTPException, status
from fastapi.requests import HTTPConnection
from fastapi.security import OAuth2PasswordBearer

from ..errors import (
    AlreadyAccepted,
    CarServiceError,
    EmailAlreadyInUse,
    InvalidCredentials,
    NotFound,
    Result,
    UserNotFound,
)
from ..identity import IdentityService
from ..repositories import AuthRepository, ChatRepository, ServiceRepository
from ..schemas import User, UserRole
from ..store import DocumentStore

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")

ERROR_STATUS = {
    InvalidCredentials: status.HTTP_401_UNAUTHORIZED,
    UserNotFound: status.HTTP_404_NOT_FOUND,
    NotFound: status.HTTP_404_NOT_FOUND,
    EmailAlreadyInUse: status.HTTP_409_CONFLICT,
    AlreadyAccepted: status.HTTP_409_CONFLICT,
}


def http_error(error: CarServiceError) -> HTTPException:
    code = ERROR_STATUS.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(status_code=code, detail=error.message)


def unwrap(result: Result):
    if result.is_failure:
        raise http_error(result.error)
    return result.value


async def first_snapshot(open_stream):
    """Current result of a continuous subscription, then release it."""
    async with open_stream() as snapshots:
        try:
            return await snapshots.__anext__()
        finally:
            await snapshots.aclose()


# ────────────────────────────── DEPENDENCIES ──────────────────────────────

def get_store(conn: HTTPConnection) -> DocumentStore:
    # HTTPConnection so websocket routes can share the dependency
    return conn.app.state.store


def get_auth_repository(store: DocumentStore = Depends(get_store)) -> AuthRepository:
    # a fresh identity per request: HTTP callers carry their session in the token
    return AuthRepository(store, IdentityService(store))


def get_service_repository(store: DocumentStore = Depends(get_store)) -> ServiceRepository:
    return ServiceRepository(store)


def get_chat_repository(store: DocumentStore = Depends(get_store)) -> ChatRepository:
    return ChatRepository(store)


async def resolve_user(token: str, auth: AuthRepository) -> User:
    session = auth.restore_session(token)
    if session.is_failure:
        raise HTTPException(status_code=401, detail="Invalid token")
    user = await auth.get_user(session.value.uid)
    if user.is_failure:
        raise HTTPException(status_code=401, detail="Invalid token")
    return user.value


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    auth: AuthRepository = Depends(get_auth_repository),
) -> User:
    return await resolve_user(token, auth)


def require_employee(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.EMPLOYEE:
        raise HTTPException(status_code=403, detail="Employees only")
    return user
