import enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from .utils import now_millis


class UserRole(str, enum.Enum):
    CLIENT = "CLIENT"
    EMPLOYEE = "EMPLOYEE"


class ServiceStatus(str, enum.Enum):
    PENDING = "PENDING"  # created by the client, nobody assigned
    ACCEPTED = "ACCEPTED"
    IN_PROGRESS = "IN_PROGRESS"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# ────────────────────────────── ENTITIES ──────────────────────────────
# Stored rows are decoded through these models, never by reflection.

class User(BaseModel):
    id: str
    email: str = ""
    name: str = ""
    phone: str = ""
    role: UserRole = UserRole.CLIENT
    profile_image_url: Optional[str] = None
    created_at: int = Field(default_factory=now_millis)

    class Config:
        from_attributes = True


class ServiceNote(BaseModel):
    id: str = ""
    author_id: str
    author_name: str = ""
    author_role: UserRole = UserRole.CLIENT
    content: str = ""
    created_at: int = Field(default_factory=now_millis)

    class Config:
        from_attributes = True


class ServiceRequest(BaseModel):
    id: str = ""
    client_id: str = Field(min_length=1)
    employee_id: Optional[str] = None
    title: str = ""
    description: str = ""
    car_model: str = ""
    car_year: int = 0
    status: ServiceStatus = ServiceStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    created_at: int = Field(default_factory=now_millis)
    updated_at: int = Field(default_factory=now_millis)
    completed_at: Optional[int] = None
    notes: list[ServiceNote] = Field(default_factory=list)

    class Config:
        from_attributes = True


class ChatMessage(BaseModel):
    id: str = ""
    service_request_id: str = Field(min_length=1)
    sender_id: str = Field(min_length=1)
    sender_name: str = ""
    sender_role: UserRole = UserRole.CLIENT
    content: str = ""
    timestamp: int = Field(default_factory=now_millis)
    is_read: bool = False

    class Config:
        from_attributes = True


def to_document(entity: BaseModel) -> dict:
    """Column values for a store write (enums as their names, notes as plain dicts)."""
    return entity.model_dump(mode="json")


# ────────────────────────────── API BODIES ──────────────────────────────

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: str
    phone: str = ""
    role: UserRole = UserRole.CLIENT


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class ProfileUpdate(BaseModel):
    name: str
    phone: str = ""
    profile_image_url: Optional[str] = None


class RequestCreate(BaseModel):
    title: str
    description: str = ""
    car_model: str
    car_year: int


class StatusUpdate(BaseModel):
    status: ServiceStatus
    # omitted: derived from the status
    progress: Optional[int] = Field(default=None, ge=0, le=100)


class NoteCreate(BaseModel):
    content: str


class MessageCreate(BaseModel):
    content: str


class UnreadCount(BaseModel):
    service_request_id: str
    count: int
