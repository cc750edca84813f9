from sqlalchemy import JSON, BigInteger, Boolean, Column, Integer, String, Text

from .database import Base


class Account(Base):
    """Identity-service credentials, separate from the public profile."""

    __tablename__ = "accounts"
    uid = Column(String, primary_key=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    created_at = Column(BigInteger, nullable=False)


class User(Base):
    __tablename__ = "users"
    id = Column(String, primary_key=True)  # identity uid
    email = Column(String, nullable=False, default="")
    name = Column(String, nullable=False, default="")
    phone = Column(String, nullable=False, default="")
    role = Column(String, nullable=False, default="CLIENT")  # CLIENT / EMPLOYEE
    profile_image_url = Column(String, nullable=True)
    created_at = Column(BigInteger, nullable=False)


class ServiceRequest(Base):
    __tablename__ = "service_requests"
    id = Column(String, primary_key=True)
    client_id = Column(String, index=True, nullable=False)
    employee_id = Column(String, index=True, nullable=True)
    title = Column(String, nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    car_model = Column(String, nullable=False, default="")
    car_year = Column(Integer, nullable=False, default=0)
    status = Column(String, index=True, nullable=False, default="PENDING")
    progress = Column(Integer, nullable=False, default=0)
    created_at = Column(BigInteger, nullable=False)
    updated_at = Column(BigInteger, nullable=False)
    completed_at = Column(BigInteger, nullable=True)
    notes = Column(JSON, nullable=False, default=list)


class ChatMessage(Base):
    __tablename__ = "chat_messages"
    id = Column(String, primary_key=True)
    service_request_id = Column(String, index=True, nullable=False)
    sender_id = Column(String, index=True, nullable=False)
    sender_name = Column(String, nullable=False, default="")
    sender_role = Column(String, nullable=False, default="CLIENT")
    content = Column(Text, nullable=False, default="")
    timestamp = Column(BigInteger, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
