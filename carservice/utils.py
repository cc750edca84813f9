from datetime import datetime, timedelta, timezone
import os
import time

from dotenv import load_dotenv
from jose import jwt

load_dotenv()

DEFAULT_SECRET_KEY = "dev-secret-change-me"


def now_millis() -> int:
    return int(time.time() * 1000)


def _as_datetime(timestamp: int) -> datetime:
    return datetime.fromtimestamp(timestamp / 1000).astimezone()


def format_date(timestamp: int) -> str:
    return _as_datetime(timestamp).strftime("%d.%m.%Y")


def format_time(timestamp: int) -> str:
    return _as_datetime(timestamp).strftime("%H:%M")


def format_datetime(timestamp: int) -> str:
    return _as_datetime(timestamp).strftime("%d.%m.%Y %H:%M")


def _secret() -> str:
    return os.getenv("SECRET_KEY") or DEFAULT_SECRET_KEY


def _algorithm() -> str:
    return os.getenv("ALGORITHM", "HS256")


def create_jwt(data: dict, expires_minutes: int | None = None) -> str:
    if expires_minutes is None:
        expires_minutes = int(os.getenv("TOKEN_EXPIRE_MINUTES", "43200"))
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, _secret(), algorithm=_algorithm())


def decode_jwt(token: str) -> dict:
    """Decode and verify a token. Raises jose.JWTError when invalid or expired."""
    return jwt.decode(token, _secret(), algorithms=[_algorithm()])
