from __future__ import annotations

from datetime import datetime

import pytest
from jose import JWTError

from carservice.database import normalize_url
from carservice.utils import create_jwt, decode_jwt, format_date, format_datetime, format_time


def _millis(*args) -> int:
    return int(datetime(*args).timestamp() * 1000)


def test_date_formats() -> None:
    ts = _millis(2024, 3, 9, 14, 5)
    assert format_date(ts) == "09.03.2024"
    assert format_time(ts) == "14:05"
    assert format_datetime(ts) == "09.03.2024 14:05"


def test_jwt_round_trip() -> None:
    token = create_jwt({"sub": "u1", "email": "a@example.com"})
    payload = decode_jwt(token)
    assert payload["sub"] == "u1"
    assert payload["email"] == "a@example.com"
    assert "exp" in payload


def test_expired_jwt_is_rejected() -> None:
    token = create_jwt({"sub": "u1"}, expires_minutes=-1)
    with pytest.raises(JWTError):
        decode_jwt(token)


def test_token_signed_with_other_key_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SECRET_KEY", "first-key")
    token = create_jwt({"sub": "u1"})
    monkeypatch.setenv("SECRET_KEY", "second-key")
    with pytest.raises(JWTError):
        decode_jwt(token)


@pytest.mark.parametrize(
    "url, expected",
    [
        ("postgres://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
        ("postgresql://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
        ("postgresql+asyncpg://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
        ("sqlite+aiosqlite:///./x.db", "sqlite+aiosqlite:///./x.db"),
    ],
)
def test_normalize_url(url: str, expected: str) -> None:
    assert normalize_url(url) == expected
