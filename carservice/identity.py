"""
Email/password identity service.

Plays the part of a hosted auth provider: it owns the `accounts` collection,
hands out signed id tokens, and tells registered listeners whenever the
signed-in session changes. One instance holds one client's session.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from jose import JWTError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from . import models
from .store import DocumentStore
from .utils import create_jwt, decode_jwt, now_millis

logger = logging.getLogger(__name__)

HASH_ITERATIONS = 120_000


class IdentityError(Exception):
    pass


class IdentityUserNotFound(IdentityError):
    pass


class IdentityInvalidCredentials(IdentityError):
    pass


class IdentityUserCollision(IdentityError):
    pass


@dataclass(frozen=True)
class AuthSession:
    uid: str
    email: str
    id_token: str


SessionListener = Callable[[Optional[AuthSession]], None]


def hash_password(password: str, salt: Optional[str] = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt), HASH_ITERATIONS)
    return f"pbkdf2_sha256${HASH_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        _, iterations, salt, expected = stored.split("$")
    except ValueError:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt), int(iterations))
    return hmac.compare_digest(digest.hex(), expected)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class IdentityService:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store
        self._session: Optional[AuthSession] = None
        self._listeners: list[SessionListener] = []

    @property
    def current_session(self) -> Optional[AuthSession]:
        return self._session

    # ────────────────────────────── LISTENERS ──────────────────────────────

    def add_listener(self, listener: SessionListener) -> None:
        """Register `listener`; it is called at once with the current session."""
        self._listeners.append(listener)
        listener(self._session)

    def remove_listener(self, listener: SessionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _set_session(self, session: Optional[AuthSession]) -> None:
        self._session = session
        for listener in list(self._listeners):
            listener(session)

    # ────────────────────────────── OPERATIONS ──────────────────────────────

    async def create_user(self, email: str, password: str, activate: bool = True) -> AuthSession:
        """
        Create an account and issue its session.

        With `activate=False` the session is returned but not yet published;
        the caller hands it to `activate()` once its own setup is done.
        """
        email = _normalize_email(email)
        uid = uuid.uuid4().hex
        try:
            async with self._store.write("accounts") as db:
                existing = await db.scalar(select(models.Account).where(models.Account.email == email))
                if existing is not None:
                    raise IdentityUserCollision(email)
                db.add(models.Account(
                    uid=uid,
                    email=email,
                    password_hash=hash_password(password),
                    created_at=now_millis(),
                ))
        except IntegrityError as e:
            raise IdentityUserCollision(email) from e

        logger.info("Account created for %s", email)
        session = self._issue(uid, email)
        if activate:
            self._set_session(session)
        return session

    def activate(self, session: AuthSession) -> None:
        self._set_session(session)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        email = _normalize_email(email)
        async with self._store.read() as db:
            account = await db.scalar(select(models.Account).where(models.Account.email == email))
        if account is None:
            raise IdentityUserNotFound(email)
        if not verify_password(password, account.password_hash):
            raise IdentityInvalidCredentials(email)

        session = self._issue(account.uid, account.email)
        self._set_session(session)
        return session

    def restore(self, id_token: str) -> AuthSession:
        """Resume a session from a previously issued id token."""
        try:
            payload = decode_jwt(id_token)
        except JWTError as e:
            raise IdentityInvalidCredentials("invalid token") from e
        uid = payload.get("sub")
        if not uid:
            raise IdentityInvalidCredentials("invalid token")

        session = AuthSession(uid=uid, email=payload.get("email", ""), id_token=id_token)
        self._set_session(session)
        return session

    def sign_out(self) -> None:
        self._set_session(None)

    def _issue(self, uid: str, email: str) -> AuthSession:
        token = create_jwt({"sub": uid, "email": email})
        return AuthSession(uid=uid, email=email, id_token=token)
