"""Auth adapter: identity-service sessions plus the `users` profile collection."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from .. import models
from ..errors import EmailAlreadyInUse, InvalidCredentials, Result, UserNotFound
from ..identity import (
    AuthSession,
    IdentityInvalidCredentials,
    IdentityService,
    IdentityUserCollision,
    IdentityUserNotFound,
)
from ..schemas import User, UserRole, to_document
from ..store import USERS, DocumentStore

logger = logging.getLogger(__name__)


class AuthRepository:
    def __init__(self, store: DocumentStore, identity: IdentityService) -> None:
        self._store = store
        self._identity = identity

    async def _fetch_user(self, uid: str) -> Optional[User]:
        async with self._store.read() as db:
            row = await db.get(models.User, uid)
        return User.model_validate(row) if row is not None else None

    async def _write_user(self, user: User) -> None:
        async with self._store.write(USERS) as db:
            await db.merge(models.User(**to_document(user)))

    async def sign_in(self, email: str, password: str) -> Result[User]:
        try:
            session = await self._identity.sign_in(email, password)
            user = await self._fetch_user(session.uid)
            if user is None:
                return Result.failure(UserNotFound("User data not found"))
            logger.info("User %s signed in", user.id)
            return Result.success(user)
        except IdentityUserNotFound:
            return Result.failure(UserNotFound())
        except IdentityInvalidCredentials:
            return Result.failure(InvalidCredentials())
        except Exception as e:
            logger.exception("Sign-in failed for %s", email)
            return Result.failure(e)

    async def register(
        self,
        email: str,
        password: str,
        name: str,
        phone: str,
        role: UserRole,
    ) -> Result[User]:
        try:
            session = await self._identity.create_user(email, password, activate=False)
            user = User(id=session.uid, email=session.email, name=name, phone=phone, role=role)
            await self._write_user(user)
            # listeners resolve the profile as soon as the session is published
            self._identity.activate(session)
            logger.info("Registered %s user %s", user.role.value, user.id)
            return Result.success(user)
        except IdentityUserCollision:
            return Result.failure(EmailAlreadyInUse())
        except Exception as e:
            logger.exception("Registration failed for %s", email)
            return Result.failure(e)

    async def sign_out(self) -> None:
        self._identity.sign_out()

    def restore_session(self, id_token: str) -> Result[AuthSession]:
        try:
            return Result.success(self._identity.restore(id_token))
        except IdentityInvalidCredentials:
            return Result.failure(InvalidCredentials("Invalid token"))

    def current_id_token(self) -> Optional[str]:
        session = self._identity.current_session
        return session.id_token if session is not None else None

    def is_authenticated(self) -> bool:
        return self._identity.current_session is not None

    async def get_current_user(self) -> Optional[User]:
        session = self._identity.current_session
        if session is None:
            return None
        try:
            return await self._fetch_user(session.uid)
        except Exception:
            logger.exception("Could not load profile %s", session.uid)
            return None

    async def get_user(self, user_id: str) -> Result[User]:
        try:
            user = await self._fetch_user(user_id)
        except Exception as e:
            return Result.failure(e)
        if user is None:
            return Result.failure(UserNotFound())
        return Result.success(user)

    async def update_profile(self, user: User) -> Result[User]:
        """Full replace of the profile document; unrelated fields are not merged."""
        try:
            await self._write_user(user)
            return Result.success(user)
        except Exception as e:
            logger.exception("Profile update failed for %s", user.id)
            return Result.failure(e)

    @asynccontextmanager
    async def current_user_stream(self) -> AsyncIterator[AsyncIterator[Optional[User]]]:
        """
        Current user, re-resolved on every session change.

        Only the latest session is kept, so a consumer that falls behind never
        sees a stale user. A failed profile fetch is reported as `None`.
        """
        changes: asyncio.Queue = asyncio.Queue(maxsize=1)

        def on_session(session: Optional[AuthSession]) -> None:
            if not changes.empty():
                changes.get_nowait()
            changes.put_nowait((session,))

        self._identity.add_listener(on_session)
        users = self._resolve_users(changes)
        try:
            yield users
        finally:
            await users.aclose()
            self._identity.remove_listener(on_session)

    async def _resolve_users(self, changes: asyncio.Queue) -> AsyncIterator[Optional[User]]:
        while True:
            (session,) = await changes.get()
            if session is None:
                yield None
                continue
            try:
                user = await self._fetch_user(session.uid)
            except Exception:
                logger.exception("Could not load profile %s", session.uid)
                user = None
            yield user
