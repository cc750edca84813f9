from __future__ import annotations

from typing import Optional

from ..repositories import AuthRepository
from ..schemas import User, UserRole
from ..state import IDLE, LOADING, Observable, from_result
from .base import Controller


class AuthController(Controller):
    """Sign-in, registration and profile state for the auth screens."""

    def __init__(self, repository: AuthRepository) -> None:
        super().__init__()
        self._repository = repository
        self.current_user: Observable[Optional[User]] = Observable(None)
        self.login_state = Observable(IDLE)
        self.register_state = Observable(IDLE)
        self.update_profile_state = Observable(IDLE)

    def start(self) -> None:
        """Keep `current_user` in step with the identity session."""
        self._launch("current_user", self._repository.current_user_stream, self.current_user.set)

    async def sign_in(self, email: str, password: str) -> None:
        self.login_state.set(LOADING)
        result = await self._repository.sign_in(email, password)
        self.login_state.set(from_result(result))

    async def register(self, email: str, password: str, name: str, phone: str, role: UserRole) -> None:
        self.register_state.set(LOADING)
        result = await self._repository.register(email, password, name, phone, role)
        self.register_state.set(from_result(result))

    async def update_profile(self, user_id: str, name: str, phone: str) -> None:
        self.update_profile_state.set(LOADING)
        current = await self._repository.get_user(user_id)
        if current.is_failure:
            self.update_profile_state.set(from_result(current))
            return
        user = current.value.model_copy(update={"name": name, "phone": phone})
        result = await self._repository.update_profile(user)
        self.update_profile_state.set(from_result(result))

    async def sign_out(self) -> None:
        await self._repository.sign_out()

    def is_authenticated(self) -> bool:
        return self._repository.is_authenticated()

    def reset_login_state(self) -> None:
        self.login_state.set(IDLE)

    def reset_register_state(self) -> None:
        self.register_state.set(IDLE)

    def reset_update_profile_state(self) -> None:
        self.update_profile_state.set(IDLE)
