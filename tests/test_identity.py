"""
Tests for the identity service: accounts, password checks, session listeners.
"""

from __future__ import annotations

import pytest

from carservice.identity import (
    IdentityInvalidCredentials,
    IdentityService,
    IdentityUserCollision,
    IdentityUserNotFound,
    hash_password,
    verify_password,
)


def test_password_hash_round_trip() -> None:
    stored = hash_password("s3cret!")
    assert stored.startswith("pbkdf2_sha256$")
    assert verify_password("s3cret!", stored)
    assert not verify_password("s3cret", stored)


def test_same_password_gets_different_salts() -> None:
    assert hash_password("same") != hash_password("same")


def test_malformed_hash_never_verifies() -> None:
    assert not verify_password("x", "plain-text")


async def test_create_user_signs_in(identity: IdentityService) -> None:
    session = await identity.create_user("Anna@Garage.io ", "password1")
    assert session.email == "anna@garage.io"
    assert identity.current_session == session
    assert session.id_token


async def test_create_user_can_defer_publishing(identity: IdentityService) -> None:
    seen = []
    identity.add_listener(seen.append)

    session = await identity.create_user("anna@garage.io", "password1", activate=False)
    assert identity.current_session is None
    assert seen == [None]

    identity.activate(session)
    assert identity.current_session == session
    assert seen == [None, session]


async def test_duplicate_email_collides(identity: IdentityService) -> None:
    await identity.create_user("anna@garage.io", "password1")
    with pytest.raises(IdentityUserCollision):
        await identity.create_user("ANNA@garage.io", "other-pass")


async def test_sign_in_errors(identity: IdentityService) -> None:
    await identity.create_user("anna@garage.io", "password1")
    identity.sign_out()

    with pytest.raises(IdentityUserNotFound):
        await identity.sign_in("nobody@garage.io", "password1")
    with pytest.raises(IdentityInvalidCredentials):
        await identity.sign_in("anna@garage.io", "wrong")
    assert identity.current_session is None

    session = await identity.sign_in("anna@garage.io", "password1")
    assert identity.current_session == session


async def test_listeners_see_every_session_change(identity: IdentityService) -> None:
    seen = []
    identity.add_listener(seen.append)
    assert seen == [None]

    session = await identity.create_user("anna@garage.io", "password1")
    identity.sign_out()
    assert seen == [None, session, None]

    identity.remove_listener(seen.append)
    await identity.sign_in("anna@garage.io", "password1")
    assert len(seen) == 3


async def test_restore_from_token(store) -> None:
    first = IdentityService(store)
    session = await first.create_user("anna@garage.io", "password1")

    second = IdentityService(store)
    restored = second.restore(session.id_token)
    assert restored.uid == session.uid
    assert restored.email == "anna@garage.io"
    assert second.current_session == restored

    with pytest.raises(IdentityInvalidCredentials):
        second.restore("not-a-token")
