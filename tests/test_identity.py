from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest

from livedash._api.identity import (
    CUSTOM_TOKEN_ENDPOINT,
    REFRESH_TOKEN_ENDPOINT,
    SIGN_UP_ENDPOINT,
    parse_refresh_response,
    parse_sign_in_response,
)
from livedash._transport import _error_code
from livedash.exceptions import DashboardAuthenticationError, DashboardTransportError
from livedash.identity import FirebaseIdentityProvider
from livedash.models.token import AuthUser

from conftest import FakeIdentityBackend, make_id_token, settle


def test_parse_uses_local_id() -> None:
    user = parse_sign_in_response(
        {"idToken": "a.b.c", "localId": "uid-9", "refreshToken": "r", "expiresIn": "1800"},
        endpoint=SIGN_UP_ENDPOINT,
        is_anonymous=True,
    )

    assert user.uid == "uid-9"
    assert user.expires_in == 1800
    assert user.is_anonymous is True


def test_parse_falls_back_to_token_claims() -> None:
    user = parse_sign_in_response(
        {"idToken": make_id_token({"sub": "uid-from-sub"})},
        endpoint=CUSTOM_TOKEN_ENDPOINT,
        is_anonymous=False,
    )

    assert user.uid == "uid-from-sub"


def test_parse_without_token_raises() -> None:
    with pytest.raises(DashboardAuthenticationError):
        parse_sign_in_response({"localId": "x"}, endpoint=SIGN_UP_ENDPOINT, is_anonymous=True)


def test_parse_without_any_uid_raises() -> None:
    with pytest.raises(DashboardAuthenticationError):
        parse_sign_in_response({"idToken": "not-a-jwt"}, endpoint=SIGN_UP_ENDPOINT, is_anonymous=True)


def test_error_code_extraction() -> None:
    body = {"error": {"code": 400, "message": "INVALID_CUSTOM_TOKEN : The custom token format is incorrect."}}

    assert _error_code(body) == "INVALID_CUSTOM_TOKEN"
    assert _error_code({"unexpected": True}) == ""


@pytest.mark.asyncio
async def test_custom_token_sign_in_posts_token(backend: FakeIdentityBackend, provider: FirebaseIdentityProvider) -> None:
    user = await provider.sign_in_with_custom_token("custom-token")

    assert user.uid == backend.token_uid
    assert backend.calls == [(CUSTOM_TOKEN_ENDPOINT, {"token": "custom-token", "returnSecureToken": True})]
    assert provider.current_user == user


@pytest.mark.asyncio
async def test_transport_failure_becomes_authentication_error(backend: FakeIdentityBackend) -> None:
    backend.fail_with = DashboardTransportError(
        "HTTP 400", status_code=400, endpoint=SIGN_UP_ENDPOINT, code="ADMIN_ONLY_OPERATION"
    )
    provider = FirebaseIdentityProvider(backend)

    with pytest.raises(DashboardAuthenticationError) as exc_info:
        await provider.sign_in_anonymously()

    assert exc_info.value.code == "ADMIN_ONLY_OPERATION"
    assert provider.current_user is None


@pytest.mark.asyncio
async def test_observer_gets_current_user_then_sign_ins(provider: FirebaseIdentityProvider) -> None:
    seen: list[AuthUser | None] = []

    provider.on_auth_state_changed(seen.append)
    await settle()
    user = await provider.sign_in_anonymously()
    await settle()

    assert seen == [None, user]


@pytest.mark.asyncio
async def test_unsubscribed_observer_is_not_called(provider: FirebaseIdentityProvider) -> None:
    seen: list[AuthUser | None] = []

    unsubscribe = provider.on_auth_state_changed(seen.append)
    unsubscribe()
    await settle()
    await provider.sign_in_anonymously()
    await settle()

    assert seen == []
    assert provider.observer_count == 0


async def _eventually(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


def test_parse_refresh_keeps_identity_and_rotates_tokens() -> None:
    previous = AuthUser(uid="uid-1", id_token="old", refresh_token="r-old", expires_in=3600, is_anonymous=True)

    refreshed = parse_refresh_response(
        {"id_token": "new", "refresh_token": "r-new", "expires_in": "1800", "user_id": "uid-1"},
        previous=previous,
    )

    assert refreshed.uid == "uid-1"
    assert refreshed.id_token == "new"
    assert refreshed.refresh_token == "r-new"
    assert refreshed.expires_in == 1800
    assert refreshed.is_anonymous is True


def test_parse_refresh_rejects_another_user() -> None:
    previous = AuthUser(uid="uid-1", id_token="old", refresh_token="r-old")

    with pytest.raises(DashboardAuthenticationError):
        parse_refresh_response({"id_token": "new", "user_id": "uid-2"}, previous=previous)


@pytest.mark.asyncio
async def test_refresh_posts_refresh_token_and_notifies(
    backend: FakeIdentityBackend, provider: FirebaseIdentityProvider
) -> None:
    seen: list[AuthUser | None] = []
    provider.on_auth_state_changed(seen.append)
    user = await provider.sign_in_anonymously()
    await settle()

    refreshed = await provider.refresh()
    await settle()

    assert backend.calls[-1] == (
        REFRESH_TOKEN_ENDPOINT,
        {"grant_type": "refresh_token", "refresh_token": "refresh-anon-uid-1"},
    )
    assert refreshed.uid == user.uid
    assert refreshed.id_token != user.id_token
    assert provider.current_user == refreshed
    assert seen == [None, user, refreshed]


@pytest.mark.asyncio
async def test_refresh_without_user_raises(provider: FirebaseIdentityProvider) -> None:
    with pytest.raises(DashboardAuthenticationError):
        await provider.refresh()


@pytest.mark.asyncio
async def test_refresh_is_scheduled_ahead_of_expiry(backend: FakeIdentityBackend) -> None:
    backend.expires_in = "1"
    provider = FirebaseIdentityProvider(backend, refresh_margin=0.95)

    user = await provider.sign_in_anonymously()
    assert backend.refreshes == 0

    await _eventually(lambda: backend.refreshes == 1)
    await settle()

    assert provider.current_user is not None
    assert provider.current_user.uid == user.uid
    assert provider.current_user.id_token != user.id_token
    # The refreshed token lives an hour; nothing else is due yet.
    assert backend.count(REFRESH_TOKEN_ENDPOINT) == 1
    await provider.close()


@pytest.mark.asyncio
async def test_failed_refresh_keeps_user_and_retries(backend: FakeIdentityBackend) -> None:
    backend.expires_in = "0"
    provider = FirebaseIdentityProvider(backend, refresh_margin=0, retry_delay=0.01)
    user = await provider.sign_in_anonymously()
    backend.fail_with = DashboardTransportError("HTTP 503", status_code=503, endpoint=REFRESH_TOKEN_ENDPOINT)

    await _eventually(lambda: backend.count(REFRESH_TOKEN_ENDPOINT) >= 2)
    assert provider.current_user is user

    backend.fail_with = None
    await _eventually(lambda: backend.refreshes == 1)
    await settle()

    assert provider.current_user is not None
    assert provider.current_user.id_token != user.id_token
    await provider.close()


@pytest.mark.asyncio
async def test_new_sign_in_replaces_pending_refresh(backend: FakeIdentityBackend) -> None:
    backend.expires_in = "1"
    provider = FirebaseIdentityProvider(backend, refresh_margin=0.9)
    await provider.sign_in_anonymously()

    backend.expires_in = "3600"
    backend.anonymous_uid = "anon-uid-2"
    second = await provider.sign_in_anonymously()
    await asyncio.sleep(0.2)

    assert backend.count(REFRESH_TOKEN_ENDPOINT) == 0
    assert provider.current_user is second
    await provider.close()
