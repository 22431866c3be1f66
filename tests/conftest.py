from __future__ import annotations

import asyncio
import base64
import json
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass, field
from typing import Any

import pytest
import pytest_asyncio

from livedash._api.identity import CUSTOM_TOKEN_ENDPOINT, REFRESH_TOKEN_ENDPOINT, SIGN_UP_ENDPOINT
from livedash.exceptions import DashboardTransportError
from livedash.identity import FirebaseIdentityProvider
from livedash.session import Session
from livedash.subscription import ErrorCallback, SnapshotCallback


def make_id_token(claims: dict[str, Any]) -> str:
    def _segment(obj: dict[str, Any]) -> str:
        return base64.urlsafe_b64encode(json.dumps(obj).encode()).decode().rstrip("=")

    return f"{_segment({'alg': 'RS256'})}.{_segment(claims)}.signature"


async def settle(rounds: int = 20) -> None:
    """Let scheduled callbacks and observer tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@dataclass
class FakeIdentityBackend:
    """Stands in for the Identity Toolkit REST API."""

    calls: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    fail_with: DashboardTransportError | None = None
    anonymous_uid: str = "anon-uid-1"
    token_uid: str = "token-uid-1"
    expires_in: str = "3600"
    refreshes: int = 0

    def count(self, endpoint: str) -> int:
        return sum(1 for called, _payload in self.calls if called == endpoint)

    async def post_json(self, endpoint: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        self.calls.append((endpoint, dict(payload)))
        if self.fail_with is not None:
            raise self.fail_with
        if endpoint == SIGN_UP_ENDPOINT:
            return {
                "idToken": make_id_token({"user_id": self.anonymous_uid}),
                "refreshToken": f"refresh-{self.anonymous_uid}",
                "expiresIn": self.expires_in,
                "localId": self.anonymous_uid,
            }
        if endpoint == CUSTOM_TOKEN_ENDPOINT:
            # The custom-token response carries no localId.
            return {
                "idToken": make_id_token({"user_id": self.token_uid, "sub": self.token_uid}),
                "refreshToken": f"refresh-{self.token_uid}",
                "expiresIn": self.expires_in,
                "isNewUser": False,
            }
        if endpoint == REFRESH_TOKEN_ENDPOINT:
            # Secure Token responses use snake_case keys.
            uid = str(payload["refresh_token"]).split("-", 1)[1]
            self.refreshes += 1
            return {
                "id_token": make_id_token({"user_id": uid, "generation": self.refreshes}),
                "refresh_token": f"refresh-{uid}",
                "expires_in": "3600",
                "token_type": "Bearer",
                "user_id": uid,
            }
        raise AssertionError(f"unexpected endpoint {endpoint}")


class FakeHandle:
    def __init__(
        self,
        store: FakeDocumentStore,
        path: str,
        session: Session,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> None:
        self._store = store
        self.path = path
        self.session = session
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.unsubscribed = False
        self.stopped = False

    @property
    def active(self) -> bool:
        return not self.unsubscribed and not self.stopped

    def unsubscribe(self) -> None:
        if self.unsubscribed:
            return
        self.unsubscribed = True
        self._store.active_count -= 1


@dataclass
class FakeDocumentStore:
    """In-memory push store that counts concurrently active handles."""

    handles: list[FakeHandle] = field(default_factory=list)
    active_count: int = 0
    max_active: int = 0
    fail_on_listen: Exception | None = None

    def listen(
        self,
        path: str,
        session: Session,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> FakeHandle:
        if self.fail_on_listen is not None:
            raise self.fail_on_listen
        handle = FakeHandle(self, path, session, on_snapshot, on_error)
        self.handles.append(handle)
        self.active_count += 1
        self.max_active = max(self.max_active, self.active_count)
        return handle

    @property
    def latest(self) -> FakeHandle:
        return self.handles[-1]

    def push(self, data: Mapping[str, Any] | None) -> None:
        self.latest.on_snapshot(data)

    def fail(self, exc: Exception) -> None:
        self.latest.on_error(exc)


@pytest.fixture
def backend() -> FakeIdentityBackend:
    return FakeIdentityBackend()


@pytest_asyncio.fixture
async def provider(backend: FakeIdentityBackend) -> AsyncIterator[FirebaseIdentityProvider]:
    identity = FirebaseIdentityProvider(backend)
    yield identity
    await identity.close()


@pytest.fixture
def store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def ready_session() -> Session:
    return Session(identity_id="uid-1", ready=True, id_token="id-token-1")


@pytest.fixture
def provider_config() -> dict[str, Any]:
    return {"apiKey": "api-key", "projectId": "demo-project", "authDomain": "demo.firebaseapp.com"}
