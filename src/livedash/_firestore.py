"""Firestore-backed document store.

``google-cloud-firestore`` delivers ``on_snapshot`` callbacks on its own
watch thread; every callback is handed to the asyncio loop with
``call_soon_threadsafe`` before it reaches livedash code.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from google.auth.credentials import AnonymousCredentials
from google.auth.credentials import Credentials as BaseCredentials
from google.cloud import firestore
from google.oauth2.credentials import Credentials

from livedash.exceptions import DashboardSubscriptionError
from livedash.session import Session
from livedash.subscription import ErrorCallback, SnapshotCallback

_logger = logging.getLogger(__name__)

ClientFactory = Callable[[str, BaseCredentials], Any]


def _default_client_factory(project_id: str, credentials: BaseCredentials) -> firestore.Client:
    return firestore.Client(project=project_id, credentials=credentials)


def credentials_for(session: Session) -> BaseCredentials:
    """Bearer credentials for a signed-in session, anonymous ones for a placeholder."""
    if session.id_token:
        return Credentials(token=session.id_token)
    return AnonymousCredentials()


def snapshot_payload(doc_snapshots: Sequence[Any]) -> dict[str, Any] | None:
    """Body of the watched document, ``None`` when it does not exist."""
    if not doc_snapshots:
        return None
    snapshot = doc_snapshots[0]
    if not snapshot.exists:
        return None
    return snapshot.to_dict() or {}


class FirestoreListener:
    """Handle for one ``on_snapshot`` watch.

    A watch the server has closed (permission denied, deleted database)
    stops streaming without calling back; a liveness check running on the
    loop reports that as a :class:`DashboardSubscriptionError`.
    """

    def __init__(
        self,
        watch: Any,
        *,
        path: str,
        loop: asyncio.AbstractEventLoop,
        on_error: ErrorCallback,
        liveness_interval: float,
    ) -> None:
        self._watch = watch
        self._path = path
        self._on_error = on_error
        self._interval = liveness_interval
        self._released = False
        self._monitor: asyncio.Task[None] | None = None
        if liveness_interval > 0:
            self._monitor = loop.create_task(self._check_liveness())

    @property
    def active(self) -> bool:
        return not self._released and bool(self._watch.is_active)

    def unsubscribe(self) -> None:
        if self._released:
            return
        self._released = True
        monitor = self._monitor
        self._monitor = None
        if monitor is not None:
            monitor.cancel()
        self._watch.unsubscribe()

    async def _check_liveness(self) -> None:
        while not self._released:
            await asyncio.sleep(self._interval)
            if self._released:
                return
            if not self._watch.is_active:
                self._monitor = None
                _logger.warning("Firestore listener for %s stopped streaming", self._path)
                self._on_error(DashboardSubscriptionError(f"Listener for {self._path} was closed by the server"))
                return


class FirestoreDocumentStore:
    """:class:`~livedash.subscription.DocumentStore` over Cloud Firestore."""

    def __init__(
        self,
        project_id: str,
        *,
        liveness_interval: float = 5.0,
        client_factory: ClientFactory = _default_client_factory,
    ) -> None:
        self._project_id = project_id
        self._liveness_interval = liveness_interval
        self._client_factory = client_factory
        self._client: Any = None
        self._client_token: str | None = None

    def listen(
        self,
        path: str,
        session: Session,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> FirestoreListener:
        loop = asyncio.get_running_loop()
        client = self._client_for(session)
        doc_ref = client.document(path.strip("/"))

        def _post(callback: Callable[..., None], *args: Any) -> None:
            try:
                loop.call_soon_threadsafe(callback, *args)
            except RuntimeError:
                _logger.debug("Event loop closed, dropping Firestore callback")

        def _on_watch_snapshot(doc_snapshots: Sequence[Any], _changes: Any, _read_time: Any) -> None:
            # Runs on the Firestore watch thread.
            try:
                payload: Mapping[str, Any] | None = snapshot_payload(doc_snapshots)
            except Exception as exc:
                _post(on_error, exc)
                return
            _post(on_snapshot, payload)

        _logger.debug("Opening Firestore listener project=%s path=%s", self._project_id, path)
        watch = doc_ref.on_snapshot(_on_watch_snapshot)
        return FirestoreListener(
            watch,
            path=path,
            loop=loop,
            on_error=on_error,
            liveness_interval=self._liveness_interval,
        )

    def close(self) -> None:
        client = self._client
        self._client = None
        self._client_token = None
        if client is not None:
            client.close()

    def _client_for(self, session: Session) -> Any:
        if self._client is not None and self._client_token == session.id_token:
            return self._client
        self.close()
        self._client = self._client_factory(self._project_id, credentials_for(session))
        self._client_token = session.id_token
        return self._client
