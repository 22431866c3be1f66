"""Dashboard application: wires identity, subscription and presentation together."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable
from typing import Any

import aiohttp

from livedash._firestore import FirestoreDocumentStore
from livedash._transport import JsonTransport
from livedash.config import DashboardConfig
from livedash.exceptions import DashboardConfigError
from livedash.identity import FirebaseIdentityProvider, IdentityProvider
from livedash.models.provider import ProviderConfig
from livedash.presentation.view import DashboardView, resolve_view
from livedash.session import IdentitySession, Session
from livedash.subscription import DocumentStore, LiveDocumentSubscription

_logger = logging.getLogger(__name__)

INIT_ERROR_MESSAGE = "Failed to initialize the dashboard backend or authenticate."
SUBSCRIPTION_ERROR_MESSAGE = "Error loading dashboard data. Check security rules and network connection."


class DashboardApp:
    """Live dashboard over one remote document.

    Usage::

        async with DashboardApp(DashboardConfig.from_env()) as app:
            view = app.view()

    Identity provider and document store default to the Firebase REST
    provider and Firestore; pass test doubles to replace them.  The
    document subscription is only opened once the session is ready and is
    reopened (old handle released first) whenever the session changes.
    """

    def __init__(
        self,
        config: DashboardConfig,
        *,
        identity_provider: IdentityProvider | None = None,
        store: DocumentStore | None = None,
        http_session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._identity_provider = identity_provider
        self._store = store
        self._external_http = http_session is not None
        self._http_session = http_session
        self._owned_provider: FirebaseIdentityProvider | None = None
        self._owned_store: FirestoreDocumentStore | None = None
        self._session: IdentitySession | None = None
        self._subscription: LiveDocumentSubscription | None = None
        self._remove_session_listener: Callable[[], None] | None = None
        self._init_error: str | None = None
        self._listeners: list[Callable[[], None]] = []
        self._revision = 0
        self._started = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> DashboardApp:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def start(self) -> None:
        """Start the identity session.

        Configuration and initialization failures do not raise: they put
        the dashboard into its error view.
        """
        if self._started:
            return
        self._started = True

        try:
            provider_config = self._config.require_provider_config()
            provider = self._identity_provider or self._create_identity_provider(provider_config)
            store = self._store or self._create_store(provider_config)
        except Exception:
            _logger.exception("Dashboard initialization failed")
            self._init_error = INIT_ERROR_MESSAGE
            self._notify()
            return

        self._subscription = LiveDocumentSubscription(store, self._config.document_path, on_change=self._notify)
        self._session = IdentitySession(provider, auth_token=self._config.auth_token)
        self._remove_session_listener = self._session.add_listener(self._on_session_change)
        self._session.start()

    async def close(self) -> None:
        """Tear down both subscriptions and any resources created by :meth:`start`."""
        if self._remove_session_listener is not None:
            self._remove_session_listener()
            self._remove_session_listener = None
        if self._subscription is not None:
            self._subscription.release()
        if self._session is not None:
            self._session.close()
        if self._owned_provider is not None:
            await self._owned_provider.close()
            self._owned_provider = None
        if self._owned_store is not None:
            self._owned_store.close()
            self._owned_store = None
        if not self._external_http and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._listeners.clear()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def config(self) -> DashboardConfig:
        return self._config

    @property
    def session(self) -> Session:
        if self._session is None:
            return Session()
        return self._session.current

    @property
    def revision(self) -> int:
        """Counter bumped on every state change; identifies what a view was built from."""
        return self._revision

    @property
    def subscription(self) -> LiveDocumentSubscription | None:
        return self._subscription

    @property
    def error_message(self) -> str | None:
        if self._init_error is not None:
            return self._init_error
        if self._subscription is not None and self._subscription.error is not None:
            return SUBSCRIPTION_ERROR_MESSAGE
        return None

    def view(self) -> DashboardView:
        document = self._subscription.document if self._subscription is not None else None
        return resolve_view(
            session=self.session,
            document=document,
            error_message=self.error_message,
            midpoints=self._config.income_midpoints,
        )

    def add_listener(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Call *listener* after every state change; returns a remover."""
        self._listeners.append(listener)

        def remove() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return remove

    def resubscribe(self) -> None:
        """Clear a subscription error and subscribe again (the remount path)."""
        if self._subscription is None:
            return
        self._subscription.reset()
        if self.session.ready:
            self._subscription.open(self.session)
        self._notify()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _create_identity_provider(self, provider_config: ProviderConfig) -> FirebaseIdentityProvider:
        if not provider_config.api_key:
            raise DashboardConfigError("Firebase configuration has no apiKey")
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        transport = JsonTransport(self._config.identity_base_url, provider_config.api_key, self._http_session)
        token_transport = JsonTransport(
            self._config.secure_token_base_url, provider_config.api_key, self._http_session
        )
        self._owned_provider = FirebaseIdentityProvider(transport, token_transport=token_transport)
        return self._owned_provider

    def _create_store(self, provider_config: ProviderConfig) -> FirestoreDocumentStore:
        if not provider_config.project_id:
            raise DashboardConfigError("Firebase configuration has no projectId")
        self._owned_store = FirestoreDocumentStore(
            provider_config.project_id,
            liveness_interval=self._config.liveness_interval,
        )
        return self._owned_store

    def _on_session_change(self, session: Session) -> None:
        if self._subscription is not None and session.ready:
            self._subscription.open(session)
        self._notify()

    def _notify(self) -> None:
        self._revision += 1
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                _logger.exception("Dashboard listener failed")
