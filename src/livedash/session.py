"""Identity session: who the dashboard reads as, and whether that is settled yet."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict

from livedash.identity import IdentityProvider, Unsubscribe
from livedash.models.token import AuthUser

_logger = logging.getLogger(__name__)


class Session(BaseModel):
    """Immutable view of the identity session.

    Parameters
    ----------
    identity_id : str or None
        Provider uid, or a locally generated placeholder.  ``None`` until
        the session is ready.
    ready : bool
        Whether an identity has been resolved.  Never goes back to
        ``False`` once set.
    is_placeholder : bool
        ``True`` when sign-in failed and ``identity_id`` was generated
        locally.
    id_token : str or None
        Bearer token for the document store; ``None`` for placeholders.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    identity_id: str | None = None
    ready: bool = False
    is_placeholder: bool = False
    id_token: str | None = None


SessionListener = Callable[[Session], None]


class IdentitySession:
    """Resolves an identity through an :class:`IdentityProvider`.

    Usage::

        session = IdentitySession(provider, auth_token=config.auth_token)
        session.start()
        current = await session.wait_ready()
        ...
        session.close()

    The session registers exactly one auth-state observer between
    :meth:`start` and :meth:`close`.  When the provider reports no user it
    signs in with the custom token if one was given, anonymously
    otherwise.  A failed sign-in never blocks readiness: a placeholder
    identity is used instead.
    """

    def __init__(self, provider: IdentityProvider, *, auth_token: str | None = None) -> None:
        self._provider = provider
        self._auth_token = auth_token
        self._session = Session()
        self._ready = asyncio.Event()
        self._sign_in_lock = asyncio.Lock()
        self._unsubscribe: Unsubscribe | None = None
        self._listeners: list[SessionListener] = []

    @property
    def current(self) -> Session:
        return self._session

    @property
    def ready(self) -> bool:
        return self._session.ready

    @property
    def started(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> None:
        """Subscribe to auth-state changes (no-op when already started)."""
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self._provider.on_auth_state_changed(self._on_auth_state)

    def close(self) -> None:
        """Release the auth-state subscription and drop listeners."""
        unsubscribe = self._unsubscribe
        self._unsubscribe = None
        self._listeners.clear()
        if unsubscribe is not None:
            unsubscribe()

    async def wait_ready(self) -> Session:
        await self._ready.wait()
        return self._session

    def add_listener(self, listener: SessionListener) -> Callable[[], None]:
        """Call *listener* with every new :class:`Session`; returns a remover."""
        self._listeners.append(listener)

        def remove() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return remove

    async def _on_auth_state(self, user: AuthUser | None) -> None:
        if user is None:
            _logger.info("No user signed in, attempting sign-in")
            user = await self._sign_in()
        if self._unsubscribe is None:
            # Closed while signing in.
            return
        self._resolve(user)

    async def _sign_in(self) -> AuthUser | None:
        async with self._sign_in_lock:
            current = self._provider.current_user
            if current is not None:
                return current
            try:
                if self._auth_token:
                    return await self._provider.sign_in_with_custom_token(self._auth_token)
                return await self._provider.sign_in_anonymously()
            except Exception:
                _logger.warning("Sign-in failed, continuing with a placeholder identity", exc_info=True)
                return None

    def _resolve(self, user: AuthUser | None) -> None:
        if user is not None:
            new = Session(identity_id=user.uid, ready=True, id_token=user.id_token)
        elif self._session.is_placeholder:
            new = self._session
        else:
            new = Session(identity_id=str(uuid.uuid4()), ready=True, is_placeholder=True)

        if new == self._session:
            return
        previous = self._session
        self._session = new
        self._ready.set()
        if not previous.ready:
            _logger.info(
                "Authentication complete. identity=%s placeholder=%s",
                new.identity_id,
                new.is_placeholder,
            )
        elif previous.identity_id == new.identity_id:
            _logger.debug("Id token renewed for %s", new.identity_id)
        else:
            _logger.info("Identity changed to %s", new.identity_id)

        for listener in list(self._listeners):
            try:
                listener(new)
            except Exception:
                _logger.exception("Session listener failed")
