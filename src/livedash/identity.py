"""Identity provider used by the dashboard session.

The provider is an external collaborator: the session only needs the three
operations of :class:`IdentityProvider`.  :class:`FirebaseIdentityProvider`
implements them over the Identity Toolkit REST API.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from livedash._api import identity as _identity_api
from livedash._transport import Transport
from livedash.exceptions import DashboardAuthenticationError
from livedash.models.token import AuthUser

_logger = logging.getLogger(__name__)

AuthStateCallback = Callable[[AuthUser | None], Awaitable[None] | None]
Unsubscribe = Callable[[], None]

# Firebase clients refresh five minutes ahead of expiry.
DEFAULT_REFRESH_MARGIN = 300.0
DEFAULT_REFRESH_RETRY_DELAY = 60.0


class IdentityProvider(Protocol):
    @property
    def current_user(self) -> AuthUser | None: ...

    async def sign_in_anonymously(self) -> AuthUser: ...

    async def sign_in_with_custom_token(self, token: str) -> AuthUser: ...

    def on_auth_state_changed(self, callback: AuthStateCallback) -> Unsubscribe: ...


class FirebaseIdentityProvider:
    """Identity Toolkit backed provider with auth-state observers.

    Observers are called with the current user (``None`` before any
    sign-in) on the next loop iteration after registration, and again
    after every successful sign-in or id token refresh.  Coroutine
    observers are scheduled as tasks owned by the provider.

    The id token is refreshed *refresh_margin* seconds before it expires,
    through *token_transport* (the Secure Token API; defaults to
    *transport*).  A failed refresh is retried every *retry_delay* seconds
    while the user stays signed in.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        token_transport: Transport | None = None,
        refresh_margin: float = DEFAULT_REFRESH_MARGIN,
        retry_delay: float = DEFAULT_REFRESH_RETRY_DELAY,
    ) -> None:
        self._transport = transport
        self._token_transport = token_transport or transport
        self._refresh_margin = refresh_margin
        self._retry_delay = retry_delay
        self._current_user: AuthUser | None = None
        self._observers: list[AuthStateCallback] = []
        self._tasks: set[asyncio.Task[None]] = set()
        self._refresh_task: asyncio.Task[None] | None = None

    @property
    def current_user(self) -> AuthUser | None:
        return self._current_user

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    async def sign_in_anonymously(self) -> AuthUser:
        user = await _identity_api.sign_in_anonymously(self._transport)
        self._set_user(user)
        return user

    async def sign_in_with_custom_token(self, token: str) -> AuthUser:
        user = await _identity_api.sign_in_with_custom_token(self._transport, token)
        self._set_user(user)
        return user

    async def refresh(self) -> AuthUser:
        """Exchange the current user's refresh token for a new id token now.

        Raises
        ------
        DashboardAuthenticationError
            If nobody is signed in or the Secure Token API rejects the
            refresh token.
        """
        user = self._current_user
        if user is None:
            raise DashboardAuthenticationError("No signed-in user to refresh")
        refreshed = await _identity_api.refresh_id_token(self._token_transport, user)
        # A sign-in that completed meanwhile wins over the refresh.
        if self._current_user is user:
            self._set_user(refreshed)
        return refreshed

    def on_auth_state_changed(self, callback: AuthStateCallback) -> Unsubscribe:
        """Register *callback* and return a function that removes it."""
        self._observers.append(callback)
        asyncio.get_running_loop().call_soon(self._dispatch, callback, self._current_user)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._observers.remove(callback)

        return unsubscribe

    async def close(self) -> None:
        """Drop all observers and cancel observer and refresh tasks still running."""
        self._observers.clear()
        tasks = list(self._tasks)
        self._tasks.clear()
        if self._refresh_task is not None:
            tasks.append(self._refresh_task)
            self._refresh_task = None
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def _set_user(self, user: AuthUser | None) -> None:
        self._current_user = user
        loop = asyncio.get_running_loop()
        for callback in list(self._observers):
            loop.call_soon(self._dispatch, callback, user)
        self._schedule_refresh(user)

    def _schedule_refresh(self, user: AuthUser | None) -> None:
        pending = self._refresh_task
        self._refresh_task = None
        # The refresh task replaces itself when it installs the new user.
        if pending is not None and pending is not asyncio.current_task():
            pending.cancel()
        if user is None or not user.refresh_token:
            return
        delay = max(user.expires_in - self._refresh_margin, 0.0)
        self._refresh_task = asyncio.get_running_loop().create_task(self._refresh_later(user, delay))

    async def _refresh_later(self, user: AuthUser, delay: float) -> None:
        while True:
            await asyncio.sleep(delay)
            if self._current_user is not user:
                return
            try:
                await self.refresh()
            except DashboardAuthenticationError:
                _logger.warning(
                    "Id token refresh failed, retrying in %ss", self._retry_delay, exc_info=True
                )
                delay = self._retry_delay
            else:
                return

    def _dispatch(self, callback: AuthStateCallback, user: AuthUser | None) -> None:
        # Unsubscribed between scheduling and delivery.
        if callback not in self._observers:
            return
        try:
            result = callback(user)
        except Exception:
            _logger.exception("Auth state observer failed")
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.error("Auth state observer failed", exc_info=exc)
