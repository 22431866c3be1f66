"""Live subscription to the dashboard document.

The store itself is an external collaborator reached through
:class:`DocumentStore`; this module owns the subscription lifecycle:

- at most one live handle, released before a replacement is acquired
- snapshots from a released handle are ignored
- the first error is terminal until :meth:`LiveDocumentSubscription.reset`
"""

from __future__ import annotations

import contextlib
import functools
import logging
from collections.abc import AsyncIterator, Callable, Mapping
from typing import Any, Protocol

from livedash.exceptions import DashboardSubscriptionError
from livedash.models.document import DashboardDocument
from livedash.session import Session

_logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[Mapping[str, Any] | None], None]
ErrorCallback = Callable[[Exception], None]


class SubscriptionHandle(Protocol):
    @property
    def active(self) -> bool: ...

    def unsubscribe(self) -> None: ...


class DocumentStore(Protocol):
    """Push-based read access to single documents.

    ``on_snapshot`` receives the document body, or ``None`` when the
    document does not exist.  Both callbacks must be invoked on the event
    loop thread.
    """

    def listen(
        self,
        path: str,
        session: Session,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> SubscriptionHandle: ...


class LiveDocumentSubscription:
    """Owns the single push subscription to the dashboard document."""

    def __init__(
        self,
        store: DocumentStore,
        path: str,
        *,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._store = store
        self._path = path
        self._on_change = on_change
        self._handle: SubscriptionHandle | None = None
        # Bumped on every open/release so late callbacks from an old handle
        # can be recognised and dropped.
        self._generation = 0
        self._document: DashboardDocument | None = None
        self._error: DashboardSubscriptionError | None = None

    @property
    def path(self) -> str:
        return self._path

    @property
    def document(self) -> DashboardDocument | None:
        """Latest document, ``None`` until the first snapshot."""
        return self._document

    @property
    def ready(self) -> bool:
        return self._document is not None

    @property
    def error(self) -> DashboardSubscriptionError | None:
        return self._error

    @property
    def active(self) -> bool:
        """Whether a handle is held and still streaming."""
        return self._handle is not None and self._handle.active

    def open(self, session: Session) -> None:
        """(Re)subscribe for *session*, releasing any previous handle first.

        Does nothing after a failure until :meth:`reset` is called.
        """
        if not session.ready:
            raise ValueError("Cannot subscribe before the session is ready")
        if self._error is not None:
            _logger.debug("Subscription is in error state, not reopening %s", self._path)
            return

        self.release()
        self._generation += 1
        generation = self._generation
        _logger.debug("Subscribing to %s as %s", self._path, session.identity_id)
        try:
            self._handle = self._store.listen(
                self._path,
                session,
                functools.partial(self._handle_snapshot, generation),
                functools.partial(self._handle_error, generation),
            )
        except Exception as exc:
            self._fail(exc)

    def release(self) -> None:
        """Release the current handle, if any."""
        handle = self._handle
        self._handle = None
        self._generation += 1
        if handle is None:
            return
        _logger.debug("Releasing subscription to %s", self._path)
        try:
            handle.unsubscribe()
        except Exception:
            _logger.debug("Unsubscribe failed", exc_info=True)

    def reset(self) -> None:
        """Forget the document and any error; the next :meth:`open` starts fresh."""
        self.release()
        self._document = None
        self._error = None

    @contextlib.asynccontextmanager
    async def subscribed(self, session: Session) -> AsyncIterator[LiveDocumentSubscription]:
        """Hold a subscription for the duration of the ``async with`` block."""
        self.open(session)
        try:
            yield self
        finally:
            self.release()

    def _handle_snapshot(self, generation: int, data: Mapping[str, Any] | None) -> None:
        if generation != self._generation or self._error is not None:
            _logger.debug("Ignoring snapshot from a released subscription")
            return
        if data is None:
            _logger.info("No dashboard data document found at %s", self._path)
        document = DashboardDocument.from_snapshot(data)
        _logger.debug(
            "Snapshot received regions=%d brackets=%d entries=%d",
            len(document.population_by_region),
            len(document.income_distribution),
            len(document.raw_entries),
        )
        self._document = document
        self._notify()

    def _handle_error(self, generation: int, exc: Exception) -> None:
        if generation != self._generation:
            return
        self._fail(exc)

    def _fail(self, exc: Exception) -> None:
        _logger.error("Document subscription to %s failed: %s", self._path, exc, exc_info=exc)
        if isinstance(exc, DashboardSubscriptionError):
            error = exc
        else:
            error = DashboardSubscriptionError(str(exc))
            error.__cause__ = exc
        self._error = error
        self.release()
        self._notify()

    def _notify(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change()
        except Exception:
            _logger.exception("Subscription change callback failed")
