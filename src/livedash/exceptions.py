"""Custom exception hierarchy for livedash."""

from __future__ import annotations


class DashboardError(Exception):
    """Base exception for all livedash errors."""


class DashboardConfigError(DashboardError):
    """Invalid or missing configuration.

    Fatal: the dashboard shows a blocking error and does not retry.
    """


class DashboardTransportError(DashboardError):
    """HTTP-level failure (network, non-200, invalid JSON).

    ``code`` carries the provider's error message token (for example
    ``"ADMIN_ONLY_OPERATION"``) when the error body had one.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
        code: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        self.code = code
        super().__init__(message)


class DashboardAuthenticationError(DashboardError):
    """Sign-in with the identity provider failed.

    The session recovers from this locally by switching to a placeholder
    identity, so it never reaches the dashboard view.
    """

    def __init__(
        self,
        message: str,
        *,
        code: str = "",
        endpoint: str = "",
    ) -> None:
        self.code = code
        self.endpoint = endpoint
        super().__init__(message)


class DashboardSubscriptionError(DashboardError):
    """The live document subscription failed (e.g. permission denied).

    No automatic retry; the subscription has to be reset to recover.
    """
