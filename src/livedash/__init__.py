"""livedash - Async live dashboard over a real-time Firestore document."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("livedash")
except PackageNotFoundError:
    __version__ = "0+local"
from livedash.aggregate import summarize
from livedash.app import DashboardApp
from livedash.config import DashboardConfig
from livedash.exceptions import (
    DashboardAuthenticationError,
    DashboardConfigError,
    DashboardError,
    DashboardSubscriptionError,
    DashboardTransportError,
)
from livedash.models import (
    AggregateSummary,
    AuthUser,
    DashboardDocument,
    ProviderConfig,
)
from livedash.presentation import DashboardView, ViewState, build_chart, render_html, resolve_view
from livedash.session import IdentitySession, Session
from livedash.subscription import DocumentStore, LiveDocumentSubscription

__all__ = [
    "__version__",
    "AggregateSummary",
    "AuthUser",
    "DashboardApp",
    "DashboardAuthenticationError",
    "DashboardConfig",
    "DashboardConfigError",
    "DashboardDocument",
    "DashboardError",
    "DashboardSubscriptionError",
    "DashboardTransportError",
    "DashboardView",
    "DocumentStore",
    "IdentitySession",
    "LiveDocumentSubscription",
    "ProviderConfig",
    "Session",
    "ViewState",
    "build_chart",
    "render_html",
    "resolve_view",
    "summarize",
]
