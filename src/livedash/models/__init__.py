"""Data models for dashboard payloads."""

from livedash.models._base import DashboardBaseModel
from livedash.models.document import Count, DashboardDocument
from livedash.models.provider import ProviderConfig
from livedash.models.summary import AggregateSummary
from livedash.models.token import AuthUser

__all__ = [
    "AggregateSummary",
    "AuthUser",
    "Count",
    "DashboardBaseModel",
    "DashboardDocument",
    "ProviderConfig",
]
