"""Aggregate summary model."""

from __future__ import annotations

from livedash._constants import NOT_AVAILABLE
from livedash.models._base import DashboardBaseModel


class AggregateSummary(DashboardBaseModel):
    """Statistics derived from one :class:`DashboardDocument`."""

    total_population: int | float = 0
    average_income: float = 0.0
    top_region: str = NOT_AVAILABLE
    entry_count: int = 0
