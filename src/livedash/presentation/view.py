"""Dashboard view model.

:func:`resolve_view` turns the state owned by the application into one of
three mutually exclusive views, checked in this order:

1. ``ERROR``: an upstream component failed; only the message is shown.
2. ``LOADING``: the session or the document subscription is not ready.
3. ``READY``: summary cards and the two distribution charts.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from livedash._constants import DEFAULT_INCOME_MIDPOINTS, NOT_AVAILABLE
from livedash.aggregate import summarize
from livedash.models.document import Count, DashboardDocument
from livedash.models.summary import AggregateSummary
from livedash.session import Session

NO_CHART_DATA = "No data available for this chart."


class ViewState(StrEnum):
    ERROR = "error"
    LOADING = "loading"
    READY = "ready"


class _ViewModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class StatCard(_ViewModel):
    title: str
    value: str
    icon: str


class ChartBar(_ViewModel):
    label: str
    value: Count
    display_value: str
    percentage: float
    tier: int = Field(description="0 for the largest entry, 1 for the runner-up, 2 for the rest")


class ChartView(_ViewModel):
    title: str
    icon: str
    total: Count = 0
    bars: list[ChartBar] = Field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.bars


class DashboardView(_ViewModel):
    state: ViewState
    error_message: str | None = None
    identity_id: str | None = None
    summary: AggregateSummary | None = None
    cards: list[StatCard] = Field(default_factory=list)
    charts: list[ChartView] = Field(default_factory=list)


def format_number(value: float | int | None) -> str:
    """en-US grouping with at most three fraction digits; ``N/A`` for missing values."""
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return NOT_AVAILABLE
    if isinstance(value, float) and not value.is_integer():
        return f"{value:,.3f}".rstrip("0").rstrip(".")
    return f"{int(value):,}"


def format_currency(value: float | int | None) -> str:
    if value is None:
        return NOT_AVAILABLE
    return f"${format_number(round(value, 2))}"


def build_chart(title: str, distribution: Mapping[str, Count], *, icon: str = "bar-chart") -> ChartView:
    """Bars sorted by value, largest first, each with its share of the total.

    An empty distribution, or one whose counts add up to zero, has no bars.
    """
    total = sum(distribution.values(), 0)
    if not distribution or total == 0:
        return ChartView(title=title, icon=icon, total=total)

    ordered = sorted(distribution.items(), key=lambda item: item[1], reverse=True)
    bars = [
        ChartBar(
            label=label,
            value=value,
            display_value=format_number(value),
            percentage=value / total * 100,
            tier=min(index, 2),
        )
        for index, (label, value) in enumerate(ordered)
    ]
    return ChartView(title=title, icon=icon, total=total, bars=bars)


def build_cards(summary: AggregateSummary) -> list[StatCard]:
    return [
        StatCard(title="Total Reported Population", value=format_number(summary.total_population), icon="users"),
        StatCard(title="Average Reported Income", value=format_currency(summary.average_income), icon="dollar-sign"),
        StatCard(title="Highest Populated Region", value=summary.top_region, icon="map-pin"),
        StatCard(title="Total Data Entries", value=format_number(summary.entry_count), icon="target"),
    ]


def resolve_view(
    *,
    session: Session,
    document: DashboardDocument | None,
    error_message: str | None = None,
    midpoints: Mapping[str, float] = DEFAULT_INCOME_MIDPOINTS,
) -> DashboardView:
    if error_message:
        return DashboardView(state=ViewState.ERROR, error_message=error_message)

    # A snapshot left over from an earlier subscription must not show
    # while the session is unresolved.
    if not session.ready or document is None:
        return DashboardView(state=ViewState.LOADING, identity_id=session.identity_id)

    summary = summarize(document, midpoints)
    return DashboardView(
        state=ViewState.READY,
        identity_id=session.identity_id,
        summary=summary,
        cards=build_cards(summary),
        charts=[
            build_chart("Population Distribution by Region", document.population_by_region, icon="bar-chart"),
            build_chart("Income Distribution by Bracket", document.income_distribution, icon="dollar-sign"),
        ],
    )
