"""Presentation layer: view model resolution and HTML rendering."""

from livedash.presentation.render import render_html
from livedash.presentation.view import (
    ChartBar,
    ChartView,
    DashboardView,
    StatCard,
    ViewState,
    build_chart,
    format_currency,
    format_number,
    resolve_view,
)

__all__ = [
    "ChartBar",
    "ChartView",
    "DashboardView",
    "StatCard",
    "ViewState",
    "build_chart",
    "format_currency",
    "format_number",
    "render_html",
    "resolve_view",
]
