"""Summary statistics for the dashboard document.

Everything here is pure: the same document always yields the same
:class:`AggregateSummary` and the document is never modified.
"""

from __future__ import annotations

from collections.abc import Mapping

from livedash._constants import DEFAULT_INCOME_MIDPOINTS, NOT_AVAILABLE
from livedash.models.document import Count, DashboardDocument
from livedash.models.summary import AggregateSummary


def total_population(population_by_region: Mapping[str, Count]) -> Count:
    return sum(population_by_region.values(), 0)


def average_income(
    income_distribution: Mapping[str, Count],
    midpoints: Mapping[str, float] = DEFAULT_INCOME_MIDPOINTS,
) -> float:
    """Weighted average of bracket midpoints, ``0.0`` when there are no respondents.

    Brackets missing from *midpoints* contribute a midpoint of ``0``.
    """
    respondents = sum(income_distribution.values(), 0)
    if respondents == 0:
        return 0.0
    weighted = sum(midpoints.get(bracket, 0) * count for bracket, count in income_distribution.items())
    return float(weighted / respondents)


def top_region(population_by_region: Mapping[str, Count]) -> str:
    """Region with the strictly largest population; the first one wins a tie."""
    best_name = NOT_AVAILABLE
    best_count: Count | None = None
    for name, count in population_by_region.items():
        if best_count is None or count > best_count:
            best_name, best_count = name, count
    return best_name


def summarize(
    doc: DashboardDocument,
    midpoints: Mapping[str, float] = DEFAULT_INCOME_MIDPOINTS,
) -> AggregateSummary:
    """Derive the dashboard's summary statistics from *doc*."""
    return AggregateSummary(
        total_population=total_population(doc.population_by_region),
        average_income=average_income(doc.income_distribution, midpoints),
        top_region=top_region(doc.population_by_region),
        entry_count=len(doc.raw_entries),
    )
