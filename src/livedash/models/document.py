"""Dashboard document model."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import Field, field_validator

from livedash.models._base import DashboardBaseModel
from livedash.normalize import count_mapping, entry_list

Count = int | float


class DashboardDocument(DashboardBaseModel):
    """One snapshot of the dashboard document.

    Always fully shaped: absent fields default to empty containers and
    counts that are not numbers are dropped on receipt.  A new snapshot
    replaces the previous document wholesale.
    """

    population_by_region: dict[str, Count] = Field(default_factory=dict)
    """Region name → population count."""

    income_distribution: dict[str, Count] = Field(default_factory=dict)
    """Income bracket label → number of respondents."""

    raw_entries: list[Any] = Field(default_factory=list)
    """Individual contributed records, opaque to the dashboard."""

    @field_validator("population_by_region", "income_distribution", mode="before")
    @classmethod
    def _normalize_counts(cls, value: Any) -> dict[str, Count]:
        return count_mapping(value)

    @field_validator("raw_entries", mode="before")
    @classmethod
    def _normalize_entries(cls, value: Any) -> list[Any]:
        return entry_list(value)

    @classmethod
    def empty(cls) -> DashboardDocument:
        """The canonical body used when the document does not exist."""
        return cls()

    @classmethod
    def from_snapshot(cls, data: Mapping[str, Any] | None) -> DashboardDocument:
        """Build a document from a store payload (``None`` when missing)."""
        if data is None:
            return cls.empty()
        return cls.model_validate(dict(data))
