"""Base model for livedash payloads.

Every store/provider model inherits from :class:`DashboardBaseModel`
which provides:

* ``alias_generator=to_camel`` so camelCase keys (``populationByRegion``,
  ``projectId``) map automatically to snake_case fields.
* A ``model_validator(mode="before")`` that drops ``None`` values so the
  field default is used instead.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class DashboardBaseModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return {key: value for key, value in values.items() if value is not None}
