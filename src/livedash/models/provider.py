"""Identity/document provider configuration model."""

from __future__ import annotations

from pydantic import ConfigDict

from livedash.models._base import DashboardBaseModel


class ProviderConfig(DashboardBaseModel):
    """Firebase web configuration blob.

    Only ``api_key`` and ``project_id`` are used; other keys are kept so the
    blob can be passed through unchanged.
    """

    model_config = ConfigDict(extra="allow")

    api_key: str = ""
    auth_domain: str = ""
    project_id: str = ""
    storage_bucket: str = ""
    messaging_sender_id: str = ""
    app_id: str = ""
