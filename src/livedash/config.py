"""Client configuration for livedash."""

from __future__ import annotations

import dataclasses
import json
import os
from collections.abc import Mapping
from typing import Any

from livedash._constants import (
    DEFAULT_APP_ID,
    DEFAULT_INCOME_MIDPOINTS,
    IDENTITY_TOOLKIT_URL,
    SECURE_TOKEN_URL,
    document_path,
    sanitize_app_id,
)
from livedash.exceptions import DashboardConfigError
from livedash.models.provider import ProviderConfig


def _env_json_object(env_key: str, value: str) -> dict[str, Any]:
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as exc:
        raise DashboardConfigError(f"{env_key} is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise DashboardConfigError(f"{env_key} must be a JSON object")
    return parsed


@dataclasses.dataclass(frozen=True)
class DashboardConfig:
    """Dashboard configuration.

    Parameters
    ----------
    app_id : str
        Externally supplied application identifier.  It is sanitized
        before it becomes part of the document path, see
        :attr:`sanitized_app_id`.  Defaults to ``"default-app-id"``.
    provider_config : Mapping
        Firebase web configuration blob (``apiKey``, ``projectId``, ...).
        An empty mapping is a fatal configuration error raised by
        :meth:`require_provider_config` when the dashboard starts.
    auth_token : str or None
        Optional custom token.  When absent the session signs in
        anonymously.
    income_midpoints : Mapping
        Bracket label to representative income value, used for the
        weighted average.  Unknown brackets count as ``0``.
    identity_base_url : str
        Identity Toolkit REST base URL.
    secure_token_base_url : str
        Secure Token REST base URL, used to refresh id tokens.
    liveness_interval : float
        Seconds between checks that the Firestore listener is still
        streaming.
    """

    app_id: str = DEFAULT_APP_ID
    provider_config: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    auth_token: str | None = None
    income_midpoints: Mapping[str, float] = dataclasses.field(
        default_factory=lambda: dict(DEFAULT_INCOME_MIDPOINTS)
    )
    identity_base_url: str = IDENTITY_TOOLKIT_URL
    secure_token_base_url: str = SECURE_TOKEN_URL
    liveness_interval: float = 5.0

    @property
    def sanitized_app_id(self) -> str:
        return sanitize_app_id(self.app_id)

    @property
    def document_path(self) -> str:
        """Path of the dashboard document, e.g. ``/artifacts/x/public/data/dashboard/current_data``."""
        return document_path(self.sanitized_app_id)

    def require_provider_config(self) -> ProviderConfig:
        """Return the parsed provider configuration.

        Raises
        ------
        DashboardConfigError
            If the provider configuration is missing or empty.
        """
        if not self.provider_config:
            raise DashboardConfigError("Firebase configuration is missing.")
        return ProviderConfig.model_validate(dict(self.provider_config))

    @classmethod
    def from_env(cls, **overrides: Any) -> DashboardConfig:
        """Create configuration from environment variables.

        Reads ``DASHBOARD_APP_ID``, ``DASHBOARD_FIREBASE_CONFIG`` (JSON),
        ``DASHBOARD_AUTH_TOKEN``, ``DASHBOARD_INCOME_MIDPOINTS`` (JSON),
        ``DASHBOARD_IDENTITY_BASE_URL``, ``DASHBOARD_SECURE_TOKEN_BASE_URL`` and
        ``DASHBOARD_LIVENESS_INTERVAL``.
        Explicit keyword arguments override environment values.  An empty
        ``DASHBOARD_AUTH_TOKEN`` counts as absent.

        Raises
        ------
        DashboardConfigError
            If a JSON variable cannot be parsed into an object.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        app_id = env.get("DASHBOARD_APP_ID")
        if app_id:
            config_kwargs["app_id"] = app_id

        provider_raw = env.get("DASHBOARD_FIREBASE_CONFIG")
        if provider_raw and "provider_config" not in overrides:
            config_kwargs["provider_config"] = _env_json_object("DASHBOARD_FIREBASE_CONFIG", provider_raw)

        token = env.get("DASHBOARD_AUTH_TOKEN")
        if token:
            config_kwargs["auth_token"] = token

        midpoints_raw = env.get("DASHBOARD_INCOME_MIDPOINTS")
        if midpoints_raw and "income_midpoints" not in overrides:
            parsed = _env_json_object("DASHBOARD_INCOME_MIDPOINTS", midpoints_raw)
            try:
                config_kwargs["income_midpoints"] = {str(k): float(v) for k, v in parsed.items()}
            except (TypeError, ValueError) as exc:
                raise DashboardConfigError("DASHBOARD_INCOME_MIDPOINTS values must be numbers") from exc

        base_url = env.get("DASHBOARD_IDENTITY_BASE_URL")
        if base_url:
            config_kwargs["identity_base_url"] = base_url.rstrip("/")

        token_url = env.get("DASHBOARD_SECURE_TOKEN_BASE_URL")
        if token_url:
            config_kwargs["secure_token_base_url"] = token_url.rstrip("/")

        interval_env = env.get("DASHBOARD_LIVENESS_INTERVAL")
        if interval_env is not None and "liveness_interval" not in overrides:
            config_kwargs["liveness_interval"] = float(interval_env)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
