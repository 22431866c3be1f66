from __future__ import annotations

import pytest

from livedash._constants import DEFAULT_INCOME_MIDPOINTS, sanitize_app_id
from livedash.config import DashboardConfig
from livedash.exceptions import DashboardConfigError


def test_app_id_is_sanitized_into_document_path() -> None:
    config = DashboardConfig(app_id="team/dash.board.jsx")

    assert config.sanitized_app_id == "team__dash-board-jsx"
    assert config.document_path == "/artifacts/team__dash-board-jsx/public/data/dashboard/current_data"


def test_sanitize_leaves_plain_ids_alone() -> None:
    assert sanitize_app_id("plain-id") == "plain-id"


def test_defaults() -> None:
    config = DashboardConfig()

    assert config.app_id == "default-app-id"
    assert config.auth_token is None
    assert dict(config.income_midpoints) == DEFAULT_INCOME_MIDPOINTS


def test_empty_provider_config_is_fatal() -> None:
    with pytest.raises(DashboardConfigError):
        DashboardConfig().require_provider_config()


def test_provider_config_parses_camel_case(provider_config: dict[str, str]) -> None:
    parsed = DashboardConfig(provider_config=provider_config).require_provider_config()

    assert parsed.api_key == "api-key"
    assert parsed.project_id == "demo-project"


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DASHBOARD_APP_ID", "my.app")
    monkeypatch.setenv("DASHBOARD_FIREBASE_CONFIG", '{"apiKey": "k", "projectId": "p"}')
    monkeypatch.setenv("DASHBOARD_AUTH_TOKEN", "custom-token")
    monkeypatch.setenv("DASHBOARD_INCOME_MIDPOINTS", '{"low": 1000}')
    monkeypatch.setenv("DASHBOARD_LIVENESS_INTERVAL", "2.5")

    config = DashboardConfig.from_env()

    assert config.sanitized_app_id == "my-app"
    assert config.provider_config == {"apiKey": "k", "projectId": "p"}
    assert config.auth_token == "custom-token"
    assert dict(config.income_midpoints) == {"low": 1000.0}
    assert config.liveness_interval == 2.5


def test_from_env_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DASHBOARD_APP_ID", "from-env")

    config = DashboardConfig.from_env(app_id="explicit")

    assert config.app_id == "explicit"


def test_from_env_empty_token_counts_as_absent(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DASHBOARD_AUTH_TOKEN", "")
    monkeypatch.delenv("DASHBOARD_FIREBASE_CONFIG", raising=False)

    config = DashboardConfig.from_env()

    assert config.auth_token is None
    assert config.provider_config == {}


def test_from_env_rejects_invalid_json(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DASHBOARD_FIREBASE_CONFIG", "{not json")

    with pytest.raises(DashboardConfigError):
        DashboardConfig.from_env()


def test_service_urls_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DASHBOARD_IDENTITY_BASE_URL", "http://localhost:9099/identitytoolkit.googleapis.com/v1/")
    monkeypatch.setenv("DASHBOARD_SECURE_TOKEN_BASE_URL", "http://localhost:9099/securetoken.googleapis.com/v1/")

    config = DashboardConfig.from_env()

    assert config.identity_base_url == "http://localhost:9099/identitytoolkit.googleapis.com/v1"
    assert config.secure_token_base_url == "http://localhost:9099/securetoken.googleapis.com/v1"
    assert DashboardConfig().secure_token_base_url == "https://securetoken.googleapis.com/v1"
