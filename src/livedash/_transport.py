"""JSON-over-HTTP transport for the identity provider REST API."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from livedash._constants import USER_AGENT
from livedash._redact import redact_for_log
from livedash.exceptions import DashboardTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles/mocks while
    keeping the production implementation (`JsonTransport`) concrete.
    """

    async def post_json(self, endpoint: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        ...


def _error_code(body: Any) -> str:
    """Extract the provider's error token from ``{"error": {"message": ...}}``."""
    if not isinstance(body, dict):
        return ""
    error = body.get("error")
    if not isinstance(error, dict):
        return ""
    message = error.get("message")
    if not isinstance(message, str):
        return ""
    # Messages look like "INVALID_CUSTOM_TOKEN : detail text".
    return message.split(" : ", 1)[0].strip()


class JsonTransport:
    """HTTP transport that posts JSON with the provider API key as query parameter."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        http_session: aiohttp.ClientSession,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._http = http_session

    async def post_json(self, endpoint: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        """POST *payload* to ``{base_url}{endpoint}`` and return the decoded JSON object."""
        url = f"{self._base_url}{endpoint}"
        headers = {
            "content-type": "application/json; charset=UTF-8",
            "user-agent": USER_AGENT,
        }

        _logger.debug("POST %s payload=%s", url, redact_for_log(dict(payload)))

        try:
            async with self._http.post(
                url,
                params={"key": self._api_key},
                data=json.dumps(payload, separators=(",", ":")),
                headers=headers,
            ) as resp:
                text = await resp.text()
                status = resp.status
        except aiohttp.ClientError as exc:
            raise DashboardTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

        try:
            body: Any = json.loads(text) if text else {}
        except json.JSONDecodeError as exc:
            if status != 200:
                raise DashboardTransportError(
                    f"HTTP {status} from {endpoint}: {text[:200]}",
                    status_code=status,
                    endpoint=endpoint,
                ) from exc
            raise DashboardTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                endpoint=endpoint,
            ) from exc

        if status != 200:
            code = _error_code(body)
            raise DashboardTransportError(
                f"HTTP {status} from {endpoint}: {code or text[:200]}",
                status_code=status,
                endpoint=endpoint,
                code=code,
            )

        if not isinstance(body, dict):
            raise DashboardTransportError(
                f"Expected a JSON object from {endpoint}",
                endpoint=endpoint,
            )

        _logger.debug("Response %s body=%s", endpoint, redact_for_log(body))
        return body
