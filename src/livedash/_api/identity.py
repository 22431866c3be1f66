"""Identity Toolkit sign-in endpoints.

Endpoints:
  - /accounts:signUp (anonymous account, empty body apart from returnSecureToken)
  - /accounts:signInWithCustomToken
  - /token on the Secure Token API (refresh_token grant, snake_case response)
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any

from livedash._transport import Transport
from livedash.exceptions import DashboardAuthenticationError, DashboardTransportError
from livedash.models.token import AuthUser

_logger = logging.getLogger(__name__)

SIGN_UP_ENDPOINT = "/accounts:signUp"
CUSTOM_TOKEN_ENDPOINT = "/accounts:signInWithCustomToken"
REFRESH_TOKEN_ENDPOINT = "/token"


def build_anonymous_request() -> dict[str, Any]:
    return {"returnSecureToken": True}


def build_custom_token_request(token: str) -> dict[str, Any]:
    return {"token": token, "returnSecureToken": True}


def build_refresh_request(refresh_token: str) -> dict[str, Any]:
    return {"grant_type": "refresh_token", "refresh_token": refresh_token}


def _decode_jwt_claims(id_token: str) -> dict[str, Any]:
    """Decode the claims segment of a JWT without verifying it.

    Only used to read the uid when the sign-in response omits ``localId``.
    """
    parts = id_token.split(".")
    if len(parts) != 3:
        return {}
    segment = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(segment))
    except (binascii.Error, ValueError):
        return {}
    return claims if isinstance(claims, dict) else {}


def _parse_expires_in(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 3600


def parse_sign_in_response(
    response: dict[str, Any],
    *,
    endpoint: str,
    is_anonymous: bool,
) -> AuthUser:
    """Parse a successful sign-in response into an :class:`AuthUser`.

    Raises
    ------
    DashboardAuthenticationError
        If the response carries no id token or no resolvable uid.
    """
    id_token = response.get("idToken")
    if not isinstance(id_token, str) or not id_token:
        raise DashboardAuthenticationError("Sign-in response missing idToken", endpoint=endpoint)

    uid = response.get("localId")
    if not isinstance(uid, str) or not uid:
        claims = _decode_jwt_claims(id_token)
        uid = claims.get("user_id") or claims.get("sub")
    if not isinstance(uid, str) or not uid:
        raise DashboardAuthenticationError("Sign-in response missing user id", endpoint=endpoint)

    return AuthUser(
        uid=uid,
        id_token=id_token,
        refresh_token=str(response.get("refreshToken") or ""),
        expires_in=_parse_expires_in(response.get("expiresIn", 3600)),
        is_anonymous=is_anonymous,
        raw=response,
    )


async def _sign_in(
    transport: Transport,
    endpoint: str,
    payload: dict[str, Any],
    *,
    is_anonymous: bool,
) -> AuthUser:
    try:
        response = await transport.post_json(endpoint, payload)
    except DashboardTransportError as exc:
        raise DashboardAuthenticationError(
            f"Sign-in failed: {exc}",
            code=exc.code,
            endpoint=endpoint,
        ) from exc
    user = parse_sign_in_response(response, endpoint=endpoint, is_anonymous=is_anonymous)
    _logger.debug("Signed in via %s uid=%s anonymous=%s", endpoint, user.uid, is_anonymous)
    return user


async def sign_in_anonymously(transport: Transport) -> AuthUser:
    """Create an anonymous account and return its user."""
    return await _sign_in(transport, SIGN_UP_ENDPOINT, build_anonymous_request(), is_anonymous=True)


async def sign_in_with_custom_token(transport: Transport, token: str) -> AuthUser:
    """Exchange a custom token for a signed-in user."""
    return await _sign_in(
        transport,
        CUSTOM_TOKEN_ENDPOINT,
        build_custom_token_request(token),
        is_anonymous=False,
    )


def parse_refresh_response(response: dict[str, Any], *, previous: AuthUser) -> AuthUser:
    """Parse a Secure Token response into a successor of *previous*.

    The refresh token may be rotated; when the response omits it the
    previous one stays valid.
    """
    id_token = response.get("id_token")
    if not isinstance(id_token, str) or not id_token:
        raise DashboardAuthenticationError("Refresh response missing id_token", endpoint=REFRESH_TOKEN_ENDPOINT)

    uid = response.get("user_id")
    if isinstance(uid, str) and uid and uid != previous.uid:
        raise DashboardAuthenticationError(
            f"Refresh response is for another user ({uid})",
            endpoint=REFRESH_TOKEN_ENDPOINT,
        )

    return previous.model_copy(
        update={
            "id_token": id_token,
            "refresh_token": str(response.get("refresh_token") or previous.refresh_token),
            "expires_in": _parse_expires_in(response.get("expires_in")),
            "raw": response,
        }
    )


async def refresh_id_token(transport: Transport, user: AuthUser) -> AuthUser:
    """Exchange *user*'s refresh token for a fresh id token."""
    if not user.refresh_token:
        raise DashboardAuthenticationError("User has no refresh token", endpoint=REFRESH_TOKEN_ENDPOINT)
    try:
        response = await transport.post_json(REFRESH_TOKEN_ENDPOINT, build_refresh_request(user.refresh_token))
    except DashboardTransportError as exc:
        raise DashboardAuthenticationError(
            f"Token refresh failed: {exc}",
            code=exc.code,
            endpoint=REFRESH_TOKEN_ENDPOINT,
        ) from exc
    refreshed = parse_refresh_response(response, previous=user)
    _logger.debug("Refreshed id token uid=%s expires_in=%s", refreshed.uid, refreshed.expires_in)
    return refreshed
