"""Authenticated user model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AuthUser(BaseModel):
    """User returned by a successful sign-in.

    Parameters
    ----------
    uid : str
        Stable identifier assigned by the identity provider.
    id_token : str
        Bearer token presented to the document store.
    refresh_token : str
        Token for obtaining a new id token.
    expires_in : int
        Lifetime of ``id_token`` in seconds.
    is_anonymous : bool
        Whether the account was created by anonymous sign-in.
    raw : dict
        Full provider response for access to additional fields.
    """

    model_config = ConfigDict(frozen=True)

    uid: str
    id_token: str
    refresh_token: str = ""
    expires_in: int = 3600
    is_anonymous: bool = False
    raw: dict[str, Any] = Field(default_factory=dict)
