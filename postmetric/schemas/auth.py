"""Schemas related to the X account linking flow."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class OAuthCallbackPayload(BaseModel):
    """Payload sent by the client to complete the account link."""

    code: str = Field(..., description="Authorization code returned by X.")
    state: str = Field(..., description="State value echoed back on the redirect.")
    callback_url: Optional[str] = Field(
        None,
        description="Redirect URI used when the flow was initiated.",
    )


class AuthorizationRequest(BaseModel):
    """Result of starting a link flow."""

    authorization_url: str
    state: str


class LinkResult(BaseModel):
    """Result of a successful code exchange."""

    username: str


class ConnectionStatus(BaseModel):
    """Dashboard view of the linked X account; never carries tokens."""

    connected: bool = False
    external_user_id: Optional[str] = None
    username: Optional[str] = None
    connected_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    last_content_sync: Optional[datetime] = None


__all__ = [
    "AuthorizationRequest",
    "ConnectionStatus",
    "LinkResult",
    "OAuthCallbackPayload",
]
