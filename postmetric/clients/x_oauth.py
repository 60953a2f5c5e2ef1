"""
X (Twitter) OAuth 2.0 utilities.

Builds PKCE authorization URLs and talks to the token endpoint for the
authorization-code and refresh-token grants. The backend authenticates with
its client credentials in a Basic auth header.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from postmetric.core.config import OAuthSettings, XSettings
from postmetric.core.errors import UpstreamError
from postmetric.schemas.x_api import TokenResponse

logger = logging.getLogger(__name__)


def provider_error_message(response: httpx.Response) -> str:
    """Short, secret-free summary of an X error payload."""
    try:
        payload = response.json()
    except ValueError:
        return response.reason_phrase or "unexpected response"
    if not isinstance(payload, dict):
        return response.reason_phrase or "unexpected response"
    for key in ("error_description", "detail", "title", "error"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    errors = payload.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        message = errors[0].get("message") or errors[0].get("detail")
        if message:
            return str(message)
    return response.reason_phrase or "unexpected response"


class XOAuthClient:
    """Build X authorization URLs and run token grants."""

    def __init__(
        self,
        x_settings: XSettings,
        oauth_settings: OAuthSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._x = x_settings
        self._oauth = oauth_settings
        self._transport = transport

    def build_authorization_url(
        self, *, state: str, code_challenge: str, redirect_uri: str
    ) -> str:
        """Construct the X consent URL for an S256 PKCE flow."""
        params = {
            "response_type": "code",
            "client_id": self._x.client_id,
            "redirect_uri": redirect_uri,
            "scope": " ".join(self._oauth.scopes),
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
        return f"{self._x.authorize_url}?{urlencode(params)}"

    async def exchange_authorization_code(
        self, *, code: str, code_verifier: str, redirect_uri: str
    ) -> TokenResponse:
        """Exchange an authorization code, proving possession with the verifier."""
        payload = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "code_verifier": code_verifier,
            "client_id": self._x.client_id,
        }
        return await self._token_request(payload, grant="authorization_code")

    async def refresh_token(self, refresh_token: str) -> TokenResponse:
        """Run a refresh-token grant. X may rotate the refresh token."""
        payload = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self._x.client_id,
        }
        return await self._token_request(payload, grant="refresh_token")

    async def _token_request(self, payload: Dict[str, Any], *, grant: str) -> TokenResponse:
        try:
            async with httpx.AsyncClient(
                timeout=self._x.http_timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(
                    self._x.token_url,
                    data=payload,
                    auth=(self._x.client_id, self._x.client_secret),
                )
        except httpx.HTTPError as exc:
            logger.warning("X token endpoint unreachable during %s grant: %s", grant, exc)
            raise UpstreamError("Could not reach the X token endpoint.") from exc

        if response.status_code != httpx.codes.OK:
            logger.warning(
                "X token endpoint rejected %s grant: status=%s body=%s",
                grant,
                response.status_code,
                response.text,
            )
            raise UpstreamError(
                f"X token request failed ({response.status_code}): "
                f"{provider_error_message(response)}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            return TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning("Malformed X token response for %s grant", grant)
            raise UpstreamError(
                "X returned an incomplete token payload.",
                status_code=response.status_code,
            ) from exc


__all__ = ["XOAuthClient", "provider_error_message"]
