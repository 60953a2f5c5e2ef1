"""
Thin async wrapper over the X API v2 endpoints used for account identity and
post metrics.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from postmetric.clients.x_oauth import provider_error_message
from postmetric.core.config import XSettings
from postmetric.core.errors import QuotaExceededError, UpstreamError
from postmetric.schemas.x_api import XPostsResponse, XUser, XUserResponse

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

PAGE_SIZE = 10
POST_FIELDS = "created_at,public_metrics"
QUOTA_MARKERS = ("CreditsDepleted", "UsageCapExceeded")


def _is_quota_response(response: httpx.Response) -> bool:
    if response.status_code in (httpx.codes.PAYMENT_REQUIRED, httpx.codes.TOO_MANY_REQUESTS):
        return True
    body = response.text or ""
    return any(marker in body for marker in QUOTA_MARKERS)


def _retry_after(response: httpx.Response) -> Optional[int]:
    header = response.headers.get("retry-after")
    if header and header.isdigit():
        return int(header)
    reset = response.headers.get("x-rate-limit-reset")
    if reset and reset.isdigit():
        return max(0, int(reset) - int(time.time()))
    return None


class XApiClient:
    """Bearer-authenticated calls to the X API."""

    def __init__(
        self,
        x_settings: XSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._x = x_settings
        self._transport = transport

    async def get_me(self, access_token: str) -> XUser:
        """Return the id and username behind ``access_token``."""
        payload = await self._get(
            "/users/me", access_token, params=None, detect_quota=False
        )
        return self._parse(XUserResponse, payload, "user identity").data

    async def list_recent_posts(
        self, access_token: str, user_id: str, *, max_results: int = PAGE_SIZE
    ) -> XPostsResponse:
        """Fetch the newest posts of ``user_id`` with public engagement metrics."""
        params = {"max_results": max_results, "tweet.fields": POST_FIELDS}
        payload = await self._get(
            f"/users/{user_id}/tweets", access_token, params=params, detect_quota=True
        )
        return self._parse(XPostsResponse, payload, "posts timeline")

    async def _get(
        self,
        path: str,
        access_token: str,
        *,
        params: Optional[Dict[str, Any]],
        detect_quota: bool,
    ) -> Any:
        url = f"{self._x.api_base_url.rstrip('/')}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self._x.http_timeout_seconds, transport=self._transport
            ) as client:
                response = await client.get(
                    url,
                    params=params,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as exc:
            logger.warning("X API request to %s failed: %s", path, exc)
            raise UpstreamError("Could not reach the X API.") from exc

        if response.status_code == httpx.codes.OK:
            try:
                return response.json()
            except ValueError as exc:
                raise UpstreamError(
                    "X API returned a non-JSON payload.", status_code=response.status_code
                ) from exc

        logger.warning(
            "X API %s returned status=%s body=%s", path, response.status_code, response.text
        )
        if detect_quota and _is_quota_response(response):
            raise QuotaExceededError(retry_after=_retry_after(response), body=response.text)
        if response.status_code == httpx.codes.UNAUTHORIZED:
            raise UpstreamError(
                "X rejected the access token; reconnect the account.",
                status_code=response.status_code,
                body=response.text,
            )
        raise UpstreamError(
            f"X API request failed ({response.status_code}): "
            f"{provider_error_message(response)}",
            status_code=response.status_code,
            body=response.text,
        )

    @staticmethod
    def _parse(model: Type[ModelT], payload: Any, what: str) -> ModelT:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Malformed X %s payload: %s", what, exc)
            raise UpstreamError(f"X returned a malformed {what} payload.") from exc


__all__ = ["PAGE_SIZE", "XApiClient"]
