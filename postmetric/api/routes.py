"""
FastAPI routes for linking an X account and syncing post metrics.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from postmetric.core.errors import PostMetricError, QuotaExceededError
from postmetric.dependencies import (
    get_app_settings,
    get_content_sync_service,
    get_current_user_id,
    get_x_link_initiator,
    get_x_token_service,
)
from postmetric.schemas import OAuthCallbackPayload

router = APIRouter()
logger = logging.getLogger(__name__)

CallerId = Annotated[str, Depends(get_current_user_id)]


def _error_response(exc: PostMetricError, *, outcome: str, **extra: Any) -> JSONResponse:
    """Render a taxonomy error with a caller-safe reason."""
    content = {"status": outcome, "error": exc.code, "reason": exc.message, **extra}
    headers = {}
    if isinstance(exc, QuotaExceededError) and exc.retry_after is not None:
        headers["Retry-After"] = str(exc.retry_after)
    return JSONResponse(status_code=int(exc.http_status), content=content, headers=headers)


async def handle_postmetric_error(request: Request, exc: PostMetricError) -> JSONResponse:
    """Render taxonomy errors raised outside a route body, e.g. by dependencies."""
    return _error_response(exc, outcome="error")


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "").lower()


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/auth/x/authorize", status_code=HTTPStatus.OK)
async def start_x_link_flow(
    request: Request,
    user_id: CallerId,
    initiator: Annotated[Any, Depends(get_x_link_initiator)],
    callback_url: Optional[str] = Query(
        default=None,
        description="Redirect URI registered with X; defaults to X_REDIRECT_URI.",
    ),
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the X consent screen.",
    ),
) -> Response:
    """Kick off the link flow by storing PKCE state and returning the consent URL."""
    try:
        auth_request = initiator.initiate(user_id=user_id, callback_url=callback_url)
    except PostMetricError as exc:
        return _error_response(exc, outcome="unlinked")

    if redirect or _wants_html(request):
        return RedirectResponse(
            url=auth_request.authorization_url,
            status_code=HTTPStatus.TEMPORARY_REDIRECT,
        )
    return JSONResponse(content=auth_request.model_dump())


async def _complete_link(
    token_service: Any,
    *,
    user_id: str,
    code: Optional[str],
    state: Optional[str],
    callback_url: Optional[str],
) -> dict | JSONResponse:
    try:
        result = await token_service.exchange(
            user_id=user_id, code=code, state=state, callback_url=callback_url
        )
    except PostMetricError as exc:
        return _error_response(exc, outcome="unlinked")
    return {"status": "connected", "username": result.username}


@router.post("/auth/x/callback", status_code=HTTPStatus.OK)
async def complete_x_link(
    payload: OAuthCallbackPayload,
    user_id: CallerId,
    token_service: Annotated[Any, Depends(get_x_token_service)],
) -> Any:
    """Exchange the authorization code for tokens and link the X account."""
    return await _complete_link(
        token_service,
        user_id=user_id,
        code=payload.code,
        state=payload.state,
        callback_url=payload.callback_url,
    )


@router.get("/auth/x/callback", status_code=HTTPStatus.OK)
async def complete_x_link_get(
    request: Request,
    user_id: CallerId,
    token_service: Annotated[Any, Depends(get_x_token_service)],
    settings: Annotated[Any, Depends(get_app_settings)],
    code: Optional[str] = Query(default=None, description="Authorization code returned by X."),
    state: Optional[str] = Query(default=None, description="OAuth state value."),
    callback_url: Optional[str] = Query(default=None),
    error: Optional[str] = Query(default=None, description="Error code when consent failed."),
    error_description: Optional[str] = Query(default=None),
    redirect: bool = Query(
        default=False,
        description="When true, redirect browser clients instead of returning JSON.",
    ),
) -> Response:
    """Browser-facing callback; mirrors the POST variant."""
    if error:
        logger.info("X authorization for user %s ended with %s", user_id, error)
        return JSONResponse(
            status_code=HTTPStatus.BAD_REQUEST,
            content={
                "status": "unlinked",
                "error": error,
                "reason": error_description or "X authorization was denied.",
            },
        )

    result = await _complete_link(
        token_service,
        user_id=user_id,
        code=code,
        state=state,
        callback_url=callback_url,
    )
    if isinstance(result, JSONResponse):
        return result

    redirect_target = settings.frontend_base_url
    if redirect_target and (redirect or _wants_html(request)):
        return RedirectResponse(url=str(redirect_target), status_code=HTTPStatus.TEMPORARY_REDIRECT)
    return JSONResponse(content=result)


@router.get("/auth/x/status", status_code=HTTPStatus.OK)
async def x_connection_status(
    user_id: CallerId,
    token_service: Annotated[Any, Depends(get_x_token_service)],
) -> Any:
    """Connection summary for the dashboard."""
    status = token_service.connection_status(user_id=user_id)
    return JSONResponse(content=status.model_dump(mode="json"))


@router.post("/content/sync", status_code=HTTPStatus.OK)
async def sync_content(
    user_id: CallerId,
    sync_service: Annotated[Any, Depends(get_content_sync_service)],
) -> Any:
    """Pull the latest posts and metrics for the caller's linked account."""
    try:
        result = await sync_service.sync(user_id=user_id)
    except PostMetricError as exc:
        return _error_response(exc, outcome="error", count=0)
    return {
        "status": "synced",
        "count": result.count,
        "synced_at": result.synced_at.isoformat(),
    }


@router.get("/content/items", status_code=HTTPStatus.OK)
async def list_content_items(
    user_id: CallerId,
    sync_service: Annotated[Any, Depends(get_content_sync_service)],
    limit: int = Query(default=50, ge=1, le=200),
) -> Any:
    """Synced posts for the dashboard, newest first."""
    items = sync_service.list_items(user_id=user_id, limit=limit)
    return {
        "items": [
            item.model_dump(mode="json", exclude={"pk", "sk"}) for item in items
        ]
    }
