"""
Start of the X account link flow: PKCE pair, state, pending record, URL.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from postmetric.core.clock import Clock, utcnow
from postmetric.core.config import XSettings
from postmetric.core.errors import InvalidArgumentError, UnauthenticatedError
from postmetric.models.keys import PENDING_SORT_KEY, user_partition_key
from postmetric.models.oauth import PendingAuthorization
from postmetric.schemas.auth import AuthorizationRequest
from postmetric.services.pkce import ByteSource, generate_pkce_pair, generate_state
from postmetric.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)


def resolve_callback_url(x_settings: XSettings, callback_url: Optional[str]) -> str:
    """Pick the redirect URI for a flow and enforce the configured allowlist."""
    resolved = callback_url or (str(x_settings.redirect_uri) if x_settings.redirect_uri else "")
    if not resolved:
        raise InvalidArgumentError("callback_url is required.")
    allowed = x_settings.allowed_callback_urls
    if allowed and resolved not in allowed:
        raise InvalidArgumentError("callback_url is not an allowed redirect URI.")
    return resolved


class XLinkInitiator:
    """Builds authorization requests and records the pending flow per user."""

    def __init__(
        self,
        *,
        store: Any,
        oauth_client: Any,
        token_cipher: TokenCipherService,
        x_settings: XSettings,
        clock: Clock = utcnow,
        token_bytes: Optional[ByteSource] = None,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._cipher = token_cipher
        self._x = x_settings
        self._clock = clock
        self._token_bytes = token_bytes

    def initiate(self, *, user_id: str, callback_url: Optional[str] = None) -> AuthorizationRequest:
        """
        Persist a fresh pending authorization for ``user_id`` and return the
        X consent URL.

        Any earlier pending record for the user is replaced, so only the most
        recent flow can complete. No network call is made.
        """
        if not user_id:
            raise UnauthenticatedError("Sign in before connecting an X account.")
        redirect_uri = resolve_callback_url(self._x, callback_url)

        pkce = generate_pkce_pair(token_bytes=self._token_bytes)
        state = generate_state(token_bytes=self._token_bytes)
        pending = PendingAuthorization(
            pk=user_partition_key(user_id),
            sk=PENDING_SORT_KEY,
            state=state,
            code_verifier_encrypted=self._cipher.encrypt(pkce.verifier),
            created_at=self._clock(),
        )
        self._store.put_item(pending.model_dump(mode="json"))

        authorization_url = self._oauth.build_authorization_url(
            state=state,
            code_challenge=pkce.challenge,
            redirect_uri=redirect_uri,
        )
        logger.info("Started X link flow for user %s", user_id)
        return AuthorizationRequest(authorization_url=authorization_url, state=state)


__all__ = ["XLinkInitiator", "resolve_callback_url"]
