"""
Code exchange and access-token refresh for linked X accounts.
"""

from __future__ import annotations

import hmac
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from pydantic import ValidationError

from postmetric.core.clock import Clock, ensure_aware, utcnow
from postmetric.core.config import OAuthSettings, XSettings
from postmetric.core.errors import (
    FailedPreconditionError,
    InvalidArgumentError,
    SecurityViolationError,
    UnauthenticatedError,
)
from postmetric.models.keys import (
    LINKED_ACCOUNT_FIELD,
    PENDING_SORT_KEY,
    PROFILE_SORT_KEY,
    user_partition_key,
)
from postmetric.models.oauth import LinkedAccountCredential, PendingAuthorization
from postmetric.schemas.auth import ConnectionStatus, LinkResult
from postmetric.services.token_cipher import TokenCipherService
from postmetric.services.x_link import resolve_callback_url

logger = logging.getLogger(__name__)


def _state_matches(stored: Any, returned: str) -> bool:
    if not isinstance(stored, str):
        return False
    return hmac.compare_digest(stored.encode("utf-8"), returned.encode("utf-8"))


class XTokenService:
    """Owns the ``linked_account`` credential group of each user profile."""

    def __init__(
        self,
        *,
        store: Any,
        oauth_client: Any,
        api_client: Any,
        token_cipher: TokenCipherService,
        x_settings: XSettings,
        oauth_settings: OAuthSettings,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._api = api_client
        self._cipher = token_cipher
        self._x = x_settings
        self._oauth_settings = oauth_settings
        self._clock = clock

    async def exchange(
        self,
        *,
        user_id: str,
        code: Optional[str],
        state: Optional[str],
        callback_url: Optional[str] = None,
    ) -> LinkResult:
        """
        Complete a pending link: verify state, redeem the code, store tokens.

        The pending record is claimed (deleted) atomically only when its state
        matches, before any call to X. A state mismatch leaves it in place and
        raises ``SecurityViolationError`` without contacting X.
        """
        if not user_id:
            raise UnauthenticatedError("Sign in before connecting an X account.")
        if not code or not state:
            raise InvalidArgumentError("Missing authorization code or state.")
        redirect_uri = resolve_callback_url(self._x, callback_url)

        pk = user_partition_key(user_id)
        record, claimed = self._store.pop_item_if(
            partition_key=pk,
            sort_key=PENDING_SORT_KEY,
            predicate=lambda item: _state_matches(item.get("state"), state),
        )
        if record is None:
            raise FailedPreconditionError(
                "OAuth state not found; restart the X connection."
            )
        try:
            pending = PendingAuthorization.model_validate(record)
        except ValidationError as exc:
            self._store.delete_item(partition_key=pk, sort_key=PENDING_SORT_KEY)
            raise FailedPreconditionError(
                "OAuth state not found; restart the X connection."
            ) from exc

        now = self._clock()
        if self._pending_expired(pending, now):
            if not claimed:
                self._store.pop_item_if(
                    partition_key=pk,
                    sort_key=PENDING_SORT_KEY,
                    predicate=lambda item: item.get("state") == pending.state,
                )
            logger.info("Discarded expired X link flow for user %s", user_id)
            raise FailedPreconditionError(
                "OAuth state not found; restart the X connection."
            )
        if not claimed:
            logger.warning("OAuth state mismatch on X callback for user %s", user_id)
            raise SecurityViolationError(
                "OAuth state mismatch; the callback does not belong to this sign-in."
            )

        try:
            code_verifier = self._cipher.decrypt(pending.code_verifier_encrypted)
        except ValueError as exc:
            raise FailedPreconditionError(
                "Stored OAuth state is unreadable; restart the X connection."
            ) from exc

        tokens = await self._oauth.exchange_authorization_code(
            code=code, code_verifier=code_verifier, redirect_uri=redirect_uri
        )
        identity = await self._api.get_me(tokens.access_token)

        linked_at = self._clock()
        credential = LinkedAccountCredential(
            connected=True,
            external_user_id=identity.id,
            external_username=identity.username,
            access_token_encrypted=self._cipher.encrypt(tokens.access_token),
            refresh_token_encrypted=self._cipher.encrypt_optional(tokens.refresh_token),
            expires_at=linked_at + timedelta(seconds=tokens.expires_in),
            connected_at=linked_at,
            updated_at=linked_at,
        )

        def _link(profile: Optional[Dict[str, Any]]) -> Dict[str, Any]:
            profile = dict(profile or {})
            previous = profile.get(LINKED_ACCOUNT_FIELD) or {}
            group = credential.model_dump(mode="json")
            if previous.get("external_user_id") == identity.id:
                group["last_content_sync"] = previous.get("last_content_sync")
            profile["user_id"] = user_id
            profile[LINKED_ACCOUNT_FIELD] = group
            return profile

        self._store.update_item(partition_key=pk, sort_key=PROFILE_SORT_KEY, mutate=_link)
        logger.info("Linked X account @%s for user %s", identity.username, user_id)
        return LinkResult(username=identity.username)

    async def get_valid_access_token(self, *, user_id: str) -> str:
        """
        Return an access token valid at the time of return, refreshing it when
        expired. Refresh failures propagate; callers should ask the user to
        reconnect rather than retry.
        """
        if not user_id:
            raise UnauthenticatedError("Sign in before syncing X content.")
        credential = self.linked_account(user_id=user_id)
        if credential is None or not credential.is_usable():
            raise FailedPreconditionError("X account is not connected.")

        now = self._clock()
        margin = timedelta(seconds=self._x.refresh_margin_seconds)
        if ensure_aware(credential.expires_at) > now + margin:
            return self._decrypt_stored(credential.access_token_encrypted)

        if not credential.refresh_token_encrypted:
            raise FailedPreconditionError(
                "X access token expired and cannot be refreshed; reconnect the account."
            )
        refresh_token = self._decrypt_stored(credential.refresh_token_encrypted)
        tokens = await self._oauth.refresh_token(refresh_token)

        refreshed_at = self._clock()
        access_encrypted = self._cipher.encrypt(tokens.access_token)
        rotated_encrypted = self._cipher.encrypt_optional(tokens.refresh_token)
        expires_at = refreshed_at + timedelta(seconds=tokens.expires_in)

        def _apply(profile: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
            if not profile or not profile.get(LINKED_ACCOUNT_FIELD):
                return None
            group = dict(profile[LINKED_ACCOUNT_FIELD])
            group["access_token_encrypted"] = access_encrypted
            if rotated_encrypted:
                group["refresh_token_encrypted"] = rotated_encrypted
            group["expires_at"] = expires_at.isoformat()
            group["updated_at"] = refreshed_at.isoformat()
            profile[LINKED_ACCOUNT_FIELD] = group
            return profile

        self._store.update_item(
            partition_key=user_partition_key(user_id),
            sort_key=PROFILE_SORT_KEY,
            mutate=_apply,
        )
        logger.info(
            "Refreshed X access token for user %s (refresh token rotated: %s)",
            user_id,
            bool(rotated_encrypted),
        )
        return tokens.access_token

    def linked_account(self, *, user_id: str) -> Optional[LinkedAccountCredential]:
        profile = self._store.get_item(
            partition_key=user_partition_key(user_id), sort_key=PROFILE_SORT_KEY
        )
        if not profile or not profile.get(LINKED_ACCOUNT_FIELD):
            return None
        return LinkedAccountCredential.model_validate(profile[LINKED_ACCOUNT_FIELD])

    def record_content_sync(self, *, user_id: str, synced_at) -> None:
        def _touch(profile: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
            if not profile or not profile.get(LINKED_ACCOUNT_FIELD):
                return None
            group = dict(profile[LINKED_ACCOUNT_FIELD])
            group["last_content_sync"] = synced_at.isoformat()
            profile[LINKED_ACCOUNT_FIELD] = group
            return profile

        self._store.update_item(
            partition_key=user_partition_key(user_id),
            sort_key=PROFILE_SORT_KEY,
            mutate=_touch,
        )

    def connection_status(self, *, user_id: str) -> ConnectionStatus:
        if not user_id:
            raise UnauthenticatedError("Sign in to view the X connection.")
        credential = self.linked_account(user_id=user_id)
        if credential is None:
            return ConnectionStatus()
        return ConnectionStatus(
            connected=credential.connected,
            external_user_id=credential.external_user_id,
            username=credential.external_username,
            connected_at=credential.connected_at,
            expires_at=credential.expires_at,
            last_content_sync=credential.last_content_sync,
        )

    def _pending_expired(self, pending: PendingAuthorization, now) -> bool:
        ttl = self._oauth_settings.pending_ttl_seconds
        if ttl <= 0:
            return False
        return now - ensure_aware(pending.created_at) > timedelta(seconds=ttl)

    def _decrypt_stored(self, ciphertext: Optional[str]) -> str:
        try:
            return self._cipher.decrypt(ciphertext or "")
        except ValueError as exc:
            raise FailedPreconditionError(
                "Stored X credentials are unreadable; reconnect the account."
            ) from exc


__all__ = ["XTokenService"]
