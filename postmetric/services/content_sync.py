"""
Sync recent X posts and their engagement counters into the record store.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from postmetric.clients.x_api import PAGE_SIZE
from postmetric.core.clock import Clock, ensure_aware, utcnow
from postmetric.core.errors import FailedPreconditionError, UnauthenticatedError
from postmetric.models.content import ContentItem, ContentMetrics
from postmetric.models.keys import (
    ITEM_SORT_KEY_PREFIX,
    item_sort_key,
    user_partition_key,
)
from postmetric.schemas.content import SyncResult
from postmetric.schemas.x_api import XPost, XPublicMetrics
from postmetric.services.x_tokens import XTokenService

logger = logging.getLogger(__name__)


def map_metrics(public_metrics: Optional[XPublicMetrics]) -> ContentMetrics:
    """Translate X counter names; absent counters become 0."""
    metrics = public_metrics or XPublicMetrics()
    return ContentMetrics(
        likes=metrics.like_count,
        reshares=metrics.retweet_count,
        replies=metrics.reply_count,
        impressions=metrics.impression_count,
    )


class ContentSyncService:
    """Fetches a page of posts and upserts them keyed by X post id."""

    def __init__(
        self,
        *,
        store: Any,
        token_service: XTokenService,
        api_client: Any,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._tokens = token_service
        self._api = api_client
        self._clock = clock

    async def sync(self, *, user_id: str) -> SyncResult:
        """
        Pull the newest posts for the user's linked account.

        Everything is fetched before the first write, so an upstream failure
        (including ``QuotaExceededError``) leaves stored items and
        ``last_content_sync`` untouched.
        """
        if not user_id:
            raise UnauthenticatedError("Sign in before syncing X content.")
        access_token = await self._tokens.get_valid_access_token(user_id=user_id)
        credential = self._tokens.linked_account(user_id=user_id)
        if credential is None or not credential.external_user_id:
            raise FailedPreconditionError("X account is not connected.")

        page = await self._api.list_recent_posts(
            access_token, credential.external_user_id, max_results=PAGE_SIZE
        )

        synced_at = self._clock()
        for post in page.data:
            self._upsert(user_id, credential.external_user_id, post, synced_at)
        self._tokens.record_content_sync(user_id=user_id, synced_at=synced_at)

        logger.info("Synced %d X posts for user %s", len(page.data), user_id)
        return SyncResult(count=len(page.data), synced_at=synced_at)

    def _upsert(
        self, user_id: str, external_user_id: str, post: XPost, synced_at: datetime
    ) -> None:
        metrics = map_metrics(post.public_metrics).model_dump()
        synced_iso = synced_at.isoformat()

        def _merge(existing: Optional[Dict[str, Any]]) -> Dict[str, Any]:
            if existing:
                existing["metrics"] = metrics
                existing["last_synced"] = synced_iso
                return existing
            item = ContentItem(
                pk=user_partition_key(user_id),
                sk=item_sort_key(post.id),
                owner_user_id=user_id,
                external_user_id=external_user_id,
                remote_item_id=post.id,
                text=post.text,
                created_at=post.created_at,
                metrics=ContentMetrics(**metrics),
                first_synced=synced_at,
                last_synced=synced_at,
            )
            return item.model_dump(mode="json")

        self._store.update_item(
            partition_key=user_partition_key(user_id),
            sort_key=item_sort_key(post.id),
            mutate=_merge,
        )

    def list_items(self, *, user_id: str, limit: int = 50) -> list[ContentItem]:
        """Stored posts for the dashboard, newest first."""
        if not user_id:
            raise UnauthenticatedError("Sign in to view synced content.")
        records = self._store.list_items_with_prefix(
            partition_key=user_partition_key(user_id),
            sort_key_prefix=ITEM_SORT_KEY_PREFIX,
        )
        items = [ContentItem.model_validate(record) for record in records]
        items.sort(
            key=lambda item: (
                item.created_at is not None,
                ensure_aware(item.created_at or item.last_synced),
            ),
            reverse=True,
        )
        return items[:limit]


__all__ = ["ContentSyncService", "map_metrics"]
