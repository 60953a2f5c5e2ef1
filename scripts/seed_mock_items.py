"""Seed sample synced posts for a user so the dashboard can be tried locally.

Usage::

    python -m scripts.seed_mock_items <user_id>
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime, timezone

from postmetric.clients.sqlite_store import SQLiteStore
from postmetric.core.config import StorageSettings
from postmetric.models.content import ContentItem, ContentMetrics
from postmetric.models.keys import (
    LINKED_ACCOUNT_FIELD,
    PROFILE_SORT_KEY,
    item_sort_key,
    user_partition_key,
)

MOCK_EXTERNAL_USER_ID = "mock_user_id"

MOCK_POSTS = [
    (
        "Just launched PostMetric! Track which posts actually drive revenue for your SaaS.",
        ContentMetrics(likes=45, reshares=12, replies=8, impressions=2340),
        datetime(2025, 1, 10, tzinfo=timezone.utc),
    ),
    (
        "Building in public is hard but rewarding. Day 8 of creating a post attribution tool.",
        ContentMetrics(likes=23, reshares=5, replies=3, impressions=1200),
        datetime(2025, 1, 9, tzinfo=timezone.utc),
    ),
    (
        "Hot take: most SaaS founders don't know which marketing channels actually work.",
        ContentMetrics(likes=67, reshares=18, replies=15, impressions=4500),
        datetime(2025, 1, 8, tzinfo=timezone.utc),
    ),
    (
        "OAuth 2.0 PKCE flow finally working! X integration complete.",
        ContentMetrics(likes=12, reshares=2, replies=1, impressions=890),
        datetime(2025, 1, 7, tzinfo=timezone.utc),
    ),
    (
        "FastAPI + SQLite is such a good stack for MVPs. Shipping fast!",
        ContentMetrics(likes=34, reshares=7, replies=6, impressions=1800),
        datetime(2025, 1, 6, tzinfo=timezone.utc),
    ),
]


def seed(store: SQLiteStore, user_id: str) -> int:
    """Write the sample posts for ``user_id`` and bump its last sync time."""
    now = datetime.now(timezone.utc)
    pk = user_partition_key(user_id)
    for index, (text, metrics, created_at) in enumerate(MOCK_POSTS):
        remote_id = f"mock_post_{index}"
        item = ContentItem(
            pk=pk,
            sk=item_sort_key(remote_id),
            owner_user_id=user_id,
            external_user_id=MOCK_EXTERNAL_USER_ID,
            remote_item_id=remote_id,
            text=text,
            created_at=created_at,
            metrics=metrics,
            first_synced=now,
            last_synced=now,
        )
        store.put_item(item.model_dump(mode="json"))

    def _touch(profile):
        if not profile or not profile.get(LINKED_ACCOUNT_FIELD):
            return None
        profile[LINKED_ACCOUNT_FIELD]["last_content_sync"] = now.isoformat()
        return profile

    store.update_item(partition_key=pk, sort_key=PROFILE_SORT_KEY, mutate=_touch)
    return len(MOCK_POSTS)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Seed mock X posts for a user.")
    parser.add_argument("user_id", help="Identity-provider user id to seed.")
    parser.add_argument(
        "--db-path",
        default=None,
        help="Record store path (default: POSTMETRIC_DB_PATH).",
    )
    args = parser.parse_args(argv)

    db_path = args.db_path or StorageSettings().database_path
    count = seed(SQLiteStore(db_path), args.user_id)
    print(f"Added {count} mock posts for user {args.user_id} in {db_path}")
    return 0


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
