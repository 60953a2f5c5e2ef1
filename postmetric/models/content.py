"""Domain models for synced X posts."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ContentMetrics(BaseModel):
    """Raw engagement counters; every counter is always present."""

    likes: int = 0
    reshares: int = 0
    replies: int = 0
    impressions: int = 0


class ContentItem(BaseModel):
    """One synced post, keyed by (owner user id, remote item id)."""

    pk: str
    sk: str
    owner_user_id: str
    external_user_id: Optional[str] = None
    remote_item_id: str
    text: str = ""
    created_at: Optional[datetime] = None
    metrics: ContentMetrics = Field(default_factory=ContentMetrics)
    first_synced: Optional[datetime] = None
    last_synced: datetime


__all__ = ["ContentItem", "ContentMetrics"]
