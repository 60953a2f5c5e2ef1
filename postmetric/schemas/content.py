"""Schemas returned by the content sync endpoints."""

from datetime import datetime

from pydantic import BaseModel


class SyncResult(BaseModel):
    """Outcome of a sync run; zero items is a valid result."""

    count: int
    synced_at: datetime


__all__ = ["SyncResult"]
