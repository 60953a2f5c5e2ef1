"""Persistence models."""

from .content import ContentItem, ContentMetrics
from .oauth import LinkedAccountCredential, PendingAuthorization

__all__ = [
    "ContentItem",
    "ContentMetrics",
    "LinkedAccountCredential",
    "PendingAuthorization",
]
