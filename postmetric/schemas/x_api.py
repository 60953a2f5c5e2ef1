"""
Typed views of the X API responses consumed by the backend.

Required fields are enforced; unknown fields are ignored so additive
provider changes do not break parsing.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class TokenResponse(BaseModel):
    """Payload returned by the OAuth 2.0 token endpoint."""

    access_token: str = Field(..., min_length=1)
    expires_in: int = Field(..., gt=0, description="Access token lifetime in seconds.")
    refresh_token: Optional[str] = Field(
        None, description="Present when offline.access was granted; may rotate."
    )
    token_type: Optional[str] = None
    scope: Optional[str] = None


class XUser(BaseModel):
    id: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    name: Optional[str] = None


class XUserResponse(BaseModel):
    """Response from ``GET /2/users/me``."""

    data: XUser


class XPublicMetrics(BaseModel):
    """Engagement counters; X sends null for counters it cannot report."""

    like_count: int = 0
    retweet_count: int = 0
    reply_count: int = 0
    quote_count: int = 0
    impression_count: int = 0

    @field_validator(
        "like_count",
        "retweet_count",
        "reply_count",
        "quote_count",
        "impression_count",
        mode="before",
    )
    @classmethod
    def _null_counter_is_zero(cls, value):
        return 0 if value is None else value


class XPost(BaseModel):
    id: str = Field(..., min_length=1)
    text: str = ""
    created_at: Optional[datetime] = None
    public_metrics: Optional[XPublicMetrics] = None


class XPostsMeta(BaseModel):
    result_count: int = 0
    newest_id: Optional[str] = None
    oldest_id: Optional[str] = None
    next_token: Optional[str] = None


class XPostsResponse(BaseModel):
    """Response from ``GET /2/users/{id}/tweets``; ``data`` is absent when empty."""

    data: List[XPost] = Field(default_factory=list)
    meta: XPostsMeta = Field(default_factory=XPostsMeta)


__all__ = [
    "TokenResponse",
    "XPost",
    "XPostsMeta",
    "XPostsResponse",
    "XPublicMetrics",
    "XUser",
    "XUserResponse",
]
