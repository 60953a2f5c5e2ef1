"""
Domain models for OAuth flow state and linked-account persistence.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class PendingAuthorization(BaseModel):
    """Transient record for an in-flight link attempt, one per user."""

    pk: str = Field(..., description="Partition key derived from user identifier.")
    sk: str = Field(..., description="Sort key describing the record type.")
    state: str
    code_verifier_encrypted: str
    created_at: datetime


class LinkedAccountCredential(BaseModel):
    """The ``linked_account`` field group embedded in a user's profile document."""

    connected: bool = False
    external_user_id: Optional[str] = None
    external_username: Optional[str] = None
    access_token_encrypted: Optional[str] = None
    refresh_token_encrypted: Optional[str] = None
    expires_at: Optional[datetime] = None
    connected_at: Optional[datetime] = None
    last_content_sync: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_usable(self) -> bool:
        return bool(
            self.connected and self.access_token_encrypted and self.expires_at
        )


__all__ = ["LinkedAccountCredential", "PendingAuthorization"]
