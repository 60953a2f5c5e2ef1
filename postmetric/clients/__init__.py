"""Expose constructed client wrappers."""

from .sqlite_store import SQLiteStore
from .x_api import XApiClient
from .x_oauth import XOAuthClient

__all__ = [
    "SQLiteStore",
    "XApiClient",
    "XOAuthClient",
]
