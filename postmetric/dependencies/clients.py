"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from postmetric.clients import SQLiteStore, XApiClient, XOAuthClient
from postmetric.core.config import get_settings
from postmetric.services import (
    ContentSyncService,
    TokenCipherService,
    XLinkInitiator,
    XTokenService,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_x_oauth_client() -> XOAuthClient:
    """Create a singleton X OAuth client."""
    settings = _settings()
    return XOAuthClient(settings.x, settings.oauth)


@lru_cache()
def get_x_api_client() -> XApiClient:
    """Create a singleton X API client."""
    return XApiClient(_settings().x)


@lru_cache()
def get_sqlite_store() -> SQLiteStore:
    """Provide shared SQLite record store."""
    return SQLiteStore(_settings().storage.database_path)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    settings = _settings()
    secret = settings.security.token_encryption_secret or settings.x.client_secret
    return TokenCipherService(
        secret=secret,
        previous_secrets=settings.security.previous_token_encryption_secrets,
    )


def get_x_link_initiator() -> XLinkInitiator:
    """Build the link-flow initiator."""
    return XLinkInitiator(
        store=get_sqlite_store(),
        oauth_client=get_x_oauth_client(),
        token_cipher=get_token_cipher_service(),
        x_settings=_settings().x,
    )


def get_x_token_service() -> XTokenService:
    """Build the code exchange and refresh service."""
    settings = _settings()
    return XTokenService(
        store=get_sqlite_store(),
        oauth_client=get_x_oauth_client(),
        api_client=get_x_api_client(),
        token_cipher=get_token_cipher_service(),
        x_settings=settings.x,
        oauth_settings=settings.oauth,
    )


def get_content_sync_service() -> ContentSyncService:
    """Build the content sync job."""
    return ContentSyncService(
        store=get_sqlite_store(),
        token_service=get_x_token_service(),
        api_client=get_x_api_client(),
    )


__all__ = [
    "get_content_sync_service",
    "get_sqlite_store",
    "get_token_cipher_service",
    "get_x_api_client",
    "get_x_link_initiator",
    "get_x_oauth_client",
    "get_x_token_service",
]
