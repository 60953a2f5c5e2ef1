"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_content_sync_service,
    get_sqlite_store,
    get_token_cipher_service,
    get_x_api_client,
    get_x_link_initiator,
    get_x_oauth_client,
    get_x_token_service,
)
from .config import SettingsDependency, get_app_settings, get_current_user_id

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_content_sync_service",
    "get_current_user_id",
    "get_sqlite_store",
    "get_token_cipher_service",
    "get_x_api_client",
    "get_x_link_initiator",
    "get_x_oauth_client",
    "get_x_token_service",
]
