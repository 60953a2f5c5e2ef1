"""
FastAPI dependency utilities for injecting configuration and the caller identity.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header

from postmetric.core.config import AppSettings, get_settings
from postmetric.core.errors import UnauthenticatedError


@lru_cache()
def _settings_singleton() -> AppSettings:
    """Ensure configuration is created once per process."""
    return get_settings()


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return _settings_singleton()


def get_current_user_id(
    x_user_id: Optional[str] = Header(
        default=None,
        alias="X-User-Id",
        description="Verified user id injected by the identity provider gateway.",
    ),
) -> str:
    """Return the authenticated caller; the backend never authenticates itself."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise UnauthenticatedError("User must be authenticated.")
    return user_id


SettingsDependency = Depends(get_app_settings)

__all__ = ["SettingsDependency", "get_app_settings", "get_current_user_id"]
