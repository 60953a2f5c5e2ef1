"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app and the maintenance
scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

import os
import re

from pydantic import AnyHttpUrl, Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


def _split_values(value: str | tuple[str, ...] | list[str] | None) -> tuple[str, ...]:
    """Accept tuples, lists, or a comma/space separated string."""
    if value is None:
        return ()
    if isinstance(value, tuple):
        return value
    if isinstance(value, list):
        return tuple(value)
    return tuple(part for part in re.split(r"[,\s]+", value) if part)


class XSettings(BaseSettings):
    """Configuration required for interacting with the X (Twitter) API."""

    model_config = SettingsConfigDict(populate_by_name=True)

    client_id: str = Field(..., validation_alias="X_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="X_CLIENT_SECRET")
    redirect_uri: Optional[AnyHttpUrl] = Field(
        None,
        validation_alias="X_REDIRECT_URI",
        description="Callback used when the client does not supply one.",
    )
    allowed_callback_urls: Annotated[tuple[str, ...], NoDecode] = Field(
        (),
        validation_alias="X_ALLOWED_CALLBACK_URLS",
        description="When non-empty, callbacks outside this list are rejected.",
    )
    authorize_url: str = Field(
        "https://twitter.com/i/oauth2/authorize", validation_alias="X_AUTHORIZE_URL"
    )
    token_url: str = Field(
        "https://api.twitter.com/2/oauth2/token", validation_alias="X_TOKEN_URL"
    )
    api_base_url: str = Field(
        "https://api.twitter.com/2", validation_alias="X_API_BASE_URL"
    )
    http_timeout_seconds: float = Field(10.0, validation_alias="X_HTTP_TIMEOUT_SECONDS")
    refresh_margin_seconds: int = Field(
        0,
        validation_alias="X_REFRESH_MARGIN_SECONDS",
        description="Refresh access tokens this many seconds before expiry.",
    )

    @field_validator("allowed_callback_urls", mode="before")
    @classmethod
    def _split_callbacks(cls, value):
        return _split_values(value)


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = SettingsConfigDict(populate_by_name=True)

    pending_ttl_seconds: int = Field(
        900,
        validation_alias="OAUTH_PENDING_TTL",
        description="Age after which a pending authorization is ignored; 0 disables.",
    )
    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        ("tweet.read", "users.read", "offline.access"),
        validation_alias="OAUTH_SCOPES",
    )

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(cls, value):
        """Support providing scopes as a comma or space separated string."""
        return _split_values(value)


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = SettingsConfigDict(populate_by_name=True)

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )
    previous_token_encryption_secrets: Annotated[tuple[str, ...], NoDecode] = Field(
        (),
        validation_alias="TOKEN_ENCRYPTION_PREVIOUS_SECRETS",
        description="Retired secrets still accepted for decryption.",
    )

    @field_validator("previous_token_encryption_secrets", mode="before")
    @classmethod
    def _split_secrets(cls, value):
        if isinstance(value, str):
            return tuple(part.strip() for part in value.split(",") if part.strip())
        return _split_values(value)


class StorageSettings(BaseSettings):
    """Document store location."""

    model_config = SettingsConfigDict(populate_by_name=True)

    database_path: str = Field("data/postmetric.db", validation_alias="POSTMETRIC_DB_PATH")


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(populate_by_name=True)

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    frontend_base_url: Optional[HttpUrl] = Field(
        None,
        validation_alias="FRONTEND_BASE_URL",
        description="Optional URL for redirecting users back to the dashboard.",
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    x: XSettings = Field(default_factory=XSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "OAuthSettings",
    "SecuritySettings",
    "StorageSettings",
    "XSettings",
    "get_settings",
]
