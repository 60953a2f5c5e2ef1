"""Pytest configuration shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from datetime import datetime, timedelta, timezone

import pytest

from postmetric.clients.sqlite_store import SQLiteStore
from postmetric.core.config import OAuthSettings, XSettings
from postmetric.services.token_cipher import TokenCipherService


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def store(tmp_path) -> SQLiteStore:
    return SQLiteStore(str(tmp_path / "records.db"))


@pytest.fixture
def cipher() -> TokenCipherService:
    return TokenCipherService(secret="unit-test-secret")


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def x_settings() -> XSettings:
    return XSettings(
        X_CLIENT_ID="client-123",
        X_CLIENT_SECRET="secret-456",
        X_REDIRECT_URI="https://app/cb",
        X_AUTHORIZE_URL="https://x.example/i/oauth2/authorize",
        X_TOKEN_URL="https://api.x.example/2/oauth2/token",
        X_API_BASE_URL="https://api.x.example/2",
    )


@pytest.fixture
def oauth_settings() -> OAuthSettings:
    return OAuthSettings()
