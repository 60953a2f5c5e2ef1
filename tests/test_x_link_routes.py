try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

from urllib.parse import parse_qs, parse_qsl, urlsplit

import httpx
import pytest

from postmetric.clients.x_api import XApiClient
from postmetric.clients.x_oauth import XOAuthClient
from postmetric.main import app
from postmetric.services.content_sync import ContentSyncService
from postmetric.services.pkce import derive_challenge
from postmetric.services.x_link import XLinkInitiator
from postmetric.services.x_tokens import XTokenService

pytestmark = pytest.mark.anyio

CALLER = {"X-User-Id": "u1"}


class FakeX:
    """Routes MockTransport requests to canned X token and API responses."""

    def __init__(self) -> None:
        self.quota_exhausted = False
        self.token_forms: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/2/oauth2/token":
            form = {key: values[0] for key, values in parse_qs(request.content.decode()).items()}
            self.token_forms.append(form)
            return httpx.Response(
                200,
                json={"access_token": "at-1", "refresh_token": "rt-1", "expires_in": 7200},
            )
        if path == "/2/users/me":
            return httpx.Response(200, json={"data": {"id": "42", "username": "alice"}})
        if path == "/2/users/42/tweets":
            if self.quota_exhausted:
                return httpx.Response(
                    429, headers={"retry-after": "15"}, json={"title": "UsageCapExceeded"}
                )
            return httpx.Response(
                200,
                json={
                    "data": [
                        {
                            "id": "1001",
                            "text": "hello world",
                            "created_at": "2025-01-09T10:00:00.000Z",
                            "public_metrics": {"like_count": 7, "impression_count": 70},
                        }
                    ],
                    "meta": {"result_count": 1},
                },
            )
        return httpx.Response(404, json={"title": "Not Found"})


@pytest.fixture()
def fake_x() -> FakeX:
    return FakeX()


@pytest.fixture()
def route_overrides(store, cipher, x_settings, oauth_settings, clock, fake_x):
    from postmetric import dependencies
    from postmetric.core.config import get_settings

    transport = httpx.MockTransport(fake_x)
    oauth_client = XOAuthClient(x_settings, oauth_settings, transport=transport)
    api_client = XApiClient(x_settings, transport=transport)
    initiator = XLinkInitiator(
        store=store,
        oauth_client=oauth_client,
        token_cipher=cipher,
        x_settings=x_settings,
        clock=clock,
    )
    token_service = XTokenService(
        store=store,
        oauth_client=oauth_client,
        api_client=api_client,
        token_cipher=cipher,
        x_settings=x_settings,
        oauth_settings=oauth_settings,
        clock=clock,
    )
    sync_service = ContentSyncService(
        store=store, token_service=token_service, api_client=api_client, clock=clock
    )
    settings = get_settings().model_copy(
        update={"frontend_base_url": "https://dashboard.example/settings"}
    )

    app.dependency_overrides.update(
        {
            dependencies.get_x_link_initiator: lambda: initiator,
            dependencies.get_x_token_service: lambda: token_service,
            dependencies.get_content_sync_service: lambda: sync_service,
            dependencies.get_app_settings: lambda: settings,
        }
    )

    yield store

    app.dependency_overrides.clear()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


async def _authorize(client: httpx.AsyncClient) -> dict:
    response = await client.get(
        "/api/auth/x/authorize", params={"callback_url": "https://app/cb"}, headers=CALLER
    )
    assert response.status_code == 200
    return response.json()


async def test_link_flow_end_to_end(route_overrides, fake_x) -> None:
    async with _client() as client:
        auth = await _authorize(client)
        query = dict(parse_qsl(urlsplit(auth["authorization_url"]).query))
        assert query["client_id"] == "client-123"
        assert query["state"] == auth["state"]
        assert query["code_challenge_method"] == "S256"

        response = await client.post(
            "/api/auth/x/callback",
            json={"code": "abc123", "state": auth["state"], "callback_url": "https://app/cb"},
            headers=CALLER,
        )
        assert response.status_code == 200
        assert response.json() == {"status": "connected", "username": "alice"}

        status = (await client.get("/api/auth/x/status", headers=CALLER)).json()

    form = fake_x.token_forms[0]
    assert form["code"] == "abc123"
    assert derive_challenge(form["code_verifier"]) == query["code_challenge"]
    assert status["connected"] is True
    assert status["username"] == "alice"
    assert "access_token_encrypted" not in status


async def test_missing_identity_is_rejected(route_overrides) -> None:
    async with _client() as client:
        response = await client.get("/api/auth/x/authorize")

    assert response.status_code == 401
    assert response.json() == {
        "status": "error",
        "error": "unauthenticated",
        "reason": "User must be authenticated.",
    }


async def test_state_mismatch_is_forbidden(route_overrides, fake_x) -> None:
    async with _client() as client:
        await _authorize(client)
        response = await client.post(
            "/api/auth/x/callback",
            json={"code": "abc123", "state": "forged", "callback_url": "https://app/cb"},
            headers=CALLER,
        )

    assert response.status_code == 403
    body = response.json()
    assert body["status"] == "unlinked"
    assert body["error"] == "security_violation"
    assert fake_x.token_forms == []


async def test_callback_without_pending_flow(route_overrides) -> None:
    async with _client() as client:
        response = await client.post(
            "/api/auth/x/callback",
            json={"code": "abc123", "state": "S", "callback_url": "https://app/cb"},
            headers=CALLER,
        )

    assert response.status_code == 409
    assert response.json()["error"] == "failed_precondition"


async def test_authorize_redirects_browsers(route_overrides) -> None:
    async with _client() as client:
        response = await client.get(
            "/api/auth/x/authorize",
            params={"callback_url": "https://app/cb"},
            headers={**CALLER, "accept": "text/html"},
        )

    assert response.status_code == 307
    assert response.headers["location"].startswith("https://x.example/i/oauth2/authorize?")


async def test_get_callback_reports_denied_consent(route_overrides) -> None:
    async with _client() as client:
        response = await client.get(
            "/api/auth/x/callback",
            params={"error": "access_denied", "state": "S"},
            headers=CALLER,
        )

    assert response.status_code == 400
    assert response.json()["status"] == "unlinked"
    assert response.json()["error"] == "access_denied"


async def test_get_callback_redirects_to_dashboard(route_overrides) -> None:
    async with _client() as client:
        auth = await _authorize(client)
        response = await client.get(
            "/api/auth/x/callback",
            params={
                "code": "abc123",
                "state": auth["state"],
                "callback_url": "https://app/cb",
                "redirect": "true",
            },
            headers=CALLER,
        )

    assert response.status_code == 307
    assert response.headers["location"] == "https://dashboard.example/settings"


async def test_sync_and_list_items(route_overrides, fake_x) -> None:
    async with _client() as client:
        auth = await _authorize(client)
        await client.post(
            "/api/auth/x/callback",
            json={"code": "abc123", "state": auth["state"], "callback_url": "https://app/cb"},
            headers=CALLER,
        )

        synced = await client.post("/api/content/sync", headers=CALLER)
        items = await client.get("/api/content/items", headers=CALLER)

        fake_x.quota_exhausted = True
        quota = await client.post("/api/content/sync", headers=CALLER)

    assert synced.status_code == 200
    assert synced.json()["status"] == "synced"
    assert synced.json()["count"] == 1

    listed = items.json()["items"]
    assert [item["remote_item_id"] for item in listed] == ["1001"]
    assert listed[0]["metrics"] == {"likes": 7, "reshares": 0, "replies": 0, "impressions": 70}
    assert "pk" not in listed[0]

    assert quota.status_code == 429
    assert quota.json()["error"] == "quota_exceeded"
    assert quota.json()["count"] == 0
    assert quota.headers["retry-after"] == "15"


async def test_sync_without_link_is_failed_precondition(route_overrides) -> None:
    async with _client() as client:
        response = await client.post("/api/content/sync", headers=CALLER)

    assert response.status_code == 409
    assert response.json() == {
        "status": "error",
        "error": "failed_precondition",
        "reason": "X account is not connected.",
        "count": 0,
    }


async def test_blank_identity_on_sync_uses_error_shape(route_overrides) -> None:
    async with _client() as client:
        response = await client.post("/api/content/sync", headers={"X-User-Id": "  "})

    assert response.status_code == 401
    assert response.json()["error"] == "unauthenticated"
    assert "detail" not in response.json()
