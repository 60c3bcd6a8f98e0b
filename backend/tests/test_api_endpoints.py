"""Integration tests for the design-session endpoints.

Walks the variations page flow over HTTP against the in-memory backend:
open view -> regenerate -> upscale -> select -> proceed. Verifies status
codes, response shapes and the error mapping for each action outcome.
"""

import pytest

from realizeit.models.contracts import ErrorResponse, SessionViewState
from tests.conftest import SESSION_ID

BASE = f"/api/v1/sessions/{SESSION_ID}"


@pytest.fixture
async def opened(client):
    """Open the view for the seeded session and return its first state."""
    resp = await client.post(f"{BASE}/view", json={"lang": "en"})
    assert resp.status_code == 200
    return resp.json()


class TestOpenView:
    """POST /api/v1/sessions/{id}/view"""

    @pytest.mark.asyncio
    async def test_opens_ready_view(self, client, opened):
        """Loads the session and returns variations newest first."""
        state = SessionViewState.model_validate(opened)
        assert state.status == "ready"
        assert [v.id for v in state.variations] == ["var-b", "var-a"]
        assert state.quota.max_regenerations == 3
        assert state.quota.max_upscales == 2
        assert state.can_regenerate is True
        assert state.proceed_url.endswith("/select-product?variationId=var-b")

    @pytest.mark.asyncio
    async def test_without_body_defaults_to_english(self, client):
        resp = await client.post(f"{BASE}/view")
        assert resp.status_code == 200
        assert resp.json()["lang"] == "en"

    @pytest.mark.asyncio
    async def test_unknown_session_returns_error_state(self, client):
        """A missing session is a view state, not an HTTP error."""
        resp = await client.post("/api/v1/sessions/does-not-exist/view", json={"lang": "kr"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "error"
        assert body["error"]["code"] == "session_not_found"
        assert body["error"]["retry_label"] == "다시 시도"

    @pytest.mark.asyncio
    async def test_get_requires_open_view(self, client):
        resp = await client.get(f"{BASE}/view")
        assert resp.status_code == 404
        assert resp.json()["error"] == "view_not_open"

    @pytest.mark.asyncio
    async def test_get_returns_current_state(self, client, opened):
        resp = await client.get(f"{BASE}/view")
        assert resp.status_code == 200
        assert resp.json()["variations"] == opened["variations"]


class TestRetryAndClose:
    @pytest.mark.asyncio
    async def test_retry_after_backend_recovers(self, client, backend):
        """A view that failed to load can be retried once the backend is back."""
        rows = backend.tables.pop("design_variations")
        resp = await client.post(f"{BASE}/view")
        assert resp.json()["status"] == "error"
        assert resp.json()["error"]["code"] == "load_failed"

        backend.tables["design_variations"] = rows
        resp = await client.post(f"{BASE}/view/retry")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ready"

    @pytest.mark.asyncio
    async def test_retry_requires_open_view(self, client):
        resp = await client.post(f"{BASE}/view/retry")
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_close_releases_channels(self, client, backend, opened):
        assert len(backend.channels) == 2
        resp = await client.delete(f"{BASE}/view")
        assert resp.status_code == 204
        assert backend.channels == []
        resp = await client.delete(f"{BASE}/view")
        assert resp.status_code == 204


class TestRegenerate:
    """POST /api/v1/sessions/{id}/regenerate"""

    @pytest.mark.asyncio
    async def test_queues_placeholders(self, client, backend, opened):
        resp = await client.post(f"{BASE}/regenerate", json={"count": 2})
        assert resp.status_code == 202
        body = resp.json()
        assert [v["status"] for v in body["variations"][:2]] == ["queued", "queued"]
        assert body["quota"]["regenerations_used"] == 2
        assert body["notifications"][-1]["title"] == "Generation requested"
        (job,) = backend.rows("design_jobs")
        assert job["count"] == 2

    @pytest.mark.asyncio
    async def test_limit_reached_is_409(self, client, counters, opened):
        counters.set(SESSION_ID, "regenerate", 3)
        resp = await client.post(f"{BASE}/regenerate")
        assert resp.status_code == 409
        body = ErrorResponse.model_validate(resp.json())
        assert body.error == "limit_reached"
        assert body.retryable is False

    @pytest.mark.asyncio
    async def test_enqueue_failure_is_503(self, client, backend, opened):
        backend.drop_table("design_jobs")
        backend.drop_table("generation_requests")
        resp = await client.post(f"{BASE}/regenerate", json={"count": 1})
        assert resp.status_code == 503
        assert resp.json()["error"] == "enqueue_failed"
        assert resp.json()["retryable"] is True

        state = (await client.get(f"{BASE}/view")).json()
        assert [v["id"] for v in state["variations"]] == ["var-b", "var-a"]
        assert state["notifications"][-1]["variant"] == "destructive"

    @pytest.mark.asyncio
    async def test_falls_back_to_generation_requests(self, client, backend, opened):
        backend.drop_table("design_jobs")
        resp = await client.post(f"{BASE}/regenerate", json={"count": 1})
        assert resp.status_code == 202
        (req,) = backend.rows("generation_requests")
        assert req["action"] == "regenerate"

    @pytest.mark.asyncio
    async def test_view_not_ready_is_409(self, client):
        await client.post("/api/v1/sessions/missing/view")
        resp = await client.post("/api/v1/sessions/missing/regenerate")
        assert resp.status_code == 409
        assert resp.json()["error"] == "view_not_ready"


class TestUpscale:
    """POST /api/v1/sessions/{id}/variations/{vid}/upscale"""

    @pytest.mark.asyncio
    async def test_queues_upscale(self, client, backend, opened):
        resp = await client.post(f"{BASE}/variations/var-a/upscale")
        assert resp.status_code == 202
        body = resp.json()
        assert body["variations"][0]["quality"] == "upscaled"
        assert body["quota"]["upscales_left"] == 1
        (job,) = backend.rows("design_jobs")
        assert job["variation_id"] == "var-a"

    @pytest.mark.asyncio
    async def test_unknown_variation_is_404(self, client, opened):
        resp = await client.post(f"{BASE}/variations/nope/upscale")
        assert resp.status_code == 404
        assert resp.json()["error"] == "variation_not_found"

    @pytest.mark.asyncio
    async def test_placeholder_is_not_ready(self, client, opened):
        body = (await client.post(f"{BASE}/regenerate", json={"count": 1})).json()
        placeholder_id = body["variations"][0]["id"]
        resp = await client.post(f"{BASE}/variations/{placeholder_id}/upscale")
        assert resp.status_code == 409
        assert resp.json()["error"] == "variation_not_ready"


class TestSelect:
    """POST /api/v1/sessions/{id}/select"""

    @pytest.mark.asyncio
    async def test_select_sets_proceed_url(self, client, opened):
        resp = await client.post(f"{BASE}/select", json={"variation_id": "var-a"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["selected_variation_id"] == "var-a"
        assert body["proceed_url"].endswith("/select-product?variationId=var-a")

    @pytest.mark.asyncio
    async def test_select_unknown_is_409(self, client, opened):
        resp = await client.post(f"{BASE}/select", json={"variation_id": "nope"})
        assert resp.status_code == 409
        assert resp.json()["error"] == "variation_not_selectable"


class TestNotifications:
    @pytest.mark.asyncio
    async def test_dismiss(self, client, opened):
        body = (await client.post(f"{BASE}/regenerate", json={"count": 1})).json()
        nid = body["notifications"][0]["id"]
        resp = await client.delete(f"{BASE}/notifications/{nid}")
        assert resp.status_code == 204
        resp = await client.delete(f"{BASE}/notifications/{nid}")
        assert resp.status_code == 404
