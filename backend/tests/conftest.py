"""Shared fixtures: in-memory backend with one seeded session, API client."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from realizeit.backends.base import SESSIONS_TABLE, VARIATIONS_TABLE
from realizeit.backends.memory import MemoryBackend
from realizeit.design.counters import MemoryCounterStore

SESSION_ID = "11111111-1111-1111-1111-111111111111"


def seed_session(backend: MemoryBackend, session_id: str = SESSION_ID, **fields) -> dict:
    row = {
        "id": session_id,
        "prompt": "a tiger surfing a wave, ukiyo-e",
        "lang": "en",
        "user_id": "user-1",
        "regeneration_count": None,
        "upscale_count": None,
        "max_regenerations": 3,
        "max_upscales": 2,
        "state": "generating",
        "created_at": "2026-10-01T10:00:00+00:00",
    }
    row.update(fields)
    return backend.insert_row(SESSIONS_TABLE, row)


def seed_variation(
    backend: MemoryBackend,
    variation_id: str,
    *,
    session_id: str = SESSION_ID,
    status: str = "ready",
    created_at: str = "2026-10-01T10:05:00+00:00",
    **fields,
) -> dict:
    row = {
        "id": variation_id,
        "session_id": session_id,
        "image_url": f"https://cdn.example.com/{variation_id}.png" if status == "ready" else None,
        "thumb_url": f"https://cdn.example.com/{variation_id}_thumb.png",
        "status": status,
        "quality": "base",
        "seed": "42",
        "created_at": created_at,
    }
    row.update(fields)
    return backend.insert_row(VARIATIONS_TABLE, row)


@pytest.fixture
def backend() -> MemoryBackend:
    """Memory backend holding one session with two ready variations."""
    b = MemoryBackend()
    seed_session(b)
    seed_variation(b, "var-a", created_at="2026-10-01T10:05:00+00:00")
    seed_variation(b, "var-b", created_at="2026-10-01T10:06:00+00:00")
    return b


@pytest.fixture
def counters() -> MemoryCounterStore:
    return MemoryCounterStore()


@pytest.fixture
async def client(backend, counters):
    """httpx client bound to the app, with the memory backend injected.

    ASGITransport does not run the lifespan, so app.state is filled here.
    """
    from realizeit.api.routes import sessions
    from realizeit.main import app

    app.state.backend = backend
    app.state.counters = counters
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await sessions.close_all_views()
    del app.state.backend
    del app.state.counters
