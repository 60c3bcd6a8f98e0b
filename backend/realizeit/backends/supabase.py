"""Supabase backend: PostgREST reads/inserts plus Realtime change feeds.

Row-level security applies: the key in SUPABASE_KEY decides what the
service can see. Missing tables/columns come back from PostgREST as
``42P01`` (Postgres) or ``PGRST204``/``PGRST205`` (schema cache) and are
reported as ``SchemaMismatch`` so the job enqueuer can fall through to the
next job table.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client

from realizeit.backends.base import (
    SESSIONS_TABLE,
    VARIATIONS_TABLE,
    BackendError,
    ChangeCallback,
    ChangeEvent,
    RowFilter,
    SchemaMismatch,
)
from realizeit.config import settings

logger = structlog.get_logger()

SCHEMA_ERROR_CODES = frozenset({"42P01", "42703", "PGRST204", "PGRST205"})


def _translate(exc: Exception, table: str) -> BackendError:
    if isinstance(exc, APIError):
        code = str(exc.code) if exc.code else None
        cls = SchemaMismatch if code in SCHEMA_ERROR_CODES else BackendError
        return cls(exc.message or str(exc), table=table, code=code)
    return BackendError(f"{type(exc).__name__}: {exc}", table=table)


def _row_from_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """Pull the changed row out of a postgres_changes payload."""
    data = payload.get("data", payload)
    row = data.get("record") or data.get("new") or {}
    return dict(row)


class SupabaseChannel:
    def __init__(self, client: AsyncClient, channel: Any, name: str) -> None:
        self._client = client
        self._channel = channel
        self.name = name
        self.closed = False

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        await self._client.remove_channel(self._channel)
        logger.debug("supabase_channel_removed", channel=self.name)


class SupabaseBackend:
    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    @classmethod
    async def connect(cls, url: str | None = None, key: str | None = None) -> SupabaseBackend:
        url = url or settings.supabase_url
        key = key or settings.supabase_key
        if not url or not key:
            raise BackendError("SUPABASE_URL and SUPABASE_KEY must be set")
        return cls(await acreate_client(url, key))

    async def fetch_session(self, session_id: str) -> dict[str, Any] | None:
        try:
            response = (
                await self._client.table(SESSIONS_TABLE)
                .select("*")
                .eq("id", session_id)
                .limit(1)
                .execute()
            )
        except (APIError, httpx.HTTPError) as exc:
            raise _translate(exc, SESSIONS_TABLE) from exc
        rows = response.data or []
        return rows[0] if rows else None

    async def fetch_variations(self, session_id: str) -> list[dict[str, Any]]:
        try:
            response = (
                await self._client.table(VARIATIONS_TABLE)
                .select("*")
                .eq("session_id", session_id)
                .order("created_at", desc=True)
                .execute()
            )
        except (APIError, httpx.HTTPError) as exc:
            raise _translate(exc, VARIATIONS_TABLE) from exc
        return list(response.data or [])

    async def insert(self, table: str, row: dict[str, Any]) -> None:
        try:
            await self._client.table(table).insert(row).execute()
        except (APIError, httpx.HTTPError) as exc:
            raise _translate(exc, table) from exc

    async def subscribe(
        self,
        table: str,
        row_filter: RowFilter,
        event: ChangeEvent,
        callback: ChangeCallback,
    ) -> SupabaseChannel:
        name = f"{table}:{row_filter.value}"
        channel = self._client.channel(name)
        channel.on_postgres_changes(
            event,
            callback=lambda payload: callback(_row_from_payload(payload)),
            table=table,
            schema="public",
            filter=row_filter.to_postgrest(),
        )
        await channel.subscribe()
        logger.debug("supabase_channel_subscribed", channel=name, event=event)
        return SupabaseChannel(self._client, channel, name)
