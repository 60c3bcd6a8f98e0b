"""In-memory backend for tests and local development.

Behaves like the Supabase tables the storefront uses: rows are plain dicts,
inserts get an id and a ``created_at`` when missing, and every write is
pushed synchronously to matching change-feed subscribers. Tables can be
dropped to reproduce a backend that lacks one of the job tables.
"""

from __future__ import annotations

import copy
import uuid
from datetime import UTC, datetime
from typing import Any

import structlog

from realizeit.backends.base import (
    SESSIONS_TABLE,
    VARIATIONS_TABLE,
    BackendError,
    ChangeCallback,
    ChangeEvent,
    RowFilter,
    SchemaMismatch,
)
from realizeit.models.contracts import is_valid_transition

logger = structlog.get_logger()

DEFAULT_TABLES = (SESSIONS_TABLE, VARIATIONS_TABLE, "design_jobs", "generation_requests")


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


class MemoryChannel:
    def __init__(
        self,
        backend: MemoryBackend,
        table: str,
        row_filter: RowFilter,
        event: ChangeEvent,
        callback: ChangeCallback,
    ) -> None:
        self._backend = backend
        self.table = table
        self.row_filter = row_filter
        self.event = event
        self.callback = callback
        self.closed = False

    def wants(self, table: str, event: str, row: dict[str, Any]) -> bool:
        if self.closed or table != self.table:
            return False
        if self.event != "*" and self.event != event:
            return False
        return self.row_filter.matches(row)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._backend.channels.remove(self)


class MemoryBackend:
    def __init__(self, tables: tuple[str, ...] = DEFAULT_TABLES) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {name: [] for name in tables}
        self.channels: list[MemoryChannel] = []

    # --- DesignBackend ---

    async def fetch_session(self, session_id: str) -> dict[str, Any] | None:
        row = self._find(SESSIONS_TABLE, session_id)
        return copy.deepcopy(row) if row is not None else None

    async def fetch_variations(self, session_id: str) -> list[dict[str, Any]]:
        rows = [
            copy.deepcopy(r)
            for r in self._table(VARIATIONS_TABLE)
            if r.get("session_id") == session_id
        ]
        rows.sort(key=lambda r: r.get("created_at") or "", reverse=True)
        return rows

    async def insert(self, table: str, row: dict[str, Any]) -> None:
        self.insert_row(table, row)

    async def subscribe(
        self,
        table: str,
        row_filter: RowFilter,
        event: ChangeEvent,
        callback: ChangeCallback,
    ) -> MemoryChannel:
        channel = MemoryChannel(self, table, row_filter, event, callback)
        self.channels.append(channel)
        return channel

    # --- Direct manipulation (tests, mock worker) ---

    def drop_table(self, table: str) -> None:
        self.tables.pop(table, None)

    def insert_row(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        stored = dict(row)
        stored.setdefault("id", str(uuid.uuid4()))
        stored.setdefault("created_at", utc_now_iso())
        self._table(table).append(stored)
        self._notify(table, "INSERT", stored)
        return copy.deepcopy(stored)

    def update_row(self, table: str, row_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        row = self._find(table, row_id)
        if row is None:
            raise BackendError(f"No row {row_id} in {table}", table=table, code="PGRST116")
        new_status = changes.get("status")
        if table == VARIATIONS_TABLE and new_status is not None:
            if not is_valid_transition(row["status"], new_status):
                raise ValueError(f"Invalid variation transition {row['status']} -> {new_status}")
        row.update(changes)
        self._notify(table, "UPDATE", row)
        return copy.deepcopy(row)

    def delete_row(self, table: str, row_id: str) -> None:
        row = self._find(table, row_id)
        if row is None:
            return
        self._table(table).remove(row)
        self._notify(table, "DELETE", row)

    def rows(self, table: str) -> list[dict[str, Any]]:
        return copy.deepcopy(self._table(table))

    # --- internals ---

    def _table(self, table: str) -> list[dict[str, Any]]:
        try:
            return self.tables[table]
        except KeyError:
            raise SchemaMismatch(
                f'relation "public.{table}" does not exist', table=table, code="42P01"
            ) from None

    def _find(self, table: str, row_id: str) -> dict[str, Any] | None:
        return next((r for r in self._table(table) if r.get("id") == row_id), None)

    def _notify(self, table: str, event: str, row: dict[str, Any]) -> None:
        payload = {} if event == "DELETE" else copy.deepcopy(row)
        for channel in [c for c in self.channels if c.wants(table, event, row)]:
            try:
                channel.callback(payload)
            except Exception:
                logger.exception("memory_channel_callback_failed", table=table, event=event)
