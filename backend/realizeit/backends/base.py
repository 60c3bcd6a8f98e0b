"""Boundary contract for the storage/realtime backend.

The design-session components only ever talk to a ``DesignBackend``. The
production implementation is Supabase (PostgREST + Realtime); the in-memory
one backs tests and local development.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal, Protocol

ChangeEvent = Literal["*", "INSERT", "UPDATE", "DELETE"]
ChangeCallback = Callable[[dict[str, Any]], None]

SESSIONS_TABLE = "design_sessions"
VARIATIONS_TABLE = "design_variations"


class BackendError(Exception):
    """A backend call was rejected or could not be completed."""

    def __init__(self, message: str, *, table: str | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.table = table
        self.code = code


class SchemaMismatch(BackendError):
    """The target table or one of its columns does not exist."""


@dataclass(frozen=True)
class RowFilter:
    """Equality predicate on one column, e.g. ``session_id = X``."""

    column: str
    value: str

    def to_postgrest(self) -> str:
        return f"{self.column}=eq.{self.value}"

    def matches(self, row: dict[str, Any]) -> bool:
        return str(row.get(self.column)) == self.value


class ChannelHandle(Protocol):
    async def close(self) -> None: ...


class DesignBackend(Protocol):
    async def fetch_session(self, session_id: str) -> dict[str, Any] | None:
        """Return the session row, or None if there is no such session."""
        ...

    async def fetch_variations(self, session_id: str) -> list[dict[str, Any]]:
        """Return every variation row of the session, newest first."""
        ...

    async def insert(self, table: str, row: dict[str, Any]) -> None: ...

    async def subscribe(
        self,
        table: str,
        row_filter: RowFilter,
        event: ChangeEvent,
        callback: ChangeCallback,
    ) -> ChannelHandle:
        """Open a change feed on ``table`` restricted to ``row_filter``.

        ``callback`` receives the new row (empty dict for deletes).
        """
        ...
