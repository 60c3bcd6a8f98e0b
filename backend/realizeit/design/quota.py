"""Regeneration/upscale quota for one design session.

Checks are soft gates on the client side; the generation worker owns the
authoritative limits. Sessions whose limits were never populated still get
a bounded quota (3 regenerations, 2 upscales by default).
"""

from __future__ import annotations

from realizeit.config import settings
from realizeit.design.counters import CounterStore, UsageKind
from realizeit.models.contracts import DesignSession


class QuotaTracker:
    def __init__(
        self,
        session_id: str,
        store: CounterStore,
        *,
        default_max_regenerations: int | None = None,
        default_max_upscales: int | None = None,
    ) -> None:
        self.session_id = session_id
        self._store = store
        self._default_max: dict[str, int] = {
            "regenerate": (
                default_max_regenerations
                if default_max_regenerations is not None
                else settings.default_max_regenerations
            ),
            "upscale": (
                default_max_upscales
                if default_max_upscales is not None
                else settings.default_max_upscales
            ),
        }

    def used(self, kind: UsageKind) -> int:
        return self._store.get(self.session_id, kind)

    def limit(self, session: DesignSession | None, kind: UsageKind) -> int:
        configured = None
        if session is not None:
            configured = session.max_regenerations if kind == "regenerate" else session.max_upscales
        return configured if configured is not None else self._default_max[kind]

    def remaining(self, session: DesignSession | None, kind: UsageKind) -> int:
        return max(0, self.limit(session, kind) - self.used(kind))

    def can_regenerate(self, session: DesignSession | None) -> bool:
        return self.used("regenerate") < self.limit(session, "regenerate")

    def can_upscale(self, session: DesignSession | None) -> bool:
        return self.used("upscale") < self.limit(session, "upscale")

    def record_usage(self, kind: UsageKind, delta: int = 1) -> int:
        """Add ``delta`` to the local usage counter and return the new value.

        Negative deltas count as 0; usage never goes down here.
        """
        value = self.used(kind) + max(0, delta)
        self._store.set(self.session_id, kind, value)
        return value

    def reconcile(self, session: DesignSession) -> None:
        """Adopt the server's counters wherever the session row carries them."""
        if session.regeneration_count is not None:
            self._store.set(self.session_id, "regenerate", session.regeneration_count)
        if session.upscale_count is not None:
            self._store.set(self.session_id, "upscale", session.upscale_count)
