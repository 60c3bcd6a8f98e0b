"""SessionViewModel: everything the variations page shows for one session.

Composes the quota tracker, the variation store, the job enqueuer and the
realtime feeds. View status is ``loading -> ready | error``; an error is
recoverable through ``retry()``. Which actions are allowed is never stored,
it is derived from quota and variation status on every read.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Literal

import structlog
from pydantic import ValidationError

from realizeit.backends.base import BackendError, DesignBackend
from realizeit.config import settings
from realizeit.design.counters import CounterStore, default_counter_store
from realizeit.design.enqueue import JobEnqueuer
from realizeit.design.errors import (
    DesignSessionError,
    EnqueueFailed,
    SessionNotFound,
    VariationFetchFailed,
)
from realizeit.design.messages import message
from realizeit.design.navigation import select_product_url, session_root_url
from realizeit.design.quota import QuotaTracker
from realizeit.design.store import VariationStore
from realizeit.design.sync import RealtimeSync, SessionChange, Subscription
from realizeit.models.contracts import (
    DesignSession,
    DesignVariation,
    Notification,
    QuotaState,
    SessionViewState,
    VariationActions,
    ViewError,
    ViewStatus,
)

logger = structlog.get_logger()

RegenerateOutcome = Literal["queued", "limit_reached", "failed", "unavailable"]
UpscaleOutcome = Literal[
    "queued", "limit_reached", "not_ready", "not_found", "failed", "unavailable"
]


def _parse_variations(session_id: str, rows: list[dict[str, Any]]) -> list[DesignVariation]:
    parsed = []
    for row in rows:
        try:
            parsed.append(DesignVariation.model_validate(row))
        except ValidationError:
            logger.warning("variation_row_invalid", session_id=session_id, row_id=row.get("id"))
    return parsed


class SessionViewModel:
    def __init__(
        self,
        session_id: str,
        backend: DesignBackend,
        *,
        lang: str = "en",
        counters: CounterStore | None = None,
    ) -> None:
        self.session_id = session_id
        self.lang = lang
        self._backend = backend
        self.status: ViewStatus = "loading"
        self.session: DesignSession | None = None
        self.error: ViewError | None = None
        self.selected_id: str | None = None
        self.notifications: list[Notification] = []
        self.store = VariationStore()
        self.quota = QuotaTracker(session_id, counters or default_counter_store())
        self.enqueuer = JobEnqueuer(backend, self.store, self.quota)
        self._sync = RealtimeSync(backend)
        self._subscription: Subscription | None = None
        # One open and one quota-consuming action at a time per view.
        self._open_lock = asyncio.Lock()
        self._action_lock = asyncio.Lock()

    # --- lifecycle ---

    async def open(self) -> None:
        """Load the session and start listening for backend changes."""
        async with self._open_lock:
            await self.load()
            if self._subscription is None or self._subscription.closed:
                self._subscription = await self._sync.subscribe(
                    self.session_id, self._on_change
                )

    async def close(self) -> None:
        async with self._open_lock:
            if self._subscription is not None:
                await self._subscription.unsubscribe()
                self._subscription = None

    @property
    def subscribed(self) -> bool:
        return self._subscription is not None and self._subscription.active

    async def load(self) -> None:
        """Fetch session and variations; failures land in the error state."""
        self.status = "loading"
        self.error = None
        try:
            session = await self._fetch_session()
            variations = await self._fetch_variations()
        except DesignSessionError as exc:
            self._fail(exc)
            return
        self._apply_session(session)
        self.store.replace_server(variations)
        self.status = "ready"
        logger.info(
            "session_view_loaded",
            session_id=self.session_id,
            variation_count=len(variations),
        )

    async def retry(self) -> None:
        await self.load()

    async def _fetch_session(self) -> DesignSession:
        try:
            row = await self._backend.fetch_session(self.session_id)
        except BackendError as exc:
            raise VariationFetchFailed(self.session_id, f"session read failed: {exc}") from exc
        if row is None:
            raise SessionNotFound(self.session_id)
        try:
            return DesignSession.model_validate(row)
        except ValidationError as exc:
            raise VariationFetchFailed(self.session_id, "malformed session row") from exc

    async def _fetch_variations(self) -> list[DesignVariation]:
        try:
            rows = await self._backend.fetch_variations(self.session_id)
        except BackendError as exc:
            raise VariationFetchFailed(self.session_id, str(exc)) from exc
        return _parse_variations(self.session_id, rows)

    def _fail(self, exc: DesignSessionError) -> None:
        not_found = isinstance(exc, SessionNotFound)
        logger.error(
            "session_view_load_failed",
            session_id=self.session_id,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        self.status = "error"
        self.error = ViewError(
            code="session_not_found" if not_found else "load_failed",
            title=message(self.lang, "session_not_found"),
            message=message(self.lang, "error_loading"),
            retry_label=message(self.lang, "try_again"),
            session_url=session_root_url(self.lang, self.session_id),
        )

    def _apply_session(self, session: DesignSession) -> None:
        self.session = session
        self.quota.reconcile(session)

    # --- realtime ---

    async def _on_change(self, change: SessionChange) -> None:
        if change.kind == "session" and change.session is not None:
            self._apply_session(change.session)
            return
        await self.reload_variations()

    async def reload_variations(self) -> None:
        """Refetch the full variation list after a realtime notification.

        The refetched list replaces the optimistic placeholders. A failed
        refetch keeps the current list; the manual retry is the way out.
        """
        try:
            variations = await self._fetch_variations()
        except VariationFetchFailed as exc:
            logger.warning("variations_reload_failed", session_id=self.session_id, error=str(exc))
            return
        self.store.replace_server(variations, drop_placeholders=True)

    # --- derived state ---

    @property
    def variations(self) -> list[DesignVariation]:
        return self.store.items

    @property
    def can_regenerate(self) -> bool:
        return self.status == "ready" and self.quota.can_regenerate(self.session)

    def can_upscale(self, variation: DesignVariation) -> bool:
        return (
            self.status == "ready"
            and variation.status == "ready"
            and not variation.is_placeholder
            and self.quota.can_upscale(self.session)
        )

    @property
    def proceed_variation_id(self) -> str | None:
        if self.selected_id is not None and self.store.get(self.selected_id) is not None:
            return self.selected_id
        ready = self.store.ready
        return ready[0].id if ready else None

    def quota_state(self) -> QuotaState:
        regen_left = self.quota.remaining(self.session, "regenerate")
        upscale_left = self.quota.remaining(self.session, "upscale")
        return QuotaState(
            regenerations_used=self.quota.used("regenerate"),
            max_regenerations=self.quota.limit(self.session, "regenerate"),
            upscales_used=self.quota.used("upscale"),
            max_upscales=self.quota.limit(self.session, "upscale"),
            regenerations_left=regen_left,
            upscales_left=upscale_left,
            regenerate_label=self._left_label("regen_left", regen_left),
            upscale_label=self._left_label("upscale_left", upscale_left),
        )

    def _left_label(self, key: str, left: int) -> str:
        if left <= 0:
            return message(self.lang, "limit_reached")
        return message(self.lang, key, left=left)

    def snapshot(self) -> SessionViewState:
        variations = self.variations
        proceed = self.proceed_variation_id
        return SessionViewState(
            session_id=self.session_id,
            lang=self.lang,
            status=self.status,
            session=self.session,
            variations=variations,
            variation_actions=[
                VariationActions(
                    variation_id=v.id,
                    can_upscale=self.can_upscale(v),
                    can_select=v.status == "ready",
                    select_product_url=select_product_url(self.lang, self.session_id, v.id),
                )
                for v in variations
            ],
            quota=self.quota_state() if self.status == "ready" else None,
            can_regenerate=self.can_regenerate,
            selected_variation_id=self.selected_id,
            proceed_url=(
                select_product_url(self.lang, self.session_id, proceed) if proceed else None
            ),
            session_url=session_root_url(self.lang, self.session_id),
            notifications=list(self.notifications),
            error=self.error,
        )

    # --- user actions ---

    async def request_regeneration(self, count: int | None = None) -> RegenerateOutcome:
        async with self._action_lock:
            return await self._request_regeneration(count)

    async def _request_regeneration(self, count: int | None) -> RegenerateOutcome:
        if self.status != "ready":
            return "unavailable"
        if not self.can_regenerate:
            return "limit_reached"
        batch = count if count is not None else settings.max_regeneration_batch
        remaining = self.quota.remaining(self.session, "regenerate")
        batch = max(1, min(batch, settings.max_regeneration_batch, remaining))
        try:
            await self.enqueuer.request_regeneration(self.session_id, batch)
        except EnqueueFailed:
            self._notify(
                message(self.lang, "error_loading"),
                message(self.lang, "regenerate_failed"),
                variant="destructive",
            )
            return "failed"
        self._notify(message(self.lang, "generating"))
        return "queued"

    async def request_upscale(self, variation_id: str) -> UpscaleOutcome:
        async with self._action_lock:
            return await self._request_upscale(variation_id)

    async def _request_upscale(self, variation_id: str) -> UpscaleOutcome:
        if self.status != "ready":
            return "unavailable"
        variation = self.store.get(variation_id)
        if variation is None:
            return "not_found"
        if not self.quota.can_upscale(self.session):
            return "limit_reached"
        if not self.can_upscale(variation):
            return "not_ready"
        try:
            await self.enqueuer.request_upscale(self.session_id, variation_id)
        except EnqueueFailed:
            self._notify(
                message(self.lang, "error_loading"),
                message(self.lang, "upscale_failed"),
                variant="destructive",
            )
            return "failed"
        self._notify(message(self.lang, "upscale_requested"))
        return "queued"

    def select(self, variation_id: str) -> bool:
        variation = self.store.get(variation_id)
        if variation is None or variation.status != "ready":
            return False
        self.selected_id = variation_id
        return True

    def dismiss(self, notification_id: str) -> bool:
        before = len(self.notifications)
        self.notifications = [n for n in self.notifications if n.id != notification_id]
        return len(self.notifications) != before

    def _notify(
        self,
        title: str,
        description: str | None = None,
        *,
        variant: Literal["default", "destructive"] = "default",
    ) -> None:
        self.notifications.append(
            Notification(
                id=uuid.uuid4().hex[:12], title=title, description=description, variant=variant
            )
        )
