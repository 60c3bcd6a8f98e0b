"""Realtime change feeds for one design session.

Two feeds per session: any change to the session's variations, and updates
to the session row itself. Variation changes only say "something changed",
the listener is expected to reload the full list. Session updates carry the
full new row and are applied as-is.

Feeds are tied to whoever opened them: ``Subscription.unsubscribe`` closes
both channels, cancels handlers that are still running, and drops any
notification that arrives afterwards. Reconnection is left to the transport.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal

import structlog
from pydantic import ValidationError

from realizeit.backends.base import (
    SESSIONS_TABLE,
    VARIATIONS_TABLE,
    ChannelHandle,
    DesignBackend,
    RowFilter,
)
from realizeit.models.contracts import DesignSession

logger = structlog.get_logger()


@dataclass(frozen=True)
class SessionChange:
    kind: Literal["variations", "session"]
    session: DesignSession | None = None


OnChange = Callable[[SessionChange], Awaitable[None]]


class Subscription:
    def __init__(self, session_id: str, on_change: OnChange) -> None:
        self.session_id = session_id
        self._on_change = on_change
        self._channels: list[ChannelHandle] = []
        self._tasks: set[asyncio.Task[None]] = set()
        self.closed = False

    @property
    def active(self) -> bool:
        return bool(self._channels) and not self.closed

    def _dispatch(self, change: SessionChange) -> None:
        if self.closed:
            return
        task = asyncio.get_running_loop().create_task(self._run(change))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, change: SessionChange) -> None:
        try:
            await self._on_change(change)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(
                "realtime_handler_failed", session_id=self.session_id, kind=change.kind
            )

    def on_variation_change(self, _row: dict[str, Any]) -> None:
        self._dispatch(SessionChange(kind="variations"))

    def on_session_update(self, row: dict[str, Any]) -> None:
        try:
            session = DesignSession.model_validate(row)
        except ValidationError:
            logger.warning("realtime_session_row_invalid", session_id=self.session_id)
            return
        self._dispatch(SessionChange(kind="session", session=session))

    async def unsubscribe(self) -> None:
        """Tear down both feeds. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        channels, self._channels = self._channels, []
        for channel in channels:
            try:
                await channel.close()
            except Exception:
                logger.warning("realtime_channel_close_failed", session_id=self.session_id)
        pending = [t for t in self._tasks if not t.done()]
        current = asyncio.current_task()
        for task in pending:
            if task is not current:
                task.cancel()
        logger.info("realtime_unsubscribed", session_id=self.session_id)

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.unsubscribe()


class RealtimeSync:
    def __init__(self, backend: DesignBackend) -> None:
        self._backend = backend

    async def subscribe(self, session_id: str, on_change: OnChange) -> Subscription:
        """Open the variation and session feeds for ``session_id``."""
        subscription = Subscription(session_id, on_change)
        try:
            subscription._channels.append(
                await self._backend.subscribe(
                    VARIATIONS_TABLE,
                    RowFilter("session_id", session_id),
                    "*",
                    subscription.on_variation_change,
                )
            )
            subscription._channels.append(
                await self._backend.subscribe(
                    SESSIONS_TABLE,
                    RowFilter("id", session_id),
                    "UPDATE",
                    subscription.on_session_update,
                )
            )
        except BaseException:
            await subscription.unsubscribe()
            raise
        logger.info("realtime_subscribed", session_id=session_id)
        return subscription
