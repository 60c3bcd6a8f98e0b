"""Submit regeneration/upscale jobs with optimistic placeholders.

The job table name is not stable across backend deployments, so a job is
offered to an ordered list of submission strategies and the first one the
backend accepts wins. The quota is not checked here; callers gate on
``QuotaTracker`` before calling in.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import structlog

from realizeit.backends.base import BackendError, DesignBackend
from realizeit.design.errors import EnqueueFailed
from realizeit.design.quota import QuotaTracker
from realizeit.design.store import VariationStore
from realizeit.models.contracts import DesignVariation, GenerationJob

logger = structlog.get_logger()


@dataclass(frozen=True)
class SubmissionStrategy:
    """Where a job row goes and how the job maps onto that table's columns."""

    name: str
    table: str
    to_row: Callable[[GenerationJob], dict[str, Any]]


def _design_jobs_row(job: GenerationJob) -> dict[str, Any]:
    row: dict[str, Any] = {"session_id": job.session_id, "type": job.type, "status": job.status}
    if job.type == "regenerate":
        row["count"] = job.count
    else:
        row["variation_id"] = job.variation_id
    return row


def _generation_requests_row(job: GenerationJob) -> dict[str, Any]:
    row: dict[str, Any] = {"session_id": job.session_id, "action": job.type}
    if job.type == "regenerate":
        row["count"] = job.count
    else:
        row["variation_id"] = job.variation_id
    return row


DEFAULT_STRATEGIES: tuple[SubmissionStrategy, ...] = (
    SubmissionStrategy("design_jobs", "design_jobs", _design_jobs_row),
    SubmissionStrategy("generation_requests", "generation_requests", _generation_requests_row),
)


def _now() -> datetime:
    return datetime.now(UTC)


class JobEnqueuer:
    def __init__(
        self,
        backend: DesignBackend,
        store: VariationStore,
        quota: QuotaTracker,
        strategies: tuple[SubmissionStrategy, ...] = DEFAULT_STRATEGIES,
    ) -> None:
        self._backend = backend
        self._store = store
        self._quota = quota
        self._strategies = strategies
        self._last_stamp = 0

    def _stamp(self) -> int:
        # Millisecond stamps stay unique per enqueuer so placeholder ids never collide.
        self._last_stamp = max(int(time.time() * 1000), self._last_stamp + 1)
        return self._last_stamp

    async def request_regeneration(self, session_id: str, count: int) -> str:
        """Queue ``count`` new variations. Returns the strategy that accepted the job."""
        job = GenerationJob(session_id=session_id, type="regenerate", count=count)
        stamp = self._stamp()
        created = _now()
        placeholders = [
            DesignVariation(
                id=f"local-{stamp}-{i}",
                session_id=session_id,
                status="queued",
                quality="base",
                created_at=created,
            )
            for i in range(count)
        ]
        self._store.add_placeholders(placeholders)
        accepted = await self._submit(job, placeholders)
        self._quota.record_usage("regenerate", count)
        return accepted

    async def request_upscale(self, session_id: str, variation_id: str) -> str:
        """Queue an upscale of one variation. Returns the strategy that accepted the job."""
        job = GenerationJob(session_id=session_id, type="upscale", variation_id=variation_id)
        source = self._store.get(variation_id)
        placeholder = DesignVariation(
            id=f"local-upscale-{variation_id}-{self._stamp()}",
            session_id=session_id,
            thumb_url=source.thumb_url if source else None,
            status="queued",
            quality="upscaled",
            seed=source.seed if source else None,
            created_at=_now(),
        )
        self._store.add_placeholders([placeholder])
        accepted = await self._submit(job, [placeholder])
        self._quota.record_usage("upscale", 1)
        return accepted

    async def _submit(self, job: GenerationJob, placeholders: list[DesignVariation]) -> str:
        attempts: list[str] = []
        for strategy in self._strategies:
            attempts.append(strategy.name)
            try:
                await self._backend.insert(strategy.table, strategy.to_row(job))
            except BackendError as exc:
                logger.warning(
                    "enqueue_strategy_rejected",
                    session_id=job.session_id,
                    job_type=job.type,
                    strategy=strategy.name,
                    error=str(exc),
                    code=exc.code,
                )
                continue
            logger.info(
                "enqueue_accepted",
                session_id=job.session_id,
                job_type=job.type,
                strategy=strategy.name,
                fallback=len(attempts) > 1,
            )
            return strategy.name

        self._store.remove_placeholders(p.id for p in placeholders)
        logger.error(
            "enqueue_failed",
            session_id=job.session_id,
            job_type=job.type,
            attempts=attempts,
        )
        raise EnqueueFailed(job.session_id, job.type, attempts)
