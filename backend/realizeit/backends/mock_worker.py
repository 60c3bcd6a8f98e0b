"""Stand-in generation worker for the in-memory backend.

The real worker runs out of process and is not part of this service. This
one lets local development and tests watch the whole loop: it picks up
queued jobs from either job table, writes variations (or drives an upscale
through ``upscaling -> ready``) and bumps the session's server counters, all
of which reaches open views through the change feeds.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from realizeit.backends.base import SESSIONS_TABLE, VARIATIONS_TABLE, BackendError, SchemaMismatch
from realizeit.backends.memory import MemoryBackend
from realizeit.config import settings

logger = structlog.get_logger()

JOB_TABLES = ("design_jobs", "generation_requests")
MOCK_IMAGE_BASE = "https://cdn.example.com/mock"


def _job_type(job: dict[str, Any]) -> str | None:
    return job.get("type") or job.get("action")


class MockGenerationWorker:
    def __init__(self, backend: MemoryBackend, delay: float | None = None) -> None:
        self._backend = backend
        self.delay = settings.mock_generation_delay if delay is None else delay

    def _queued_jobs(self) -> list[tuple[str, dict[str, Any]]]:
        jobs = []
        for table in JOB_TABLES:
            try:
                rows = self._backend.rows(table)
            except SchemaMismatch:
                continue
            jobs += [(table, row) for row in rows if row.get("status", "queued") == "queued"]
        return jobs

    async def process_pending(self) -> int:
        """Complete every queued job. Returns the number of jobs handled."""
        handled = 0
        for table, job in self._queued_jobs():
            self._backend.update_row(table, job["id"], {"status": "running"})
            job_type = _job_type(job)
            try:
                if job_type == "regenerate":
                    self._regenerate(job["session_id"], int(job.get("count") or 1))
                elif job_type == "upscale":
                    self._upscale(job["session_id"], job["variation_id"])
                else:
                    raise ValueError(f"unknown job type {job_type!r}")
            except (KeyError, ValueError, BackendError) as exc:
                logger.warning(
                    "mock_worker_job_failed", table=table, job_id=job["id"], error=str(exc)
                )
                self._backend.update_row(table, job["id"], {"status": "failed"})
                continue
            self._backend.update_row(table, job["id"], {"status": "done"})
            handled += 1
            # Let realtime-triggered reloads run between jobs.
            await asyncio.sleep(0)
        return handled

    def _regenerate(self, session_id: str, count: int) -> None:
        for _ in range(count):
            row = self._backend.insert_row(
                VARIATIONS_TABLE,
                {"session_id": session_id, "status": "pending", "quality": "base"},
            )
            url = f"{MOCK_IMAGE_BASE}/{session_id}/{row['id']}.png"
            self._backend.update_row(
                VARIATIONS_TABLE,
                row["id"],
                {"status": "ready", "image_url": url, "thumb_url": url},
            )
        self._bump(session_id, "regeneration_count", count)

    def _upscale(self, session_id: str, variation_id: str) -> None:
        self._backend.update_row(VARIATIONS_TABLE, variation_id, {"status": "upscaling"})
        self._backend.update_row(
            VARIATIONS_TABLE,
            variation_id,
            {
                "status": "ready",
                "quality": "upscaled",
                "image_url": f"{MOCK_IMAGE_BASE}/{session_id}/{variation_id}@4x.png",
            },
        )
        self._bump(session_id, "upscale_count", 1)

    def _bump(self, session_id: str, column: str, delta: int) -> None:
        session = next(
            (r for r in self._backend.rows(SESSIONS_TABLE) if r.get("id") == session_id), None
        )
        if session is None:
            raise KeyError(session_id)
        self._backend.update_row(
            SESSIONS_TABLE, session_id, {column: (session.get(column) or 0) + delta}
        )

    async def run(self, stop: asyncio.Event) -> None:
        """Poll for jobs every ``delay`` seconds until ``stop`` is set."""
        logger.info("mock_worker_started", delay=self.delay)
        while not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=max(self.delay, 0.05))
            except TimeoutError:
                pass
            if not stop.is_set():
                await self.process_pending()
        logger.info("mock_worker_stopped")
