import asyncio
import contextlib
import uuid
from collections.abc import AsyncIterator

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from realizeit.api.routes import health, sessions
from realizeit.backends.base import DesignBackend
from realizeit.backends.memory import MemoryBackend
from realizeit.backends.mock_worker import MockGenerationWorker
from realizeit.config import settings
from realizeit.design.counters import default_counter_store
from realizeit.logging import configure_logging

configure_logging()

logger = structlog.get_logger()


async def _create_backend() -> DesignBackend:
    if settings.backend == "supabase":
        from realizeit.backends.supabase import SupabaseBackend

        return await SupabaseBackend.connect()
    return MemoryBackend()


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the backend, run the mock worker in memory mode, release views on exit."""
    backend = await _create_backend()
    app.state.backend = backend
    app.state.counters = default_counter_store()
    logger.info("backend_ready", backend=settings.backend)

    stop = asyncio.Event()
    worker_task: asyncio.Task[None] | None = None
    if isinstance(backend, MemoryBackend):
        worker_task = asyncio.create_task(MockGenerationWorker(backend).run(stop))
    try:
        yield
    finally:
        await sessions.close_all_views()
        stop.set()
        if worker_task is not None:
            await worker_task


app = FastAPI(
    title="RealizeIt Design API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url=None,
    lifespan=lifespan,
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Tag every request with an X-Request-ID and bind it into the log context."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


def _error_json(request: Request, status: int, content: dict) -> JSONResponse:
    response = JSONResponse(status_code=status, content=content)
    response.headers["X-Request-ID"] = getattr(
        request.state, "request_id", request.headers.get("X-Request-ID", "")
    )
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Validation errors use the same ErrorResponse shape as everything else."""
    messages = [
        f"{' → '.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    ]
    return _error_json(
        request,
        422,
        {"error": "validation_error", "message": "; ".join(messages), "retryable": False},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    return _error_json(
        request,
        500,
        {"error": "internal_error", "message": "An unexpected error occurred", "retryable": True},
    )


app.include_router(health.router)
app.include_router(sessions.router, prefix="/api/v1")
