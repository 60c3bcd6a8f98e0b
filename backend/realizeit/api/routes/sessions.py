"""Design-session view endpoints.

Each opened session gets one ``SessionViewModel`` kept in process memory.
Opening a view loads it and subscribes to the backend change feeds;
deleting it (or shutting the app down) releases the feeds. All session
actions answer with the refreshed view state.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from realizeit.design.session_view import SessionViewModel
from realizeit.models.contracts import (
    ErrorResponse,
    OpenViewRequest,
    RegenerateRequest,
    SelectVariationRequest,
    SessionViewState,
)

logger = structlog.get_logger()

router = APIRouter(tags=["sessions"])

_views: dict[str, SessionViewModel] = {}

_VIEW_NOT_OPEN = ("view_not_open", "Open the session view first")

# outcome -> (status, error code, message, retryable)
_ACTION_ERRORS: dict[str, tuple[int, str, str, bool]] = {
    "limit_reached": (409, "limit_reached", "Quota for this action is used up", False),
    "not_ready": (409, "variation_not_ready", "Only ready variations can be upscaled", False),
    "not_found": (404, "variation_not_found", "Variation not found in this session", False),
    "unavailable": (409, "view_not_ready", "Session view is not ready", True),
    "failed": (503, "enqueue_failed", "Could not queue the job, please try again", True),
}


def _error(status: int, code: str, message: str, *, retryable: bool = False) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content=ErrorResponse(error=code, message=message, retryable=retryable).model_dump(),
    )


def _outcome_response(view: SessionViewModel, outcome: str) -> SessionViewState | JSONResponse:
    if outcome == "queued":
        return view.snapshot()
    status, code, message, retryable = _ACTION_ERRORS[outcome]
    return _error(status, code, message, retryable=retryable)


async def close_all_views() -> None:
    """Release every open view (app shutdown)."""
    views = list(_views.values())
    _views.clear()
    for view in views:
        await view.close()
    logger.info("session_views_closed", count=len(views))


@router.post("/sessions/{session_id}/view", response_model=SessionViewState)
async def open_view(
    session_id: str, request: Request, body: OpenViewRequest | None = None
) -> SessionViewState:
    lang = body.lang if body is not None else "en"
    view = _views.get(session_id)
    if view is None:
        view = SessionViewModel(
            session_id,
            request.app.state.backend,
            lang=lang,
            counters=request.app.state.counters,
        )
        _views[session_id] = view
        logger.info("session_view_opened", session_id=session_id, lang=lang)
    else:
        view.lang = lang
    await view.open()
    return view.snapshot()


@router.get("/sessions/{session_id}/view", response_model=SessionViewState)
async def get_view(session_id: str) -> SessionViewState | JSONResponse:
    view = _views.get(session_id)
    if view is None:
        return _error(404, *_VIEW_NOT_OPEN)
    return view.snapshot()


@router.post("/sessions/{session_id}/view/retry", response_model=SessionViewState)
async def retry_view(session_id: str) -> SessionViewState | JSONResponse:
    view = _views.get(session_id)
    if view is None:
        return _error(404, *_VIEW_NOT_OPEN)
    await view.retry()
    return view.snapshot()


@router.delete("/sessions/{session_id}/view", status_code=204)
async def close_view(session_id: str) -> Response:
    view = _views.pop(session_id, None)
    if view is not None:
        await view.close()
        logger.info("session_view_closed", session_id=session_id)
    return Response(status_code=204)


@router.post("/sessions/{session_id}/regenerate", status_code=202, response_model=SessionViewState)
async def regenerate(
    session_id: str, body: RegenerateRequest | None = None
) -> SessionViewState | JSONResponse:
    view = _views.get(session_id)
    if view is None:
        return _error(404, *_VIEW_NOT_OPEN)
    outcome = await view.request_regeneration(body.count if body is not None else None)
    return _outcome_response(view, outcome)


@router.post(
    "/sessions/{session_id}/variations/{variation_id}/upscale",
    status_code=202,
    response_model=SessionViewState,
)
async def upscale(session_id: str, variation_id: str) -> SessionViewState | JSONResponse:
    view = _views.get(session_id)
    if view is None:
        return _error(404, *_VIEW_NOT_OPEN)
    outcome = await view.request_upscale(variation_id)
    return _outcome_response(view, outcome)


@router.post("/sessions/{session_id}/select", response_model=SessionViewState)
async def select_variation(
    session_id: str, body: SelectVariationRequest
) -> SessionViewState | JSONResponse:
    view = _views.get(session_id)
    if view is None:
        return _error(404, *_VIEW_NOT_OPEN)
    if not view.select(body.variation_id):
        return _error(409, "variation_not_selectable", "Only ready variations can be selected")
    return view.snapshot()


@router.delete("/sessions/{session_id}/notifications/{notification_id}", status_code=204)
async def dismiss_notification(session_id: str, notification_id: str) -> Response:
    view = _views.get(session_id)
    if view is None:
        return _error(404, *_VIEW_NOT_OPEN)
    if not view.dismiss(notification_id):
        return _error(404, "notification_not_found", "Notification not found")
    return Response(status_code=204)
