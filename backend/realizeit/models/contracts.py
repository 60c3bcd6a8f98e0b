"""RealizeIt design-session contract models.

Rows coming from the backend are loosely typed JSON; these models pin the
field names the storefront, the generation worker and this service agree on.
Unknown columns are ignored so additive schema changes never break parsing.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

VariationStatus = Literal["queued", "pending", "upscaling", "ready", "failed"]
VariationQuality = Literal["base", "upscaled"]
JobType = Literal["regenerate", "upscale"]
ViewStatus = Literal["loading", "ready", "error"]

# Allowed status moves. Generation: queued -> pending -> ready|failed.
# Upscale: ready -> upscaling -> ready|failed.
_TRANSITIONS: dict[str, frozenset[str]] = {
    "queued": frozenset({"pending", "ready", "failed"}),
    "pending": frozenset({"ready", "failed"}),
    "ready": frozenset({"upscaling"}),
    "upscaling": frozenset({"ready", "failed"}),
    "failed": frozenset(),
}


def is_valid_transition(old: str, new: str) -> bool:
    """Return True if a variation may move from ``old`` to ``new``."""
    if old == new:
        return True
    return new in _TRANSITIONS.get(old, frozenset())


# === Backend rows ===


class DesignSession(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    prompt: str | None = None
    lang: str | None = None
    user_id: str | None = None
    regeneration_count: int | None = None
    upscale_count: int | None = None
    max_regenerations: int | None = None
    max_upscales: int | None = None
    state: str | None = None
    created_at: datetime | None = None


class DesignVariation(BaseModel):
    """One generated image candidate.

    The image URL is only meaningful once the variation is ready: it is
    cleared for any other status, and a ``ready`` row that has not received
    its URL yet is read as ``pending``.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    session_id: str
    image_url: str | None = None
    thumb_url: str | None = None
    status: VariationStatus
    quality: VariationQuality | None = None
    seed: str | None = None
    created_at: datetime | None = None

    @field_validator("seed", mode="before")
    @classmethod
    def _seed_as_text(cls, value: object) -> object:
        return str(value) if value is not None else None

    @model_validator(mode="after")
    def _image_only_when_ready(self) -> DesignVariation:
        if self.status == "ready" and not self.image_url:
            self.status = "pending"
        if self.status != "ready":
            self.image_url = None
        return self

    @property
    def is_placeholder(self) -> bool:
        return self.id.startswith("local-")


class GenerationJob(BaseModel):
    session_id: str
    type: JobType
    variation_id: str | None = None
    count: int | None = Field(default=None, ge=1)
    status: str = "queued"

    @model_validator(mode="after")
    def _shape_matches_type(self) -> GenerationJob:
        if self.type == "regenerate" and self.count is None:
            raise ValueError("regenerate jobs need a count")
        if self.type == "upscale" and not self.variation_id:
            raise ValueError("upscale jobs need a variation_id")
        return self


# === View state ===


class Notification(BaseModel):
    id: str
    title: str
    description: str | None = None
    variant: Literal["default", "destructive"] = "default"


class ViewError(BaseModel):
    code: Literal["session_not_found", "load_failed"]
    title: str
    message: str
    retry_label: str
    session_url: str


class QuotaState(BaseModel):
    regenerations_used: int
    max_regenerations: int
    upscales_used: int
    max_upscales: int
    regenerations_left: int
    upscales_left: int
    regenerate_label: str
    upscale_label: str


class VariationActions(BaseModel):
    variation_id: str
    can_upscale: bool
    can_select: bool
    select_product_url: str


class SessionViewState(BaseModel):
    session_id: str
    lang: str
    status: ViewStatus
    session: DesignSession | None = None
    variations: list[DesignVariation] = []
    variation_actions: list[VariationActions] = []
    quota: QuotaState | None = None
    can_regenerate: bool = False
    selected_variation_id: str | None = None
    proceed_url: str | None = None
    session_url: str
    notifications: list[Notification] = []
    error: ViewError | None = None


# === API Request/Response Models ===


class OpenViewRequest(BaseModel):
    lang: str = "en"


class RegenerateRequest(BaseModel):
    count: int | None = Field(default=None, ge=1)


class SelectVariationRequest(BaseModel):
    variation_id: str


class ErrorResponse(BaseModel):
    error: str
    message: str
    retryable: bool
    detail: str | None = None
