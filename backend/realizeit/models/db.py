"""SQLAlchemy ORM models for the design-session tables.

These mirror the Supabase tables this service reads and writes. The service
itself talks to them through PostgREST; the models exist for migrations and
for workers that connect to Postgres directly.

Two job tables exist on purpose: older deployments only have
``generation_requests`` (``action`` column), newer ones ``design_jobs``
(``type`` column).
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

VARIATION_STATUSES = ("queued", "pending", "upscaling", "ready", "failed")


class Base(DeclarativeBase):
    pass


class DesignSessionRow(Base):
    __tablename__ = "design_sessions"
    __table_args__ = (
        CheckConstraint("regeneration_count >= 0", name="ck_design_sessions_regen_nonneg"),
        CheckConstraint("upscale_count >= 0", name="ck_design_sessions_upscale_nonneg"),
        Index("idx_design_sessions_user", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    lang: Mapped[str | None] = mapped_column(String(8), nullable=True)
    user_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    regeneration_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    upscale_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    max_regenerations: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_upscales: Mapped[int | None] = mapped_column(Integer, nullable=True)
    state: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    variations: Mapped[list["DesignVariationRow"]] = relationship(
        back_populates="session", cascade="all, delete"
    )


class DesignVariationRow(Base):
    __tablename__ = "design_variations"
    __table_args__ = (
        Index("idx_design_variations_session", "session_id", "created_at"),
        CheckConstraint(
            "status IN ('queued', 'pending', 'upscaling', 'ready', 'failed')",
            name="ck_design_variations_status",
        ),
        CheckConstraint(
            "quality IS NULL OR quality IN ('base', 'upscaled')",
            name="ck_design_variations_quality",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("design_sessions.id", ondelete="CASCADE"), nullable=False
    )
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    thumb_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="queued")
    quality: Mapped[str | None] = mapped_column(String(20), nullable=True)
    seed: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    session: Mapped["DesignSessionRow"] = relationship(back_populates="variations")


class DesignJobRow(Base):
    __tablename__ = "design_jobs"
    __table_args__ = (
        Index("idx_design_jobs_status", "status", "created_at"),
        CheckConstraint("type IN ('regenerate', 'upscale')", name="ck_design_jobs_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("design_sessions.id", ondelete="CASCADE"), nullable=False
    )
    variation_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("design_variations.id", ondelete="CASCADE"), nullable=True
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="queued")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class GenerationRequestRow(Base):
    __tablename__ = "generation_requests"
    __table_args__ = (Index("idx_generation_requests_session", "session_id"),)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("design_sessions.id", ondelete="CASCADE"), nullable=False
    )
    variation_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("design_variations.id", ondelete="CASCADE"), nullable=True
    )
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="queued", server_default="queued"
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
