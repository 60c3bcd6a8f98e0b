"""Design-session tables: sessions, variations and both job tables.

Revision ID: 001
Revises: (none)
Create Date: 2026-10-19
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import UUID

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def _session_fk() -> sa.Column:
    return sa.Column(
        "session_id",
        UUID(as_uuid=True),
        sa.ForeignKey("design_sessions.id", ondelete="CASCADE"),
        nullable=False,
    )


def _variation_fk() -> sa.Column:
    return sa.Column(
        "variation_id",
        UUID(as_uuid=True),
        sa.ForeignKey("design_variations.id", ondelete="CASCADE"),
        nullable=True,
    )


def upgrade() -> None:
    # --- design_sessions ---
    op.create_table(
        "design_sessions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("prompt", sa.Text(), nullable=True),
        sa.Column("lang", sa.String(8), nullable=True),
        sa.Column("user_id", UUID(as_uuid=True), nullable=True),
        sa.Column("regeneration_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("upscale_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("max_regenerations", sa.Integer(), nullable=True),
        sa.Column("max_upscales", sa.Integer(), nullable=True),
        sa.Column("state", sa.String(32), nullable=True),
        _created_at(),
        sa.CheckConstraint("regeneration_count >= 0", name="ck_design_sessions_regen_nonneg"),
        sa.CheckConstraint("upscale_count >= 0", name="ck_design_sessions_upscale_nonneg"),
    )
    op.create_index("idx_design_sessions_user", "design_sessions", ["user_id"])

    # --- design_variations ---
    op.create_table(
        "design_variations",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _session_fk(),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("thumb_url", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("quality", sa.String(20), nullable=True),
        sa.Column("seed", sa.String(64), nullable=True),
        _created_at(),
        sa.CheckConstraint(
            "status IN ('queued', 'pending', 'upscaling', 'ready', 'failed')",
            name="ck_design_variations_status",
        ),
        sa.CheckConstraint(
            "quality IS NULL OR quality IN ('base', 'upscaled')",
            name="ck_design_variations_quality",
        ),
    )
    op.create_index(
        "idx_design_variations_session", "design_variations", ["session_id", "created_at"]
    )

    # --- design_jobs ---
    op.create_table(
        "design_jobs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _session_fk(),
        _variation_fk(),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("count", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        _created_at(),
        sa.CheckConstraint("type IN ('regenerate', 'upscale')", name="ck_design_jobs_type"),
    )
    op.create_index("idx_design_jobs_status", "design_jobs", ["status", "created_at"])

    # --- generation_requests ---
    op.create_table(
        "generation_requests",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _session_fk(),
        _variation_fk(),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("count", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(20), server_default="queued", nullable=False),
        _created_at(),
    )
    op.create_index("idx_generation_requests_session", "generation_requests", ["session_id"])


def downgrade() -> None:
    op.drop_table("generation_requests")
    op.drop_table("design_jobs")
    op.drop_table("design_variations")
    op.drop_table("design_sessions")
