"""Publish session and variation changes to Supabase Realtime.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

The variations page subscribes to UPDATEs on design_sessions and to every
change on design_variations, filtered by session. REPLICA IDENTITY FULL makes
the filter column available on DELETE payloads as well.
"""

from alembic import op

revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None

REALTIME_TABLES = ("design_sessions", "design_variations")


def upgrade() -> None:
    for table in REALTIME_TABLES:
        op.execute(f"ALTER TABLE {table} REPLICA IDENTITY FULL")
        op.execute(f"ALTER PUBLICATION supabase_realtime ADD TABLE {table}")


def downgrade() -> None:
    for table in REALTIME_TABLES:
        op.execute(f"ALTER PUBLICATION supabase_realtime DROP TABLE {table}")
        op.execute(f"ALTER TABLE {table} REPLICA IDENTITY DEFAULT")
