"""Tests for SQLAlchemy ORM models.

Validates that:
- All design tables are registered with Base.metadata
- Foreign keys use CASCADE delete
- Required indexes and check constraints exist
- The variation status constraint matches the lifecycle statuses
"""

from sqlalchemy import CheckConstraint

from realizeit.models.db import (
    VARIATION_STATUSES,
    Base,
    DesignJobRow,
    DesignSessionRow,
    DesignVariationRow,
    GenerationRequestRow,
)


def _check_names(model) -> set[str]:
    return {c.name for c in model.__table__.constraints if isinstance(c, CheckConstraint)}


class TestAllTablesRegistered:
    """Verify all expected tables exist in Base.metadata."""

    def test_table_names(self):
        """The four design tables are registered."""
        assert set(Base.metadata.tables.keys()) == {
            "design_sessions",
            "design_variations",
            "design_jobs",
            "generation_requests",
        }


class TestDesignSessionModel:
    """Session is the root entity; everything else cascades from it."""

    def test_counters_default_to_zero(self):
        assert DesignSessionRow.__table__.c.regeneration_count.server_default.arg == "0"
        assert DesignSessionRow.__table__.c.upscale_count.server_default.arg == "0"

    def test_limits_are_optional(self):
        """Unset limits fall back to client-side defaults."""
        assert DesignSessionRow.__table__.c.max_regenerations.nullable
        assert DesignSessionRow.__table__.c.max_upscales.nullable

    def test_counters_non_negative(self):
        assert {
            "ck_design_sessions_regen_nonneg",
            "ck_design_sessions_upscale_nonneg",
        } <= _check_names(DesignSessionRow)


class TestDesignVariationModel:
    def test_cascade_delete(self):
        """Foreign key to design_sessions uses ON DELETE CASCADE."""
        fk = next(iter(DesignVariationRow.__table__.c.session_id.foreign_keys))
        assert fk.ondelete == "CASCADE"

    def test_has_index(self):
        index_names = [idx.name for idx in DesignVariationRow.__table__.indexes]
        assert "idx_design_variations_session" in index_names

    def test_status_constraint_lists_every_status(self):
        (check,) = [
            c
            for c in DesignVariationRow.__table__.constraints
            if isinstance(c, CheckConstraint) and c.name == "ck_design_variations_status"
        ]
        for status in VARIATION_STATUSES:
            assert f"'{status}'" in str(check.sqltext)


class TestJobTables:
    """Both job tables reference sessions and, for upscales, a variation."""

    def test_design_jobs_type_column(self):
        assert "type" in DesignJobRow.__table__.c
        assert "ck_design_jobs_type" in _check_names(DesignJobRow)

    def test_generation_requests_action_column(self):
        assert "action" in GenerationRequestRow.__table__.c
        assert "type" not in GenerationRequestRow.__table__.c

    def test_cascade_deletes(self):
        for model in (DesignJobRow, GenerationRequestRow):
            for column in ("session_id", "variation_id"):
                fk = next(iter(model.__table__.c[column].foreign_keys))
                assert fk.ondelete == "CASCADE", f"{model.__tablename__}.{column}"

    def test_variation_optional(self):
        assert DesignJobRow.__table__.c.variation_id.nullable
        assert GenerationRequestRow.__table__.c.variation_id.nullable
