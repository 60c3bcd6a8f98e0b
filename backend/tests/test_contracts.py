"""Tests for contract models: row parsing and variation lifecycle rules."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from realizeit.models.contracts import (
    DesignSession,
    DesignVariation,
    GenerationJob,
    is_valid_transition,
)


class TestDesignVariation:
    """image_url is present exactly when the variation is ready."""

    def test_ready_keeps_image(self):
        v = DesignVariation(id="v", session_id="s", status="ready", image_url="https://x/v.png")
        assert v.image_url == "https://x/v.png"

    @pytest.mark.parametrize("status", ["queued", "pending", "upscaling", "failed"])
    def test_non_ready_clears_image(self, status):
        v = DesignVariation(id="v", session_id="s", status=status, image_url="https://x/v.png")
        assert v.image_url is None

    def test_ready_without_image_reads_pending(self):
        v = DesignVariation(id="v", session_id="s", status="ready", image_url=None)
        assert v.status == "pending"

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            DesignVariation(id="v", session_id="s", status="done")

    def test_numeric_seed_becomes_text(self):
        v = DesignVariation(id="v", session_id="s", status="queued", seed=1234)
        assert v.seed == "1234"

    def test_extra_columns_ignored(self):
        v = DesignVariation.model_validate(
            {"id": "v", "session_id": "s", "status": "queued", "prompt_hash": "abc"}
        )
        assert not hasattr(v, "prompt_hash")

    def test_placeholder_detection(self):
        assert DesignVariation(id="local-1-0", session_id="s", status="queued").is_placeholder
        assert not DesignVariation(id="v", session_id="s", status="queued").is_placeholder


class TestTransitions:
    @pytest.mark.parametrize(
        ("old", "new"),
        [
            ("queued", "pending"),
            ("pending", "ready"),
            ("pending", "failed"),
            ("ready", "upscaling"),
            ("upscaling", "ready"),
            ("upscaling", "failed"),
            ("ready", "ready"),
        ],
    )
    def test_allowed(self, old, new):
        assert is_valid_transition(old, new)

    @pytest.mark.parametrize(
        ("old", "new"),
        [
            ("ready", "pending"),
            ("failed", "ready"),
            ("pending", "queued"),
            ("pending", "upscaling"),
            ("upscaling", "queued"),
        ],
    )
    def test_rejected(self, old, new):
        assert not is_valid_transition(old, new)


class TestGenerationJob:
    def test_regenerate_needs_count(self):
        with pytest.raises(ValidationError):
            GenerationJob(session_id="s", type="regenerate")

    def test_upscale_needs_variation(self):
        with pytest.raises(ValidationError):
            GenerationJob(session_id="s", type="upscale")

    def test_count_must_be_positive(self):
        with pytest.raises(ValidationError):
            GenerationJob(session_id="s", type="regenerate", count=0)


class TestDesignSession:
    def test_all_but_id_optional(self):
        s = DesignSession(id="s")
        assert s.max_regenerations is None
        assert s.regeneration_count is None
