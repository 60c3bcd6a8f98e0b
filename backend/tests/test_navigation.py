"""Tests for storefront URLs and localized messages."""

from unittest.mock import patch

import pytest

from realizeit.design import navigation
from realizeit.design.messages import message
from realizeit.design.navigation import select_product_url, session_root_url


class TestNavigation:
    def test_session_root(self):
        with patch.object(navigation.settings, "public_base_url", "https://realizeit.example"):
            assert session_root_url("kr", "S1") == "https://realizeit.example/kr/design/s/S1"

    def test_select_product_without_variation(self):
        with patch.object(navigation.settings, "public_base_url", ""):
            assert select_product_url("en", "S1") == "/en/design/s/S1/select-product"

    def test_variation_id_is_encoded(self):
        with patch.object(navigation.settings, "public_base_url", ""):
            url = select_product_url("en", "S1", "a b/c")
        assert url == "/en/design/s/S1/select-product?variationId=a%20b%2Fc"


class TestMessages:
    @pytest.mark.parametrize("lang", ["en", "kr"])
    def test_every_key_in_both_languages(self, lang):
        for key in ("generating", "upscale_requested", "session_not_found", "try_again"):
            assert message(lang, key)

    def test_unknown_language_falls_back_to_english(self):
        assert message("fr", "try_again") == "Try again"
        assert message(None, "try_again") == "Try again"

    def test_formatting(self):
        assert message("en", "regen_left", left=2) == "2 regenerations left"
        assert message("kr", "upscale_left", left=1) == "1회 업스케일 가능"
