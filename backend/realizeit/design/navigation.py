"""Storefront URLs for the steps around the variations page."""

from __future__ import annotations

import urllib.parse

from realizeit.config import settings


def session_root_url(lang: str, session_id: str) -> str:
    return f"{settings.public_base_url}/{lang}/design/s/{session_id}"


def select_product_url(lang: str, session_id: str, variation_id: str | None = None) -> str:
    """URL of the "select product" step, optionally pinned to one variation."""
    url = f"{session_root_url(lang, session_id)}/select-product"
    if variation_id:
        url += f"?variationId={urllib.parse.quote(variation_id, safe='')}"
    return url
