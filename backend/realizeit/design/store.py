"""Displayed variation list: server rows plus optimistic placeholders.

Placeholders carry synthetic ``local-`` ids, so merging is a plain union by
id rather than an overwrite. There is no correlation between a placeholder
and the real row that eventually replaces it: placeholders go away on
rollback or when a realtime-triggered refetch replaces them wholesale.
"""

from __future__ import annotations

from collections.abc import Iterable

from realizeit.models.contracts import DesignVariation


def _sort_key(variation: DesignVariation) -> float:
    if variation.created_at is None:
        return float("-inf")
    return variation.created_at.timestamp()


def merge(
    server_records: Iterable[DesignVariation],
    local_placeholders: Iterable[DesignVariation],
) -> list[DesignVariation]:
    """Union keyed by id, newest first. A server row wins an id clash."""
    by_id: dict[str, DesignVariation] = {}
    for variation in [*local_placeholders, *server_records]:
        by_id[variation.id] = variation
    return sorted(by_id.values(), key=_sort_key, reverse=True)


class VariationStore:
    def __init__(self) -> None:
        self.server: list[DesignVariation] = []
        self.placeholders: list[DesignVariation] = []

    @property
    def items(self) -> list[DesignVariation]:
        return merge(self.server, self.placeholders)

    @property
    def ready(self) -> list[DesignVariation]:
        return [v for v in self.items if v.status == "ready"]

    def get(self, variation_id: str) -> DesignVariation | None:
        return next((v for v in self.items if v.id == variation_id), None)

    def replace_server(
        self, records: list[DesignVariation], *, drop_placeholders: bool = False
    ) -> None:
        self.server = list(records)
        if drop_placeholders:
            self.placeholders = []

    def add_placeholders(self, placeholders: list[DesignVariation]) -> None:
        self.placeholders = [*placeholders, *self.placeholders]

    def remove_placeholders(self, ids: Iterable[str]) -> None:
        doomed = set(ids)
        self.placeholders = [p for p in self.placeholders if p.id not in doomed]
