"""Per-session usage counters that survive restarts.

Keys keep the storefront's browser-storage names
(``realizeit:<session_id>:regenUsed`` / ``realizeit:<session_id>:upscaleUsed``)
so values stay comparable with what the web client recorded. Counters are
advisory: the session row's server counters overwrite them whenever known.

Two stores: ``MemoryCounterStore`` (process lifetime) and ``FileCounterStore``
(one JSON file per session under ``COUNTER_STORE_DIR``). Unreadable or
corrupt values read as 0 and values are never negative.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Literal, Protocol

import structlog

from realizeit.config import settings

logger = structlog.get_logger()

UsageKind = Literal["regenerate", "upscale"]

_KEY_SUFFIX: dict[str, str] = {"regenerate": "regenUsed", "upscale": "upscaleUsed"}


def counter_key(session_id: str, kind: UsageKind) -> str:
    return f"realizeit:{session_id}:{_KEY_SUFFIX[kind]}"


def _clean(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        try:
            value = int(str(value), 10)
        except (TypeError, ValueError):
            return 0
    return max(0, value)


class CounterStore(Protocol):
    def get(self, session_id: str, kind: UsageKind) -> int: ...

    def set(self, session_id: str, kind: UsageKind, value: int) -> None: ...

    def clear(self, session_id: str) -> None: ...


class MemoryCounterStore:
    def __init__(self) -> None:
        self._values: dict[str, int] = {}

    def get(self, session_id: str, kind: UsageKind) -> int:
        return self._values.get(counter_key(session_id, kind), 0)

    def set(self, session_id: str, kind: UsageKind, value: int) -> None:
        self._values[counter_key(session_id, kind)] = _clean(value)

    def clear(self, session_id: str) -> None:
        for kind in _KEY_SUFFIX:
            self._values.pop(counter_key(session_id, kind), None)  # type: ignore[arg-type]


class FileCounterStore:
    """JSON-file store, one file per session keyed by a hash of the id."""

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory)
        self._dir.mkdir(parents=True, exist_ok=True)

    def _path(self, session_id: str) -> Path:
        digest = hashlib.sha256(session_id.encode()).hexdigest()[:20]
        return self._dir / f"{digest}.json"

    def _read(self, session_id: str) -> dict[str, int]:
        path = self._path(session_id)
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text())
        except (json.JSONDecodeError, OSError):
            logger.warning("counter_store_read_failed", session_id=session_id)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, session_id: str, kind: UsageKind) -> int:
        return _clean(self._read(session_id).get(counter_key(session_id, kind), 0))

    def set(self, session_id: str, kind: UsageKind, value: int) -> None:
        data = self._read(session_id)
        data[counter_key(session_id, kind)] = _clean(value)
        try:
            self._path(session_id).write_text(json.dumps(data))
        except OSError:
            logger.warning("counter_store_write_failed", session_id=session_id)

    def clear(self, session_id: str) -> None:
        self._path(session_id).unlink(missing_ok=True)


def default_counter_store() -> CounterStore:
    if settings.counter_store_dir:
        return FileCounterStore(settings.counter_store_dir)
    return MemoryCounterStore()
