"""User-facing strings for the variations page (English and Korean)."""

from __future__ import annotations

DEFAULT_LANG = "en"

_MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "generating": "Generation requested",
        "upscale_requested": "Upscale requested",
        "regenerate_failed": "We couldn't queue a generation job. Please try again.",
        "upscale_failed": "We couldn't queue an upscale. Please try again.",
        "limit_reached": "Limit reached",
        "session_not_found": "Design session not found.",
        "error_loading": "We couldn't load this session right now.",
        "try_again": "Try again",
        "regen_left": "{left} regenerations left",
        "upscale_left": "{left} upscales left",
    },
    "kr": {
        "generating": "생성이 요청되었습니다",
        "upscale_requested": "업스케일이 요청되었습니다",
        "regenerate_failed": "생성 작업을 대기열에 넣지 못했습니다. 다시 시도해 주세요.",
        "upscale_failed": "업스케일을 대기열에 넣지 못했습니다. 다시 시도해 주세요.",
        "limit_reached": "한도 도달",
        "session_not_found": "디자인 세션을 찾을 수 없습니다.",
        "error_loading": "현재 이 세션을 불러올 수 없습니다.",
        "try_again": "다시 시도",
        "regen_left": "{left}회 추가 생성 가능",
        "upscale_left": "{left}회 업스케일 가능",
    },
}


def message(lang: str | None, key: str, **fmt: object) -> str:
    """Look up ``key`` for ``lang``; unknown languages fall back to English."""
    table = _MESSAGES.get(lang or DEFAULT_LANG, _MESSAGES[DEFAULT_LANG])
    text = table[key]
    return text.format(**fmt) if fmt else text
