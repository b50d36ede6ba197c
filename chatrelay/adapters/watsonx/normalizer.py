"""Upstream response shapes -> canonical chat envelope."""

from __future__ import annotations

import re
from typing import Any, Callable, Iterable

from chatrelay.core.models import ChatResponse

FALLBACK_TEXT = "I couldn't generate a response. Please try again."

# leading echo of the prompt: "Human: ... Assistant:"
_PROMPT_ECHO_RE = re.compile(r"^\s*Human:.*?Assistant:\s*", re.DOTALL)

Extractor = Callable[[Any], str | None]


def _first_item(value: Any) -> Any:
    if isinstance(value, list) and value:
        return value[0]
    return None


def extract_chat_choice(body: Any) -> str | None:
    if not isinstance(body, dict):
        return None
    first = _first_item(body.get("choices"))
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    return content if isinstance(content, str) else None


def extract_generated_text(body: Any) -> str | None:
    if not isinstance(body, dict):
        return None
    first = _first_item(body.get("results"))
    if not isinstance(first, dict):
        return None
    text = first.get("generated_text")
    if not isinstance(text, str):
        return None
    return _PROMPT_ECHO_RE.sub("", text, count=1)


def extract_bare_message(body: Any) -> str | None:
    if not isinstance(body, dict):
        return None
    message = body.get("message")
    return message if isinstance(message, str) else None


EXTRACTORS: tuple[Extractor, ...] = (
    extract_chat_choice,
    extract_generated_text,
    extract_bare_message,
)


def extract_text(body: Any, extractors: Iterable[Extractor] = EXTRACTORS) -> str | None:
    """First extractor that recognises the shape wins, even if its text is empty."""
    for extractor in extractors:
        text = extractor(body)
        if text is not None:
            return text
    return None


def normalize(body: Any, extractors: Iterable[Extractor] = EXTRACTORS) -> ChatResponse:
    text = (extract_text(body, extractors) or "").strip()
    return ChatResponse.from_text(text or FALLBACK_TEXT)
