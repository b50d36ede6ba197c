"""
Debug excerpts of upstream payloads and responses. Only emitted when the
chatrelay logger is at DEBUG; this module truncates and formats.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from chatrelay.config.settings import settings
from chatrelay.util.logger import logger
from chatrelay.util.masking import scrub_secrets

DEFAULT_EXCERPT_MAX_LEN = 500


def excerpt_for_debug(text: str, max_len: int = DEFAULT_EXCERPT_MAX_LEN) -> str:
    body = str(text or "").strip()
    dropped = len(body) - max_len
    if dropped <= 0:
        return body
    return f"{body[:max_len]} ...[truncated {dropped} of {len(body)} chars]"


def _render(body: Any) -> str:
    if isinstance(body, str):
        return body
    try:
        return json.dumps(body, ensure_ascii=False, indent=2)
    except (TypeError, ValueError):
        return str(body)


def debug_log_body(label: str, body: Any, *, request_id: str = "", max_len: int = DEFAULT_EXCERPT_MAX_LEN) -> None:
    """
    Log a payload/response at DEBUG.
    label: e.g. "inference_payload", "inference_response"
    body: dict or text; secrets embedded in it are masked
    """
    if not logger.isEnabledFor(logging.DEBUG):
        return
    rendered = scrub_secrets(_render(body))
    if not settings.log_full_payloads:
        rendered = excerpt_for_debug(rendered, max_len=max_len)
    logger.debug("%s request_id=%s body_size=%d\n%s", label, request_id or "-", len(rendered), rendered)
