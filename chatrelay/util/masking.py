"""Masking helpers for credentials that show up in log lines and diagnostics."""

from __future__ import annotations

import re


def _visible_edges(length: int) -> tuple[int, int]:
    if length >= 10:
        return 3, 2
    if length >= 6:
        return 2, 2
    if length >= 3:
        return 1, 1
    return 0, 0


def mask_for_log(value: str | None) -> str:
    """Star out the middle of an API key or token, keeping a few edge chars.

    Whitespace runs are collapsed first; values under 3 chars are fully hidden.
    """
    text = " ".join((value or "").split())
    head, tail = _visible_edges(len(text))
    return f"{text[:head]}{'*' * (len(text) - head - tail)}{text[len(text) - tail:]}"


_BEARER_RE = re.compile(r"(?i)(bearer\s+)([A-Za-z0-9._\-]+)")
_APIKEY_FORM_RE = re.compile(r"(?i)(apikey=)([^&\s]+)")


def scrub_secrets(text: str) -> str:
    """Mask bearer tokens and ``apikey=`` form values embedded in free text."""
    if not text:
        return ""
    scrubbed = _BEARER_RE.sub(lambda m: f"{m.group(1)}{mask_for_log(m.group(2))}", text)
    return _APIKEY_FORM_RE.sub(lambda m: f"{m.group(1)}{mask_for_log(m.group(2))}", scrubbed)
