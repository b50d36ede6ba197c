"""
Shared httpx client and outbound POST helpers for the identity and inference
endpoints. httpx exceptions are translated into the relay error taxonomy here.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Mapping
from urllib.parse import urlparse

import httpx

from chatrelay.config.settings import settings
from chatrelay.core.errors import RequestSetupError, UpstreamUnreachableError
from chatrelay.util.logger import get_logger

logger = get_logger("upstream")

_upstream_async_client: httpx.AsyncClient | None = None
_upstream_client_lock: asyncio.Lock | None = None

_SETUP_ERRORS = (httpx.InvalidURL, httpx.UnsupportedProtocol, httpx.LocalProtocolError)


def _upstream_http_limits() -> httpx.Limits:
    return httpx.Limits(
        max_connections=max(10, int(settings.upstream_max_connections)),
        max_keepalive_connections=max(5, int(settings.upstream_max_keepalive_connections)),
    )


async def get_upstream_async_client() -> httpx.AsyncClient:
    global _upstream_async_client, _upstream_client_lock
    if _upstream_async_client is not None:
        return _upstream_async_client
    if _upstream_client_lock is None:
        _upstream_client_lock = asyncio.Lock()
    async with _upstream_client_lock:
        if _upstream_async_client is None:
            _upstream_async_client = httpx.AsyncClient(http2=False, limits=_upstream_http_limits())
    return _upstream_async_client


async def close_upstream_async_client() -> None:
    global _upstream_async_client
    if _upstream_async_client is not None:
        await _upstream_async_client.aclose()
        _upstream_async_client = None


def request_timeout(seconds: float) -> httpx.Timeout:
    bound = max(0.001, float(seconds))
    return httpx.Timeout(connect=bound, read=bound, write=bound, pool=bound)


def decode_json_or_text(body: bytes) -> Any:
    text = body.decode("utf-8", errors="replace")
    if not text:
        return ""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def safe_error_detail(payload: Any) -> Any:
    """Upstream error body, capped so a huge HTML error page does not end up in the response."""
    if isinstance(payload, str):
        return payload[:600]
    try:
        encoded = json.dumps(payload, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(payload)[:600]
    if len(encoded) <= 4000:
        return payload
    return encoded[:600]


def _host_of(url: str) -> str:
    return urlparse(url).netloc or url


async def post(
    client: httpx.AsyncClient,
    url: str,
    *,
    timeout_seconds: float,
    headers: Mapping[str, str],
    content: bytes | None = None,
    data: Mapping[str, str] | None = None,
) -> tuple[int, Any]:
    """POST and return ``(status, decoded body)``; non-2xx statuses are returned, not raised."""
    try:
        response = await client.post(
            url,
            content=content,
            data=data,
            headers=dict(headers),
            timeout=request_timeout(timeout_seconds),
        )
    except httpx.TimeoutException as exc:
        logger.warning("upstream timeout host=%s timeout_s=%s error=%s", _host_of(url), timeout_seconds, exc)
        raise UpstreamUnreachableError(
            f"Connection timeout - no response from {_host_of(url)} within {timeout_seconds:g} seconds",
        ) from exc
    except _SETUP_ERRORS as exc:
        logger.error("upstream request setup failed host=%s error=%s", _host_of(url), exc)
        raise RequestSetupError("Failed to set up request to AI service", details=str(exc)) from exc
    except httpx.HTTPError as exc:
        detail = (str(exc) or "").strip() or "connection_failed"
        logger.warning("upstream unreachable host=%s error=%s", _host_of(url), detail)
        raise UpstreamUnreachableError(
            f"Unable to reach {_host_of(url)}",
            details=detail,
        ) from exc
    logger.debug("upstream post done host=%s status=%s", _host_of(url), response.status_code)
    return response.status_code, decode_json_or_text(response.content)


def encode_json(payload: dict[str, Any]) -> bytes:
    try:
        return json.dumps(payload, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise RequestSetupError("Failed to set up request to AI service", details=str(exc)) from exc
