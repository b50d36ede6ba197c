"""IBM Cloud IAM token exchange (``apikey`` grant)."""

from __future__ import annotations

import hashlib
import time
from threading import Lock
from typing import Any, Awaitable, Callable

import httpx

from chatrelay.adapters.watsonx.upstream import get_upstream_async_client, post, safe_error_detail
from chatrelay.core.errors import AuthError, ConfigurationError, RelayError
from chatrelay.core.models import AccessToken
from chatrelay.util.logger import get_logger

logger = get_logger("iam")

ClientFactory = Callable[[], Awaitable[httpx.AsyncClient]]


def _expiry_from(body: dict[str, Any], obtained_at: float) -> float | None:
    expiration = body.get("expiration")
    if isinstance(expiration, (int, float)) and expiration > 0:
        return float(expiration)
    expires_in = body.get("expires_in")
    if isinstance(expires_in, (int, float)) and expires_in > 0:
        return obtained_at + float(expires_in)
    return None


class TokenCache:
    """Keeps one token per API key until shortly before it expires.

    Only used when token caching is switched on. A token without a known
    expiry, or one already inside the refresh margin, is never cached.
    """

    def __init__(self, *, refresh_margin_seconds: float = 60.0) -> None:
        self.refresh_margin_seconds = max(0.0, float(refresh_margin_seconds))
        self._tokens: dict[str, AccessToken] = {}
        self._lock = Lock()

    @staticmethod
    def _key(api_key: str) -> str:
        return hashlib.sha256(api_key.encode("utf-8")).hexdigest()

    def get(self, api_key: str, now: float | None = None) -> AccessToken | None:
        current = time.time() if now is None else now
        key = self._key(api_key)
        with self._lock:
            token = self._tokens.get(key)
            if token is None:
                return None
            if not token.is_fresh(current, self.refresh_margin_seconds):
                self._tokens.pop(key, None)
                return None
            return token

    def put(self, api_key: str, token: AccessToken, now: float | None = None) -> None:
        current = time.time() if now is None else now
        if not token.is_fresh(current, self.refresh_margin_seconds):
            return
        with self._lock:
            self._tokens[self._key(api_key)] = token

    def evict(self, api_key: str) -> None:
        with self._lock:
            self._tokens.pop(self._key(api_key), None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)


class TokenAcquirer:
    def __init__(
        self,
        *,
        iam_url: str,
        grant_type: str,
        timeout_seconds: float = 15.0,
        cache: TokenCache | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.iam_url = iam_url
        self.grant_type = grant_type
        self.timeout_seconds = timeout_seconds
        self.cache = cache
        self._client_factory = client_factory or get_upstream_async_client

    async def acquire(self, api_key: str) -> AccessToken:
        if not (api_key or "").strip():
            raise ConfigurationError("Server configuration error: API key missing")

        if self.cache is not None:
            cached = self.cache.get(api_key)
            if cached is not None:
                logger.debug("iam token cache hit")
                return cached

        try:
            token = await self._exchange(api_key)
        except RelayError:
            if self.cache is not None:
                self.cache.evict(api_key)
            raise

        if self.cache is not None:
            self.cache.put(api_key, token)
        return token

    async def _exchange(self, api_key: str) -> AccessToken:
        logger.info("requesting iam token url=%s", self.iam_url)
        client = await self._client_factory()
        obtained_at = time.time()
        try:
            status, body = await post(
                client,
                self.iam_url,
                timeout_seconds=self.timeout_seconds,
                headers={"Content-Type": "application/x-www-form-urlencoded", "Accept": "application/json"},
                data={"grant_type": self.grant_type, "apikey": api_key},
            )
        except RelayError as exc:
            # unreachable / setup failures of the identity call are auth failures to the caller
            logger.error("iam token request failed kind=%s error=%s", exc.kind, exc.message)
            raise AuthError("Failed to obtain access token", details=exc.details or exc.message) from exc

        if not 200 <= status < 300:
            logger.error("iam token rejected status=%s", status)
            raise AuthError(
                "Failed to obtain access token",
                upstream_status=status,
                details=safe_error_detail(body),
            )

        value = body.get("access_token") if isinstance(body, dict) else None
        if not isinstance(value, str) or not value:
            logger.error("iam token response missing access_token status=%s", status)
            raise AuthError(
                "Identity service returned no access token",
                upstream_status=status,
                details=safe_error_detail(body),
            )

        logger.info("iam token obtained")
        return AccessToken(value=value, obtained_at=obtained_at, expires_at=_expiry_from(body, obtained_at))
