"""Chat relay pipeline: validate -> acquire token -> invoke -> normalize.

``RelayConfig`` is built once at startup and handed to ``RelayService``;
nothing on the request path reads the environment.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from chatrelay.adapters.watsonx.iam import ClientFactory, TokenAcquirer, TokenCache
from chatrelay.adapters.watsonx.invoker import InferenceInvoker
from chatrelay.adapters.watsonx.normalizer import FALLBACK_TEXT, normalize
from chatrelay.adapters.watsonx.profiles import ProviderProfile, resolve_profile
from chatrelay.config.settings import Settings
from chatrelay.core import context as stages
from chatrelay.core.context import RequestContext
from chatrelay.core.errors import ConfigurationError, ValidationError
from chatrelay.core.models import ChatRequest, ChatResponse
from chatrelay.util.logger import logger

RELAY_METHOD = "POST"
METHOD_NOT_ALLOWED_ERROR = "Method Not Allowed"


@dataclass(slots=True, frozen=True)
class RelayConfig:
    api_key: str
    project_id: str
    profile: ProviderProfile
    iam_url: str = "https://iam.cloud.ibm.com/identity/token"
    iam_grant_type: str = "urn:ibm:params:oauth:grant-type:apikey"
    iam_timeout_seconds: float = 15.0
    token_cache_enabled: bool = False
    token_refresh_margin_seconds: float = 60.0
    deployment_url: str = ""
    timeout_override_seconds: float = 0.0

    @classmethod
    def from_settings(cls, source: Settings, *, profile_name: str | None = None) -> "RelayConfig":
        name = profile_name or source.profile
        endpoint = source.inference_url
        if not endpoint and name == "deployment-chat":
            endpoint = source.deployment_url
        return cls(
            api_key=source.ibm_api_key.strip(),
            project_id=source.project_id.strip(),
            profile=resolve_profile(
                name,
                model_id=source.model_id,
                endpoint_url=endpoint,
                timeout_seconds=source.upstream_timeout_seconds,
            ),
            iam_url=source.iam_url,
            iam_grant_type=source.iam_grant_type,
            iam_timeout_seconds=source.iam_timeout_seconds,
            token_cache_enabled=source.token_cache_enabled,
            token_refresh_margin_seconds=float(source.token_refresh_margin_seconds),
            deployment_url=source.deployment_url,
            timeout_override_seconds=source.upstream_timeout_seconds,
        )

    def with_profile(self, name: str) -> "RelayConfig":
        """Same credentials against another registered profile (model/url overrides do not carry over)."""
        endpoint = self.deployment_url if name == "deployment-chat" else ""
        profile = resolve_profile(name, endpoint_url=endpoint, timeout_seconds=self.timeout_override_seconds)
        return replace(self, profile=profile)

    def missing_settings(self) -> list[str]:
        missing = []
        if not self.api_key:
            missing.append("IBM_API_KEY")
        if not self.project_id:
            missing.append("PROJECT_ID")
        return missing

    def ensure_complete(self) -> None:
        if not self.api_key:
            raise ConfigurationError("Server configuration error: API key missing")
        if not self.project_id:
            raise ConfigurationError(
                "Server configuration error: Project ID missing. Please add PROJECT_ID to your .env file"
            )


def ensure_method(method: str) -> None:
    if (method or "").upper() != RELAY_METHOD:
        raise ValidationError(METHOD_NOT_ALLOWED_ERROR, status_code=405)


class RelayService:
    def __init__(
        self,
        config: RelayConfig,
        *,
        acquirer: TokenAcquirer | None = None,
        invoker: InferenceInvoker | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.config = config
        self.acquirer = acquirer or TokenAcquirer(
            iam_url=config.iam_url,
            grant_type=config.iam_grant_type,
            timeout_seconds=config.iam_timeout_seconds,
            cache=TokenCache(refresh_margin_seconds=config.token_refresh_margin_seconds)
            if config.token_cache_enabled
            else None,
            client_factory=client_factory,
        )
        self.invoker = invoker or InferenceInvoker(client_factory=client_factory)

    def for_profile(self, name: str) -> "RelayService":
        """Sibling service bound to another profile; shares the acquirer (and its cache)."""
        return RelayService(self.config.with_profile(name), acquirer=self.acquirer, invoker=self.invoker)

    def new_context(self, route: str) -> RequestContext:
        return RequestContext(route=route, profile=self.config.profile.name)

    async def relay(self, method: str, payload: Any, ctx: RequestContext) -> ChatResponse:
        """Run one request through the pipeline. Raises RelayError subclasses on failure."""
        ctx.advance(stages.VALIDATING, method=method)
        ensure_method(method)
        chat_request = ChatRequest.from_payload(payload)
        self.config.ensure_complete()

        ctx.advance(stages.ACQUIRING_TOKEN)
        token = await self.acquirer.acquire(self.config.api_key)

        ctx.advance(stages.INVOKING, model=self.config.profile.model_id or "-")
        raw = await self.invoker.invoke(
            self.config.profile,
            message=chat_request.message,
            token=token,
            project_id=self.config.project_id,
            request_id=ctx.request_id,
        )

        ctx.advance(stages.NORMALIZING)
        envelope = normalize(raw)
        content = envelope.choices[0].message.content
        if content == FALLBACK_TEXT:
            logger.warning("no usable text in upstream response request_id=%s", ctx.request_id)

        ctx.advance(stages.RESPONDING, content_chars=len(content))
        return envelope
