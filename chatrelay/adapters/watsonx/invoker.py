"""One inference call against the endpoint of a provider profile."""

from __future__ import annotations

from typing import Any

from chatrelay.adapters.watsonx.iam import ClientFactory
from chatrelay.adapters.watsonx.profiles import ProviderProfile
from chatrelay.adapters.watsonx.upstream import (
    encode_json,
    get_upstream_async_client,
    post,
    safe_error_detail,
)
from chatrelay.core.errors import RequestSetupError, UpstreamHTTPError
from chatrelay.core.models import AccessToken
from chatrelay.util.debug_excerpt import debug_log_body
from chatrelay.util.logger import get_logger


logger = get_logger("invoker")


class InferenceInvoker:
    def __init__(self, *, client_factory: ClientFactory | None = None) -> None:
        self._client_factory = client_factory or get_upstream_async_client

    async def invoke(
        self,
        profile: ProviderProfile,
        *,
        message: str,
        token: AccessToken,
        project_id: str,
        request_id: str = "",
    ) -> Any:
        """Return the decoded upstream body of a 2xx answer.

        Raises UpstreamHTTPError, UpstreamUnreachableError or RequestSetupError.
        """
        try:
            payload = profile.payload_for(message, project_id).to_upstream()
        except (TypeError, ValueError) as exc:
            raise RequestSetupError("Failed to set up request to AI service", details=str(exc)) from exc
        body = encode_json(payload)
        debug_log_body("inference_payload", payload, request_id=request_id)

        headers = {
            "Authorization": f"Bearer {token.value}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        logger.info(
            "sending inference request request_id=%s profile=%s model=%s payload_bytes=%d",
            request_id,
            profile.name,
            profile.model_id or "-",
            len(body),
        )
        client = await self._client_factory()
        status, upstream_body = await post(
            client,
            profile.endpoint_url,
            timeout_seconds=profile.timeout_seconds,
            headers=headers,
            content=body,
        )
        debug_log_body("inference_response", upstream_body, request_id=request_id)

        if not 200 <= status < 300:
            detail = safe_error_detail(upstream_body)
            logger.warning("inference http error request_id=%s status=%s", request_id, status)
            raise UpstreamHTTPError("Failed to get response from AI", upstream_status=status, details=detail)
        return upstream_body
