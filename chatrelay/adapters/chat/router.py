"""Chat relay routes (mounted under /api)."""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from chatrelay.adapters.watsonx.profiles import get_profile
from chatrelay.core.errors import (
    AuthError,
    ConfigurationError,
    RelayError,
    UpstreamHTTPError,
    ValidationError,
)
from chatrelay.core.relay import RELAY_METHOD, RelayService
from chatrelay.util.logger import get_logger


logger = get_logger("chat")

router = APIRouter()
alternate_router = APIRouter()

# every method is routed so wrong-method requests get the relay's JSON 405
_ANY_METHOD = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

ALTERNATE_ROUTES = {
    "/chat-v2": "llama-3-8b",
    "/chat-v3": "granite-3-2b",
}


def get_relay_service(request: Request) -> RelayService:
    return request.app.state.relay_service


def get_alternate_service(request: Request, route: str) -> RelayService:
    return request.app.state.alternate_services[route]


async def _read_json(request: Request) -> Any:
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, RecursionError) as exc:
        raise ValidationError("Request body must be valid JSON.") from exc


def _log_failure(exc: RelayError, request_id: str) -> None:
    if isinstance(exc, ValidationError):
        logger.info("chat rejected request_id=%s status=%s reason=%s", request_id, exc.status_code, exc.message)
    elif isinstance(exc, ConfigurationError):
        logger.error("chat configuration error request_id=%s error=%s", request_id, exc.message)
    elif isinstance(exc, (AuthError, UpstreamHTTPError)):
        logger.error(
            "chat upstream failure request_id=%s kind=%s status=%s",
            request_id,
            exc.kind,
            getattr(exc, "upstream_status", None),
        )
    else:
        logger.error("chat upstream failure request_id=%s kind=%s error=%s", request_id, exc.kind, exc.message)


def _error_response(exc: RelayError) -> JSONResponse:
    headers = {"Allow": RELAY_METHOD} if exc.status_code == 405 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=headers)


async def run_relay(service: RelayService, request: Request, route: str) -> JSONResponse:
    ctx = service.new_context(route)
    try:
        payload = await _read_json(request) if request.method.upper() == RELAY_METHOD else None
        envelope = await service.relay(request.method, payload, ctx)
    except RelayError as exc:
        ctx.fail(exc.kind, status=exc.status_code)
        _log_failure(exc, ctx.request_id)
        return _error_response(exc)
    return JSONResponse(status_code=200, content=envelope.model_dump())


@router.api_route("/chat", methods=_ANY_METHOD)
async def chat(request: Request) -> JSONResponse:
    return await run_relay(get_relay_service(request), request, "/api/chat")


@alternate_router.api_route("/chat-v2", methods=_ANY_METHOD)
async def chat_v2(request: Request) -> JSONResponse:
    return await run_relay(get_alternate_service(request, "/chat-v2"), request, "/api/chat-v2")


@alternate_router.api_route("/chat-v3", methods=_ANY_METHOD)
async def chat_v3(request: Request) -> JSONResponse:
    return await run_relay(get_alternate_service(request, "/chat-v3"), request, "/api/chat-v3")


@router.get("/test-connection")
async def test_connection(request: Request) -> JSONResponse:
    """Only performs the token exchange; no inference call is made."""
    if not request.app.state.enable_test_connection:
        return JSONResponse(status_code=404, content={"error": "not_found"})
    service = get_relay_service(request)
    logger.info("testing identity connection")
    try:
        token = await service.acquirer.acquire(service.config.api_key)
    except RelayError as exc:
        body: dict[str, Any] = {"success": False, "error": exc.message, "kind": exc.kind}
        if exc.details not in (None, "", {}):
            body["details"] = exc.details
        return JSONResponse(status_code=500, content=body)
    return JSONResponse(
        content={
            "success": True,
            "message": "Successfully obtained IAM token",
            "token_exists": bool(token.value),
            "endpoints": {
                "iam": service.config.iam_url,
                "inference": service.config.profile.endpoint_url,
            },
            "recommended_models": [
                f"{get_profile(name).model_id} ({get_profile(name).description})"
                for name in ("granite-3-8b", "granite-3-2b", "llama-3-8b")
            ],
        }
    )
