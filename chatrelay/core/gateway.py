"""FastAPI app entry."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from chatrelay.adapters.chat.router import ALTERNATE_ROUTES, alternate_router, router as chat_router
from chatrelay.adapters.watsonx.iam import ClientFactory
from chatrelay.adapters.watsonx.profiles import get_profile, profile_names
from chatrelay.adapters.watsonx.upstream import close_upstream_async_client
from chatrelay.config.settings import Settings, settings
from chatrelay.core.relay import RelayConfig, RelayService
from chatrelay.util.logger import logger
from chatrelay.util.masking import mask_for_log

PUBLIC_DIR = Path(__file__).resolve().parent.parent / "public"
INTERNAL_ERROR_BODY = {"error": "An internal server error occurred.", "kind": "internal_error"}


def _resolve_static_dir(source: Settings) -> Path | None:
    if not source.enable_static_frontend:
        return None
    candidate = Path(source.static_dir).expanduser() if source.static_dir.strip() else PUBLIC_DIR
    if not candidate.is_dir():
        logger.warning("static frontend directory not found path=%s", candidate)
        return None
    return candidate


def _cors_origins(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()] or ["*"]


def log_startup_summary(config: RelayConfig, source: Settings) -> None:
    logger.info("%s listening on http://%s:%s", source.app_name, source.host, source.port)
    logger.info("health check available at /api/health")
    if source.enable_test_connection:
        logger.info("connection test available at /api/test-connection")
    logger.info(
        "environment check api_key=%s project_id_configured=%s python=%s",
        mask_for_log(config.api_key) or "<missing>",
        bool(config.project_id),
        sys.version.split()[0],
    )
    logger.info("primary route /api/chat profile=%s model=%s", config.profile.name, config.profile.model_id or "-")
    if source.enable_alternate_routes:
        for route, name in ALTERNATE_ROUTES.items():
            logger.info("alternate route /api%s profile=%s model=%s", route, name, get_profile(name).model_id)
    missing = config.missing_settings()
    for name in missing:
        logger.warning("%s is not configured; add %s=<value> to your .env file", name, name)
    if missing:
        logger.warning("chat requests will answer 500 until the missing settings are provided")


def create_app(
    config: RelayConfig | None = None,
    *,
    source: Settings | None = None,
    client_factory: ClientFactory | None = None,
) -> FastAPI:
    source = source or settings
    config = config or RelayConfig.from_settings(source)
    service = RelayService(config, client_factory=client_factory)

    app = FastAPI(title=source.app_name)
    app.state.settings = source
    app.state.relay_service = service
    app.state.enable_test_connection = source.enable_test_connection
    app.state.alternate_services = {}

    app.include_router(chat_router, prefix="/api")
    if source.enable_alternate_routes:
        app.state.alternate_services = {route: service.for_profile(name) for route, name in ALTERNATE_ROUTES.items()}
        app.include_router(alternate_router, prefix="/api")

    @app.get("/api/health")
    def health(request: Request) -> dict:
        relay_config = request.app.state.relay_service.config
        missing = relay_config.missing_settings()
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": {
                "has_api_key": "IBM_API_KEY" not in missing,
                "has_project_id": "PROJECT_ID" not in missing,
                "python_version": sys.version.split()[0],
                "profile": relay_config.profile.name,
                "endpoints": {
                    "iam": relay_config.iam_url,
                    "primary": relay_config.profile.endpoint_url,
                },
                "supported_models": sorted(
                    {get_profile(name).model_id for name in profile_names() if get_profile(name).model_id}
                ),
            },
        }

    @app.middleware("http")
    async def failsafe_middleware(request: Request, call_next):
        try:
            return await call_next(request)
        except Exception:
            logger.exception("relay unhandled exception path=%s", request.url.path)
            return JSONResponse(status_code=500, content=INTERNAL_ERROR_BODY)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(source.cors_allow_origins),
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "X-Requested-With", "Content-Type", "Accept", "Authorization"],
    )

    @app.on_event("startup")
    async def startup_summary() -> None:
        log_startup_summary(config, source)

    @app.on_event("shutdown")
    async def shutdown_cleanup() -> None:
        await close_upstream_async_client()

    # mounted last so /api routes win over the catch-all static mount
    static_dir = _resolve_static_dir(source)
    if static_dir is not None:
        app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="frontend")

    return app


app = create_app()
