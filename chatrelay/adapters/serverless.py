"""Serverless function entry (Vercel / AWS Lambda style hosts).

Same relay pipeline as the long-running server, bound to the configured
serverless profile. The host serves the static page itself, and only
/api/chat and /api/health are exposed.
"""

from __future__ import annotations

from mangum import Mangum

from chatrelay.config.settings import settings
from chatrelay.core.gateway import create_app
from chatrelay.core.relay import RelayConfig

_serverless_settings = settings.model_copy(
    update={
        "enable_static_frontend": False,
        "enable_alternate_routes": False,
        "enable_test_connection": False,
    }
)

app = create_app(
    RelayConfig.from_settings(_serverless_settings, profile_name=settings.serverless_profile),
    source=_serverless_settings,
)
handler = Mangum(app, lifespan="off")
