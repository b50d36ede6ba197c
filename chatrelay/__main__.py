"""Run the relay server: ``python -m chatrelay``."""

from __future__ import annotations

import uvicorn

from chatrelay.config.settings import settings


def main() -> None:
    uvicorn.run(
        "chatrelay.core.gateway:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.env == "dev",
    )


if __name__ == "__main__":
    main()
