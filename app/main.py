import logging
from typing import Optional

import httpx
from fastapi import FastAPI

from .lib.settings import Settings
from .routes.sql import router as sql_router
from .routes.status import router as status_router

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Build the proxy application.

    Settings are read from the environment once, here, unless passed in.
    """
    if settings is None:
        settings = Settings.from_env()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="CDP SQL Proxy", version="0.1.0")
    app.state.settings = settings
    app.state.http_client = http_client

    app.include_router(sql_router)
    app.include_router(status_router)

    if settings.credentials is None:
        logger.warning("CDP_KEY_NAME / CDP_PRIVATE_KEY not set - queries will fail until configured")
    else:
        logger.info(f"Signing with {settings.scheme.value} key {settings.key_name}")
    return app


app = create_app()
