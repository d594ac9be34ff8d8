from __future__ import annotations

import asyncio
import logging

import uvicorn

from kanban.api import create_api_app
from kanban.config import get_settings
from kanban.db.session import create_engine, create_session_factory
from kanban.logging_config import configure_logging

logger = logging.getLogger(__name__)


async def run() -> None:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    engine = create_engine(settings.DATABASE_URL)
    session_factory = create_session_factory(engine)

    api_app = create_api_app(session_factory, settings.cors_origins)
    uvicorn_config = uvicorn.Config(
        app=api_app,
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
    api_server = uvicorn.Server(uvicorn_config)

    logger.info("API listening", extra={"host": settings.API_HOST, "port": settings.API_PORT})
    try:
        await api_server.serve()
    finally:
        await engine.dispose()


if __name__ == "__main__":
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Shutting down Kanban API")
