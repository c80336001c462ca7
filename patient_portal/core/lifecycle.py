"""
Application lifecycle management using the FastAPI lifespan pattern.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from patient_portal.config.settings import get_settings
from patient_portal.core.container import get_container

logger = logging.getLogger(__name__)


class LifecycleManager:
    """
    Manages application startup checks and graceful shutdown.
    """

    def __init__(self) -> None:
        self._initialized = False

    async def startup(self) -> None:
        if self._initialized:
            logger.warning("Lifecycle already initialized, skipping startup")
            return

        logger.info("Starting application lifecycle...")
        self._verify_configurations()
        self._initialized = True
        logger.info("Application lifecycle startup completed")

    async def shutdown(self) -> None:
        if not self._initialized:
            logger.warning("Lifecycle not initialized, skipping shutdown")
            return

        logger.info("Stopping application lifecycle...")
        await get_container().close()
        self._initialized = False
        logger.info("Application lifecycle shutdown completed")

    def _verify_configurations(self) -> None:
        """
        Warn about missing Healthie configuration.

        Not fatal at startup: the app still serves health checks. Each remote
        call fails with ConfigurationError until the key is provided.
        """
        settings = get_settings()
        if not settings.HEALTHIE_API_KEY:
            logger.error("HEALTHIE_API_KEY is not configured; patient resolution is unavailable")
        if not settings.HEALTHIE_PROVIDER_ID:
            logger.error("HEALTHIE_PROVIDER_ID is not configured; patient creation is unavailable")
        logger.info(
            f"Healthie endpoint: {settings.HEALTHIE_API_URL} (auth scheme {settings.HEALTHIE_AUTH_SCHEME})"
        )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    manager = LifecycleManager()
    await manager.startup()
    try:
        yield
    finally:
        await manager.shutdown()
