import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api import router
from .core.config import settings
from .core.logger import setup_logging
from .services.engine import LaunchFailure, SearchOrchestrator
from .services.engine.browser import SessionLauncher, launch_browser_session

logger = logging.getLogger(__name__)


def create_app(launcher: SessionLauncher = launch_browser_session) -> FastAPI:
    """Create the FastAPI application.

    Args:
        launcher: Starts the shared browser session and any escalation browsers
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        setup_logging(settings)
        logger.info("Initializing shared browser instance...")

        app.state.orchestrator = SearchOrchestrator(settings, launcher=launcher)
        app.state.search_lock = asyncio.Lock()
        app.state.browser_session = None
        try:
            app.state.browser_session = await launcher(True, settings.SEARCH_API_TIMEOUT_MS)
        except LaunchFailure as e:
            logger.error(f"Shared browser failed to start, each search will launch its own: {e}")
        else:
            logger.info("Shared browser instance initialized successfully")

        yield

        # Searches never close the shared session, the lifespan does
        session = app.state.browser_session
        if session is not None:
            logger.info("Closing shared browser instance...")
            await session.close()
            app.state.browser_session = None

    app = FastAPI(
        title=settings.APP_NAME,
        description=settings.APP_DESCRIPTION,
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )
    app.include_router(router)
    return app


app = create_app()
