# api.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from typing import Optional
import asyncio
import os
import uvicorn

from config import Settings, settings as default_settings
from middleware import setup_middleware
from routes import general
from routes.stream import routes as stream
from streaming.day_streamer import DayStreamer
from streaming.resolver import HeightResolver
from streaming.sessions import SessionManager
from streaming.transactions import TransactionFetcher
from streaming.visual_search import VisualSearch
from utils.arweave import ArweaveClient
from utils.logging import logger, start_telegram_handler, stop_telegram_handler
from utils.monitoring import monitor_system_health

def build_session_manager(settings: Settings, client) -> SessionManager:
    """Wire the streaming pipeline for one ledger client"""
    resolver = HeightResolver(client, probe_delay=settings.HEIGHT_PROBE_DELAY)
    fetcher = TransactionFetcher(client, page_size=settings.GRAPHQL_PAGE_SIZE, page_delay=settings.PAGE_DELAY)
    streamer = DayStreamer(client, resolver, fetcher, block_delay=settings.BLOCK_DELAY)
    visual_search = VisualSearch(streamer, max_days=settings.VISUAL_SEARCH_DAYS)
    return SessionManager(streamer, visual_search)

def create_application(settings: Optional[Settings] = None, ledger=None) -> FastAPI:
    """Create and configure the FastAPI application

    Args:
        settings: Settings to use instead of the environment-loaded defaults
        ledger: Ledger client to use instead of an ArweaveClient; the caller
            owns its lifecycle
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifecycle manager for the FastAPI application"""
        start_telegram_handler()

        client = ledger if ledger is not None else ArweaveClient(settings.ARWEAVE_GATEWAY_URL)
        session_manager = build_session_manager(settings, client)
        app.state.ledger = client
        app.state.session_manager = session_manager

        # Start monitoring tasks
        monitor_tasks = []
        if settings.HEALTH_CHECK_INTERVAL > 0:
            monitor_tasks.append(asyncio.create_task(monitor_system_health(
                settings.HEALTH_CHECK_INTERVAL,
                settings.MAX_UNHEALTHY_COUNT,
                lambda: session_manager.active_count,
            )))

        logger.info(f"Application startup completed successfully (gateway {settings.ARWEAVE_GATEWAY_URL})")

        yield

        # Cleanup
        logger.info("Starting application shutdown")
        for task in monitor_tasks:
            task.cancel()
        await session_manager.shutdown()
        if ledger is None:
            await client.close()

        await stop_telegram_handler()
        logger.info("Application shutdown completed")

    app = FastAPI(
        title=general.APP_NAME,
        description="Streams Arweave blocks and transactions for a calendar day over WebSocket",
        version=general.APP_VERSION,
        lifespan=lifespan
    )

    # Setup CORS
    origins = [
        "http://localhost:5173",    # Vite development server
        "http://localhost:3000",    # Alternative development port
        "http://127.0.0.1:5173",    # Alternative localhost
        "http://127.0.0.1:3000",    # Alternative localhost
    ]
    if not settings.DEBUG:
        origins.extend(settings.get_allowed_origins())
    else:
        # In development, can allow all origins
        origins.append("*")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
        max_age=86400,  # Cache preflight requests for 24 hours
    )

    # Include routers
    app.include_router(general.router)
    app.include_router(stream.router)

    # Additional middleware
    setup_middleware(app)

    # Static assets last so they never shadow the API or WebSocket routes
    if settings.STATIC_DIR and os.path.isdir(settings.STATIC_DIR):
        app.mount("/", StaticFiles(directory=settings.STATIC_DIR, html=True), name="static")
        logger.info(f"Serving static files from {settings.STATIC_DIR}")

    return app

# Create the application instance
app = create_application()

if __name__ == "__main__":
    uvicorn.run(
        "api:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
        timeout_keep_alive=30,
        access_log=True
    )
