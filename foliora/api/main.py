"""
Foliora API

FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from fastapi import FastAPI, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from foliora import __version__
from .schemas import HealthResponse
from .routes import (
    books_router,
    interactions_router,
    catalog_router,
    users_router,
    reading_goals_router,
    bookmarks_router,
)
from .middleware import (
    setup_cors,
    setup_logging,
    setup_exception_handlers,
    LoggingConfig,
    get_cors_config,
)
from .dependencies import (
    get_settings,
    ServiceContainer,
    Settings,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Application Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Startup creates the schema; shutdown disposes the engine.
    """
    services: ServiceContainer = app.state.services
    logger.info(f"Starting Foliora in {services.settings.environment} mode")

    try:
        logger.info("Initializing database...")
        _ = services.database
        logger.info("Foliora started successfully")

        yield

    finally:
        logger.info("Shutting down Foliora...")
        services.close()
        logger.info("Shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app(settings: Settings = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings. If None, loads from environment.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Foliora",
        description="Book catalogue with reviews, upvotes, reading goals and bookmarks.",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    # Built eagerly so requests work even when the lifespan does not run;
    # the database itself is still opened lazily
    app.state.services = ServiceContainer(settings)
    app.state.settings = settings

    # ==========================================================================
    # Middleware (order matters - last added = outermost)
    # ==========================================================================

    setup_logging(
        app,
        config=LoggingConfig(enabled=True),
        structured=settings.environment != "development",
    )

    setup_exception_handlers(app)

    setup_cors(app, config=get_cors_config(settings.environment))

    # ==========================================================================
    # Routers
    # ==========================================================================

    api_prefix = "/api"

    # Fixed /books paths before /books/{book_id}
    app.include_router(books_router, prefix=api_prefix)
    app.include_router(interactions_router, prefix=api_prefix)
    app.include_router(catalog_router, prefix=api_prefix)
    app.include_router(users_router, prefix=api_prefix)
    app.include_router(reading_goals_router, prefix=api_prefix)
    app.include_router(bookmarks_router, prefix=api_prefix)

    # ==========================================================================
    # Root Routes
    # ==========================================================================

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Foliora",
            "version": __version__,
            "status": "running",
            "docs": "/docs" if settings.debug else None,
        }

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    def health_check(request: Request) -> HealthResponse:
        """
        Health check endpoint.

        Reports database reachability.
        """
        services: ServiceContainer = request.app.state.services
        components = {}

        try:
            with services.database.session() as session:
                session.execute(text("SELECT 1"))
            components["database"] = "healthy"
        except SQLAlchemyError as e:
            logger.error(f"Health check failed: {e}")
            components["database"] = "unhealthy"

        healthy = all(v == "healthy" for v in components.values())
        return HealthResponse(
            status="healthy" if healthy else "degraded",
            version=__version__,
            components=components,
        )

    return app


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()


# =============================================================================
# CLI Entry Point
# =============================================================================

def main():
    """Run the application using uvicorn."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "foliora.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        workers=1 if settings.debug else 4,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
