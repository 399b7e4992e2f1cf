"""
Hiring Pipeline API - FastAPI Application

Submission surface of the application-analysis pipeline.
Run with: uvicorn hiring_api.main:app --reload
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hiring_api.config.settings import settings
from hiring_api.config.database import init_db
from hiring_api.endpoints import api_router
from hiring_api.middleware.error_handler import setup_exception_handlers
from hiring_api.middleware.logging import LoggingMiddleware, configure_logging

# Configure structured logging
configure_logging(settings.LOG_LEVEL)
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info(
        "Starting Hiring Pipeline API",
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
    )

    # Initialize database tables (in dev mode); migrations own the schema otherwise
    if settings.DEBUG:
        logger.info("Initializing database tables (DEBUG mode)")
        try:
            init_db()
        except Exception as e:
            logger.error("Failed to initialize database", error=str(e))

    yield

    logger.info("Shutting down Hiring Pipeline API")


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Candidate application submission and AI match analysis",
        docs_url="/api/docs" if settings.DEBUG else None,
        redoc_url="/api/redoc" if settings.DEBUG else None,
        openapi_url="/api/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    setup_exception_handlers(app)

    # Add CORS middleware (outermost)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    app.include_router(api_router, prefix="/api/v1")

    # Root health endpoint (for load balancer)
    @app.get("/health")
    async def root_health():
        """Simple health check for load balancer."""
        return {"status": "ok", "version": settings.APP_VERSION}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "hiring_api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
