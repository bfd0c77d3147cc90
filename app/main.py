"""
Evergreen Dependency Review - FastAPI Application Entry Point

Usage:
    uvicorn app.main:app --reload

Or:
    python -m uvicorn app.main:app --reload --host 0.0.0.0 --port 8000

The same agents and tools are available to MCP clients through
mcp_stdio_server.py.
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import get_settings
from app.api.routes import health_router, analyze_pr_router, changelog_router
from app.api.middleware.error_handler import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Logs the configuration on startup; agents and clients are created
    lazily by app.core.dependencies.
    """
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"LLM model: {settings.llm_model}")
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; agent-backed endpoints will fail")

    yield

    logger.info("Shutting down application...")


def create_app() -> FastAPI:
    """
    Application factory function.

    Creates and configures the FastAPI application.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="""
## Evergreen Dependency Review API

Review dependency upgrade pull requests before merging them.

### Features
- **PR Analysis**: Parse the PR and detect the upgraded dependency
- **Changelog Summaries**: Breaking changes, features and fixes between two versions
- **Usage Analysis**: How the project actually uses the dependency
- **Recommendation**: Approve, review or reject with the reasons

### Quick Start
1. GET `/api/analyze-pr?prUrl=https://github.com/owner/repo/pull/123`
2. POST `/api/changelog-summary` with `{"owner": "...", "repo": "..."}`
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register exception handlers
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # Register routers
    app.include_router(health_router, prefix=settings.api_prefix)
    app.include_router(analyze_pr_router, prefix=settings.api_prefix)
    app.include_router(changelog_router, prefix=settings.api_prefix)

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
            "health": f"{settings.api_prefix}/health",
            "endpoints": {
                "analyze_pr": f"GET {settings.api_prefix}/analyze-pr?prUrl=<github pr url>",
                "changelog_summary": f"POST {settings.api_prefix}/changelog-summary",
            },
        }

    return app


app = create_app()


def main() -> None:
    """Console entry point: run the API with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info"
    )


if __name__ == "__main__":
    main()
