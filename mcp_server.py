#!/usr/bin/env python3
"""
HTTP Server - Dependency review tools over HTTP.

FastAPI server exposing the same tools and ask_<agentId> agents as the
MCP stdio server, for clients that do not speak MCP.

Endpoints:
    GET  /health         - Health check with the list of tools
    POST /tools/{name}   - Run a tool; body is the tool's arguments
"""

import json
import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import uvicorn
from fastapi import Body, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from app.agents.catalog import ToolCatalog
from app.core.config import get_settings
from app.core.dependencies import get_agents

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("evergreen")

# Lazy-initialized catalog
_catalog: ToolCatalog | None = None


def _get_catalog() -> ToolCatalog:
    global _catalog
    if _catalog is None:
        _catalog = ToolCatalog(agents=get_agents())
    return _catalog


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================


class ToolResponse(BaseModel):
    success: bool
    result: str
    error: Optional[str] = None


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = ""
    tools: list[str] = []


# =============================================================================
# FASTAPI APP
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} HTTP Server v{settings.app_version}")
    yield
    logger.info("Shutting down...")


settings = get_settings()
app = FastAPI(
    title=settings.app_name,
    description="Dependency upgrade review tools and agents over HTTP",
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ENDPOINTS
# =============================================================================


@app.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse(
        status="ok",
        version=settings.app_version,
        tools=_get_catalog().names(),
    )


@app.post("/tools/{name}", response_model=ToolResponse)
async def run_tool(name: str, arguments: Optional[Dict[str, Any]] = Body(default=None)):
    try:
        payload = await _get_catalog().call(name, arguments or {})
    except Exception as e:
        logger.exception(f"Error while running {name}")
        return ToolResponse(success=False, result="", error=str(e))

    if not payload.get("success"):
        return ToolResponse(success=False, result="", error=payload.get("error") or "Tool failed")
    return ToolResponse(success=True, result=json.dumps(payload, indent=2, default=str))


# =============================================================================
# MAIN
# =============================================================================


def main():
    settings = get_settings()
    uvicorn.run(
        "mcp_server:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.debug,
        log_level="info" if settings.debug else "warning",
    )


if __name__ == "__main__":
    main()
