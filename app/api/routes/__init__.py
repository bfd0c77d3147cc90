"""
API Routes - FastAPI route modules.

The same agents and tools are also served over MCP (mcp_stdio_server.py);
these routes cover the full analyze-PR pipeline and changelog summaries.
"""

from app.api.routes.health import router as health_router
from app.api.routes.analyze_pr import router as analyze_pr_router
from app.api.routes.changelog_summary import router as changelog_router

__all__ = [
    "health_router",
    "analyze_pr_router",
    "changelog_router",
]
