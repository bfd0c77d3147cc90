"""
API Response Models - Pydantic models for API responses.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    version: str
    environment: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class AnalyzePRResponse(BaseModel):
    """
    Response from the analyze-PR pipeline.

    `error` is set (and `success` false) when the PR is not a dependency
    upgrade; the completed steps are still returned.

    Example:
        {
            "success": true,
            "steps": [{"id": "parse-pr", "name": "Parse GitHub PR", "status": "completed", ...}],
            "dependency_info": {"dependency_name": "react", "old_version": "18.2.0", ...},
            "recommendation": "**Overall assessment**: approve ..."
        }
    """
    success: bool = False
    steps: List[Dict[str, Any]] = Field(default_factory=list)
    dependency_info: Optional[Dict[str, Any]] = None
    recommendation: Optional[str] = None
    error: Optional[str] = None


class ChangelogSummaryResponse(BaseModel):
    """Response from the changelog summary agent."""
    success: bool
    summary: Optional[str] = None
    error: Optional[str] = None


class ErrorResponse(BaseModel):
    """
    Standard error response.

    Example:
        {
            "success": false,
            "error": "Invalid GitHub PR URL",
            "error_code": "HTTP_ERROR"
        }
    """
    success: bool = False
    error: str
    error_code: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)
