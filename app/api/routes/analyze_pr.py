"""
Analyze-PR Endpoint - Full dependency review of one pull request.

    GET /api/analyze-pr?prUrl=https://github.com/owner/repo/pull/123

Runs the seven-step pipeline (parse, detect, git diff, changelog,
dependency diff, ecosystem analysis, recommendation) and returns every
step's status alongside the recommendation.
"""

import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.agents.orchestrator import DependencyReviewOrchestrator
from app.core.dependencies import get_orchestrator
from app.models.responses import AnalyzePRResponse, ErrorResponse

logger = logging.getLogger(__name__)


GITHUB_PR_URL = re.compile(r"^https://github\.com/[\w\-\.]+/[\w\-\.]+/pull/\d+$")


router = APIRouter(tags=["Analysis"])


@router.get(
    "/analyze-pr",
    response_model=AnalyzePRResponse,
    summary="Analyze Dependency Upgrade PR",
    description="Review a dependency upgrade pull request and recommend whether to merge it",
    responses={
        200: {"description": "Analysis finished (check `error` for non-upgrade PRs)"},
        400: {"model": ErrorResponse, "description": "Missing or invalid PR URL, or the PR could not be parsed"},
    },
)
async def analyze_pr(
    pr_url: Optional[str] = Query(default=None, alias="prUrl", description="GitHub pull request URL"),
    orchestrator: DependencyReviewOrchestrator = Depends(get_orchestrator),
) -> AnalyzePRResponse:
    """
    Analyze a dependency upgrade PR.

    Raises:
        HTTPException 400: no URL, a URL that is not a github.com PR link,
            or a PR that could not be fetched.
    """
    if not pr_url or not pr_url.strip():
        raise HTTPException(status_code=400, detail="PR URL is required")
    pr_url = pr_url.strip()
    if not GITHUB_PR_URL.match(pr_url):
        raise HTTPException(status_code=400, detail="Invalid GitHub PR URL")

    result = await orchestrator.analyze(pr_url)
    if result.get("parse_failed"):
        raise HTTPException(status_code=400, detail=result.get("error") or "Failed to parse GitHub PR")

    return AnalyzePRResponse(
        success=result.get("success", False),
        steps=result.get("steps", []),
        dependency_info=result.get("dependency_info"),
        recommendation=result.get("recommendation"),
        error=result.get("error"),
    )
