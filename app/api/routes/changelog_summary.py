"""
Changelog Summary Endpoint - Ask the changelog agent about a repository.
"""

import logging
from typing import Dict

from fastapi import APIRouter, Depends

from app.agents.base import BaseAgent
from app.core.dependencies import get_agents
from app.models.requests import ChangelogSummaryRequest
from app.models.responses import ChangelogSummaryResponse

logger = logging.getLogger(__name__)


router = APIRouter(tags=["Changelog"])


def build_changelog_prompt(request: ChangelogSummaryRequest) -> str:
    """Turn the request fields into a prompt for the changelog agent."""
    prompt = f"Summarize the changelog of {request.owner}/{request.repo}"
    if request.from_version and request.to_version:
        prompt += f" from version {request.from_version} to {request.to_version}"
    elif request.from_version:
        prompt += f" since version {request.from_version}"
    elif request.to_version:
        prompt += f" up to version {request.to_version}"
    prompt += "."
    if request.keywords:
        prompt += f" Focus on changes mentioning: {', '.join(request.keywords)}."
    return prompt


@router.post(
    "/changelog-summary",
    response_model=ChangelogSummaryResponse,
    summary="Summarize Changelog",
    description="Fetch a repository's changelog and summarize the changes between two versions",
)
async def changelog_summary(
    request: ChangelogSummaryRequest,
    agents: Dict[str, BaseAgent] = Depends(get_agents),
) -> ChangelogSummaryResponse:
    agent = agents["changelogSummary"]
    response = await agent.generate(build_changelog_prompt(request))
    if not response.success:
        logger.warning(f"Changelog summary failed for {request.owner}/{request.repo}: {response.error}")
        return ChangelogSummaryResponse(success=False, error=response.error)
    return ChangelogSummaryResponse(success=True, summary=response.text)
