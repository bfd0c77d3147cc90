"""
Dependencies - Dependency injection for services and components.

Provides singleton instances shared by the REST routes. The MCP server
builds its own instances through the same getters.
"""

from typing import Dict

from app.agents.base import BaseAgent
from app.agents.orchestrator import DependencyReviewOrchestrator
from app.agents.registry import build_agents
from app.services.llm_service import LLMService


# Singleton instances
_llm_service = None
_orchestrator = None
_agents = None


def get_llm_service() -> LLMService:
    """Get LLM service instance (configured from settings)."""
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service


def get_agents() -> Dict[str, BaseAgent]:
    """Get every agent keyed by its id."""
    global _agents
    if _agents is None:
        _agents = build_agents(get_llm_service())
    return _agents


def get_orchestrator() -> DependencyReviewOrchestrator:
    """Get the analyze-PR orchestrator."""
    global _orchestrator
    if _orchestrator is None:
        agents = get_agents()
        _orchestrator = DependencyReviewOrchestrator(
            llm=get_llm_service(),
            git_diff_agent=agents["gitDiffSummary"],
            changelog_agent=agents["changelogSummary"],
            recommendation_agent=agents["dependencyUpgradeRecommendation"],
        )
    return _orchestrator
