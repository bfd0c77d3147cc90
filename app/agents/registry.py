"""
Agent registry - every agent keyed by the id it is exposed under (ask_<id> over MCP).
"""

from typing import Dict

from app.agents.base import BaseAgent
from app.agents.changelog_summary import ChangelogSummaryAgent
from app.agents.dependency_analysis import (
    GoDependencyAnalysisAgent,
    JavaDependencyAnalysisAgent,
    JSDependencyAnalysisAgent,
    PythonDependencyAnalysisAgent,
    RubyDependencyAnalysisAgent,
)
from app.agents.git_diff_summary import GitDiffSummaryAgent
from app.agents.pr_analyzer import EcosystemDetectorAgent, GitHubPRAnalyzerAgent
from app.agents.upgrade_recommendation import DependencyUpgradeRecommendationAgent
from app.services.llm_service import LLMService


AGENT_CLASSES = [
    ChangelogSummaryAgent,
    GitDiffSummaryAgent,
    GitHubPRAnalyzerAgent,
    EcosystemDetectorAgent,
    DependencyUpgradeRecommendationAgent,
    JSDependencyAnalysisAgent,
    JavaDependencyAnalysisAgent,
    GoDependencyAnalysisAgent,
    PythonDependencyAnalysisAgent,
    RubyDependencyAnalysisAgent,
]


def build_agents(llm: LLMService) -> Dict[str, BaseAgent]:
    """Instantiate all agents around one LLM service."""
    return {agent_class.name: agent_class(llm) for agent_class in AGENT_CLASSES}
