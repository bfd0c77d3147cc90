"""
Agent Architecture for the Dependency Upgrade Reviewer
======================================================

FLOW OVERVIEW:
--------------
1. A reviewer submits a GitHub PR URL
2. The PR is parsed and checked for a dependency upgrade
3. Specialized agents run in parallel:
   - GitDiffSummaryAgent: what the diff changes (overall and dependency files)
   - ChangelogSummaryAgent: what changed upstream between the two versions
   - <Ecosystem>DependencyAnalysisAgent: how the project uses the dependency
4. DependencyUpgradeRecommendationAgent turns the results into a verdict
5. DependencyReviewOrchestrator coordinates the entire flow

Every agent is also exposed on its own (ask_<agentId> over MCP).

USAGE:
------
    from app.agents import DependencyReviewOrchestrator
    from app.services.llm_service import LLMService

    orchestrator = DependencyReviewOrchestrator(llm=LLMService())
    result = await orchestrator.analyze("https://github.com/owner/repo/pull/42")

    print(result["recommendation"])
"""

from app.agents.base import AgentContext, AgentResponse, BaseAgent, BaseTool, ToolResult
from app.agents.changelog_summary import ChangelogSummaryAgent
from app.agents.dependency_analysis import (
    GoDependencyAnalysisAgent,
    JavaDependencyAnalysisAgent,
    JSDependencyAnalysisAgent,
    PythonDependencyAnalysisAgent,
    RubyDependencyAnalysisAgent,
    get_dependency_analysis_agent,
)
from app.agents.git_diff_summary import GitDiffSummaryAgent
from app.agents.orchestrator import DependencyReviewOrchestrator
from app.agents.pr_analyzer import EcosystemDetectorAgent, GitHubPRAnalyzerAgent
from app.agents.registry import build_agents
from app.agents.upgrade_recommendation import DependencyUpgradeRecommendationAgent

__all__ = [
    # Base classes
    "AgentContext",
    "AgentResponse",
    "BaseAgent",
    "BaseTool",
    "ToolResult",
    # Agents
    "ChangelogSummaryAgent",
    "GitDiffSummaryAgent",
    "GitHubPRAnalyzerAgent",
    "EcosystemDetectorAgent",
    "DependencyUpgradeRecommendationAgent",
    "JSDependencyAnalysisAgent",
    "JavaDependencyAnalysisAgent",
    "GoDependencyAnalysisAgent",
    "PythonDependencyAnalysisAgent",
    "RubyDependencyAnalysisAgent",
    "DependencyReviewOrchestrator",
    # Factories
    "build_agents",
    "get_dependency_analysis_agent",
]
