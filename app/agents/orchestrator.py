"""
Orchestrator - Runs the analyze-PR pipeline.

COMPLETE FLOW:
==============
1. parse-pr            GitHubPRParserTool (direct call, no LLM)
        │
        ▼
2. detect-dependency   upgrade heuristics over title, labels and changed files
        │              (stops here when the PR is not a dependency upgrade)
        ▼
3-6. in parallel (asyncio.gather), each step records its own status:
   ┌──────────────────────────────────────────────────────────┐
   │  git-diff-summary    GitDiffSummaryAgent                 │
   │  changelog-summary   ChangelogSummaryAgent               │
   │  dependency-diff     GitDiffSummaryAgent, dependency focus│
   │  ecosystem-analysis  <ecosystem> DependencyAnalysisAgent │
   └──────────────────────────────────────────────────────────┘
        │
        ▼
7. recommendation      DependencyUpgradeRecommendationAgent
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from app.agents.base import BaseAgent
from app.agents.changelog_summary import ChangelogSummaryAgent
from app.agents.dependency_analysis import get_dependency_analysis_agent
from app.agents.git_diff_summary import GitDiffSummaryAgent
from app.agents.tools.github_pr_parser import GitHubPRFilesTool, GitHubPRParserTool
from app.agents.upgrade_recommendation import DependencyUpgradeRecommendationAgent
from app.api.middleware.error_handler import AppException
from app.models.schemas import AnalysisStep, DependencyInfo, StepStatus
from app.services.llm_service import LLMService
from app.services.upgrade_detector import detect_dependency_upgrade

logger = logging.getLogger(__name__)


PIPELINE_STEPS = [
    ("parse-pr", "Parse GitHub PR"),
    ("detect-dependency", "Detect Dependency Upgrade"),
    ("git-diff-summary", "Analyze Git Diff"),
    ("changelog-summary", "Get Changelog Summary"),
    ("dependency-diff", "Analyze Dependency Changes"),
    ("ecosystem-analysis", "Ecosystem-Specific Analysis"),
    ("recommendation", "Generate Recommendation"),
]

NOT_UPGRADE_MESSAGE = "This PR does not appear to be a dependency upgrade"


def _ecosystem_name(info: DependencyInfo) -> str:
    return info.ecosystem.value if info.ecosystem else "unknown"


class DependencyReviewOrchestrator:
    """
    Coordinates the dependency review of one pull request.

    Agents can be injected for testing; by default they are built around
    the given LLM service.
    """

    def __init__(
        self,
        llm: LLMService,
        pr_parser: Optional[GitHubPRParserTool] = None,
        pr_files: Optional[GitHubPRFilesTool] = None,
        git_diff_agent: Optional[BaseAgent] = None,
        changelog_agent: Optional[BaseAgent] = None,
        recommendation_agent: Optional[BaseAgent] = None,
        ecosystem_agents: Optional[Dict[str, BaseAgent]] = None,
    ):
        self.llm = llm
        self.pr_parser = pr_parser or GitHubPRParserTool()
        self.pr_files = pr_files or GitHubPRFilesTool()
        self.git_diff_agent = git_diff_agent or GitDiffSummaryAgent(llm)
        self.changelog_agent = changelog_agent or ChangelogSummaryAgent(llm)
        self.recommendation_agent = recommendation_agent or DependencyUpgradeRecommendationAgent(llm)
        self._ecosystem_agents = ecosystem_agents

    def _ecosystem_agent(self, ecosystem: str) -> Optional[BaseAgent]:
        if self._ecosystem_agents is not None:
            return self._ecosystem_agents.get(ecosystem)
        return get_dependency_analysis_agent(ecosystem, self.llm)

    async def analyze(self, pr_url: str, github_token: Optional[str] = None) -> Dict[str, Any]:
        """
        Review a dependency upgrade PR.

        Returns:
            On success {success, steps, dependency_info, recommendation}.
            When the PR cannot be parsed {parse_failed: True, error, steps}.
            When the PR is not an upgrade {error, steps, dependency_info}.
        """
        steps = {step_id: AnalysisStep(id=step_id, name=name) for step_id, name in PIPELINE_STEPS}
        logger.info(f"Starting dependency review for {pr_url}")

        # Step 1: Parse
        parse_step = steps["parse-pr"]
        parse_step.status = StepStatus.RUNNING
        result = await self.pr_parser.execute(pr_url=pr_url, github_token=github_token)
        if not result.success:
            parse_step.status = StepStatus.ERROR
            parse_step.error = result.error
            logger.warning(f"Could not parse {pr_url}: {result.error}")
            return {"parse_failed": True, "error": result.error, "steps": self._dump(steps)}
        pr_data = result.data
        parse_step.status = StepStatus.COMPLETED
        parse_step.result = pr_data

        # Step 2: Detect
        detect_step = steps["detect-dependency"]
        detect_step.status = StepStatus.RUNNING
        changed_files: List[str] = []
        files_result = await self.pr_files.execute(pr_url=pr_url, github_token=github_token)
        if files_result.success:
            changed_files = [f["filename"] for f in files_result.data["files"] if f.get("filename")]
        else:
            logger.info(f"Continuing without changed files: {files_result.error}")
        dependency_info = detect_dependency_upgrade(pr_data, changed_files)
        detect_step.status = StepStatus.COMPLETED
        detect_step.result = dependency_info.model_dump(mode="json")

        if not dependency_info.is_dependency_upgrade:
            return {
                "error": NOT_UPGRADE_MESSAGE,
                "steps": self._dump(steps),
                "dependency_info": dependency_info.model_dump(mode="json"),
            }

        # Steps 3-6: Independent analyses
        await asyncio.gather(
            self._git_diff_summary(steps["git-diff-summary"], pr_data),
            self._changelog_summary(steps["changelog-summary"], dependency_info),
            self._dependency_diff(steps["dependency-diff"], pr_data, dependency_info),
            self._ecosystem_analysis(steps["ecosystem-analysis"], pr_data, dependency_info),
        )

        # Step 7: Recommend
        await self._run_agent_step(
            steps["recommendation"],
            self.recommendation_agent,
            self._recommendation_prompt(pr_data, dependency_info, steps),
        )

        return {
            "success": True,
            "steps": self._dump(steps),
            "dependency_info": dependency_info.model_dump(mode="json"),
            "recommendation": steps["recommendation"].result,
        }

    async def _run_agent_step(self, step: AnalysisStep, agent: BaseAgent, prompt: str) -> None:
        """Run an agent for one step; failures stay in the step."""
        step.status = StepStatus.RUNNING
        try:
            response = await agent.generate(prompt)
        except AppException as e:
            step.status = StepStatus.ERROR
            step.error = e.message
            return
        except Exception as e:
            logger.exception(f"Step {step.id} failed")
            step.status = StepStatus.ERROR
            step.error = str(e) or type(e).__name__
            return

        if response.success:
            step.status = StepStatus.COMPLETED
            step.result = response.text
        else:
            step.status = StepStatus.ERROR
            step.error = response.error or "Agent returned no answer"

    async def _git_diff_summary(self, step: AnalysisStep, pr: Dict[str, Any]) -> None:
        inputs = pr["git_diff_inputs"]
        prompt = (
            f'Analyze the git diff for PR #{pr["pr_number"]}: "{pr["title"]}"\n'
            f'Repository: {pr["repository"]["full_name"]}\n'
            f'Base branch: {inputs["base"]}\n'
            f'Compare branch: {inputs["compare"]}\n'
            "Provide a comprehensive analysis of the changes, focusing on the dependency "
            "upgrade and its impact."
        )
        await self._run_agent_step(step, self.git_diff_agent, prompt)

    async def _changelog_summary(self, step: AnalysisStep, info: DependencyInfo) -> None:
        if not info.dependency_name:
            step.status = StepStatus.ERROR
            step.error = "Cannot fetch changelog without dependency name"
            return
        prompt = (
            f"Analyze the changelog for {info.dependency_name} from version "
            f"{info.old_version or 'unknown'} to {info.new_version or 'latest'}.\n"
            f"Ecosystem: {_ecosystem_name(info)}\n"
            "Summarize breaking changes, new features, bug fixes, security updates and "
            "performance improvements, with version information and migration notes."
        )
        await self._run_agent_step(step, self.changelog_agent, prompt)

    async def _dependency_diff(self, step: AnalysisStep, pr: Dict[str, Any], info: DependencyInfo) -> None:
        prompt = (
            f'Analyze the git diff specifically for dependency changes in PR #{pr["pr_number"]}: '
            f'"{pr["title"]}"\n'
            f'Repository: {pr["repository"]["full_name"]}\n'
            f"Focus on: {info.dependency_name} upgrade from {info.old_version} to {info.new_version}\n"
            "Analyze the dependency-related file changes (manifests, lock files) and their "
            "impact on the codebase."
        )
        await self._run_agent_step(step, self.git_diff_agent, prompt)

    async def _ecosystem_analysis(self, step: AnalysisStep, pr: Dict[str, Any], info: DependencyInfo) -> None:
        ecosystem = _ecosystem_name(info)
        agent = self._ecosystem_agent(ecosystem)
        if agent is None:
            step.status = StepStatus.ERROR
            step.error = f"No analysis agent available for ecosystem: {ecosystem}"
            return
        prompt = (
            f"Perform {ecosystem} ecosystem-specific analysis for the dependency upgrade in "
            f'PR #{pr["pr_number"]}: "{pr["title"]}"\n'
            f'Repository: {pr["repository"]["full_name"]}\n'
            f"Dependency: {info.dependency_name}\n"
            f"Version change: {info.old_version} → {info.new_version}\n"
            f"Cover package compatibility, breaking changes specific to {ecosystem}, security "
            "implications, performance impact and migration requirements."
        )
        await self._run_agent_step(step, agent, prompt)

    @staticmethod
    def _recommendation_prompt(
        pr: Dict[str, Any], info: DependencyInfo, steps: Dict[str, AnalysisStep]
    ) -> str:
        def section(step_id: str) -> str:
            return steps[step_id].result or "Not available"

        stats = pr.get("stats") or {}
        return (
            "Based on the analysis below, provide a dependency upgrade recommendation for "
            f'PR #{pr["pr_number"]}: "{pr["title"]}"\n\n'
            "**Dependency Information:**\n"
            f"- Name: {info.dependency_name}\n"
            f"- Ecosystem: {_ecosystem_name(info)}\n"
            f"- Version change: {info.old_version} → {info.new_version}\n"
            f"- Change type: {info.change_type or 'unknown'}\n\n"
            f"**Git Diff Analysis:**\n{section('git-diff-summary')}\n\n"
            f"**Changelog Summary:**\n{section('changelog-summary')}\n\n"
            f"**Dependency-specific Changes:**\n{section('dependency-diff')}\n\n"
            f"**Ecosystem Analysis:**\n{section('ecosystem-analysis')}\n\n"
            "**PR Statistics:**\n"
            f"- Files changed: {stats.get('changed_files', 0)}\n"
            f"- Lines added: {stats.get('additions', 0)}\n"
            f"- Lines deleted: {stats.get('deletions', 0)}\n"
            f"- Commits: {stats.get('commits', 0)}\n\n"
            "Cover: overall assessment (approve/review/reject), risk level, benefits, risks, "
            "testing, migration steps, security implications and performance impact."
        )

    @staticmethod
    def _dump(steps: Dict[str, AnalysisStep]) -> List[Dict[str, Any]]:
        return [step.model_dump(mode="json") for step in steps.values()]
