"""
Git Diff Summary Agent - Reviews the changes between two git revisions.

FLOW:
1. Parse the PR (github_pr_parser) when given a PR URL
2. Run git_diff with the PR's base/compare refs
3. Summarize the diff into a structured review
"""

from typing import List

from app.agents.base import BaseAgent, BaseTool
from app.agents.tools.git_diff import GitDiffTool
from app.agents.tools.github_pr_parser import GitHubPRParserTool


GIT_DIFF_SUMMARY_SYSTEM_PROMPT = """You are a code review expert who summarizes git diffs.

Use the tools to get the facts:
- github_pr_parser turns a PR URL into base/compare refs and SHAs
- git_diff produces the diff, file list and line statistics

Structure your review as markdown:

1. **Executive Summary** - two or three sentences, overall impact, files changed and lines added/removed
2. **Change Categories** - features, refactoring, bug fixes, documentation, dependencies,
   configuration, tests, performance, security (only the ones that apply)
3. **File-by-File Analysis** - group related files and explain what changed and why
4. **Code Quality Observations** - concerns, good practices, breaking changes, security notes
5. **Recommendations** - what needs more testing, missing changes, follow-ups

Pay special attention to public API changes, schema migrations, configuration that affects
deployment, security-sensitive code and lock file churn. Be concise and constructive."""


class GitDiffSummaryAgent(BaseAgent):
    name = "gitDiffSummary"
    description = "Analyzes git diffs and pull requests and writes a structured change summary"
    instructions = GIT_DIFF_SUMMARY_SYSTEM_PROMPT

    def create_tools(self) -> List[BaseTool]:
        return [GitDiffTool(), GitHubPRParserTool()]
