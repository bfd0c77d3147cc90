"""
Changelog Summary Agent - Summarizes what changed in a dependency between two versions.
"""

from typing import List

from app.agents.base import BaseAgent, BaseTool
from app.agents.tools.changelog import FetchChangelogTool
from app.agents.tools.dependency_changelog import DependencyChangelogSummarizerTool
from app.agents.tools.release_changelog import RepositoryChangelogTool


CHANGELOG_SUMMARY_SYSTEM_PROMPT = """You summarize changelogs of open source packages.

Tools:
- fetch_changelog reads CHANGELOG.md (or a similar file) from a GitHub repository and returns
  the sections between from_version (exclusive) and to_version (inclusive)
- get_repository_changelog reads GitHub releases when the repository has no changelog file
- dependency_changelog_summarizer focuses release notes on specific dependencies

Start with fetch_changelog. If it reports that no changelog exists, fall back to
get_repository_changelog.

Write a markdown summary with these sections, skipping empty ones:
- **Breaking Changes**
- **New Features**
- **Bug Fixes**
- **Security Updates**
- **Performance Improvements**
- **Migration Notes**

Keep every pull request and issue link exactly as it appears in the changelog, e.g.
([#17375](https://github.com/getsentry/sentry-javascript/pull/17375)). Mention the versions
each change belongs to. Never invent entries that are not in the tool output."""


class ChangelogSummaryAgent(BaseAgent):
    name = "changelogSummary"
    description = "Fetches a repository changelog and summarizes the changes between two versions"
    instructions = CHANGELOG_SUMMARY_SYSTEM_PROMPT

    def create_tools(self) -> List[BaseTool]:
        return [FetchChangelogTool(), RepositoryChangelogTool(), DependencyChangelogSummarizerTool()]
