"""
Tools for the dependency review agents.

Tools are stateless executors that perform specific actions:
- GitDiffTool: Diff between two git revisions
- GitHubPRParserTool / GitHubPRFilesTool: Pull request metadata and changed files
- FetchChangelogTool / SummarizeChangelogBetweenVersionsTool: CHANGELOG slicing
- RepositoryChangelogTool / LatestReleaseTool: GitHub releases via `gh`
- DependencyChangelogSummarizerTool: Dependency-relevant release notes
- PackageVersionComparisonTool: What changed between two package versions
- <ecosystem> package manager detectors and dependency analyzers
"""

from typing import List

from app.agents.base import BaseTool
from app.agents.tools.changelog import FetchChangelogTool, SummarizeChangelogBetweenVersionsTool
from app.agents.tools.dependency_changelog import DependencyChangelogSummarizerTool
from app.agents.tools.git_diff import GitDiffTool
from app.agents.tools.github_pr_parser import GitHubPRFilesTool, GitHubPRParserTool
from app.agents.tools.release_changelog import LatestReleaseTool, RepositoryChangelogTool
from app.agents.tools.version_comparison import PackageVersionComparisonTool
from app.agents.tools.javascript import JSDependencyAnalysisTool, JSPackageManagerDetectorTool
from app.agents.tools.python import PythonDependencyAnalysisTool, PythonPackageManagerDetectorTool
from app.agents.tools.go import GoDependencyAnalysisTool, GoPackageManagerDetectorTool
from app.agents.tools.ruby import RubyDependencyAnalysisTool, RubyPackageManagerDetectorTool
from app.agents.tools.java import JavaBuildToolDetectorTool, JavaDependencyAnalysisTool


def create_all_tools() -> List[BaseTool]:
    """One instance of every tool, in the order they are listed to clients."""
    return [
        GitDiffTool(),
        GitHubPRParserTool(),
        GitHubPRFilesTool(),
        FetchChangelogTool(),
        SummarizeChangelogBetweenVersionsTool(),
        RepositoryChangelogTool(),
        LatestReleaseTool(),
        DependencyChangelogSummarizerTool(),
        PackageVersionComparisonTool(),
        JSPackageManagerDetectorTool(),
        JSDependencyAnalysisTool(),
        PythonPackageManagerDetectorTool(),
        PythonDependencyAnalysisTool(),
        GoPackageManagerDetectorTool(),
        GoDependencyAnalysisTool(),
        RubyPackageManagerDetectorTool(),
        RubyDependencyAnalysisTool(),
        JavaBuildToolDetectorTool(),
        JavaDependencyAnalysisTool(),
    ]


__all__ = [
    "create_all_tools",
    "GitDiffTool",
    "GitHubPRParserTool",
    "GitHubPRFilesTool",
    "FetchChangelogTool",
    "SummarizeChangelogBetweenVersionsTool",
    "RepositoryChangelogTool",
    "LatestReleaseTool",
    "DependencyChangelogSummarizerTool",
    "PackageVersionComparisonTool",
    "JSPackageManagerDetectorTool",
    "JSDependencyAnalysisTool",
    "PythonPackageManagerDetectorTool",
    "PythonDependencyAnalysisTool",
    "GoPackageManagerDetectorTool",
    "GoDependencyAnalysisTool",
    "RubyPackageManagerDetectorTool",
    "RubyDependencyAnalysisTool",
    "JavaBuildToolDetectorTool",
    "JavaDependencyAnalysisTool",
]
