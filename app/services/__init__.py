"""
Services Layer for Evergreen Dependency Review
==============================================

Services handle external integrations and shared logic the tools build on:

- GitHubClient / GitHubCLIClient: GitHub REST API and the gh CLI
- PackageRegistryClient: npm, PyPI, RubyGems and Go module lookups
- LLMService: OpenAI-compatible chat completions with tool calling
- run_command: async subprocess execution with timeouts
- find_source_files: project walker shared by the dependency analyzers
- detect_dependency_upgrade: PR title/label/file heuristics

DEPENDENCY FLOW:
----------------
    GitHubClient ──────────┐
    GitHubCLIClient ───────┼──► Tools ──► Agents ──► Orchestrator
    PackageRegistryClient ─┘                ▲
    LLMService ─────────────────────────────┘
"""

from app.services.command_runner import CommandError, CommandTimeoutError, run_command
from app.services.gh_cli import GitHubCLIClient
from app.services.github_client import GitHubClient
from app.services.llm_service import LLMService
from app.services.package_registry import PackageRegistryClient
from app.services.source_walker import find_source_files
from app.services.upgrade_detector import detect_dependency_upgrade
from app.services.versioning import analyze_version_difference

__all__ = [
    "CommandError",
    "CommandTimeoutError",
    "run_command",
    "GitHubCLIClient",
    "GitHubClient",
    "LLMService",
    "PackageRegistryClient",
    "find_source_files",
    "detect_dependency_upgrade",
    "analyze_version_difference",
]
