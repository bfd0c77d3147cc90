"""
GitHub PR Parser Tool - Turn a pull request URL into everything needed to
diff, fetch and review it.

Handles:
- Validating and splitting https://github.com/<owner>/<repo>/pull/<n>
- Fetching PR metadata (and optionally commits) from the GitHub API
- Deriving git diff inputs, including fork (cross-repository) PRs
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from app.agents.base import BaseTool, ToolResult
from app.api.middleware.error_handler import (
    AppException,
    GitHubAPIError,
    GitHubNotFoundError,
    InvalidPullRequestUrlError,
    PullRequestNotFoundError,
)
from app.services.github_client import GitHubClient

logger = logging.getLogger(__name__)


PR_URL_PATTERN = re.compile(r"^https://github\.com/([^/]+)/([^/]+)/pull/(\d+)")


@dataclass
class PullRequestRef:
    """Components of a pull request URL."""
    owner: str
    repo: str
    number: int


def is_valid_github_pr_url(url: str) -> bool:
    return bool(PR_URL_PATTERN.match(url or ""))


def parse_github_pr_url(url: str) -> Optional[PullRequestRef]:
    """Split a PR URL; None when it is not a github.com pull request link."""
    match = PR_URL_PATTERN.match((url or "").strip())
    if not match:
        return None
    return PullRequestRef(owner=match.group(1), repo=match.group(2), number=int(match.group(3)))


def build_pr_summary(ref: PullRequestRef, pr: Dict[str, Any]) -> Dict[str, Any]:
    """Project the GitHub pulls payload onto the fields the pipeline uses."""
    base = pr.get("base") or {}
    head = pr.get("head") or {}
    base_repo = base.get("repo") or {}
    head_repo = head.get("repo")
    is_cross_repo = (head_repo or {}).get("full_name") != base_repo.get("full_name")

    head_repository = None
    if head_repo:
        head_repository = {
            "owner": head_repo["owner"]["login"],
            "name": head_repo.get("name"),
            "full_name": head_repo.get("full_name"),
            "clone_url": head_repo.get("clone_url"),
        }

    base_ref, head_ref = base.get("ref"), head.get("ref")
    git_commands = {
        "fetch_pr": f"git fetch origin pull/{ref.number}/head:pr-{ref.number}",
        "checkout_pr": f"git checkout pr-{ref.number}",
        "diff_command": f"git diff {base_ref}...{head_ref}",
    }
    compare = head_ref
    if is_cross_repo and head_repository:
        fork_owner = head_repository["owner"]
        git_commands.update({
            "add_remote": f"git remote add {fork_owner} {head_repository['clone_url']}",
            "fetch_from_fork": f"git fetch {fork_owner} {head_ref}",
            "diff_cross_repo": f"git diff {base_ref}...{fork_owner}/{head_ref}",
        })
        compare = f"{fork_owner}/{head_ref}"

    user = pr.get("user") or {}
    return {
        "pr_number": ref.number,
        "title": pr.get("title", ""),
        "state": pr.get("state"),
        "draft": bool(pr.get("draft", False)),
        "merged": bool(pr.get("merged", False)),
        "mergeable": pr.get("mergeable"),
        "created_at": pr.get("created_at"),
        "updated_at": pr.get("updated_at"),
        "repository": {
            "owner": ref.owner,
            "name": ref.repo,
            "full_name": f"{ref.owner}/{ref.repo}",
            "clone_url": base_repo.get("clone_url"),
            "ssh_url": base_repo.get("ssh_url"),
        },
        "git_diff_inputs": {
            "base": base_ref,
            "compare": head_ref,
            "base_sha": base.get("sha"),
            "head_sha": head.get("sha"),
            "is_cross_repository": is_cross_repo,
            "head_repository": head_repository,
        },
        "author": {"login": user.get("login"), "type": user.get("type")},
        "stats": {
            "commits": pr.get("commits", 0),
            "additions": pr.get("additions", 0),
            "deletions": pr.get("deletions", 0),
            "changed_files": pr.get("changed_files", 0),
        },
        "labels": [
            {
                "name": label.get("name"),
                "color": label.get("color"),
                "description": label.get("description"),
            }
            for label in pr.get("labels") or []
        ],
        "git_commands": git_commands,
        "git_diff_tool_config": {
            "base": base_ref,
            "compare": compare,
            "alternative_config": {"base": base.get("sha"), "compare": head.get("sha")},
        },
    }


class GitHubPRParserInput(BaseModel):
    pr_url: str = Field(..., description="GitHub pull request URL, e.g. https://github.com/owner/repo/pull/123")
    include_commits: bool = Field(False, description="Include the PR's individual commits")
    include_diff_urls: bool = Field(False, description="Include GitHub diff/patch URLs")
    github_token: Optional[str] = Field(None, description="GitHub token; falls back to the environment")


class GitHubPRParserTool(BaseTool):
    """Parse a PR URL and fetch what is needed to diff it."""

    name = "github_pr_parser"
    description = (
        "Parse a GitHub pull request URL and fetch its metadata: title, state, base/head refs "
        "and SHAs, fork info, stats, labels, and ready-to-use git diff inputs."
    )
    input_model = GitHubPRParserInput

    def __init__(self, github_client: Optional[GitHubClient] = None):
        self._client = github_client

    async def execute(
        self,
        pr_url: str,
        include_commits: bool = False,
        include_diff_urls: bool = False,
        github_token: Optional[str] = None,
    ) -> ToolResult:
        try:
            data = await self.parse(pr_url, include_commits, include_diff_urls, github_token)
            return ToolResult(success=True, data=data)
        except AppException as e:
            return ToolResult(success=False, error=e.message)

    async def parse(
        self,
        pr_url: str,
        include_commits: bool = False,
        include_diff_urls: bool = False,
        github_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Fetch and summarize a pull request.

        Raises:
            InvalidPullRequestUrlError: URL is not a PR link.
            PullRequestNotFoundError: GitHub returned 404.
            GitHubAPIError: Any other API failure, prefixed "Failed to parse GitHub PR".
        """
        ref = parse_github_pr_url(pr_url)
        if ref is None:
            raise InvalidPullRequestUrlError(pr_url)

        client = self._client or GitHubClient(token=github_token)
        try:
            pr = await client.get_pull_request(ref.owner, ref.repo, ref.number)
        except GitHubNotFoundError:
            raise PullRequestNotFoundError(pr_url)
        except GitHubAPIError as e:
            raise GitHubAPIError(f"Failed to parse GitHub PR: {e.message}")

        result = build_pr_summary(ref, pr)

        if include_commits:
            try:
                commits = await client.list_pull_request_commits(ref.owner, ref.repo, ref.number)
                result["commits"] = [
                    {
                        "sha": c.get("sha"),
                        "message": c["commit"]["message"],
                        "author": {
                            "name": c["commit"]["author"].get("name"),
                            "email": c["commit"]["author"].get("email"),
                            "date": c["commit"]["author"].get("date"),
                        },
                        "url": c.get("html_url"),
                    }
                    for c in commits
                ]
            except GitHubAPIError as e:
                logger.warning(f"Failed to fetch commits for {pr_url}: {e.message}")

        if include_diff_urls:
            html_url = pr.get("html_url") or pr_url
            result["diff_urls"] = {
                "html": html_url,
                "diff": pr.get("diff_url"),
                "patch": pr.get("patch_url"),
                "commits": f"{html_url}/commits",
                "files": f"{html_url}/files",
            }

        logger.info(f"Parsed PR {ref.owner}/{ref.repo}#{ref.number}: {result['title']}")
        return result


class GitHubPRFilesInput(BaseModel):
    pr_url: str = Field(..., description="GitHub pull request URL")
    github_token: Optional[str] = Field(None, description="GitHub token; falls back to the environment")


class GitHubPRFilesTool(BaseTool):
    """List the files a pull request changes."""

    name = "github_pr_files"
    description = "List the files changed by a GitHub pull request with status and line counts."
    input_model = GitHubPRFilesInput

    def __init__(self, github_client: Optional[GitHubClient] = None):
        self._client = github_client

    async def execute(self, pr_url: str, github_token: Optional[str] = None) -> ToolResult:
        ref = parse_github_pr_url(pr_url)
        if ref is None:
            return ToolResult(success=False, error=InvalidPullRequestUrlError(pr_url).message)

        client = self._client or GitHubClient(token=github_token)
        try:
            files = await client.list_pull_request_files(ref.owner, ref.repo, ref.number)
        except GitHubAPIError as e:
            return ToolResult(success=False, error=f"Failed to list PR files: {e.message}")

        return ToolResult(success=True, data={
            "pr_number": ref.number,
            "files": [
                {
                    "filename": f.get("filename"),
                    "status": f.get("status"),
                    "additions": f.get("additions", 0),
                    "deletions": f.get("deletions", 0),
                }
                for f in files
            ],
        })
