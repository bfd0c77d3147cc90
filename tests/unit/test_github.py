"""Tests for the GitHub REST client and the pull request tools."""

import httpx
import pytest

from app.agents.tools.github_pr_parser import (
    GitHubPRFilesTool,
    GitHubPRParserTool,
    build_pr_summary,
    is_valid_github_pr_url,
    parse_github_pr_url,
)
from app.api.middleware.error_handler import (
    GitHubAPIError,
    GitHubNotFoundError,
    InvalidPullRequestUrlError,
    PullRequestNotFoundError,
)
from app.services.github_client import GitHubClient


API = "https://api.github.test"
RAW = "https://raw.github.test"
PR_URL = "https://github.com/acme/web/pull/42"


def make_client(routes, seen=None):
    """GitHubClient whose requests are answered from a {path: (status, body)} map."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        status, body = routes.get(request.url.path, (404, {"message": "Not Found"}))
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    return GitHubClient(token="t0k3n", api_url=API, raw_url=RAW, transport=httpx.MockTransport(handler))


# ── GitHubClient ────────────────────────────────────────────────────────────


class TestGitHubClient:
    @pytest.mark.asyncio
    async def test_get_pull_request(self, pr_payload):
        seen = []
        client = make_client({"/repos/acme/web/pulls/42": (200, pr_payload)}, seen)
        pr = await client.get_pull_request("acme", "web", 42)
        assert pr["title"] == pr_payload["title"]
        assert seen[0].headers["Authorization"] == "token t0k3n"
        assert seen[0].headers["Accept"] == "application/vnd.github+json"

    @pytest.mark.asyncio
    async def test_list_files_uses_per_page(self):
        seen = []
        client = make_client({"/repos/acme/web/pulls/42/files": (200, [{"filename": "package.json"}])}, seen)
        files = await client.list_pull_request_files("acme", "web", 42)
        assert files == [{"filename": "package.json"}]
        assert seen[0].url.params["per_page"] == "100"

    @pytest.mark.asyncio
    async def test_not_found(self):
        with pytest.raises(GitHubNotFoundError) as exc_info:
            await make_client({}).get_pull_request("acme", "web", 1)
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_api_error_message(self):
        client = make_client({"/repos/acme/web/pulls/1": (403, {"message": "API rate limit exceeded"})})
        with pytest.raises(GitHubAPIError) as exc_info:
            await client.get_pull_request("acme", "web", 1)
        assert exc_info.value.message == "GitHub API error 403: API rate limit exceeded"
        assert exc_info.value.details == {"upstream_status": 403}

    @pytest.mark.asyncio
    async def test_default_branch(self):
        client = make_client({"/repos/acme/web": (200, {"default_branch": "develop"})})
        assert await client.get_default_branch("acme", "web") == "develop"

    @pytest.mark.asyncio
    async def test_default_branch_falls_back_to_main(self):
        assert await make_client({}).get_default_branch("acme", "web") == "main"

    @pytest.mark.asyncio
    async def test_raw_file(self):
        seen = []
        client = make_client({"/acme/web/main/CHANGELOG.md": (200, "# Changelog\n")}, seen)
        assert await client.get_raw_file("acme", "web", "main", "CHANGELOG.md") == "# Changelog\n"
        assert str(seen[0].url) == f"{RAW}/acme/web/main/CHANGELOG.md"

    @pytest.mark.asyncio
    async def test_raw_file_missing(self):
        assert await make_client({}).get_raw_file("acme", "web", "main", "CHANGELOG.md") is None

    @pytest.mark.asyncio
    async def test_raw_file_server_error(self):
        client = make_client({"/acme/web/main/CHANGELOG.md": (500, "oops")})
        with pytest.raises(GitHubAPIError):
            await client.get_raw_file("acme", "web", "main", "CHANGELOG.md")

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = GitHubClient(token="t", api_url=API, transport=httpx.MockTransport(handler))
        with pytest.raises(GitHubAPIError, match="GitHub request failed"):
            await client.get_repository("acme", "web")


# ── PR URL parsing ──────────────────────────────────────────────────────────


class TestParsePrUrl:
    def test_valid(self):
        ref = parse_github_pr_url(PR_URL)
        assert (ref.owner, ref.repo, ref.number) == ("acme", "web", 42)

    def test_trailing_path(self):
        assert parse_github_pr_url("https://github.com/acme/web/pull/42/files").number == 42

    @pytest.mark.parametrize("url", [
        "",
        "https://github.com/acme/web",
        "https://github.com/acme/web/issues/42",
        "https://gitlab.com/acme/web/pull/42",
        "not a url",
    ])
    def test_invalid(self, url):
        assert parse_github_pr_url(url) is None
        assert not is_valid_github_pr_url(url)


# ── build_pr_summary ────────────────────────────────────────────────────────


class TestBuildPrSummary:
    def test_same_repository(self, pr_payload):
        summary = build_pr_summary(parse_github_pr_url(PR_URL), pr_payload)
        assert summary["pr_number"] == 42
        assert summary["repository"]["full_name"] == "acme/web"
        assert summary["git_diff_inputs"]["base"] == "main"
        assert summary["git_diff_inputs"]["compare"] == "dependabot/npm_and_yarn/lodash-4.17.21"
        assert not summary["git_diff_inputs"]["is_cross_repository"]
        assert summary["git_diff_tool_config"]["compare"] == "dependabot/npm_and_yarn/lodash-4.17.21"
        assert summary["git_commands"]["fetch_pr"] == "git fetch origin pull/42/head:pr-42"
        assert "add_remote" not in summary["git_commands"]
        assert summary["labels"][0]["name"] == "dependencies"
        assert summary["stats"]["changed_files"] == 2
        assert summary["author"] == {"login": "dependabot[bot]", "type": "Bot"}

    def test_fork(self, pr_payload):
        pr_payload["head"]["repo"] = {
            "name": "web",
            "full_name": "octocat/web",
            "clone_url": "https://github.com/octocat/web.git",
            "owner": {"login": "octocat"},
        }
        summary = build_pr_summary(parse_github_pr_url(PR_URL), pr_payload)
        assert summary["git_diff_inputs"]["is_cross_repository"]
        assert summary["git_diff_tool_config"]["compare"] == "octocat/dependabot/npm_and_yarn/lodash-4.17.21"
        assert summary["git_commands"]["add_remote"] == "git remote add octocat https://github.com/octocat/web.git"
        assert summary["git_diff_tool_config"]["alternative_config"] == {"base": "aaa111", "compare": "bbb222"}


# ── GitHubPRParserTool ──────────────────────────────────────────────────────


class TestGitHubPRParserTool:
    @pytest.mark.asyncio
    async def test_parse_with_commits_and_urls(self, pr_payload):
        commits = [{
            "sha": "bbb222",
            "html_url": "https://github.com/acme/web/commit/bbb222",
            "commit": {"message": "Bump lodash", "author": {"name": "bot", "email": "b@x", "date": "2024"}},
        }]
        client = make_client({
            "/repos/acme/web/pulls/42": (200, pr_payload),
            "/repos/acme/web/pulls/42/commits": (200, commits),
        })
        result = await GitHubPRParserTool(client).execute(pr_url=PR_URL, include_commits=True, include_diff_urls=True)
        assert result.success
        assert result.data["title"] == "Bump lodash from 4.17.20 to 4.17.21"
        assert result.data["commits"][0]["message"] == "Bump lodash"
        assert result.data["diff_urls"]["files"] == "https://github.com/acme/web/pull/42/files"

    @pytest.mark.asyncio
    async def test_commit_failure_is_not_fatal(self, pr_payload):
        client = make_client({"/repos/acme/web/pulls/42": (200, pr_payload)})
        result = await GitHubPRParserTool(client).execute(pr_url=PR_URL, include_commits=True)
        assert result.success
        assert "commits" not in result.data

    @pytest.mark.asyncio
    async def test_invalid_url(self):
        with pytest.raises(InvalidPullRequestUrlError):
            await GitHubPRParserTool(make_client({})).parse("https://github.com/acme/web")

    @pytest.mark.asyncio
    async def test_not_found(self):
        with pytest.raises(PullRequestNotFoundError):
            await GitHubPRParserTool(make_client({})).parse(PR_URL)

    @pytest.mark.asyncio
    async def test_api_error_is_prefixed(self):
        client = make_client({"/repos/acme/web/pulls/42": (500, {"message": "boom"})})
        result = await GitHubPRParserTool(client).execute(pr_url=PR_URL)
        assert not result.success
        assert result.error == "Failed to parse GitHub PR: GitHub API error 500: boom"

    @pytest.mark.asyncio
    async def test_invalid_url_as_tool_result(self):
        result = await GitHubPRParserTool(make_client({})).execute(pr_url="nope")
        assert result.error.startswith("Invalid GitHub PR URL format")


class TestGitHubPRFilesTool:
    @pytest.mark.asyncio
    async def test_files(self):
        files = [
            {"filename": "package.json", "status": "modified", "additions": 1, "deletions": 1, "patch": "..."},
            {"filename": "package-lock.json", "status": "modified", "additions": 9, "deletions": 7},
        ]
        client = make_client({"/repos/acme/web/pulls/42/files": (200, files)})
        result = await GitHubPRFilesTool(client).execute(pr_url=PR_URL)
        assert result.success
        assert result.data["pr_number"] == 42
        assert result.data["files"][0] == {
            "filename": "package.json", "status": "modified", "additions": 1, "deletions": 1,
        }

    @pytest.mark.asyncio
    async def test_error(self):
        result = await GitHubPRFilesTool(make_client({})).execute(pr_url=PR_URL)
        assert not result.success
        assert result.error.startswith("Failed to list PR files")
