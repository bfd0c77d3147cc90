"""Integration tests for the REST API (app.main) and the HTTP tool server (mcp_server.py)."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

import mcp_server
from app.agents.base import AgentResponse
from app.agents.catalog import ToolCatalog
from app.api.middleware.error_handler import LLMError
from app.core.dependencies import get_agents, get_llm_service, get_orchestrator
from app.main import create_app
from app.services.llm_service import LLMService


PR_URL = "https://github.com/acme/web/pull/42"


def mock_orchestrator(result=None, error=None):
    orchestrator = MagicMock()
    orchestrator.analyze = AsyncMock(return_value=result or {}, side_effect=error)
    return orchestrator


@pytest.fixture
def app():
    application = create_app()
    application.dependency_overrides[get_llm_service] = lambda: LLMService(api_key="sk-test", model="gpt-4o")
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


def use_orchestrator(app, orchestrator):
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    return orchestrator


# ── root and health ─────────────────────────────────────────────────────────


class TestHealthEndpoints:
    def test_root(self, client):
        data = client.get("/").json()
        assert data["health"] == "/api/health"
        assert data["endpoints"]["analyze_pr"].startswith("GET /api/analyze-pr")

    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"

    def test_ready(self, client):
        data = client.get("/api/ready").json()
        assert data["ready"]
        assert data["checks"]["llm_configured"]
        assert data["model"] == "gpt-4o"

    def test_live(self, client):
        assert client.get("/api/live").json() == {"status": "alive"}


# ── GET /api/analyze-pr ─────────────────────────────────────────────────────


class TestAnalyzePrEndpoint:
    def test_missing_url(self, app, client):
        orchestrator = use_orchestrator(app, mock_orchestrator())
        resp = client.get("/api/analyze-pr")
        assert resp.status_code == 400
        assert resp.json()["error"] == "PR URL is required"
        assert resp.json()["error_code"] == "HTTP_ERROR"
        orchestrator.analyze.assert_not_awaited()

    def test_blank_url(self, app, client):
        use_orchestrator(app, mock_orchestrator())
        resp = client.get("/api/analyze-pr", params={"prUrl": "   "})
        assert resp.status_code == 400
        assert resp.json()["error"] == "PR URL is required"

    @pytest.mark.parametrize("url", [
        "https://github.com/acme/web/issues/42",
        "https://gitlab.com/acme/web/pull/42",
        "github.com/acme/web/pull/42",
    ])
    def test_invalid_url(self, app, client, url):
        use_orchestrator(app, mock_orchestrator())
        resp = client.get("/api/analyze-pr", params={"prUrl": url})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid GitHub PR URL"

    def test_parse_failure(self, app, client):
        use_orchestrator(app, mock_orchestrator({
            "parse_failed": True,
            "error": "Pull request not found: https://github.com/acme/web/pull/42.",
            "steps": [],
        }))
        resp = client.get("/api/analyze-pr", params={"prUrl": PR_URL})
        assert resp.status_code == 400
        assert resp.json()["error"].startswith("Pull request not found")

    def test_success(self, app, client):
        orchestrator = use_orchestrator(app, mock_orchestrator({
            "success": True,
            "steps": [{"id": "parse-pr", "name": "Parse GitHub PR", "status": "completed", "result": None, "error": None}],
            "dependency_info": {"is_dependency_upgrade": True, "dependency_name": "lodash"},
            "recommendation": "approve",
        }))
        resp = client.get("/api/analyze-pr", params={"prUrl": f"  {PR_URL} "})
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"]
        assert data["recommendation"] == "approve"
        assert data["steps"][0]["status"] == "completed"
        orchestrator.analyze.assert_awaited_once_with(PR_URL)

    def test_not_an_upgrade_is_200(self, app, client):
        use_orchestrator(app, mock_orchestrator({
            "error": "This PR does not appear to be a dependency upgrade",
            "steps": [],
            "dependency_info": {"is_dependency_upgrade": False},
        }))
        resp = client.get("/api/analyze-pr", params={"prUrl": PR_URL})
        assert resp.status_code == 200
        assert not resp.json()["success"]
        assert resp.json()["error"] == "This PR does not appear to be a dependency upgrade"

    def test_app_exception(self, app, client):
        use_orchestrator(app, mock_orchestrator(error=LLMError("LLM request failed: 401")))
        resp = client.get("/api/analyze-pr", params={"prUrl": PR_URL})
        assert resp.status_code == 502
        assert resp.json()["error_code"] == "LLM_ERROR"

    def test_unexpected_exception(self, app):
        use_orchestrator(app, mock_orchestrator(error=RuntimeError("kaput")))
        client = TestClient(app, raise_server_exceptions=False)
        resp = client.get("/api/analyze-pr", params={"prUrl": PR_URL})
        assert resp.status_code == 500
        assert resp.json()["error"] == "An unexpected error occurred"


# ── POST /api/changelog-summary ─────────────────────────────────────────────


class TestChangelogSummaryEndpoint:
    def test_summary(self, app, client, fake_agent_factory):
        agent = fake_agent_factory(AgentResponse(text="## React 18.3.1\n- Deprecation warnings"))
        app.dependency_overrides[get_agents] = lambda: {"changelogSummary": agent}

        resp = client.post("/api/changelog-summary", json={
            "owner": "facebook",
            "repo": "react",
            "from_version": "18.2.0",
            "to_version": "18.3.1",
            "keywords": ["hooks"],
        })

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "summary": "## React 18.3.1\n- Deprecation warnings", "error": None}
        assert agent.prompts == [
            "Summarize the changelog of facebook/react from version 18.2.0 to 18.3.1. "
            "Focus on changes mentioning: hooks."
        ]

    def test_agent_failure(self, app, client, fake_agent_factory):
        agent = fake_agent_factory(AgentResponse(text="", success=False, error="Max iterations reached"))
        app.dependency_overrides[get_agents] = lambda: {"changelogSummary": agent}

        resp = client.post("/api/changelog-summary", json={"owner": "facebook", "repo": "react"})

        assert resp.status_code == 200
        assert resp.json()["error"] == "Max iterations reached"
        assert agent.prompts == ["Summarize the changelog of facebook/react."]

    def test_validation(self, app, client, fake_agent_factory):
        app.dependency_overrides[get_agents] = lambda: {"changelogSummary": fake_agent_factory()}
        resp = client.post("/api/changelog-summary", json={"owner": "  ", "repo": "react"})
        assert resp.status_code == 422
        assert resp.json()["error_code"] == "VALIDATION_ERROR"


# ── mcp_server.py ───────────────────────────────────────────────────────────


@pytest.fixture
def tool_client(monkeypatch, fake_agent_factory):
    agent = fake_agent_factory(AgentResponse(text="hello", iterations=1))
    monkeypatch.setattr(mcp_server, "_catalog", ToolCatalog(agents={"changelogSummary": agent}))
    return TestClient(mcp_server.app)


class TestToolServer:
    def test_health_lists_tools(self, tool_client):
        data = tool_client.get("/health").json()
        assert data["status"] == "ok"
        assert "git_diff" in data["tools"]
        assert "ask_changelogSummary" in data["tools"]

    def test_run_tool(self, tool_client, changelog_file):
        resp = tool_client.post("/tools/summarize_changelog_between_versions", json={
            "changelog_path": str(changelog_file),
            "from_version": "10.3.0",
            "to_version": "10.5.0",
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"]
        assert json.loads(data["result"])["data"]["versions"] == ["10.5.0", "10.4.0"]

    def test_ask_agent(self, tool_client):
        resp = tool_client.post("/tools/ask_changelogSummary", json={"message": "What changed?"})
        assert json.loads(resp.json()["result"])["response"] == "hello"

    def test_tool_failure(self, tool_client, tmp_path):
        resp = tool_client.post("/tools/summarize_changelog_between_versions", json={
            "changelog_path": str(tmp_path / "missing.md"),
            "from_version": "1.0.0",
            "to_version": "2.0.0",
        })
        assert resp.json() == {
            "success": False,
            "result": "",
            "error": f"Changelog file not found: {tmp_path / 'missing.md'}",
        }

    def test_unknown_tool(self, tool_client):
        resp = tool_client.post("/tools/nope", json={})
        assert resp.json()["error"] == "Unknown tool: nope"
