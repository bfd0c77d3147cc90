"""Tests for the agent loop, the agent registry and the tool catalog."""

import json
from typing import List
from unittest.mock import AsyncMock

import pytest
from pydantic import BaseModel, Field

from app.agents.base import AgentContext, AgentResponse, BaseAgent, BaseTool, ToolResult
from app.agents.catalog import ToolCatalog
from app.agents.dependency_analysis import (
    GoDependencyAnalysisAgent,
    JSDependencyAnalysisAgent,
    get_dependency_analysis_agent,
)
from app.agents.registry import build_agents
from app.agents.upgrade_recommendation import DependencyUpgradeRecommendationAgent
from app.api.middleware.error_handler import ChangelogError, LLMError
from app.services.llm_service import LLMResponse, LLMService, ToolCall

import mcp_stdio_server


class ScriptedLLM:
    """Returns queued responses; the last one repeats."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self.generated = []

    async def complete(self, messages, tools=None):
        self.calls.append((list(messages), tools))
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item

    async def generate(self, prompt, system_prompt=None):
        self.generated.append((prompt, system_prompt))
        return "generated"


class EchoInput(BaseModel):
    text: str = Field(..., description="Text to echo back")


class EchoTool(BaseTool):
    name = "echo"
    description = "Echo the given text"
    input_model = EchoInput

    async def execute(self, text: str) -> ToolResult:
        if text == "fail":
            raise ChangelogError("No changelog found", repository="acme/web")
        return ToolResult(success=True, data={"echo": text})


class EchoAgent(BaseAgent):
    name = "echoAgent"
    description = "Echoes through its tool"
    instructions = "Use the echo tool."

    def create_tools(self) -> List[BaseTool]:
        return [EchoTool()]


def call(name, call_id="c1", **arguments):
    return LLMResponse(tool_calls=[ToolCall(id=call_id, name=name, arguments=arguments)])


# ── BaseTool ────────────────────────────────────────────────────────────────


class TestBaseTool:
    def test_definition(self):
        definition = EchoTool().definition()
        assert definition.name == "echo"
        assert "title" not in definition.parameters
        assert definition.parameters["required"] == ["text"]

    def test_result_json(self):
        assert json.loads(ToolResult(success=True, data={"a": 1}).to_json()) == {"success": True, "data": {"a": 1}}
        assert json.loads(ToolResult(success=False, error="x").to_json()) == {"success": False, "error": "x"}

    @pytest.mark.asyncio
    async def test_run_validates(self):
        result = await EchoTool().run({})
        assert not result.success
        assert result.error.startswith("Invalid input for echo")


# ── BaseAgent.generate ──────────────────────────────────────────────────────


class TestBaseAgent:
    @pytest.mark.asyncio
    async def test_tool_loop(self):
        llm = ScriptedLLM(call("echo", text="hi"), LLMResponse(content="done"))
        agent = EchoAgent(llm, max_iterations=3)

        response = await agent.generate("say hi")

        assert response.success
        assert response.text == "done"
        assert response.iterations == 2
        assert response.tool_calls == ["echo"]
        assert "echoAgent: calling echo" in response.execution_log

        first_messages, definitions = llm.calls[0]
        assert [m.role for m in first_messages] == ["system", "user"]
        assert first_messages[0].content == "Use the echo tool."
        assert [d.name for d in definitions] == ["echo"]

        second_messages, _ = llm.calls[1]
        assert [m.role for m in second_messages] == ["system", "user", "assistant", "tool"]
        tool_message = second_messages[-1]
        assert tool_message.tool_call_id == "c1"
        assert json.loads(tool_message.content) == {"success": True, "data": {"echo": "hi"}}

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        llm = ScriptedLLM(call("nope"), LLMResponse(content="ok"))
        context = AgentContext(prompt="x")

        response = await EchoAgent(llm, max_iterations=3).generate("x", context)

        assert response.success
        assert json.loads(llm.calls[1][0][-1].content)["error"] == "Unknown tool: nope"
        assert context.errors == ["Unknown tool requested: nope"]

    @pytest.mark.asyncio
    async def test_tool_errors_go_back_to_the_model(self):
        llm = ScriptedLLM(call("echo", text="fail"), call("echo", "c2"), LLMResponse(content="gave up"))
        context = AgentContext(prompt="x")

        response = await EchoAgent(llm, max_iterations=5).generate("x", context)

        assert response.text == "gave up"
        assert context.errors[0] == "echo: No changelog found"
        assert context.errors[1].startswith("echo: Invalid input for echo")

    @pytest.mark.asyncio
    async def test_max_iterations(self):
        llm = ScriptedLLM(call("echo", text="again"))

        response = await EchoAgent(llm, max_iterations=3).generate("loop")

        assert not response.success
        assert response.error == "Max iterations reached"
        assert response.iterations == 3
        assert response.tool_calls == ["echo", "echo", "echo"]

    @pytest.mark.asyncio
    async def test_llm_error(self):
        llm = ScriptedLLM(LLMError("LLM request failed: 401"))

        response = await EchoAgent(llm, max_iterations=3).generate("x")

        assert not response.success
        assert response.error == "LLM request failed: 401"
        assert response.iterations == 1

    @pytest.mark.asyncio
    async def test_agent_without_tools_answers_in_one_turn(self):
        llm = ScriptedLLM(LLMResponse(content="unused"))
        agent = DependencyUpgradeRecommendationAgent(llm)

        response = await agent.generate("Should we merge?")

        assert response.success
        assert response.text == "generated"
        assert response.iterations == 1
        assert llm.calls == []
        assert llm.generated == [("Should we merge?", agent.instructions)]

    @pytest.mark.asyncio
    async def test_agent_without_tools_reports_llm_error(self):
        llm = ScriptedLLM(LLMResponse())
        llm.generate = AsyncMock(side_effect=LLMError("LLM request failed: 429"))

        response = await DependencyUpgradeRecommendationAgent(llm).generate("x")

        assert not response.success
        assert response.error == "LLM request failed: 429"


# ── LLMService ──────────────────────────────────────────────────────────────


class TestLLMService:
    @pytest.mark.asyncio
    async def test_generate_sends_system_and_user_messages(self):
        service = LLMService(api_key="sk-test", model="gpt-4o")
        service.complete = AsyncMock(return_value=LLMResponse(content="summary"))

        assert await service.generate("Summarize", system_prompt="Be brief") == "summary"

        [messages] = service.complete.await_args.args
        assert [(m.role, m.content) for m in messages] == [("system", "Be brief"), ("user", "Summarize")]


# ── registry ────────────────────────────────────────────────────────────────


class TestAgentRegistry:
    def test_build_agents(self):
        agents = build_agents(ScriptedLLM(LLMResponse()))
        assert set(agents) == {
            "changelogSummary",
            "gitDiffSummary",
            "githubPRAnalyzer",
            "ecosystemDetector",
            "dependencyUpgradeRecommendation",
            "jsDependencyAnalysis",
            "javaDependencyAnalysis",
            "goDependencyAnalysis",
            "pythonDependencyAnalysis",
            "rubyDependencyAnalysis",
        }
        assert agents["dependencyUpgradeRecommendation"].tools == {}
        assert "package_version_comparison" in agents["rubyDependencyAnalysis"].tools

    def test_ecosystem_agents(self):
        llm = ScriptedLLM(LLMResponse())
        assert isinstance(get_dependency_analysis_agent("TypeScript", llm), JSDependencyAnalysisAgent)
        assert isinstance(get_dependency_analysis_agent("go", llm), GoDependencyAnalysisAgent)
        assert get_dependency_analysis_agent("unknown", llm) is None
        assert get_dependency_analysis_agent(None, llm) is None


# ── ToolCatalog ─────────────────────────────────────────────────────────────


@pytest.fixture
def catalog(fake_agent_factory):
    agent = fake_agent_factory(AgentResponse(text="hello back", iterations=2, tool_calls=["echo"]))
    return ToolCatalog(agents={"echoAgent": agent}, tools=[EchoTool()])


class TestToolCatalog:
    def test_specs(self, catalog):
        specs = catalog.specs()
        assert catalog.names() == ["echo", "ask_echoAgent"]
        assert specs[1].description == "Ask the echoAgent agent. Canned answers for tests"
        assert specs[1].input_schema["required"] == ["message"]

    @pytest.mark.asyncio
    async def test_tool_call(self, catalog):
        assert await catalog.call("echo", {"text": "hi"}) == {"success": True, "data": {"echo": "hi"}}

    @pytest.mark.asyncio
    async def test_tool_app_error(self, catalog):
        assert await catalog.call("echo", {"text": "fail"}) == {"success": False, "error": "No changelog found"}

    @pytest.mark.asyncio
    async def test_ask_agent(self, catalog):
        payload = await catalog.call("ask_echoAgent", {"message": "hello"})
        assert payload["success"]
        assert payload["response"] == "hello back"
        assert payload["iterations"] == 2
        assert catalog.agents["echoAgent"].prompts == ["hello"]

    @pytest.mark.asyncio
    async def test_ask_agent_requires_message(self, catalog):
        payload = await catalog.call("ask_echoAgent", {"message": ""})
        assert not payload["success"]
        assert payload["error"].startswith("Invalid input for ask_echoAgent")

    @pytest.mark.asyncio
    async def test_unknown(self, catalog):
        assert await catalog.call("ask_nobody") == {"success": False, "error": "Unknown tool: ask_nobody"}

    def test_default_tools(self):
        names = ToolCatalog(agents={}).names()
        assert names[0] == "git_diff"
        assert "summarize_changelog_between_versions" in names
        assert len(names) == 19
        assert names[-1] == "java_dependency_analysis"


# ── MCP stdio server ────────────────────────────────────────────────────────


class TestMcpStdioServer:
    @pytest.mark.asyncio
    async def test_handle_call(self, catalog):
        [content] = await mcp_stdio_server.handle_call(catalog, "echo", {"text": "hi"})
        assert content.type == "text"
        assert json.loads(content.text) == {"success": True, "data": {"echo": "hi"}}

    @pytest.mark.asyncio
    async def test_handle_call_reports_unexpected_errors(self, fake_agent_factory):
        catalog = ToolCatalog(agents={"broken": fake_agent_factory(error=RuntimeError("kaput"))}, tools=[])
        [content] = await mcp_stdio_server.handle_call(catalog, "ask_broken", {"message": "hi"})
        assert json.loads(content.text) == {
            "success": False, "error": "kaput", "exception_type": "RuntimeError",
        }

    def test_upgrade_analysis_prompt(self, catalog):
        text = mcp_stdio_server.build_upgrade_analysis_prompt(catalog, "https://github.com/acme/web/pull/42")
        assert text.startswith("Review the pull request https://github.com/acme/web/pull/42")
        assert "- ask_echoAgent: Ask the echoAgent agent." in text
        assert "- echo:" not in text

    def test_create_server(self, catalog):
        server = mcp_stdio_server.create_mcp_server(catalog)
        assert server.name == "evergreen-dependency-review"
