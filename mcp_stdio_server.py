#!/usr/bin/env python3
"""
MCP Server (stdio) - Dependency upgrade review for MCP clients.

Exposes every review tool (git_diff, github_pr_parser, fetch_changelog,
the per-ecosystem detectors and analyzers, ...) and every agent as
ask_<agentId>, plus the dependency-upgrade-analysis prompt that walks a
client through a full review.

Agent tools need OPENAI_API_KEY; the deterministic tools run without it.
GITHUB_TOKEN raises the GitHub API rate limit.

Add to an MCP client config:
    {
      "mcpServers": {
        "evergreen": {
          "command": "evergreen-mcp"
        }
      }
    }
"""

import asyncio
import json
import logging
import sys
from typing import Any, Optional

try:
    from mcp.server import Server
    from mcp.server.stdio import stdio_server
    from mcp.types import GetPromptResult, Prompt, PromptArgument, PromptMessage, TextContent, Tool
except ImportError as e:
    print(f"Error: MCP package not installed. Install with: pip install mcp>=1.0.0", file=sys.stderr)
    print(f"Details: {e}", file=sys.stderr)
    sys.exit(1)

from app.agents.catalog import AGENT_TOOL_PREFIX, ToolCatalog
from app.core.config import get_settings
from app.core.dependencies import get_agents

# Configure logging to stderr (stdout is for MCP protocol)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("evergreen_mcp")


UPGRADE_ANALYSIS_PROMPT = "dependency-upgrade-analysis"


_catalog: ToolCatalog | None = None


def get_catalog() -> ToolCatalog:
    global _catalog
    if _catalog is None:
        _catalog = ToolCatalog(agents=get_agents())
    return _catalog


def build_upgrade_analysis_prompt(catalog: ToolCatalog, pr_url: Optional[str] = None) -> str:
    """Instructions for reviewing a dependency upgrade with the ask_* tools."""
    agent_tools = "\n".join(
        f"- {spec.name}: {spec.description}"
        for spec in catalog.specs()
        if spec.name.startswith(AGENT_TOOL_PREFIX)
    )
    target = f"the pull request {pr_url}" if pr_url else "the dependency upgrade pull request"
    return f"""Review {target} and decide whether it is safe to merge.

Available agents:
{agent_tools}

Steps:
1. Ask ecosystemDetector for the ecosystem, the dependency and the old and new versions.
2. Ask gitDiffSummary what the diff changes, both overall and in the dependency files.
3. Ask changelogSummary for the changes between the two versions of the dependency.
4. Ask the matching dependency analysis agent (jsDependencyAnalysis, javaDependencyAnalysis,
   goDependencyAnalysis, pythonDependencyAnalysis or rubyDependencyAnalysis) how the project
   uses the dependency and which breaking changes touch that usage.
5. Ask dependencyUpgradeRecommendation for the verdict, passing it everything you collected.

Report the overall assessment (approve, review or reject), the risk level, the breaking
changes that matter for this project, and the tests to run before merging."""


# =============================================================================
# MCP SERVER IMPLEMENTATION
# =============================================================================


def create_mcp_server(catalog: ToolCatalog | None = None) -> Server:
    """Create and configure the MCP server."""
    server = Server("evergreen-dependency-review")

    def current_catalog() -> ToolCatalog:
        return catalog or get_catalog()

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return [
            Tool(name=spec.name, description=spec.description, inputSchema=spec.input_schema)
            for spec in current_catalog().specs()
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        return await handle_call(current_catalog(), name, arguments)

    @server.list_prompts()
    async def list_prompts() -> list[Prompt]:
        return [
            Prompt(
                name=UPGRADE_ANALYSIS_PROMPT,
                description="Step-by-step review of a dependency upgrade PR using the ask_* agent tools",
                arguments=[
                    PromptArgument(name="pr_url", description="GitHub pull request URL", required=False),
                ],
            )
        ]

    @server.get_prompt()
    async def get_prompt(name: str, arguments: dict[str, str] | None) -> GetPromptResult:
        if name != UPGRADE_ANALYSIS_PROMPT:
            raise ValueError(f"Unknown prompt: {name}")
        text = build_upgrade_analysis_prompt(current_catalog(), (arguments or {}).get("pr_url"))
        return GetPromptResult(
            description="Dependency upgrade analysis",
            messages=[PromptMessage(role="user", content=TextContent(type="text", text=text))],
        )

    return server


async def handle_call(catalog: ToolCatalog, name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
    """Run one tool call; errors are reported in the JSON body."""
    try:
        payload = await catalog.call(name, arguments or {})
    except Exception as e:
        logger.exception(f"Error while running {name}: {e}")
        payload = {"success": False, "error": str(e), "exception_type": type(e).__name__}
    return [TextContent(type="text", text=json.dumps(payload, indent=2, default=str))]


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================


async def main():
    """Main async entry point for the MCP server."""
    settings = get_settings()

    logger.info(f"Starting {settings.app_name} MCP Server v{settings.app_version}")
    logger.info(f"LLM model: {settings.llm_model}")
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; ask_* tools will report errors")

    server = create_mcp_server()

    logger.info("MCP Server ready, waiting for connections...")

    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options()
        )


def run():
    """Synchronous entry point for console script."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
