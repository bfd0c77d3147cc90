"""
Tool catalog - everything the MCP and HTTP tool servers expose.

Two kinds of entries:
- every deterministic tool under its own name (git_diff, fetch_changelog, ...)
- every agent as ask_<agentId>, taking {"message": "..."}

Calls never raise: failures come back as {"success": false, "error": ...}
so the transport only ever carries a JSON body.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from app.agents.base import BaseAgent, BaseTool
from app.agents.tools import create_all_tools
from app.api.middleware.error_handler import AppException

logger = logging.getLogger(__name__)


AGENT_TOOL_PREFIX = "ask_"


class AskAgentInput(BaseModel):
    message: str = Field(..., min_length=1, description="Question or task for the agent")


class ToolSpec(BaseModel):
    """A callable entry as listed to clients."""
    name: str
    description: str
    input_schema: Dict[str, Any] = Field(default_factory=dict)


class ToolCatalog:
    """Name-based dispatch over tools and agents."""

    def __init__(self, agents: Dict[str, BaseAgent], tools: Optional[List[BaseTool]] = None):
        self.tools: Dict[str, BaseTool] = {
            tool.name: tool for tool in (tools if tools is not None else create_all_tools())
        }
        self.agents = agents

    def specs(self) -> List[ToolSpec]:
        specs = []
        for tool in self.tools.values():
            definition = tool.definition()
            specs.append(ToolSpec(
                name=definition.name,
                description=definition.description,
                input_schema=definition.parameters,
            ))
        ask_schema = AskAgentInput.model_json_schema()
        ask_schema.pop("title", None)
        for agent_id, agent in self.agents.items():
            specs.append(ToolSpec(
                name=f"{AGENT_TOOL_PREFIX}{agent_id}",
                description=f"Ask the {agent_id} agent. {agent.description}",
                input_schema=ask_schema,
            ))
        return specs

    def names(self) -> List[str]:
        return [spec.name for spec in self.specs()]

    async def call(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run a tool or agent by name and return a JSON-ready dict."""
        arguments = arguments or {}

        if name in self.tools:
            logger.info(f"Running tool {name}")
            try:
                result = await self.tools[name].run(arguments)
            except AppException as e:
                return {"success": False, "error": e.message}
            payload: Dict[str, Any] = {"success": result.success}
            if result.data is not None:
                payload["data"] = result.data
            if result.error:
                payload["error"] = result.error
            return payload

        if name.startswith(AGENT_TOOL_PREFIX) and name[len(AGENT_TOOL_PREFIX):] in self.agents:
            agent = self.agents[name[len(AGENT_TOOL_PREFIX):]]
            try:
                params = AskAgentInput(**arguments)
            except ValidationError as e:
                return {"success": False, "error": f"Invalid input for {name}: {e.errors()}"}
            logger.info(f"Asking agent {agent.name}")
            response = await agent.generate(params.message)
            return {
                "success": response.success,
                "agent": agent.name,
                "response": response.text,
                "error": response.error,
                "tool_calls": response.tool_calls,
                "iterations": response.iterations,
            }

        return {"success": False, "error": f"Unknown tool: {name}"}
