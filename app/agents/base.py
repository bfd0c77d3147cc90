"""
Base classes for the agent architecture.

All agents and tools inherit from these base classes to ensure
consistent interfaces and behavior across the system.

Tools are deterministic executors (git, GitHub, changelog parsing,
import analysis). Agents wrap an LLM with a system prompt and a set of
tools and run a tool-calling loop:

    system + user message
            │
            ▼
    ┌──────────────┐  tool calls   ┌──────────────┐
    │   LLM call   │ ────────────► │ execute tools│
    └──────┬───────┘ ◄──────────── └──────────────┘
           │ plain answer   tool results
           ▼
      AgentResponse
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

from app.core.config import get_settings
from app.api.middleware.error_handler import AppException
from app.services.llm_service import LLMService, Message, ToolDefinition

logger = logging.getLogger(__name__)


@dataclass
class AgentContext:
    """
    Per-run scratchpad shared between an agent and its tools.

    Accumulates the execution log and errors so callers can report what
    happened even when the final answer is empty.
    """
    prompt: str

    # Metadata
    errors: list = field(default_factory=list)
    execution_log: list = field(default_factory=list)

    def log(self, message: str) -> None:
        """Add entry to execution log."""
        self.execution_log.append(message)

    def add_error(self, error: str) -> None:
        """Record an error that occurred during execution."""
        self.errors.append(error)


@dataclass
class ToolResult:
    """Result returned by a tool after execution."""
    success: bool
    data: Any = None
    error: Optional[str] = None

    def to_json(self) -> str:
        payload: Dict[str, Any] = {"success": self.success}
        if self.data is not None:
            payload["data"] = self.data
        if self.error:
            payload["error"] = self.error
        return json.dumps(payload, indent=2, default=str)


class BaseTool(ABC):
    """
    Base class for all tools.

    Subclasses declare `input_model`, a pydantic model whose JSON schema
    is what the LLM and MCP clients see, and implement `execute`.
    """

    name: str = "base_tool"
    description: str = "Base tool description"
    input_model: Type[BaseModel]

    def definition(self) -> ToolDefinition:
        """Function-calling definition for this tool."""
        schema = self.input_model.model_json_schema()
        schema.pop("title", None)
        return ToolDefinition(name=self.name, description=self.description, parameters=schema)

    async def run(self, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        """Validate raw arguments, then execute."""
        try:
            params = self.input_model(**(arguments or {}))
        except ValidationError as e:
            return ToolResult(success=False, error=f"Invalid input for {self.name}: {e.errors()}")
        return await self.execute(**params.model_dump())

    @abstractmethod
    async def execute(self, **kwargs) -> ToolResult:
        """
        Execute the tool's action.

        Args:
            **kwargs: Tool-specific parameters (validated by input_model)

        Returns:
            ToolResult with success status and data/error
        """
        pass


@dataclass
class AgentResponse:
    """Final output of an agent run."""
    text: str
    success: bool = True
    error: Optional[str] = None
    iterations: int = 0
    tool_calls: List[str] = field(default_factory=list)
    execution_log: List[str] = field(default_factory=list)


class BaseAgent(ABC):
    """
    Base class for all agents.

    Subclasses set `name`, `description`, `instructions` and
    `create_tools()`; `generate()` drives the LLM until it answers
    without requesting more tool calls.
    """

    name: str = "base_agent"
    description: str = ""
    instructions: str = ""

    def __init__(self, llm_client: LLMService, max_iterations: Optional[int] = None):
        """
        Initialize agent with LLM client.

        Args:
            llm_client: Client for making LLM API calls
            max_iterations: Tool-calling rounds before giving up
        """
        self.llm = llm_client
        self.max_iterations = max_iterations or get_settings().agent_max_iterations
        self.tools: Dict[str, BaseTool] = {tool.name: tool for tool in self.create_tools()}

    @abstractmethod
    def create_tools(self) -> List[BaseTool]:
        """Tools this agent may call."""
        pass

    async def _call_llm(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """
        Make a single call to the LLM.

        Args:
            prompt: User prompt to send
            system_prompt: Optional system prompt

        Returns:
            LLM response text
        """
        return await self.llm.generate(prompt, system_prompt or self.instructions)

    async def _answer_directly(self, prompt: str, context: AgentContext) -> AgentResponse:
        # Agents without tools answer in a single turn
        try:
            text = await self._call_llm(prompt)
        except AppException as e:
            logger.error(f"{self.name}: LLM call failed: {e.message}")
            context.add_error(e.message)
            return AgentResponse(
                text="",
                success=False,
                error=e.message,
                iterations=1,
                execution_log=context.execution_log,
            )
        context.log(f"{self.name}: answered in a single turn")
        return AgentResponse(text=text, iterations=1, execution_log=context.execution_log)

    async def _execute_tool(self, name: str, arguments: Dict[str, Any], context: AgentContext) -> str:
        tool = self.tools.get(name)
        if tool is None:
            context.add_error(f"Unknown tool requested: {name}")
            return ToolResult(success=False, error=f"Unknown tool: {name}").to_json()

        context.log(f"{self.name}: calling {name}")
        try:
            result = await tool.run(arguments)
        except AppException as e:
            result = ToolResult(success=False, error=e.message)
        if not result.success:
            context.add_error(f"{name}: {result.error}")
        return result.to_json()

    async def generate(self, prompt: str, context: Optional[AgentContext] = None) -> AgentResponse:
        """
        Run the tool-calling loop for a user prompt.

        Returns:
            AgentResponse; success is False when the LLM call fails or the
            iteration limit is reached.
        """
        context = context or AgentContext(prompt=prompt)
        if not self.tools:
            return await self._answer_directly(prompt, context)

        messages: List[Message] = [
            Message(role="system", content=self.instructions),
            Message(role="user", content=prompt),
        ]
        definitions = [tool.definition() for tool in self.tools.values()]
        called: List[str] = []

        for iteration in range(1, self.max_iterations + 1):
            try:
                response = await self.llm.complete(messages, definitions)
            except AppException as e:
                logger.error(f"{self.name}: LLM call failed: {e.message}")
                context.add_error(e.message)
                return AgentResponse(
                    text="",
                    success=False,
                    error=e.message,
                    iterations=iteration,
                    tool_calls=called,
                    execution_log=context.execution_log,
                )

            if not response.has_tool_calls:
                context.log(f"{self.name}: answered after {iteration} iteration(s)")
                return AgentResponse(
                    text=response.content,
                    iterations=iteration,
                    tool_calls=called,
                    execution_log=context.execution_log,
                )

            messages.append(Message(
                role="assistant",
                content=response.content,
                tool_calls=response.tool_calls,
            ))
            for tc in response.tool_calls:
                called.append(tc.name)
                output = await self._execute_tool(tc.name, tc.arguments, context)
                messages.append(Message(
                    role="tool",
                    content=output,
                    tool_call_id=tc.id,
                    name=tc.name,
                ))

        logger.warning(f"{self.name}: reached {self.max_iterations} iterations without an answer")
        return AgentResponse(
            text="",
            success=False,
            error="Max iterations reached",
            iterations=self.max_iterations,
            tool_calls=called,
            execution_log=context.execution_log,
        )
