"""
LLM Service - OpenAI-compatible chat completions with tool calling.

Two entry points:
- generate(): single prompt in, text out (used by tool-less agents)
- complete(): full message list with tool definitions (used by the agent loop)
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, Field

from app.core.config import get_settings
from app.api.middleware.error_handler import LLMError

logger = logging.getLogger(__name__)


class ToolCall(BaseModel):
    """A tool call requested by the model."""
    id: str
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)


class Message(BaseModel):
    """A chat message."""
    role: str  # system, user, assistant, tool
    content: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)
    tool_call_id: str = ""
    name: str = ""


class ToolDefinition(BaseModel):
    """A function the model may call."""
    name: str
    description: str
    parameters: Dict[str, Any] = Field(default_factory=dict)


class LLMResponse(BaseModel):
    """Model output for one completion."""
    content: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)
    finish_reason: str = ""
    usage: Dict[str, int] = Field(default_factory=dict)

    @property
    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0


class LLMService:
    """Chat completion client for OpenAI and OpenAI-compatible servers."""

    def __init__(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        settings = get_settings()
        self.model = model or settings.llm_model
        self.api_key = api_key or settings.openai_api_key
        self.base_url = base_url or settings.openai_base_url
        self.temperature = settings.llm_temperature if temperature is None else temperature
        self.max_tokens = max_tokens or settings.llm_max_tokens
        self._client = client

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) or self._client is not None

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            kwargs: Dict[str, Any] = {}
            if self.api_key:
                kwargs["api_key"] = self.api_key
            if self.base_url:
                kwargs["base_url"] = self.base_url
            self._client = AsyncOpenAI(**kwargs)
        return self._client

    @staticmethod
    def _format_messages(messages: List[Message]) -> List[dict]:
        result = []
        for msg in messages:
            if msg.role == "tool":
                result.append({
                    "role": "tool",
                    "content": msg.content,
                    "tool_call_id": msg.tool_call_id,
                })
            elif msg.tool_calls:
                result.append({
                    "role": msg.role,
                    "content": msg.content or None,
                    "tool_calls": [
                        {
                            "id": tc.id,
                            "type": "function",
                            "function": {
                                "name": tc.name,
                                "arguments": json.dumps(tc.arguments),
                            },
                        }
                        for tc in msg.tool_calls
                    ],
                })
            else:
                result.append({"role": msg.role, "content": msg.content})
        return result

    @staticmethod
    def _format_tools(tools: List[ToolDefinition]) -> List[dict]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.parameters,
                },
            }
            for tool in tools
        ]

    async def complete(
        self,
        messages: List[Message],
        tools: Optional[List[ToolDefinition]] = None,
    ) -> LLMResponse:
        """Send one chat completion request."""
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": self._format_messages(messages),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if tools:
            kwargs["tools"] = self._format_tools(tools)

        try:
            response = await self._get_client().chat.completions.create(**kwargs)
        except OpenAIError as e:
            raise LLMError(f"LLM request failed: {e}") from e

        choice = response.choices[0]
        tool_calls = []
        for tc in choice.message.tool_calls or []:
            try:
                args = json.loads(tc.function.arguments or "{}")
            except json.JSONDecodeError:
                logger.warning(f"Unparseable arguments for tool {tc.function.name}")
                args = {}
            tool_calls.append(ToolCall(id=tc.id, name=tc.function.name, arguments=args))

        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
            }

        return LLMResponse(
            content=choice.message.content or "",
            tool_calls=tool_calls,
            finish_reason=choice.finish_reason or "",
            usage=usage,
        )

    async def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """Single-turn generation."""
        messages = []
        if system_prompt:
            messages.append(Message(role="system", content=system_prompt))
        messages.append(Message(role="user", content=prompt))
        response = await self.complete(messages)
        return response.content
