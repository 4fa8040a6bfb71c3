"""
Tool-calling adapter interface.

Abstracts the differences between the supported LLM backends:
- OpenAI Responses API (continuation handle, flat tool format)
- Qwen Chat Completions (tool arguments need JSON repair)
- KIMI Chat Completions (parallel calls need re-indexing)

Provider-specific repair lives entirely inside each adapter's
`validate_tool_calls`; callers always receive well-formed tool calls.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import logfire
import openai
from openai import AsyncOpenAI
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..types import (
    AdapterRequest,
    AdapterResponse,
    ConversationMessage,
    FunctionCall,
    TokenUsage,
    ToolCall,
)
from ...core.config import Config

logger = logging.getLogger(__name__)

# Transport errors worth retrying; everything else propagates immediately
RETRYABLE_ERRORS = (
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.RateLimitError,
    openai.InternalServerError,
)

llm_retry = retry(
    retry=retry_if_exception_type(RETRYABLE_ERRORS),
    stop=stop_after_attempt(Config.LLM_REQUEST_RETRIES),
    wait=wait_exponential(multiplier=2, min=2, max=8),
    reraise=True,
)


@dataclass
class ProviderCapabilities:
    """Feature flags for a provider"""
    name: str
    supports_tool_calling: bool = True
    supports_streaming: bool = False
    supports_caching: bool = False
    supports_continuation: bool = False
    max_context_tokens: int = 128000
    features: Dict[str, bool] = field(default_factory=dict)


class ToolCallingAdapter(ABC):
    """Unified interface for every LLM provider that supports tool calling"""

    capabilities: ProviderCapabilities

    @abstractmethod
    async def invoke(self, request: AdapterRequest) -> AdapterResponse:
        """
        Invoke the LLM with tools.

        Args:
            request: Messages, tools and options

        Returns:
            Normalized response with repaired tool calls
        """

    def validate_tool_calls(self, tool_calls: List[ToolCall]) -> List[ToolCall]:
        """Repair provider quirks in raw tool calls (default: none)."""
        return tool_calls

    @property
    def name(self) -> str:
        return self.capabilities.name


class ChatCompletionsAdapter(ToolCallingAdapter):
    """
    Shared implementation for OpenAI-compatible Chat Completions backends.

    Subclasses set `capabilities` and override `validate_tool_calls`.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens or Config.CHAT_MAX_TOKENS
        self.temperature = Config.CHAT_TEMPERATURE if temperature is None else temperature

    @staticmethod
    def to_chat_messages(messages: List[ConversationMessage]) -> List[Dict[str, Any]]:
        """Convert conversation messages to Chat Completions format."""
        chat_messages = []
        for msg in messages:
            if msg.role == "tool":
                chat_messages.append({
                    "role": "tool",
                    "tool_call_id": msg.tool_call_id,
                    "content": msg.content,
                })
            elif msg.role == "assistant" and msg.tool_calls:
                chat_messages.append({
                    "role": "assistant",
                    "content": msg.content or None,
                    "tool_calls": [
                        {
                            "id": tc.id,
                            "type": "function",
                            "function": {"name": tc.name, "arguments": tc.arguments},
                        }
                        for tc in msg.tool_calls
                    ],
                })
            else:
                chat_messages.append({"role": msg.role, "content": msg.content})
        return chat_messages

    @llm_retry
    async def _create(self, **params: Any) -> Any:
        return await self.client.chat.completions.create(**params)

    async def invoke(self, request: AdapterRequest) -> AdapterResponse:
        params: Dict[str, Any] = {
            "model": self.model,
            "messages": self.to_chat_messages(request.messages),
            "max_tokens": request.options.max_tokens or self.max_tokens,
            "temperature": self.temperature,
            "stream": False,
        }
        if request.tools:
            params["tools"] = [t.to_chat_tool() for t in request.tools]
            params["tool_choice"] = "auto"

        logger.info(f"[{type(self).__name__}] Invoking {self.model} with {len(request.tools)} tools")

        with logfire.span("llm {provider}", provider=self.name, model=self.model):
            response = await self._create(**params)

        choice_message = response.choices[0].message
        raw_calls = [
            ToolCall(
                id=tc.id or "",
                function=FunctionCall(name=tc.function.name, arguments=tc.function.arguments or "{}"),
            )
            for tc in (choice_message.tool_calls or [])
            if tc.type == "function"
        ]
        tool_calls = self.validate_tool_calls(raw_calls)

        message = ConversationMessage(
            role="assistant",
            content=choice_message.content or "",
            tool_calls=tool_calls or None,
        )

        usage = None
        if response.usage is not None:
            usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens or 0,
                completion_tokens=response.usage.completion_tokens or 0,
            )

        return AdapterResponse(
            message=message,
            tool_calls=tool_calls,
            requires_action=bool(tool_calls),
            usage=usage,
        )
