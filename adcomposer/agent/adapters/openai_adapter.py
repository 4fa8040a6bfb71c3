"""
OpenAI Adapter (Responses API)

- Native tool calling with the flat tool format
- Reasoning effort and output verbosity control
- Chain-of-thought continuity via previous_response_id: with a handle, only
  the messages that follow the last assistant turn are sent
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Union

import logfire
from openai import AsyncOpenAI

from .base import ProviderCapabilities, ToolCallingAdapter, llm_retry
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


def flatten_messages(messages: List[ConversationMessage]) -> str:
    """
    Flatten a conversation into one role-prefixed text blob.

    System content goes first unprefixed; tool messages are dropped.
    """
    parts = []
    for msg in messages:
        if msg.role == "system":
            parts.append(msg.content)
        elif msg.role in ("user", "assistant") and msg.content:
            parts.append(f"\n\n{msg.role}: {msg.content}")
    return "".join(parts)


def continuation_items(messages: List[ConversationMessage]) -> List[Dict[str, Any]]:
    """Input items for everything after the last assistant message."""
    last_assistant = -1
    for i, msg in enumerate(messages):
        if msg.role == "assistant":
            last_assistant = i

    items: List[Dict[str, Any]] = []
    for msg in messages[last_assistant + 1:]:
        if msg.role == "tool":
            items.append({
                "type": "function_call_output",
                "call_id": msg.tool_call_id,
                "output": msg.content,
            })
        elif msg.role == "user":
            items.append({"role": "user", "content": msg.content})
    return items


class OpenAIAdapter(ToolCallingAdapter):
    """Provider adapter for the OpenAI Responses API"""

    capabilities = ProviderCapabilities(
        name="openai",
        supports_streaming=True,
        supports_caching=True,
        supports_continuation=True,
        max_context_tokens=400000,
    )

    def __init__(
        self,
        client: AsyncOpenAI,
        model: Optional[str] = None,
        max_output_tokens: Optional[int] = None,
        verbosity: str = "medium",
    ):
        self.client = client
        self.model = model or Config.OPENAI_AGENT_MODEL
        self.max_output_tokens = max_output_tokens or Config.RESPONSES_MAX_OUTPUT_TOKENS
        self.verbosity = verbosity

    def build_input(
        self,
        messages: List[ConversationMessage],
        previous_response_id: Optional[str],
    ) -> Union[str, List[Dict[str, Any]]]:
        """
        Build Responses API input.

        With a continuation handle the server already holds the earlier
        turns, so only the new tool outputs / user messages are sent.
        Without one the whole conversation is flattened to text.
        """
        if previous_response_id:
            items = continuation_items(messages)
            if items:
                return items
        return flatten_messages(messages)

    @llm_retry
    async def _create(self, **params: Any) -> Any:
        return await self.client.responses.create(**params)

    async def invoke(self, request: AdapterRequest) -> AdapterResponse:
        options = request.options
        previous_response_id = options.previous_response_id

        model_input = self.build_input(request.messages, previous_response_id)
        params: Dict[str, Any] = {
            "model": self.model,
            "input": model_input,
            "reasoning": {"effort": options.reasoning_effort},
            "text": {"verbosity": self.verbosity},
            "max_output_tokens": options.max_tokens or self.max_output_tokens,
        }
        if request.tools:
            params["tools"] = [t.to_responses_tool() for t in request.tools]
        if previous_response_id:
            params["previous_response_id"] = previous_response_id

        input_type = f"array[{len(model_input)}]" if isinstance(model_input, list) else "string"
        logger.info(
            f"[OpenAIAdapter] Invoking {self.model} with reasoning={options.reasoning_effort}, "
            f"tools={len(request.tools)}, input={input_type}"
            f"{', CoT=ON' if previous_response_id else ''}"
        )

        with logfire.span("llm {provider}", provider=self.name, model=self.model):
            response = await self._create(**params)

        tool_calls = self.validate_tool_calls(self.extract_tool_calls(response))

        message = ConversationMessage(
            role="assistant",
            content=getattr(response, "output_text", None) or "",
            tool_calls=tool_calls or None,
        )

        return AdapterResponse(
            message=message,
            tool_calls=tool_calls,
            requires_action=bool(tool_calls),
            response_id=response.id,
            usage=self._usage(response),
        )

    @staticmethod
    def extract_tool_calls(response: Any) -> List[ToolCall]:
        """Tool calls from the `function_call` items of the output array."""
        tool_calls = []
        for item in getattr(response, "output", None) or []:
            if getattr(item, "type", None) != "function_call":
                continue
            tool_calls.append(ToolCall(
                id=item.call_id or f"call_{uuid.uuid4().hex[:12]}",
                function=FunctionCall(name=item.name, arguments=item.arguments or "{}"),
            ))
        return tool_calls

    @staticmethod
    def _usage(response: Any) -> Optional[TokenUsage]:
        usage = getattr(response, "usage", None)
        if usage is None:
            return None
        details = getattr(usage, "input_tokens_details", None)
        return TokenUsage(
            prompt_tokens=usage.input_tokens or 0,
            completion_tokens=usage.output_tokens or 0,
            cached_tokens=getattr(details, "cached_tokens", 0) or 0,
        )
