"""
Qwen-Max Adapter

Chat Completions (DashScope compatible mode) with JSON repair for malformed
tool call arguments. Streaming stays disabled because parallel tool calls
arrive broken when streamed.
"""

import json
import logging
import re
from typing import List, Optional

from openai import AsyncOpenAI

from .base import ChatCompletionsAdapter, ProviderCapabilities
from ..types import ToolCall
from ...core.config import Config

logger = logging.getLogger(__name__)

_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)\s*:")


def _escape_newlines_in_strings(text: str) -> str:
    """Escape raw line breaks that appear inside string literals."""
    out = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            elif ch == "\n":
                out.append("\\n")
                continue
            elif ch == "\r":
                out.append("\\r")
                continue
        elif ch == '"':
            in_string = True
        out.append(ch)
    return "".join(out)


def repair_json(raw: str) -> str:
    """
    Repair common JSON issues in Qwen tool arguments.

    Strips trailing commas, quotes bare keys, turns single quotes into
    double quotes and escapes raw newlines inside strings.

    Args:
        raw: Argument string from the model

    Returns:
        The original string if it already parses, the repaired string if
        repair made it parse, otherwise the original string unchanged
    """
    try:
        json.loads(raw)
        return raw
    except json.JSONDecodeError:
        pass

    repaired = _TRAILING_COMMA.sub(r"\1", raw)
    repaired = _BARE_KEY.sub(r'\1"\2":', repaired)
    repaired = repaired.replace("'", '"')
    repaired = _escape_newlines_in_strings(repaired)

    try:
        json.loads(repaired)
    except json.JSONDecodeError:
        logger.error(f"[QwenAdapter] Failed to repair JSON: {raw}")
        return raw

    logger.info("[QwenAdapter] Repaired malformed JSON")
    return repaired


class QwenAdapter(ChatCompletionsAdapter):
    """Provider adapter for Qwen-Max"""

    capabilities = ProviderCapabilities(
        name="qwen",
        supports_streaming=False,
        supports_caching=True,
        max_context_tokens=128000,
        features={"requires_json_repair": True},
    )

    def __init__(self, client: AsyncOpenAI, model: Optional[str] = None, **kwargs):
        super().__init__(client, model or Config.QWEN_MODEL, **kwargs)

    def validate_tool_calls(self, tool_calls: List[ToolCall]) -> List[ToolCall]:
        return [
            call.model_copy(update={
                "function": call.function.model_copy(
                    update={"arguments": repair_json(call.arguments)}
                )
            })
            for call in tool_calls
        ]
