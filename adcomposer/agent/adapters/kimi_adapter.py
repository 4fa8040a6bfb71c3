"""
Moonshot KIMI Adapter

Chat Completions with parallel call re-indexing: KIMI's `index` values (and
occasionally its call ids) are not trustworthy for parallel tool calls.
"""

import logging
import uuid
from typing import List, Optional

from openai import AsyncOpenAI

from .base import ChatCompletionsAdapter, ProviderCapabilities
from ..types import ToolCall
from ...core.config import Config

logger = logging.getLogger(__name__)


class KimiAdapter(ChatCompletionsAdapter):
    """Provider adapter for Moonshot KIMI"""

    capabilities = ProviderCapabilities(
        name="moonshot",
        supports_streaming=True,
        supports_caching=True,
        max_context_tokens=2000000,
        features={"requires_reindexing": True},
    )

    def __init__(self, client: AsyncOpenAI, model: Optional[str] = None, **kwargs):
        super().__init__(client, model or Config.MOONSHOT_MODEL, **kwargs)

    def validate_tool_calls(self, tool_calls: List[ToolCall]) -> List[ToolCall]:
        """
        Re-derive sequential indices (0..n-1, order of appearance) and give
        every call a unique id.
        """
        seen_ids = set()
        reindexed = []
        for index, call in enumerate(tool_calls):
            call_id = call.id
            if not call_id or call_id in seen_ids:
                call_id = f"call_{index}_{uuid.uuid4().hex[:8]}"
                logger.info(f"[KimiAdapter] Replaced missing/duplicate tool call id at index {index}")
            seen_ids.add(call_id)
            reindexed.append(call.model_copy(update={"id": call_id, "index": index}))
        return reindexed
