"""
Creative agent: provider adapters, prompts and the tool-calling loop.

Only the shared message types are exported here; the storage and tool layers
import them, so the executor and its collaborators are imported from their
own modules (`adcomposer.agent.executor`, `adcomposer.agent.dependencies`).
"""

from .types import (
    AdapterRequest,
    AdapterResponse,
    AgentResult,
    ConversationMessage,
    Drafts,
    InvokeOptions,
    StopReason,
    TokenUsage,
    ToolCall,
    ToolCallRecord,
    ToolDefinition,
    ToolResult,
)

__all__ = [
    "AdapterRequest",
    "AdapterResponse",
    "AgentResult",
    "ConversationMessage",
    "Drafts",
    "InvokeOptions",
    "StopReason",
    "TokenUsage",
    "ToolCall",
    "ToolCallRecord",
    "ToolDefinition",
    "ToolResult",
]
