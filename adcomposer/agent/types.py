"""
Tool-calling types shared by provider adapters, the tool executor and the
agent loop.

Tool calls keep the OpenAI-compatible nested shape
({"id", "type": "function", "function": {"name", "arguments"}}) so they
round-trip through every provider encoding and through storage.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

MessageRole = Literal["system", "user", "assistant", "tool"]
ReasoningEffort = Literal["none", "low", "medium", "high"]


# ============================================================================
# Tool Calls
# ============================================================================

class FunctionCall(BaseModel):
    """Tool name plus raw JSON argument string"""
    name: str
    arguments: str = "{}"


class ToolCall(BaseModel):
    """A model-issued request to invoke one tool"""
    id: str
    type: Literal["function"] = "function"
    function: FunctionCall
    index: Optional[int] = Field(None, description="Position within a parallel batch")

    @property
    def name(self) -> str:
        return self.function.name

    @property
    def arguments(self) -> str:
        return self.function.arguments


class ToolResult(BaseModel):
    """JSON result for one tool call"""
    tool_call_id: str
    content: str


class ToolDefinition(BaseModel):
    """Descriptive tool contract sent to the model"""
    name: str
    description: str
    parameters: Dict[str, Any]

    def to_chat_tool(self) -> Dict[str, Any]:
        """Chat Completions format (nested under "function")."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def to_responses_tool(self) -> Dict[str, Any]:
        """Responses API format (flat)."""
        return {
            "type": "function",
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }


# ============================================================================
# Conversation
# ============================================================================

class ConversationMessage(BaseModel):
    """One message of an ad's conversation"""
    role: MessageRole
    content: str = ""
    tool_calls: Optional[List[ToolCall]] = None
    tool_call_id: Optional[str] = None

    @classmethod
    def system(cls, content: str) -> "ConversationMessage":
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> "ConversationMessage":
        return cls(role="user", content=content)

    @classmethod
    def tool(cls, tool_call_id: str, content: str) -> "ConversationMessage":
        return cls(role="tool", tool_call_id=tool_call_id, content=content)


# ============================================================================
# Adapter Request / Response
# ============================================================================

class InvokeOptions(BaseModel):
    """Per-invocation options"""
    reasoning_effort: ReasoningEffort = "medium"
    previous_response_id: Optional[str] = Field(
        None, description="Continuation handle (Responses API only)"
    )
    max_tokens: Optional[int] = None


class AdapterRequest(BaseModel):
    """Everything an adapter needs for one model call"""
    messages: List[ConversationMessage]
    tools: List[ToolDefinition] = Field(default_factory=list)
    options: InvokeOptions = Field(default_factory=InvokeOptions)


class TokenUsage(BaseModel):
    """Token accounting"""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    cached_tokens: int = 0

    def add(self, other: Optional["TokenUsage"]) -> None:
        if other is None:
            return
        self.prompt_tokens += other.prompt_tokens
        self.completion_tokens += other.completion_tokens
        self.cached_tokens += other.cached_tokens


class AdapterResponse(BaseModel):
    """Normalized model response; tool call arguments are already repaired"""
    message: ConversationMessage
    tool_calls: List[ToolCall] = Field(default_factory=list)
    requires_action: bool = False
    response_id: Optional[str] = None
    usage: Optional[TokenUsage] = None


# ============================================================================
# Agent Result
# ============================================================================

class StopReason(str, Enum):
    """Why an agent run ended"""
    COMPLETED = "completed"              # model stopped requesting tools
    DRAFTS_COMPLETE = "drafts_complete"  # voices, music and sfx all drafted
    LOOP_DETECTED = "loop_detected"      # stalled after the single nudge
    MAX_ITERATIONS = "max_iterations"    # hard cap reached
    PROVIDER_ERROR = "provider_error"    # model call failed after retries


class Drafts(BaseModel):
    """Version IDs of the drafts created during one run"""
    voices: Optional[str] = None
    music: Optional[str] = None
    sfx: Optional[str] = None

    def is_complete(self) -> bool:
        return bool(self.voices and self.music and self.sfx)


class ToolCallRecord(BaseModel):
    """One executed (or suppressed) tool call"""
    tool: str
    args: Any = None
    result: Any = None


class AgentResult(BaseModel):
    """Outcome of one agent run"""
    conversation_id: str
    message: str = ""
    drafts: Drafts = Field(default_factory=Drafts)
    tool_call_history: List[ToolCallRecord] = Field(default_factory=list)
    provider: str
    total_usage: Optional[TokenUsage] = None
    iterations: int = 0
    stop_reason: StopReason = StopReason.COMPLETED
