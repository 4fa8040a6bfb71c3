"""
API Request and Response Models.

Pydantic models for FastAPI request/response validation and
automatic OpenAPI documentation generation.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..agent.types import Drafts, StopReason, TokenUsage
from ..services.models import Stream


# ============================================================================
# Agent Run Models
# ============================================================================

class GenerateRequest(BaseModel):
    """
    Request model for initial ad generation.

    The brief is stored on the ad when it is lazily created.
    """
    client_description: str = Field(..., min_length=1, description="Who the client is and what they sell")
    creative_brief: str = Field(..., min_length=1, description="What the ad should say and how it should feel")
    language: str = Field(default="en", description="Target language code")
    voice_provider: str = Field(default="elevenlabs", description="TTS provider for the voices")
    accent: Optional[str] = Field(None, description="Optional accent requirement")
    campaign_format: Literal["ad_read", "dialog"] = Field(default="ad_read")
    duration: int = Field(default=30, ge=5, le=120, description="Target length in seconds")
    provider: str = Field(default="openai", description="LLM provider (openai, qwen, moonshot)")
    session_id: Optional[str] = Field(None, description="Owning session ID")
    prefetch_voices: bool = Field(
        default=True,
        description="Put the voice list in the prompt instead of offering search_voices",
    )

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "client_description": "Nordic Brew, a specialty coffee roaster in Oslo",
            "creative_brief": "Warm morning ad for the new winter blend",
            "language": "en",
            "voice_provider": "elevenlabs",
            "campaign_format": "ad_read",
            "duration": 30,
            "provider": "openai",
        }
    })


class ChatRequest(BaseModel):
    """Request model for iterative refinements"""
    message: str = Field(..., min_length=1, description="Refinement request")
    stream: Optional[Stream] = Field(None, description="Constrain the change to one stream")
    parent_version_id: Optional[str] = Field(None, description="Version being iterated from")
    freeze_parent: bool = Field(
        default=False, description="Activate the parent version before creating the new draft"
    )
    provider: str = Field(default="openai", description="LLM provider (openai, qwen, moonshot)")


class AgentRunResponse(BaseModel):
    """Outcome of an agent run"""
    conversation_id: str
    message: str
    drafts: Drafts
    provider: str
    tool_calls: int = Field(..., description="Number of tool calls made")
    usage: Optional[TokenUsage] = None
    iterations: int
    stop_reason: StopReason
    timestamp: datetime = Field(default_factory=datetime.now)


class ConversationResponse(BaseModel):
    ad_id: str
    messages: List[Dict[str, Any]]


# ============================================================================
# Version Models
# ============================================================================

class VersionEntry(BaseModel):
    version_id: str
    data: Dict[str, Any]


class StreamVersionsResponse(BaseModel):
    """All versions of one stream, oldest first"""
    ad_id: str
    stream: Stream
    versions: List[VersionEntry]
    active: Optional[str] = None


class VersionActionResponse(BaseModel):
    success: bool = True
    ad_id: str
    stream: Stream
    version_id: str
    source_version_id: Optional[str] = None


# ============================================================================
# Health Check Models
# ============================================================================

class HealthResponse(BaseModel):
    """Response model for health check endpoint."""
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    timestamp: datetime = Field(default_factory=datetime.now)
    services: Dict[str, str] = Field(
        default_factory=dict,
        description="Status of dependent services (redis, LLM providers)"
    )


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Detailed error information")
    timestamp: datetime = Field(default_factory=datetime.now)
