"""
Tool parameter models.

Each tool's arguments are validated against one of these models before the
tool runs; the same models generate the JSON schema sent to the LLM. Field
aliases keep the camelCase argument names the model is prompted with.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ToolParams(BaseModel):
    """Base for tool arguments: camelCase aliases, unknown keys ignored"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ============================================================================
# search_voices
# ============================================================================

class SearchVoicesParams(ToolParams):
    provider: Literal["elevenlabs", "openai", "lovo", "qwen", "bytedance"] = Field(
        ..., description="Voice provider to search (REQUIRED - use the provider specified in the brief)"
    )
    language: str = Field(
        ..., description="ISO 639-1 language code (e.g., 'fr', 'de', 'es', 'th', 'id', 'pl', 'en')"
    )
    gender: Optional[Literal["male", "female"]] = Field(
        None, description="Voice gender filter (optional)"
    )
    accent: Optional[str] = Field(
        None, description="Accent filter (optional) - only use if user explicitly specified an accent"
    )
    style: Optional[str] = Field(
        None, description="Style or personality keyword (optional, e.g. 'warm', 'energetic')"
    )
    count: int = Field(10, ge=1, le=50, description="Number of voices to return (default: 10)")


# ============================================================================
# create_voice_draft
# ============================================================================

class VoiceTrackParams(ToolParams):
    voice_id: str = Field(..., alias="voiceId", description="Voice ID from search_voices")
    text: str = Field(
        ...,
        description="Script text. For ElevenLabs: include [emotional tags] inline. For OpenAI: plain text.",
    )
    play_after: Optional[str] = Field(
        None, alias="playAfter", description="What this plays after (e.g., 'start', 'track-0')"
    )
    overlap: Optional[float] = Field(
        None, description="Overlap in seconds (can be negative for gap)"
    )
    description: Optional[str] = Field(
        None,
        description=(
            "ElevenLabs baseline tone (REQUIRED for ElevenLabs voices): cheerful, excited, "
            "calm, professional, energetic, warm, serious, etc."
        ),
    )
    voice_instructions: Optional[str] = Field(
        None,
        alias="voiceInstructions",
        description=(
            "OpenAI voice guidance (REQUIRED for OpenAI voices): 'Voice Affect: ...; Tone: ...; "
            "Pacing: ...; Emotion: ...; Emphasis: ...; Pronunciation: ...; Pauses: ...'"
        ),
    )


class CreateVoiceDraftParams(ToolParams):
    ad_id: str = Field(..., alias="adId", description="The ad ID to create draft for")
    tracks: List[VoiceTrackParams] = Field(
        ..., min_length=1, description="Array of voice tracks with text and timing"
    )


# ============================================================================
# create_music_draft
# ============================================================================

class CreateMusicDraftParams(ToolParams):
    ad_id: str = Field(..., alias="adId", description="The ad ID")
    prompt: str = Field(..., description="Base music concept (1 sentence, used as fallback)")
    elevenlabs: Optional[str] = Field(
        None,
        description=(
            "ElevenLabs prompt (100-200 words): Detailed instrumental descriptions, NO artist "
            "names. Focus on instruments, tempo, playing techniques."
        ),
    )
    loudly: Optional[str] = Field(
        None,
        description=(
            "Loudly prompt (100-200 words): Detailed descriptions WITH artist/band references. "
            "Include contextual framing like 'feels like...' or 'for...'"
        ),
    )
    mubert: Optional[str] = Field(
        None,
        description=(
            "Mubert prompt (8-12 words): genre, energy, optional instrument, setting, vibe. "
            "Example: 'Indie rock, energetic, summer, full of life, fun day with friends'"
        ),
    )
    provider: Literal["loudly", "mubert", "elevenlabs"] = Field(
        "loudly", description="Music provider (default: loudly)"
    )
    duration: float = Field(30, gt=0, description="Duration in seconds")


# ============================================================================
# create_sfx_draft
# ============================================================================

class PlacementParams(ToolParams):
    type: Literal["start", "end", "afterVoice"] = Field(..., description="Placement type")
    index: Optional[int] = Field(None, ge=0, description="Voice track index (only for afterVoice)")


class SfxPromptParams(ToolParams):
    description: str = Field(..., description="Sound effect description (in English)")
    placement: Optional[PlacementParams] = Field(None, description="Where to place the SFX")
    duration: Optional[float] = Field(None, gt=0, description="Duration in seconds (max 3 recommended)")


class CreateSfxDraftParams(ToolParams):
    ad_id: str = Field(..., alias="adId", description="The ad ID")
    prompts: List[SfxPromptParams] = Field(..., description="Sound effects to create")


# ============================================================================
# read_ad_state / set_ad_title
# ============================================================================

class ReadAdStateParams(ToolParams):
    ad_id: str = Field(..., alias="adId", description="The ad ID")


class SetAdTitleParams(ToolParams):
    ad_id: str = Field(..., alias="adId", description="The ad ID")
    title: str = Field(..., min_length=1, max_length=120, description="Short, catchy ad title")
