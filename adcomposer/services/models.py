"""
Version Stream Models

Pydantic models for the three creative streams of an ad (voices, music,
sound effects), the ad metadata record, and catalogue voices.

Versions are immutable records; only `status` and generated audio URLs change
after creation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    """Timezone-aware creation timestamp."""
    return datetime.now(timezone.utc)


# ============================================================================
# Core Enums
# ============================================================================

class Stream(str, Enum):
    """Independent creative tracks of an ad"""
    VOICES = "voices"
    MUSIC = "music"
    SFX = "sfx"


class VersionStatus(str, Enum):
    """Lifecycle of a version"""
    DRAFT = "draft"      # in-progress, at most one per (ad, stream)
    FROZEN = "frozen"    # superseded draft, kept for history and cloning
    ACTIVE = "active"    # selected for rendering and mixing


class CreatedBy(str, Enum):
    """Who produced a version"""
    USER = "user"
    LLM = "llm"
    FORK = "fork"


MusicProvider = Literal["loudly", "mubert", "elevenlabs"]
PlacementType = Literal["start", "end", "afterVoice"]


# ============================================================================
# Catalogue Voices
# ============================================================================

class Voice(BaseModel):
    """Voice from the catalogue, enriched with personality metadata"""
    id: str = Field(..., description="Provider voice ID")
    name: str = Field(..., description="Display name")
    provider: str = Field(..., description="TTS provider (elevenlabs, openai, lovo, ...)")
    language: str = Field(..., description="Language code (e.g. 'en', 'fr-FR')")
    gender: Optional[str] = Field(None, description="male, female or neutral")
    accent: Optional[str] = None
    style: Optional[str] = Field(None, description="Style or use case")
    personality: Optional[str] = Field(None, description="Free-text personality description")
    age: Optional[str] = None


# ============================================================================
# Version Payloads
# ============================================================================

class VoiceRef(BaseModel):
    """Voice referenced by a track"""
    id: str
    name: str
    provider: Optional[str] = None


class VoiceTrack(BaseModel):
    """One spoken line of the script"""
    voice: VoiceRef
    text: str
    play_after: str = "start"
    overlap: float = 0
    speed: float = 1.0
    description: Optional[str] = Field(None, description="ElevenLabs baseline tone")
    voice_instructions: Optional[str] = Field(None, description="OpenAI voice guidance")
    generated_url: Optional[str] = None


class MusicPrompts(BaseModel):
    """Provider-specific music prompts"""
    loudly: str = ""
    mubert: str = ""
    elevenlabs: str = ""


class SfxPlacement(BaseModel):
    """Where a sound effect sits in the timeline"""
    type: PlacementType = "end"
    index: Optional[int] = Field(None, description="Voice track index (afterVoice only)")


class SoundFxPrompt(BaseModel):
    """One sound effect request"""
    description: str
    placement: SfxPlacement = Field(default_factory=SfxPlacement)
    duration: float = 3
    play_after: str = "start"
    overlap: float = 0
    generated_url: Optional[str] = None


# ============================================================================
# Versions
# ============================================================================

class BaseVersion(BaseModel):
    """Fields shared by every version in every stream"""
    created_at: datetime = Field(default_factory=utc_now)
    created_by: CreatedBy = CreatedBy.LLM
    status: VersionStatus = VersionStatus.DRAFT
    parent_version_id: Optional[str] = Field(None, description="Source version when cloned")
    request_text: Optional[str] = Field(None, description="User request that produced this version")


class VoiceVersion(BaseVersion):
    """Voice stream version"""
    voice_tracks: List[VoiceTrack] = Field(default_factory=list)
    generated_urls: List[str] = Field(default_factory=list)


class MusicVersion(BaseVersion):
    """Music stream version"""
    music_prompt: str
    music_prompts: MusicPrompts = Field(default_factory=MusicPrompts)
    provider: MusicProvider = "loudly"
    duration: float = 30
    generated_url: Optional[str] = None


class SfxVersion(BaseVersion):
    """Sound effects stream version"""
    sound_fx_prompts: List[SoundFxPrompt] = Field(default_factory=list)
    generated_urls: List[str] = Field(default_factory=list)


Version = Union[VoiceVersion, MusicVersion, SfxVersion]

VERSION_MODELS: Dict[Stream, Type[BaseVersion]] = {
    Stream.VOICES: VoiceVersion,
    Stream.MUSIC: MusicVersion,
    Stream.SFX: SfxVersion,
}


# ============================================================================
# Ad Metadata
# ============================================================================

class AdMetadata(BaseModel):
    """Ad-level record, created lazily on the first meaningful action"""
    name: str = "Untitled Ad"
    brief: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
    last_modified: datetime = Field(default_factory=utc_now)
    owner: Optional[str] = Field(None, description="Owning session ID")
