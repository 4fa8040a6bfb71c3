"""
Domain models and external collaborators (voice catalogue).
"""

from .models import (
    AdMetadata,
    CreatedBy,
    MusicPrompts,
    MusicVersion,
    SfxPlacement,
    SfxVersion,
    SoundFxPrompt,
    Stream,
    Version,
    VersionStatus,
    Voice,
    VoiceRef,
    VoiceTrack,
    VoiceVersion,
    VERSION_MODELS,
)
from .voice_catalogue import VoiceCatalogue

__all__ = [
    "AdMetadata",
    "CreatedBy",
    "MusicPrompts",
    "MusicVersion",
    "SfxPlacement",
    "SfxVersion",
    "SoundFxPrompt",
    "Stream",
    "Version",
    "VersionStatus",
    "Voice",
    "VoiceRef",
    "VoiceTrack",
    "VoiceVersion",
    "VERSION_MODELS",
    "VoiceCatalogue",
]
