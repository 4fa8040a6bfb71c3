"""
Core infrastructure: configuration, clients, observability and exceptions.
"""

from .config import Config
from .exceptions import (
    AdComposerError,
    AdMismatchError,
    AdNotFoundError,
    ActiveVersionDeletionError,
    ConversationNotFoundError,
    UnknownProviderError,
    UnknownToolError,
    VersionNotFoundError,
    VoiceNotFoundError,
)

__all__ = [
    "Config",
    "AdComposerError",
    "AdMismatchError",
    "AdNotFoundError",
    "ActiveVersionDeletionError",
    "ConversationNotFoundError",
    "UnknownProviderError",
    "UnknownToolError",
    "VersionNotFoundError",
    "VoiceNotFoundError",
]
