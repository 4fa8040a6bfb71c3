"""
Domain exceptions.

Store-level invariant violations are raised from here; the tool executor turns
them into structured tool errors so a run never crashes on them.
"""

from typing import Iterable


class AdComposerError(Exception):
    """Base class for AdComposer errors."""


class VersionNotFoundError(AdComposerError, LookupError):
    """A version id does not exist in the requested stream."""

    def __init__(self, ad_id: str, stream: str, version_id: str):
        self.ad_id = ad_id
        self.stream = stream
        self.version_id = version_id
        super().__init__(f"Version not found: {stream} {version_id} in ad {ad_id}")


class ActiveVersionDeletionError(AdComposerError, ValueError):
    """Attempt to delete the version the active pointer references."""

    def __init__(self, ad_id: str, stream: str, version_id: str):
        self.ad_id = ad_id
        self.stream = stream
        self.version_id = version_id
        super().__init__(
            f"Cannot delete active version {version_id}. Activate another version first."
        )


class ConversationNotFoundError(AdComposerError, LookupError):
    """No stored conversation exists for an ad."""

    def __init__(self, ad_id: str):
        self.ad_id = ad_id
        super().__init__(
            f"No conversation found for ad {ad_id}. Run the agent loop for initial generation first."
        )


class AdNotFoundError(AdComposerError, LookupError):
    """Ad metadata does not exist."""

    def __init__(self, ad_id: str):
        self.ad_id = ad_id
        super().__init__(f"Ad not found: {ad_id}")


class UnknownToolError(AdComposerError, KeyError):
    """Tool name is not in the registry."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown tool: {name}")

    def __str__(self) -> str:
        return f"Unknown tool: {self.name}"


class UnknownProviderError(AdComposerError, ValueError):
    """LLM provider name is not supported."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Unknown provider: {provider}")


class VoiceNotFoundError(AdComposerError, LookupError):
    """Voice ids that are not in the voice catalogue."""

    def __init__(self, voice_ids: Iterable[str]):
        self.voice_ids = list(voice_ids)
        super().__init__(f"Voice not found: {', '.join(self.voice_ids)}")


class AdMismatchError(AdComposerError, ValueError):
    """A tool call targets a different ad than the run it belongs to."""

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"This run works on ad {expected}, not {actual}")
