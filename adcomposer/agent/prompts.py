"""
Prompt builders for the creative agent.

Generation runs get a brief-specific system prompt (optionally with the
prefetched voice list); chat refinements reuse the conversation's stored
system prompt, falling back to the iteration prompt.
"""

from typing import Optional

from ..services.models import Stream

BASE_SYSTEM_PROMPT = """You are an expert audio ad producer. You turn a client brief into a \
finished radio/podcast ad made of three independent streams: a voice script, a music bed \
and sound effects.

## HOW YOU WORK

You act only through tools:
- create_voice_draft: the script, split into voice tracks (one line per track)
- create_music_draft: the music bed, with provider-specific prompts
- create_sfx_draft: short sound effects placed around the voice tracks
- set_ad_title: a short title for the ad
- read_ad_state: the current drafts (only when continuing an existing ad)
- search_voices: the voice catalogue (only when no voice list is provided)

Each draft tool call replaces the previous draft of its stream. Create each stream's \
draft ONCE per request, then stop calling tools and reply with a short summary of what \
you made.

## RULES
- Only use voice IDs returned by search_voices or listed in this prompt.
- Match the language of the brief in every voice track.
- Keep the total spoken length within the requested duration.
- Sound effect descriptions are always in English.
"""

ITERATION_MODE = """## ITERATION MODE

You are continuing an existing conversation about an ad. The user wants to make changes.

**Key behavior:**
- Call read_ad_state first to see what currently exists
- Use search_voices if you need to find new voices
- Only create drafts for the streams the user wants to change
- Preserve existing work unless explicitly asked to change it

**Voice iteration - IMPORTANT:**
When changing voices, check the voice_history array in the read_ad_state response.
It lists the voices already tried in previous versions.
AVOID reusing voice IDs from voice_history unless the user explicitly asks to go back \
to a previous voice."""

FORCE_MUSIC_DIRECTIVE = (
    "STOP searching and reading state. The voice draft already exists. "
    "Call create_music_draft now, then create_sfx_draft if it is still missing."
)

STREAM_NAMES = {
    Stream.VOICES: "VOICE",
    Stream.MUSIC: "MUSIC",
    Stream.SFX: "SOUND EFFECTS",
}

STREAM_DRAFT_NOUNS = {
    Stream.VOICES: "voice",
    Stream.MUSIC: "music",
    Stream.SFX: "sfx",
}


def build_generation_system_prompt(
    ad_id: str,
    client_description: str,
    creative_brief: str,
    language: str,
    voice_provider: str,
    campaign_format: str = "ad_read",
    duration: int = 30,
    accent: Optional[str] = None,
    voice_options: Optional[str] = None,
) -> str:
    """
    System prompt for the initial generation of an ad.

    Args:
        ad_id: Ad ID the tools must be called with
        client_description: Who the client is and what they sell
        creative_brief: What the ad should say and how it should feel
        language: Target language code
        voice_provider: TTS provider the voices must come from
        campaign_format: "ad_read" (single voice) or "dialog" (two voices)
        duration: Target ad length in seconds
        accent: Optional accent requirement
        voice_options: Prefetched voice list; when given, search_voices is
            not offered and the model must pick from this list

    Returns:
        Complete system prompt
    """
    accent_line = f"- Accent: {accent}\n" if accent else ""
    sections = [
        BASE_SYSTEM_PROMPT,
        "## THE BRIEF\n"
        f"- Ad ID: {ad_id}\n"
        f"- Client: {client_description}\n"
        f"- Creative brief: {creative_brief}\n"
        f"- Language: {language}\n"
        f"{accent_line}"
        f"- Voice provider: {voice_provider}\n"
        f"- Format: {campaign_format}\n"
        f"- Duration: {duration} seconds",
    ]

    if voice_options:
        sections.append(
            "## AVAILABLE VOICES\n"
            "Pick voices ONLY from this list (search_voices is not available):\n\n"
            f"{voice_options}"
        )
    else:
        sections.append(
            f"## VOICES\nCall search_voices with provider '{voice_provider}' and language "
            f"'{language}' once, then pick the best fitting voices."
        )

    return "\n\n".join(sections)


def build_generation_user_message(ad_id: str) -> str:
    return (
        f"Create the complete ad for ad ID {ad_id}: set a title, then create the voice, "
        "music and sound effects drafts."
    )


def build_freeform_system_prompt(ad_id: str) -> str:
    """System prompt for a fresh run driven only by the user's message."""
    return (
        f"{BASE_SYSTEM_PROMPT}\n\n## THE AD\n- Ad ID: {ad_id}\n"
        "The brief is in the user's message. Search for voices before creating the voice draft."
    )


def build_iteration_system_prompt() -> str:
    """System prompt for refinements when the stored one is unavailable."""
    return f"{BASE_SYSTEM_PROMPT}\n\n{ITERATION_MODE}"


def build_focused_message(
    message: str,
    stream: Optional[Stream] = None,
    parent_version_id: Optional[str] = None,
) -> str:
    """
    Constrain a chat message to a single stream.

    Without a stream the message is returned unchanged.
    """
    if stream is None:
        return message

    stream = Stream(stream)
    stream_name = STREAM_NAMES[stream]
    parent_context = (
        f" You are iterating from version {parent_version_id}." if parent_version_id else ""
    )

    return (
        f"[{stream_name} ONLY] {message}\n\n"
        f"IMPORTANT: Only modify the {stream_name} track. Do NOT touch other streams."
        f"{parent_context}\n"
        f"Create a new {STREAM_DRAFT_NOUNS[stream]} draft with the requested changes."
    )
