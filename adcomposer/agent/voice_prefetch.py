"""
Voice prefetch for generation runs.

Fetches the approved voices before the first LLM call so the model can pick
from a list in its system prompt instead of spending a round-trip on
search_voices.
"""

import logging
from typing import List, Optional

from pydantic import BaseModel, Field

from ..services.models import Voice, utc_now
from ..services.voice_catalogue import VoiceCatalogue

logger = logging.getLogger(__name__)


class VoicePrefetchResult(BaseModel):
    """Prefetched voices, split by gender for dialog formats"""
    voices: List[Voice] = Field(default_factory=list)
    male_voices: List[Voice] = Field(default_factory=list)
    female_voices: List[Voice] = Field(default_factory=list)
    fetched_at: float = Field(default_factory=lambda: utc_now().timestamp())

    @property
    def total_count(self) -> int:
        return len(self.voices)


async def prefetch_voices(
    catalogue: VoiceCatalogue,
    provider: str,
    language: str,
    accent: Optional[str] = None,
) -> VoicePrefetchResult:
    """
    Prefetch every approved voice for a provider/language combination.

    Uses the same catalogue query as the search_voices tool.
    """
    voices = await catalogue.search(provider=provider, language=language, accent=accent)
    result = VoicePrefetchResult(
        voices=voices,
        male_voices=[v for v in voices if (v.gender or "").lower() == "male"],
        female_voices=[v for v in voices if (v.gender or "").lower() == "female"],
    )
    logger.info(
        f"[VoicePrefetch] {result.total_count} voices for {provider}/{language} "
        f"({len(result.male_voices)} male, {len(result.female_voices)} female)"
    )
    return result


def _format_voice(voice: Voice) -> str:
    details = [d for d in (voice.accent, voice.age, voice.style) if d]
    line = f"- {voice.name} (id: {voice.id})"
    if details:
        line += f" [{', '.join(details)}]"
    if voice.personality:
        line += f": {voice.personality}"
    return line


def format_voice_options(result: VoicePrefetchResult) -> str:
    """Render prefetched voices as a prompt section, grouped by gender."""
    if not result.voices:
        return "No voices are available for this language and provider."

    sections = []
    others = [v for v in result.voices if v not in result.male_voices and v not in result.female_voices]
    for title, voices in (
        ("Female voices", result.female_voices),
        ("Male voices", result.male_voices),
        ("Other voices", others),
    ):
        if voices:
            sections.append(f"### {title}\n" + "\n".join(_format_voice(v) for v in voices))
    return "\n\n".join(sections)
