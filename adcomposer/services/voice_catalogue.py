"""
Voice Catalogue Service

Read-only access to the voice catalogue stored in Supabase. Language/accent
normalization and provider syncing happen upstream; this service only filters
the approved voices.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from .models import Voice
from ..core.config import Config
from ..core.database import get_supabase_client

logger = logging.getLogger(__name__)

# Provider wildcard used by the search tool
ANY_PROVIDER = "any"


class VoiceCatalogue:
    """Service for searching the approved voice catalogue"""

    def __init__(self, supabase: Optional[Client] = None, table: Optional[str] = None):
        """
        Initialize with a Supabase client.

        Args:
            supabase: Supabase client (defaults to the process-wide client)
            table: Voices table name (defaults to Config.VOICES_TABLE)
        """
        self.supabase = supabase or get_supabase_client()
        self.table = table or Config.VOICES_TABLE

    async def search(
        self,
        provider: str,
        language: str,
        gender: Optional[str] = None,
        accent: Optional[str] = None,
        style: Optional[str] = None,
        limit: Optional[int] = None,
        require_approval: bool = True,
    ) -> List[Voice]:
        """
        Search voices by provider, language and optional filters.

        An empty result is a normal outcome, not an error.

        Args:
            provider: TTS provider, or "any" for every provider
            language: Language code; matches regional variants ("en" -> "en-GB")
            gender: Optional gender filter
            accent: Optional accent filter (substring, case-insensitive)
            style: Optional style/personality filter (substring, case-insensitive)
            limit: Maximum number of voices to return
            require_approval: Exclude blacklisted (unapproved) voices

        Returns:
            Matching voices in catalogue order
        """
        def _query():
            query = self.supabase.table(self.table).select("*")
            if provider and provider != ANY_PROVIDER:
                query = query.eq("provider", provider)
            query = query.ilike("language", f"{language}%")
            if gender:
                query = query.eq("gender", gender.lower())
            if accent:
                query = query.ilike("accent", f"%{accent}%")
            if require_approval:
                query = query.eq("approved", True)
            return query.execute()

        result = await asyncio.to_thread(_query)
        voices = [self._row_to_voice(row) for row in (result.data or [])]

        if style:
            needle = style.lower()
            voices = [
                v for v in voices
                if needle in (v.style or "").lower() or needle in (v.personality or "").lower()
            ]

        if limit is not None:
            voices = voices[:limit]

        logger.info(
            f"[VoiceCatalogue] {len(voices)} voice(s) for provider={provider} "
            f"language={language} gender={gender} accent={accent}"
        )
        return voices

    async def get_voices_by_ids(self, voice_ids: List[str]) -> Dict[str, Voice]:
        """
        Look up catalogue entries for a set of voice IDs.

        Args:
            voice_ids: Provider voice IDs

        Returns:
            Mapping of voice ID to Voice; unknown IDs are absent
        """
        unique_ids = sorted(set(voice_ids))
        if not unique_ids:
            return {}

        result = await asyncio.to_thread(
            lambda: self.supabase.table(self.table)
                .select("*")
                .in_("id", unique_ids)
                .execute()
        )
        return {row["id"]: self._row_to_voice(row) for row in (result.data or [])}

    @staticmethod
    def _row_to_voice(row: Dict[str, Any]) -> Voice:
        """Convert a catalogue row to a Voice."""
        return Voice(
            id=row["id"],
            name=row.get("name") or row["id"],
            provider=row.get("provider") or "",
            language=row.get("language") or "",
            gender=row.get("gender"),
            accent=row.get("accent"),
            style=row.get("style") or row.get("use_case"),
            personality=row.get("personality") or row.get("description"),
            age=row.get("age"),
        )
