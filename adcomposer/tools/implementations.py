"""
Tool Implementations

Domain operations behind each tool. Every method receives validated
parameters and returns a JSON-serializable dict; errors are raised and left
to the ToolExecutor to convert into structured tool errors.
"""

import logging
from typing import Any, Dict, List, Optional

from .models import (
    CreateMusicDraftParams,
    CreateSfxDraftParams,
    CreateVoiceDraftParams,
    ReadAdStateParams,
    SearchVoicesParams,
    SetAdTitleParams,
)
from ..services.models import (
    MusicPrompts,
    MusicVersion,
    SfxPlacement,
    SfxVersion,
    SoundFxPrompt,
    Stream,
    Voice,
    VoiceRef,
    VoiceTrack,
    VoiceVersion,
)
from ..core.exceptions import VoiceNotFoundError
from ..services.voice_catalogue import VoiceCatalogue
from ..storage.ads import AdStore
from ..storage.versions import VersionStore

logger = logging.getLogger(__name__)


def _voice_summary(voice: Voice) -> Dict[str, Any]:
    return {
        "id": voice.id,
        "name": voice.name,
        "provider": voice.provider,
        "language": voice.language,
        "gender": voice.gender,
        "accent": voice.accent,
        "style": voice.style,
        "personality": voice.personality,
    }


class ToolImplementations:
    """
    Tool bodies wired to the voice catalogue and the Redis stores.

    Args:
        catalogue: Voice catalogue used by search_voices and name lookups
        versions: Version store (draft writes, state reads)
        ads: Ad store (titles, lazy ad creation)
    """

    def __init__(self, catalogue: VoiceCatalogue, versions: VersionStore, ads: AdStore):
        self.catalogue = catalogue
        self.versions = versions
        self.ads = ads

    # =========================================================================
    # search_voices
    # =========================================================================

    async def search_voices(self, params: SearchVoicesParams) -> Dict[str, Any]:
        voices = await self.catalogue.search(
            provider=params.provider,
            language=params.language,
            gender=params.gender,
            accent=params.accent,
            style=params.style,
            limit=params.count,
        )
        enriched = [_voice_summary(v) for v in voices]
        logger.info(
            f"[search_voices] {len(enriched)} voices for {params.provider}/{params.language}"
        )
        return {"voices": enriched, "count": len(enriched)}

    # =========================================================================
    # Draft creation
    # =========================================================================

    async def create_voice_draft(self, params: CreateVoiceDraftParams) -> Dict[str, Any]:
        requested = list(dict.fromkeys(t.voice_id for t in params.tracks))
        known = await self.catalogue.get_voices_by_ids(requested)
        missing = [voice_id for voice_id in requested if voice_id not in known]
        if missing:
            raise VoiceNotFoundError(missing)

        tracks: List[VoiceTrack] = []
        for index, track in enumerate(params.tracks):
            voice = known[track.voice_id]
            tracks.append(VoiceTrack(
                voice=VoiceRef(
                    id=track.voice_id,
                    name=voice.name,
                    provider=voice.provider,
                ),
                text=track.text,
                play_after=track.play_after or ("start" if index == 0 else f"track-{index - 1}"),
                overlap=track.overlap if track.overlap is not None else 0,
                description=track.description,
                voice_instructions=track.voice_instructions,
            ))

        version_id, frozen = await self.versions.create_draft(
            params.ad_id, Stream.VOICES, VoiceVersion(voice_tracks=tracks)
        )
        return self._draft_result(version_id, frozen)

    async def create_music_draft(self, params: CreateMusicDraftParams) -> Dict[str, Any]:
        prompts = MusicPrompts(
            loudly=params.loudly or params.prompt,
            mubert=params.mubert or params.prompt,
            elevenlabs=params.elevenlabs or params.prompt,
        )
        version = MusicVersion(
            music_prompt=params.prompt,
            music_prompts=prompts,
            provider=params.provider,
            duration=params.duration,
        )
        version_id, frozen = await self.versions.create_draft(params.ad_id, Stream.MUSIC, version)
        return self._draft_result(version_id, frozen)

    async def create_sfx_draft(self, params: CreateSfxDraftParams) -> Dict[str, Any]:
        prompts = []
        for prompt in params.prompts:
            placement = SfxPlacement()
            if prompt.placement is not None:
                if prompt.placement.type == "afterVoice":
                    # afterVoice without an index falls back to the end
                    if prompt.placement.index is not None:
                        placement = SfxPlacement(type="afterVoice", index=prompt.placement.index)
                else:
                    placement = SfxPlacement(type=prompt.placement.type)

            prompts.append(SoundFxPrompt(
                description=prompt.description,
                placement=placement,
                duration=prompt.duration or 3,
            ))

        version_id, frozen = await self.versions.create_draft(
            params.ad_id, Stream.SFX, SfxVersion(sound_fx_prompts=prompts)
        )
        return self._draft_result(version_id, frozen)

    @staticmethod
    def _draft_result(version_id: str, frozen: List[str]) -> Dict[str, Any]:
        result: Dict[str, Any] = {"versionId": version_id, "status": "draft"}
        if frozen:
            result["frozenVersions"] = frozen
        return result

    # =========================================================================
    # read_ad_state
    # =========================================================================

    async def read_ad_state(self, params: ReadAdStateParams) -> Dict[str, Any]:
        """
        Latest version per stream with the content needed to preserve it,
        the active pointers and the history of voices already tried.
        """
        ad_id = params.ad_id
        state: Dict[str, Any] = {"adId": ad_id}

        metadata = await self.versions.get_ad_metadata(ad_id)
        if metadata is not None:
            state["title"] = metadata.name

        latest_voice_id: Optional[str] = None

        voices = await self.versions.get_latest_version(ad_id, Stream.VOICES)
        if voices:
            latest_voice_id, vv = voices
            state["voices"] = {
                "versionId": latest_voice_id,
                "status": vv.status.value,
                "summary": f"{len(vv.voice_tracks)} voice tracks",
                "tracks": [
                    {
                        "voiceId": t.voice.id,
                        "voiceName": t.voice.name,
                        "text": t.text,
                        "playAfter": t.play_after,
                        "overlap": t.overlap,
                        "description": t.description,
                        "voiceInstructions": t.voice_instructions,
                    }
                    for t in vv.voice_tracks
                ],
            }

        music = await self.versions.get_latest_version(ad_id, Stream.MUSIC)
        if music:
            music_id, mv = music
            state["music"] = {
                "versionId": music_id,
                "status": mv.status.value,
                "summary": f'{mv.provider} - "{mv.music_prompt[:50]}..."',
                "prompt": mv.music_prompt,
                "prompts": mv.music_prompts.model_dump(),
                "provider": mv.provider,
                "duration": mv.duration,
            }

        sfx = await self.versions.get_latest_version(ad_id, Stream.SFX)
        if sfx:
            sfx_id, sv = sfx
            state["sfx"] = {
                "versionId": sfx_id,
                "status": sv.status.value,
                "summary": f"{len(sv.sound_fx_prompts)} sound effects",
                "prompts": [
                    {
                        "description": p.description,
                        "placement": p.placement.model_dump(exclude_none=True),
                        "duration": p.duration,
                    }
                    for p in sv.sound_fx_prompts
                ],
            }

        state["active"] = {
            stream.value: await self.versions.get_active_version(ad_id, stream)
            for stream in Stream
        }
        state["voice_history"] = await self._voice_history(ad_id, exclude=latest_voice_id)
        return state

    async def _voice_history(self, ad_id: str, exclude: Optional[str]) -> List[Dict[str, Any]]:
        """Voices used by earlier voice versions, first use first."""
        history: Dict[str, Dict[str, Any]] = {}
        all_versions = await self.versions.get_all_versions_with_data(ad_id, Stream.VOICES)
        for version_id, version in all_versions.items():
            if version_id == exclude:
                continue
            for track in version.voice_tracks:
                entry = history.setdefault(
                    track.voice.id,
                    {"voiceId": track.voice.id, "voiceName": track.voice.name, "usedIn": []},
                )
                if version_id not in entry["usedIn"]:
                    entry["usedIn"].append(version_id)
        return list(history.values())

    # =========================================================================
    # set_ad_title
    # =========================================================================

    async def set_ad_title(self, params: SetAdTitleParams) -> Dict[str, Any]:
        await self.ads.ensure_ad_exists(params.ad_id)
        metadata = await self.ads.update_ad_metadata(params.ad_id, name=params.title.strip())
        return {"success": True, "title": metadata.name}
