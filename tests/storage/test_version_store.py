"""
Tests for VersionStore: id assignment, draft lifecycle, activation,
cloning and deletion against an in-process Redis.
"""

import asyncio
import gc

import pytest

from adcomposer.core.exceptions import ActiveVersionDeletionError, VersionNotFoundError
from adcomposer.services.models import (
    AdMetadata,
    CreatedBy,
    MusicVersion,
    SfxVersion,
    Stream,
    VersionStatus,
    VoiceRef,
    VoiceTrack,
    VoiceVersion,
)
from adcomposer.storage.keys import AD_KEYS


def _voice_version(text: str = "Hello there", status=VersionStatus.DRAFT) -> VoiceVersion:
    return VoiceVersion(
        voice_tracks=[VoiceTrack(voice=VoiceRef(id="el-anna", name="Anna"), text=text)],
        status=status,
    )


def _music_version(prompt: str = "Upbeat acoustic guitar") -> MusicVersion:
    return MusicVersion(music_prompt=prompt)


# =============================================================================
# Version ID assignment
# =============================================================================

class TestVersionIds:
    """Sequential, per-stream version ids."""

    @pytest.mark.asyncio
    async def test_ids_are_sequential(self, versions):
        ids = [await versions.create_version("ad1", Stream.VOICES, _voice_version()) for _ in range(3)]
        assert ids == ["v1", "v2", "v3"]
        assert await versions.list_versions("ad1", Stream.VOICES) == ["v1", "v2", "v3"]

    @pytest.mark.asyncio
    async def test_streams_are_independent(self, versions):
        await versions.create_version("ad1", Stream.VOICES, _voice_version())
        await versions.create_version("ad1", Stream.VOICES, _voice_version())

        assert await versions.create_version("ad1", Stream.MUSIC, _music_version()) == "v1"
        assert await versions.create_version("ad1", Stream.SFX, SfxVersion()) == "v1"
        assert await versions.create_version("ad2", Stream.VOICES, _voice_version()) == "v1"

    @pytest.mark.asyncio
    async def test_concurrent_creates_never_share_an_id(self, versions):
        ids = await asyncio.gather(*(
            versions.create_version("ad1", Stream.MUSIC, _music_version(f"prompt {i}"))
            for i in range(10)
        ))
        assert sorted(ids, key=lambda v: int(v[1:])) == [f"v{i}" for i in range(1, 11)]
        assert len(await versions.list_versions("ad1", Stream.MUSIC)) == 10

    @pytest.mark.asyncio
    async def test_counter_seeded_from_existing_list(self, versions, redis):
        """Streams written before the counter existed continue after their highest id."""
        await redis.rpush(AD_KEYS.versions("ad1", Stream.VOICES), "v1", "v2")
        assert await versions.create_version("ad1", Stream.VOICES, _voice_version()) == "v3"

    @pytest.mark.asyncio
    async def test_ids_not_reused_after_delete(self, versions):
        await versions.create_version("ad1", Stream.VOICES, _voice_version())
        await versions.create_version("ad1", Stream.VOICES, _voice_version())
        await versions.delete_version("ad1", Stream.VOICES, "v2")

        assert await versions.create_version("ad1", Stream.VOICES, _voice_version()) == "v3"

    @pytest.mark.asyncio
    async def test_payload_must_match_stream(self, versions):
        with pytest.raises(TypeError):
            await versions.create_version("ad1", Stream.MUSIC, _voice_version())


# =============================================================================
# Reads
# =============================================================================

class TestReads:
    """Absent keys read as empty / None, never as errors."""

    @pytest.mark.asyncio
    async def test_missing_reads(self, versions):
        assert await versions.get_version("nope", Stream.VOICES, "v1") is None
        assert await versions.list_versions("nope", Stream.VOICES) == []
        assert await versions.get_all_versions_with_data("nope", Stream.VOICES) == {}
        assert await versions.get_latest_version("nope", Stream.VOICES) is None
        assert await versions.get_active_version("nope", Stream.VOICES) is None

    @pytest.mark.asyncio
    async def test_round_trip_and_latest(self, versions):
        await versions.create_version("ad1", Stream.VOICES, _voice_version("first"))
        await versions.create_version("ad1", Stream.VOICES, _voice_version("second"))

        v1 = await versions.get_version("ad1", Stream.VOICES, "v1")
        assert isinstance(v1, VoiceVersion)
        assert v1.voice_tracks[0].text == "first"

        latest_id, latest = await versions.get_latest_version("ad1", Stream.VOICES)
        assert latest_id == "v2"
        assert latest.voice_tracks[0].text == "second"

        all_versions = await versions.get_all_versions_with_data("ad1", Stream.VOICES)
        assert list(all_versions) == ["v1", "v2"]


# =============================================================================
# Single-draft invariant
# =============================================================================

class TestDrafts:
    """create_draft freezes earlier drafts of the same stream only."""

    @pytest.mark.asyncio
    async def test_create_draft_freezes_previous(self, versions):
        first, frozen = await versions.create_draft("ad1", Stream.VOICES, _voice_version())
        assert (first, frozen) == ("v1", [])

        second, frozen = await versions.create_draft("ad1", Stream.VOICES, _voice_version())
        assert (second, frozen) == ("v2", ["v1"])

        assert (await versions.get_version("ad1", Stream.VOICES, "v1")).status == VersionStatus.FROZEN
        assert (await versions.get_version("ad1", Stream.VOICES, "v2")).status == VersionStatus.DRAFT

    @pytest.mark.asyncio
    async def test_stray_drafts_are_all_frozen(self, versions):
        """Multiple drafts left behind by raw writes are repaired in one pass."""
        for _ in range(3):
            await versions.create_version("ad1", Stream.VOICES, _voice_version())

        _, frozen = await versions.create_draft("ad1", Stream.VOICES, _voice_version())

        assert frozen == ["v1", "v2", "v3"]
        statuses = [v.status for v in (await versions.get_all_versions_with_data("ad1", Stream.VOICES)).values()]
        assert statuses.count(VersionStatus.DRAFT) == 1

    @pytest.mark.asyncio
    async def test_concurrent_drafts_leave_one_draft(self, versions):
        await asyncio.gather(*(
            versions.create_draft("ad1", Stream.MUSIC, _music_version(f"p{i}")) for i in range(5)
        ))
        statuses = [v.status for v in (await versions.get_all_versions_with_data("ad1", Stream.MUSIC)).values()]
        assert statuses.count(VersionStatus.DRAFT) == 1
        assert statuses.count(VersionStatus.FROZEN) == 4

    @pytest.mark.asyncio
    async def test_idle_locks_are_released(self, versions):
        lock = versions.draft_lock("ad1", Stream.VOICES)
        assert versions.draft_lock("ad1", "voices") is lock

        del lock
        await versions.create_draft("ad2", Stream.MUSIC, _music_version())
        gc.collect()

        assert len(versions._draft_locks) == 0

    @pytest.mark.asyncio
    async def test_freeze_does_not_touch_other_streams(self, versions):
        await versions.create_draft("ad1", Stream.MUSIC, _music_version())
        await versions.create_draft("ad1", Stream.VOICES, _voice_version())
        await versions.create_draft("ad1", Stream.VOICES, _voice_version())

        assert (await versions.get_version("ad1", Stream.MUSIC, "v1")).status == VersionStatus.DRAFT

    @pytest.mark.asyncio
    async def test_active_versions_are_not_frozen(self, versions):
        await versions.create_draft("ad1", Stream.VOICES, _voice_version())
        await versions.set_active_version("ad1", Stream.VOICES, "v1")
        _, frozen = await versions.create_draft("ad1", Stream.VOICES, _voice_version())

        assert frozen == []
        assert (await versions.get_version("ad1", Stream.VOICES, "v1")).status == VersionStatus.ACTIVE


# =============================================================================
# Activation and deletion
# =============================================================================

class TestActivation:
    """Active pointer management and active-version protection."""

    @pytest.mark.asyncio
    async def test_activate_missing_version_fails(self, versions):
        with pytest.raises(VersionNotFoundError):
            await versions.set_active_version("ad1", Stream.VOICES, "v9")

    @pytest.mark.asyncio
    async def test_activate_sets_pointer_and_status(self, versions):
        await versions.create_version("ad1", Stream.VOICES, _voice_version())
        await versions.create_version("ad1", Stream.VOICES, _voice_version())

        await versions.set_active_version("ad1", Stream.VOICES, "v2")

        assert await versions.get_active_version("ad1", Stream.VOICES) == "v2"
        assert (await versions.get_version("ad1", Stream.VOICES, "v2")).status == VersionStatus.ACTIVE
        assert (await versions.get_version("ad1", Stream.VOICES, "v1")).status == VersionStatus.DRAFT

    @pytest.mark.asyncio
    async def test_activation_waits_for_draft_writers(self, versions):
        await versions.create_version("ad1", Stream.VOICES, _voice_version())

        async with versions.draft_lock("ad1", Stream.VOICES):
            activation = asyncio.create_task(versions.set_active_version("ad1", Stream.VOICES, "v1"))
            for _ in range(5):
                await asyncio.sleep(0)
            assert await versions.get_active_version("ad1", Stream.VOICES) is None
            assert await versions.freeze_drafts("ad1", Stream.VOICES) == ["v1"]

        await activation

        assert await versions.get_active_version("ad1", Stream.VOICES) == "v1"
        assert (await versions.get_version("ad1", Stream.VOICES, "v1")).status == VersionStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_active_version_cannot_be_deleted(self, versions):
        await versions.create_version("ad1", Stream.VOICES, _voice_version())
        await versions.create_version("ad1", Stream.VOICES, _voice_version())

        await versions.set_active_version("ad1", Stream.VOICES, "v1")
        with pytest.raises(ActiveVersionDeletionError):
            await versions.delete_version("ad1", Stream.VOICES, "v1")

        await versions.set_active_version("ad1", Stream.VOICES, "v2")
        with pytest.raises(ActiveVersionDeletionError):
            await versions.delete_version("ad1", Stream.VOICES, "v2")

        await versions.delete_version("ad1", Stream.VOICES, "v1")
        assert await versions.list_versions("ad1", Stream.VOICES) == ["v2"]
        assert await versions.get_version("ad1", Stream.VOICES, "v1") is None

    @pytest.mark.asyncio
    async def test_delete_missing_version_fails(self, versions):
        with pytest.raises(VersionNotFoundError):
            await versions.delete_version("ad1", Stream.SFX, "v1")


# =============================================================================
# Cloning and updates
# =============================================================================

class TestCloneAndUpdate:
    """Clone lineage and shallow-merge updates."""

    @pytest.mark.asyncio
    async def test_clone_preserves_lineage(self, versions):
        await versions.create_version("ad1", Stream.VOICES, _voice_version("Original line"))
        await versions.set_active_version("ad1", Stream.VOICES, "v1")
        source = await versions.get_version("ad1", Stream.VOICES, "v1")

        new_id = await versions.clone_version("ad1", Stream.VOICES, "v1")
        clone = await versions.get_version("ad1", Stream.VOICES, new_id)

        assert new_id == "v2"
        assert clone.status == VersionStatus.DRAFT
        assert clone.created_by == CreatedBy.FORK
        assert clone.parent_version_id == "v1"
        assert clone.created_at >= source.created_at
        assert clone.voice_tracks == source.voice_tracks
        assert clone.generated_urls == source.generated_urls

    @pytest.mark.asyncio
    async def test_clone_missing_source_fails(self, versions):
        with pytest.raises(VersionNotFoundError):
            await versions.clone_version("ad1", Stream.MUSIC, "v1")

    @pytest.mark.asyncio
    async def test_clone_freezes_existing_draft(self, versions):
        await versions.create_draft("ad1", Stream.MUSIC, _music_version())
        await versions.clone_version("ad1", Stream.MUSIC, "v1")

        assert (await versions.get_version("ad1", Stream.MUSIC, "v1")).status == VersionStatus.FROZEN
        assert (await versions.get_version("ad1", Stream.MUSIC, "v2")).status == VersionStatus.DRAFT

    @pytest.mark.asyncio
    async def test_update_merges_fields(self, versions):
        await versions.create_version("ad1", Stream.MUSIC, _music_version())

        updated = await versions.update_version(
            "ad1", Stream.MUSIC, "v1", {"generated_url": "https://cdn.example/m.mp3"}
        )

        assert updated.generated_url == "https://cdn.example/m.mp3"
        assert updated.music_prompt == "Upbeat acoustic guitar"
        stored = await versions.get_version("ad1", Stream.MUSIC, "v1")
        assert stored.generated_url == "https://cdn.example/m.mp3"

    @pytest.mark.asyncio
    async def test_update_missing_version_fails(self, versions):
        with pytest.raises(VersionNotFoundError):
            await versions.update_version("ad1", Stream.MUSIC, "v1", {"status": "frozen"})


# =============================================================================
# Ad metadata
# =============================================================================

class TestAdMetadata:

    @pytest.mark.asyncio
    async def test_metadata_round_trip(self, versions):
        assert await versions.get_ad_metadata("ad1") is None

        await versions.set_ad_metadata("ad1", AdMetadata(name="Winter Blend", owner="s1"))
        metadata = await versions.get_ad_metadata("ad1")

        assert metadata.name == "Winter Blend"
        assert metadata.owner == "s1"
