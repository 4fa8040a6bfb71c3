"""
Version Store

CRUD operations for immutable version streams with active pointers. Each ad
has three independent streams (voices, music, sfx); every stream keeps an
ordered list of version IDs, one JSON blob per version, and an active pointer.

Version IDs are assigned from a per-stream INCR counter, so concurrent
creators never receive the same ID and deleted IDs are never reused.
"""

import asyncio
import logging
import weakref
from typing import Any, Dict, List, Optional, Tuple

from redis import asyncio as aioredis

from .keys import AD_KEYS, StreamLike
from ..core.exceptions import ActiveVersionDeletionError, VersionNotFoundError
from ..core.redis_client import get_redis_client
from ..services.models import (
    AdMetadata,
    BaseVersion,
    CreatedBy,
    Stream,
    VersionStatus,
    VERSION_MODELS,
    utc_now,
)

logger = logging.getLogger(__name__)


def _version_number(version_id: str) -> int:
    """'v12' -> 12 (0 for anything unparseable)."""
    try:
        return int(version_id.lstrip("v"))
    except ValueError:
        return 0


class VersionStore:
    """Redis-backed version streams and ad metadata"""

    def __init__(self, redis: Optional[aioredis.Redis] = None):
        """
        Initialize store with a Redis client.

        Args:
            redis: Async Redis client with decode_responses=True
                   (defaults to the process-wide client)
        """
        self.redis = redis or get_redis_client()
        # entries disappear once no writer holds or waits on the lock
        self._draft_locks: "weakref.WeakValueDictionary[Tuple[str, str], asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    # =========================================================================
    # Serialization
    # =========================================================================

    @staticmethod
    def _load(stream: Stream, raw: Optional[str]) -> Optional[BaseVersion]:
        if not raw:
            return None
        return VERSION_MODELS[stream].model_validate_json(raw)

    @staticmethod
    def _check_payload(stream: Stream, data: BaseVersion) -> None:
        expected = VERSION_MODELS[stream]
        if not isinstance(data, expected):
            raise TypeError(
                f"{stream.value} stream expects {expected.__name__}, got {type(data).__name__}"
            )

    # =========================================================================
    # Serialization of writers
    # =========================================================================

    def draft_lock(self, ad_id: str, stream: StreamLike) -> asyncio.Lock:
        """
        Lock serializing freeze-then-create sequences for one (ad, stream).

        Args:
            ad_id: Advertisement ID
            stream: Stream name

        Returns:
            asyncio.Lock shared by every writer of that stream in this process
        """
        key = (ad_id, Stream(stream).value)
        lock = self._draft_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._draft_locks[key] = lock
        return lock

    async def _next_version_id(self, ad_id: str, stream: Stream) -> str:
        """
        Atomically allocate the next version ID for a stream.

        Streams written before the counter existed are seeded from the highest
        ID already in the list.
        """
        seq_key = AD_KEYS.seq(ad_id, stream)
        if not await self.redis.exists(seq_key):
            existing = await self.redis.lrange(AD_KEYS.versions(ad_id, stream), 0, -1)
            highest = max((_version_number(v) for v in existing), default=0)
            await self.redis.set(seq_key, highest, nx=True)

        number = await self.redis.incr(seq_key)
        return f"v{number}"

    async def _write_new(self, ad_id: str, stream: Stream, version_id: str, data: BaseVersion) -> None:
        """Write the blob and append the ID in one transaction."""
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.set(AD_KEYS.version(ad_id, stream, version_id), data.model_dump_json())
            pipe.rpush(AD_KEYS.versions(ad_id, stream), version_id)
            await pipe.execute()

    # =========================================================================
    # Version Creation
    # =========================================================================

    async def create_version(self, ad_id: str, stream: StreamLike, data: BaseVersion) -> str:
        """
        Create a new version in the stream (v1, v2, v3, ...).

        Args:
            ad_id: Advertisement ID
            stream: Which stream (voices, music, sfx)
            data: VoiceVersion, MusicVersion or SfxVersion matching the stream

        Returns:
            Generated version ID
        """
        stream = Stream(stream)
        self._check_payload(stream, data)

        version_id = await self._next_version_id(ad_id, stream)
        await self._write_new(ad_id, stream, version_id, data)

        logger.info(f"Created {stream.value} version {version_id} for ad {ad_id}")
        return version_id

    async def create_draft(self, ad_id: str, stream: StreamLike, data: BaseVersion) -> Tuple[str, List[str]]:
        """
        Freeze any existing drafts, then create `data` as the new draft.

        Args:
            ad_id: Advertisement ID
            stream: Which stream
            data: Version payload; its status is forced to draft

        Returns:
            Tuple of (new version ID, IDs of drafts that were frozen)
        """
        stream = Stream(stream)
        draft = data.model_copy(update={"status": VersionStatus.DRAFT})

        async with self.draft_lock(ad_id, stream):
            frozen = await self.freeze_drafts(ad_id, stream)
            version_id = await self.create_version(ad_id, stream, draft)

        return version_id, frozen

    # =========================================================================
    # Version Retrieval
    # =========================================================================

    async def get_version(self, ad_id: str, stream: StreamLike, version_id: str) -> Optional[BaseVersion]:
        """
        Get a specific version from a stream.

        Returns:
            Version data or None if not found
        """
        stream = Stream(stream)
        raw = await self.redis.get(AD_KEYS.version(ad_id, stream, version_id))
        if not raw:
            logger.debug(f"Version not found: {stream.value} {version_id} in ad {ad_id}")
        return self._load(stream, raw)

    async def list_versions(self, ad_id: str, stream: StreamLike) -> List[str]:
        """
        List all version IDs in a stream, in creation order.

        Returns:
            Version IDs (e.g. ["v1", "v2", "v3"]); empty when the stream is new
        """
        return list(await self.redis.lrange(AD_KEYS.versions(ad_id, stream), 0, -1))

    async def get_all_versions_with_data(self, ad_id: str, stream: StreamLike) -> Dict[str, BaseVersion]:
        """
        Get every version in a stream with its data.

        Returns:
            Ordered mapping of version ID -> version data
        """
        stream = Stream(stream)
        version_ids = await self.list_versions(ad_id, stream)
        if not version_ids:
            return {}

        raws = await self.redis.mget([AD_KEYS.version(ad_id, stream, v) for v in version_ids])
        versions: Dict[str, BaseVersion] = {}
        for version_id, raw in zip(version_ids, raws):
            version = self._load(stream, raw)
            if version is not None:
                versions[version_id] = version
        return versions

    async def get_latest_version(self, ad_id: str, stream: StreamLike) -> Optional[Tuple[str, BaseVersion]]:
        """
        Get the most recently created version of a stream.

        Returns:
            Tuple of (version ID, data) or None when the stream is empty
        """
        latest = await self.redis.lindex(AD_KEYS.versions(ad_id, stream), -1)
        if not latest:
            return None
        data = await self.get_version(ad_id, stream, latest)
        return (latest, data) if data is not None else None

    # =========================================================================
    # Active Version Management
    # =========================================================================

    async def get_active_version(self, ad_id: str, stream: StreamLike) -> Optional[str]:
        """Get the active version ID for a stream, or None if none is set."""
        return await self.redis.get(AD_KEYS.active(ad_id, stream))

    async def set_active_version(self, ad_id: str, stream: StreamLike, version_id: str) -> None:
        """
        Point the stream at `version_id` and mark that version active.

        Other versions keep their statuses.

        Raises:
            VersionNotFoundError: If the version does not exist
        """
        stream = Stream(stream)

        async with self.draft_lock(ad_id, stream):
            version = await self.get_version(ad_id, stream, version_id)
            if version is None:
                raise VersionNotFoundError(ad_id, stream.value, version_id)

            activated = version.model_copy(update={"status": VersionStatus.ACTIVE})
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.set(AD_KEYS.active(ad_id, stream), version_id)
                pipe.set(AD_KEYS.version(ad_id, stream, version_id), activated.model_dump_json())
                await pipe.execute()

        logger.info(f"Activated {stream.value} version {version_id} for ad {ad_id}")

    # =========================================================================
    # Version Cloning
    # =========================================================================

    async def clone_version(self, ad_id: str, stream: StreamLike, source_version_id: str) -> str:
        """
        Clone an existing version into a new draft.

        The clone keeps every field of the source except created_at (now),
        created_by ("fork"), status ("draft") and parent_version_id (source).

        Raises:
            VersionNotFoundError: If the source version does not exist
        """
        stream = Stream(stream)

        async with self.draft_lock(ad_id, stream):
            source = await self.get_version(ad_id, stream, source_version_id)
            if source is None:
                raise VersionNotFoundError(ad_id, stream.value, source_version_id)

            await self.freeze_drafts(ad_id, stream)

            cloned = source.model_copy(update={
                "created_at": utc_now(),
                "created_by": CreatedBy.FORK,
                "status": VersionStatus.DRAFT,
                "parent_version_id": source_version_id,
            })
            new_version_id = await self._next_version_id(ad_id, stream)
            await self._write_new(ad_id, stream, new_version_id, cloned)

        logger.info(f"Cloned {stream.value} {source_version_id} -> {new_version_id} for ad {ad_id}")
        return new_version_id

    # =========================================================================
    # Version Updates
    # =========================================================================

    async def update_version(
        self,
        ad_id: str,
        stream: StreamLike,
        version_id: str,
        updates: Dict[str, Any],
    ) -> BaseVersion:
        """
        Shallow-merge `updates` into a version.

        Only used for status transitions and attaching generated audio URLs.

        Returns:
            The updated version

        Raises:
            VersionNotFoundError: If the version does not exist
        """
        stream = Stream(stream)
        current = await self.get_version(ad_id, stream, version_id)
        if current is None:
            raise VersionNotFoundError(ad_id, stream.value, version_id)

        merged = {**current.model_dump(), **updates}
        updated = VERSION_MODELS[stream].model_validate(merged)
        await self.redis.set(AD_KEYS.version(ad_id, stream, version_id), updated.model_dump_json())

        logger.info(f"Updated {stream.value} version {version_id} for ad {ad_id}")
        return updated

    async def freeze_drafts(self, ad_id: str, stream: StreamLike) -> List[str]:
        """
        Flip every version with status draft to frozen.

        Scans the whole stream, so more than one stray draft left by older
        writers is repaired in one pass.

        Returns:
            IDs of the versions that were frozen
        """
        stream = Stream(stream)
        versions = await self.get_all_versions_with_data(ad_id, stream)
        frozen = []
        for version_id, version in versions.items():
            if version.status == VersionStatus.DRAFT:
                await self.update_version(ad_id, stream, version_id, {"status": VersionStatus.FROZEN})
                frozen.append(version_id)

        if len(frozen) > 1:
            logger.warning(
                f"Found {len(frozen)} drafts in {stream.value} for ad {ad_id}, froze all: {frozen}"
            )
        return frozen

    # =========================================================================
    # Deletion
    # =========================================================================

    async def delete_version(self, ad_id: str, stream: StreamLike, version_id: str) -> None:
        """
        Delete a version from a stream.

        Raises:
            ActiveVersionDeletionError: If the version is the active one
            VersionNotFoundError: If the version does not exist
        """
        stream = Stream(stream)

        active_id = await self.get_active_version(ad_id, stream)
        if active_id == version_id:
            raise ActiveVersionDeletionError(ad_id, stream.value, version_id)

        if not await self.redis.exists(AD_KEYS.version(ad_id, stream, version_id)):
            raise VersionNotFoundError(ad_id, stream.value, version_id)

        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.lrem(AD_KEYS.versions(ad_id, stream), 1, version_id)
            pipe.delete(AD_KEYS.version(ad_id, stream, version_id))
            await pipe.execute()

        logger.info(f"Deleted {stream.value} version {version_id} from ad {ad_id}")

    # =========================================================================
    # Ad Metadata
    # =========================================================================

    async def set_ad_metadata(self, ad_id: str, metadata: AdMetadata) -> None:
        """Create or replace ad metadata."""
        await self.redis.set(AD_KEYS.meta(ad_id), metadata.model_dump_json())
        logger.info(f"Saved metadata for ad {ad_id}")

    async def get_ad_metadata(self, ad_id: str) -> Optional[AdMetadata]:
        """Get ad metadata, or None if the ad has not been created yet."""
        raw = await self.redis.get(AD_KEYS.meta(ad_id))
        if not raw:
            return None
        return AdMetadata.model_validate_json(raw)
