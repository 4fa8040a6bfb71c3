"""
Ad Store

Lazy ad creation and the per-session ad index. An ad is persisted only when
something meaningful happens (generation or a first version), never on page
load.
"""

import logging
from typing import Any, Dict, List, Optional

from .keys import INDEX_KEYS
from .versions import VersionStore
from ..core.exceptions import AdNotFoundError
from ..services.models import AdMetadata, utc_now

logger = logging.getLogger(__name__)


class AdStore:
    """Ad metadata lifecycle on top of the VersionStore"""

    def __init__(self, versions: VersionStore):
        self.versions = versions
        self.redis = versions.redis

    async def ensure_ad_exists(
        self,
        ad_id: str,
        session_id: Optional[str] = None,
        brief: Optional[Dict[str, Any]] = None,
    ) -> AdMetadata:
        """
        Ensure an ad exists, creating it if necessary.

        No-op when metadata already exists. Otherwise creates it, indexes the
        ad under its owning session (when known) and in the global index.

        Args:
            ad_id: Advertisement ID (generated client-side)
            session_id: Owning session ID
            brief: Brief to persist with a new ad

        Returns:
            Existing or newly created metadata
        """
        existing = await self.versions.get_ad_metadata(ad_id)
        if existing is not None:
            return existing

        metadata = AdMetadata(brief=dict(brief or {}), owner=session_id)
        await self.versions.set_ad_metadata(ad_id, metadata)

        score = metadata.created_at.timestamp() * 1000
        if session_id:
            await self.redis.zadd(INDEX_KEYS.by_user(session_id), {ad_id: score}, nx=True)
        await self.redis.zadd(INDEX_KEYS.ALL_ADS, {ad_id: score}, nx=True)

        logger.info(f"Lazy-created ad {ad_id} for session {session_id}")
        return metadata

    async def update_ad_metadata(self, ad_id: str, **fields: Any) -> AdMetadata:
        """
        Update metadata fields and bump last_modified.

        Raises:
            AdNotFoundError: If the ad has no metadata yet
        """
        current = await self.versions.get_ad_metadata(ad_id)
        if current is None:
            raise AdNotFoundError(ad_id)

        updated = current.model_copy(update={**fields, "last_modified": utc_now()})
        await self.versions.set_ad_metadata(ad_id, updated)
        return updated

    async def list_ads_for_session(self, session_id: str) -> List[str]:
        """Ad IDs owned by a session, oldest first."""
        return list(await self.redis.zrange(INDEX_KEYS.by_user(session_id), 0, -1))
