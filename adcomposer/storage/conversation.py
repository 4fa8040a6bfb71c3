"""
Conversation Store

One conversation per ad, persisted wholesale as a JSON list under
ad:{adId}:conversation so it survives across agent runs.
"""

import json
import logging
from typing import List, Optional

from pydantic import TypeAdapter
from redis import asyncio as aioredis

from .keys import CONVERSATION_KEYS
from ..agent.types import ConversationMessage
from ..core.redis_client import get_redis_client

logger = logging.getLogger(__name__)

_MESSAGES = TypeAdapter(List[ConversationMessage])


class ConversationStore:
    """Redis-backed conversation history per ad"""

    def __init__(self, redis: Optional[aioredis.Redis] = None):
        self.redis = redis or get_redis_client()

    async def get_conversation(self, ad_id: str) -> List[ConversationMessage]:
        """
        Get the conversation history for an ad.

        Returns:
            Messages in order (empty if none)
        """
        raw = await self.redis.get(CONVERSATION_KEYS.conversation(ad_id))
        if not raw:
            return []
        return _MESSAGES.validate_json(raw)

    async def save_conversation(self, ad_id: str, messages: List[ConversationMessage]) -> None:
        """Overwrite the stored conversation with `messages`."""
        payload = json.dumps([m.model_dump(mode="json", exclude_none=True) for m in messages])
        await self.redis.set(CONVERSATION_KEYS.conversation(ad_id), payload)
        logger.info(f"Saved conversation for ad {ad_id} ({len(messages)} messages)")

    async def append_to_conversation(
        self,
        ad_id: str,
        new_messages: List[ConversationMessage],
    ) -> List[ConversationMessage]:
        """
        Append messages to the stored conversation.

        Returns:
            The updated full conversation
        """
        updated = await self.get_conversation(ad_id) + list(new_messages)
        await self.save_conversation(ad_id, updated)
        return updated

    async def clear_conversation(self, ad_id: str) -> None:
        """Delete the conversation ("start fresh")."""
        await self.redis.delete(CONVERSATION_KEYS.conversation(ad_id))
        logger.info(f"Cleared conversation for ad {ad_id}")

    async def has_conversation(self, ad_id: str) -> bool:
        """True if a conversation is stored for the ad."""
        return await self.redis.exists(CONVERSATION_KEYS.conversation(ad_id)) == 1
