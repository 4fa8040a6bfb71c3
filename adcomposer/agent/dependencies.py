"""
Agent Dependencies - typed container wiring clients, stores and services.

Built once per process by the API app and the CLI; tests construct it
directly with fakes.
"""

import logging
from typing import Optional

from pydantic import BaseModel
from redis import asyncio as aioredis
from supabase import Client

from .executor import AgentExecutor
from .providers import ProviderRegistry
from ..core.database import get_supabase_client
from ..core.redis_client import get_redis_client
from ..services.voice_catalogue import VoiceCatalogue
from ..storage.ads import AdStore
from ..storage.conversation import ConversationStore
from ..storage.versions import VersionStore
from ..tools.executor import ToolExecutor
from ..tools.implementations import ToolImplementations

logger = logging.getLogger(__name__)


class AgentDependencies(BaseModel):
    """
    Everything an agent run and the HTTP/CLI surfaces need.

    Attributes:
        versions: Version streams (Redis)
        conversations: Conversation history (Redis)
        ads: Ad metadata and session index (Redis)
        catalogue: Voice catalogue (Supabase)
        tools: Tool executor bound to the stores and catalogue
        providers: LLM provider registry
        executor: Agent loop
    """
    model_config = {"arbitrary_types_allowed": True}

    versions: VersionStore
    conversations: ConversationStore
    ads: AdStore
    catalogue: VoiceCatalogue
    tools: ToolExecutor
    providers: ProviderRegistry
    executor: AgentExecutor

    @classmethod
    def create(
        cls,
        redis: Optional[aioredis.Redis] = None,
        supabase: Optional[Client] = None,
        providers: Optional[ProviderRegistry] = None,
    ) -> "AgentDependencies":
        """
        Create dependencies from Config.

        Args:
            redis: Redis client (defaults to the process-wide client)
            supabase: Supabase client (defaults to the process-wide client)
            providers: Provider registry (defaults to one built from Config)

        Returns:
            Fully wired AgentDependencies
        """
        redis = redis or get_redis_client()

        versions = VersionStore(redis)
        conversations = ConversationStore(redis)
        ads = AdStore(versions)
        logger.info("Redis stores initialized")

        catalogue = VoiceCatalogue(supabase or get_supabase_client())
        logger.info("VoiceCatalogue initialized")

        tools = ToolExecutor(ToolImplementations(catalogue, versions, ads))
        providers = providers or ProviderRegistry()
        executor = AgentExecutor(providers, tools, conversations, ads=ads)

        return cls(
            versions=versions,
            conversations=conversations,
            ads=ads,
            catalogue=catalogue,
            tools=tools,
            providers=providers,
            executor=executor,
        )

    def __str__(self) -> str:
        return (
            f"AgentDependencies(providers={self.providers.available_providers()}, "
            f"services=[VersionStore, ConversationStore, AdStore, VoiceCatalogue, ToolExecutor])"
        )
