"""
Provider Registry

Builds one tool-calling adapter per provider, lazily, and hands it to the
AgentExecutor. The user picks the provider explicitly; there is no automatic
routing by language.
"""

import logging
from typing import Callable, Dict, List, Optional

from openai import AsyncOpenAI

from .adapters import KimiAdapter, OpenAIAdapter, QwenAdapter, ToolCallingAdapter
from ..core.config import Config
from ..core.exceptions import UnknownProviderError

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[], ToolCallingAdapter]

DEFAULT_PROVIDER = "openai"


def _openai_factory() -> ToolCallingAdapter:
    client = AsyncOpenAI(
        api_key=Config.OPENAI_API_KEY,
        timeout=Config.LLM_REQUEST_TIMEOUT,
        max_retries=0,
    )
    return OpenAIAdapter(client)


def _qwen_factory() -> ToolCallingAdapter:
    client = AsyncOpenAI(
        api_key=Config.QWEN_API_KEY,
        base_url=Config.QWEN_BASE_URL,
        timeout=Config.LLM_REQUEST_TIMEOUT,
        max_retries=0,
    )
    return QwenAdapter(client)


def _moonshot_factory() -> ToolCallingAdapter:
    client = AsyncOpenAI(
        api_key=Config.MOONSHOT_API_KEY,
        base_url=Config.MOONSHOT_BASE_URL,
        timeout=Config.LLM_REQUEST_TIMEOUT,
        max_retries=0,
    )
    return KimiAdapter(client)


DEFAULT_FACTORIES: Dict[str, AdapterFactory] = {
    "openai": _openai_factory,
    "qwen": _qwen_factory,
    "moonshot": _moonshot_factory,
}


class ProviderRegistry:
    """
    Provider name -> adapter, memoized.

    Adapters hold no per-call state, so one instance per provider is shared
    by every run in the process.
    """

    def __init__(self, factories: Optional[Dict[str, AdapterFactory]] = None):
        self._factories = dict(DEFAULT_FACTORIES if factories is None else factories)
        self._adapters: Dict[str, ToolCallingAdapter] = {}

    def register(self, provider: str, adapter: ToolCallingAdapter) -> None:
        """Install a ready-made adapter (replaces any memoized one)."""
        self._adapters[provider] = adapter
        self._factories.setdefault(provider, lambda: adapter)

    def get_adapter(self, provider: str) -> ToolCallingAdapter:
        """
        Get or create the adapter for a provider.

        Raises:
            UnknownProviderError: If the provider is not supported
        """
        if provider not in self._adapters:
            factory = self._factories.get(provider)
            if factory is None:
                raise UnknownProviderError(provider)
            self._adapters[provider] = factory()
            logger.info(f"[ProviderRegistry] Created adapter for {provider}")
        return self._adapters[provider]

    def available_providers(self) -> List[str]:
        """All supported provider names."""
        return list(self._factories)

    def is_provider_available(self, provider: str) -> bool:
        """True if the provider is supported and can be used (API key set)."""
        if provider in self._adapters:
            return True
        if provider not in self._factories:
            return False
        return bool(Config.provider_api_key(provider))
