"""
Tests for prompt builders, voice prefetch and the provider registry.
"""

from unittest.mock import MagicMock, patch

import pytest

from adcomposer.agent.adapters import OpenAIAdapter, QwenAdapter
from adcomposer.agent.prompts import (
    build_focused_message,
    build_freeform_system_prompt,
    build_generation_system_prompt,
)
from adcomposer.agent.providers import DEFAULT_PROVIDER, ProviderRegistry
from adcomposer.agent.voice_prefetch import format_voice_options, prefetch_voices
from adcomposer.core.config import Config
from adcomposer.core.exceptions import UnknownProviderError
from adcomposer.services.models import Stream, Voice


# =============================================================================
# Prompts
# =============================================================================

class TestPrompts:

    def test_focused_message_without_stream_is_unchanged(self):
        assert build_focused_message("Make it punchier") == "Make it punchier"

    def test_focused_message_for_voice(self):
        message = build_focused_message("Make it punchier", Stream.VOICES, "v3")

        assert message.startswith("[VOICE ONLY] Make it punchier")
        assert "Only modify the VOICE track. Do NOT touch other streams." in message
        assert "You are iterating from version v3." in message
        assert message.endswith("Create a new voice draft with the requested changes.")

    def test_focused_message_accepts_stream_name(self):
        message = build_focused_message("Add rain", "sfx")

        assert message.startswith("[SOUND EFFECTS ONLY] Add rain")
        assert "iterating from" not in message
        assert "new sfx draft" in message

    def test_generation_prompt_with_voice_list(self):
        prompt = build_generation_system_prompt(
            ad_id="ad1",
            client_description="Local coffee roaster",
            creative_brief="Cozy winter blend",
            language="en",
            voice_provider="elevenlabs",
            accent="british",
            voice_options="- Anna (id: el-anna)",
        )

        assert "- Ad ID: ad1" in prompt
        assert "- Accent: british" in prompt
        assert "search_voices is not available" in prompt
        assert "- Anna (id: el-anna)" in prompt

    def test_generation_prompt_without_voice_list(self):
        prompt = build_generation_system_prompt(
            ad_id="ad1",
            client_description="Local coffee roaster",
            creative_brief="Cozy winter blend",
            language="fr",
            voice_provider="openai",
        )

        assert "Accent" not in prompt
        assert "Call search_voices with provider 'openai' and language 'fr'" in prompt

    def test_freeform_prompt_names_ad(self):
        assert "- Ad ID: ad42" in build_freeform_system_prompt("ad42")


# =============================================================================
# Voice prefetch
# =============================================================================

class TestVoicePrefetch:

    @pytest.mark.asyncio
    async def test_prefetch_splits_by_gender(self, catalogue):
        result = await prefetch_voices(catalogue, "elevenlabs", "en", accent="british")

        catalogue.search.assert_awaited_once_with(provider="elevenlabs", language="en", accent="british")
        assert result.total_count == 2
        assert [v.id for v in result.female_voices] == ["el-anna"]
        assert [v.id for v in result.male_voices] == ["el-ben"]

    @pytest.mark.asyncio
    async def test_format_groups_voices(self, catalogue):
        catalogue.search.return_value = catalogue.search.return_value + [
            Voice(id="oa-alloy", name="Alloy", provider="openai", language="en", gender="neutral"),
        ]
        result = await prefetch_voices(catalogue, "elevenlabs", "en")

        text = format_voice_options(result)

        assert text.index("### Female voices") < text.index("### Male voices") < text.index("### Other voices")
        assert "- Anna (id: el-anna) [american, warm]: Friendly and bright" in text
        assert "- Alloy (id: oa-alloy)" in text

    @pytest.mark.asyncio
    async def test_format_empty(self, catalogue):
        catalogue.search.return_value = []
        result = await prefetch_voices(catalogue, "lovo", "th")

        assert result.total_count == 0
        assert format_voice_options(result) == "No voices are available for this language and provider."


# =============================================================================
# Provider registry
# =============================================================================

class TestProviderRegistry:

    def test_default_providers(self):
        registry = ProviderRegistry()
        assert registry.available_providers() == ["openai", "qwen", "moonshot"]
        assert DEFAULT_PROVIDER == "openai"

    def test_unknown_provider(self):
        with pytest.raises(UnknownProviderError):
            ProviderRegistry().get_adapter("gemini")

    def test_adapters_are_memoized(self):
        calls = []

        def factory():
            calls.append(1)
            return MagicMock()

        registry = ProviderRegistry(factories={"qwen": factory})

        assert registry.get_adapter("qwen") is registry.get_adapter("qwen")
        assert len(calls) == 1

    def test_registered_adapter_wins(self):
        adapter = MagicMock()
        registry = ProviderRegistry()
        registry.register("openai", adapter)

        assert registry.get_adapter("openai") is adapter
        assert registry.is_provider_available("openai") is True

    def test_availability_follows_api_keys(self):
        registry = ProviderRegistry()
        with patch.object(Config, "QWEN_API_KEY", "sk-qwen"), patch.object(Config, "MOONSHOT_API_KEY", ""):
            assert registry.is_provider_available("qwen") is True
            assert registry.is_provider_available("moonshot") is False
        assert registry.is_provider_available("gemini") is False

    def test_default_factories_build_adapters(self):
        with patch.object(Config, "OPENAI_API_KEY", "sk-test"), patch.object(Config, "QWEN_API_KEY", "sk-qwen"):
            registry = ProviderRegistry()
            assert isinstance(registry.get_adapter("openai"), OpenAIAdapter)
            assert isinstance(registry.get_adapter("qwen"), QwenAdapter)
