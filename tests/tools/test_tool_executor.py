"""
Tests for the tool registry, ToolImplementations and ToolExecutor.
"""

import asyncio
import json

import pytest

from adcomposer.agent.types import FunctionCall, ToolCall
from adcomposer.services.models import Stream, VersionStatus
from adcomposer.tools import ToolExecutor, ToolImplementations, ToolSet, tool_registry
from adcomposer.tools.executor import NO_VOICES_ERROR, parse_arguments


def _call(name: str, args, call_id: str = "call_1") -> ToolCall:
    arguments = args if isinstance(args, str) else json.dumps(args)
    return ToolCall(id=call_id, function=FunctionCall(name=name, arguments=arguments))


def _voice_args(ad_id: str = "ad1", voice_id: str = "el-anna", text: str = "Wake up to better coffee"):
    return {"adId": ad_id, "tracks": [{"voiceId": voice_id, "text": text, "description": "warm"}]}


@pytest.fixture
def executor(catalogue, versions, ads):
    return ToolExecutor(ToolImplementations(catalogue, versions, ads))


# =============================================================================
# Registry and schemas
# =============================================================================

class TestToolRegistry:

    def test_catalogue_order(self):
        assert tool_registry.names() == [
            "search_voices",
            "create_voice_draft",
            "create_music_draft",
            "create_sfx_draft",
            "read_ad_state",
            "set_ad_title",
        ]

    def test_generation_set_hides_search(self):
        names = [d.name for d in tool_registry.definitions_for(ToolSet.GENERATION)]
        assert "search_voices" not in names
        assert "create_voice_draft" in names

    def test_schema_is_flat_and_uses_aliases(self):
        definition = tool_registry.get_tool("create_voice_draft").to_definition()
        params = definition.parameters
        dumped = json.dumps(params)

        assert params["type"] == "object"
        assert params["required"] == ["adId", "tracks"]
        assert "$defs" not in dumped
        assert "$ref" not in dumped
        assert '"title"' not in dumped

        track = params["properties"]["tracks"]["items"]
        assert set(track["required"]) == {"voiceId", "text"}
        assert "voiceInstructions" in track["properties"]
        assert track["properties"]["playAfter"]["type"] == "string"

    def test_title_property_survives(self):
        params = tool_registry.get_tool("set_ad_title").to_definition().parameters
        assert "title" in params["properties"]
        assert params["properties"]["title"]["maxLength"] == 120

    def test_chat_and_responses_formats(self):
        definition = tool_registry.definitions()[0]
        assert definition.to_chat_tool()["function"]["name"] == "search_voices"
        assert definition.to_responses_tool()["name"] == "search_voices"


# =============================================================================
# Argument parsing
# =============================================================================

class TestParseArguments:

    def test_empty_arguments(self):
        assert parse_arguments("") == {}
        assert parse_arguments("   ") == {}
        assert parse_arguments(None) == {}

    def test_invalid_json_raises(self):
        with pytest.raises(json.JSONDecodeError):
            parse_arguments("{adId: ")


# =============================================================================
# Error handling
# =============================================================================

class TestExecutorErrors:
    """execute() never raises; failures come back as {error, suggestion}."""

    @pytest.mark.asyncio
    async def test_unknown_tool(self, executor):
        result = await executor.execute(_call("delete_everything", {}))
        payload = json.loads(result.content)

        assert result.tool_call_id == "call_1"
        assert payload["error"] == "Unknown tool: delete_everything"
        assert "search_voices" in payload["suggestion"]

    @pytest.mark.asyncio
    async def test_invalid_json(self, executor):
        result = await executor.execute(_call("read_ad_state", '{"adId": '))
        payload = json.loads(result.content)

        assert "error" in payload
        assert "valid JSON" in payload["suggestion"]

    @pytest.mark.asyncio
    async def test_validation_error(self, executor, versions):
        result = await executor.execute(_call("create_voice_draft", {"adId": "ad1", "tracks": []}))
        payload = json.loads(result.content)

        assert "error" in payload
        assert "schema" in payload["suggestion"]
        assert await versions.list_versions("ad1", Stream.VOICES) == []

    @pytest.mark.asyncio
    async def test_implementation_error(self, executor, catalogue):
        catalogue.search.side_effect = RuntimeError("catalogue offline")

        result = await executor.execute(_call("search_voices", {"provider": "elevenlabs", "language": "en"}))
        payload = json.loads(result.content)

        assert payload["error"] == "catalogue offline"
        assert payload["suggestion"]


# =============================================================================
# search_voices
# =============================================================================

class TestSearchVoices:

    @pytest.mark.asyncio
    async def test_returns_voices(self, executor, catalogue):
        result = await executor.execute(_call(
            "search_voices", {"provider": "elevenlabs", "language": "en", "gender": "female", "count": 5}
        ))
        payload = json.loads(result.content)

        assert payload["count"] == 2
        assert payload["voices"][0]["id"] == "el-anna"
        assert payload["voices"][0]["personality"] == "Friendly and bright"
        catalogue.search.assert_awaited_once_with(
            provider="elevenlabs", language="en", gender="female", accent=None, style=None, limit=5,
        )

    @pytest.mark.asyncio
    async def test_zero_results_is_structured_error(self, executor, catalogue):
        catalogue.search.return_value = []

        result = await executor.execute(_call("search_voices", {"provider": "lovo", "language": "th"}))
        payload = json.loads(result.content)

        assert payload["error"] == NO_VOICES_ERROR
        assert payload["voices"] == []
        assert payload["count"] == 0
        assert "broadening" in payload["suggestion"]


# =============================================================================
# Draft tools
# =============================================================================

class TestDraftTools:

    @pytest.mark.asyncio
    async def test_voice_draft_resolves_names_and_chains_tracks(self, executor, versions):
        args = {
            "adId": "ad1",
            "tracks": [
                {"voiceId": "el-anna", "text": "Mornings are hard."},
                {"voiceId": "el-ben", "text": "Not anymore.", "overlap": 0.2},
                {"voiceId": "el-anna", "text": "Try it today."},
            ],
        }
        result = await executor.execute(_call("create_voice_draft", args))
        payload = json.loads(result.content)

        assert payload == {"versionId": "v1", "status": "draft"}
        version = await versions.get_version("ad1", Stream.VOICES, "v1")
        tracks = version.voice_tracks
        assert [t.voice.name for t in tracks] == ["Anna", "Ben", "Anna"]
        assert tracks[0].voice.provider == "elevenlabs"
        assert [t.play_after for t in tracks] == ["start", "track-0", "track-1"]
        assert tracks[1].overlap == 0.2

    @pytest.mark.asyncio
    async def test_unknown_voice_is_rejected(self, executor, versions):
        args = {
            "adId": "ad1",
            "tracks": [
                {"voiceId": "el-anna", "text": "Mornings are hard."},
                {"voiceId": "no-such-voice", "text": "Not anymore."},
            ],
        }
        result = await executor.execute(_call("create_voice_draft", args))
        payload = json.loads(result.content)

        assert "no-such-voice" in payload["error"]
        assert "search_voices" in payload["suggestion"]
        assert await versions.list_versions("ad1", Stream.VOICES) == []

    @pytest.mark.asyncio
    async def test_second_voice_draft_freezes_first(self, executor, versions):
        await executor.execute(_call("create_voice_draft", _voice_args()))
        result = await executor.execute(_call("create_voice_draft", _voice_args(text="New line")))
        payload = json.loads(result.content)

        assert payload == {"versionId": "v2", "status": "draft", "frozenVersions": ["v1"]}
        assert (await versions.get_version("ad1", Stream.VOICES, "v1")).status == VersionStatus.FROZEN

    @pytest.mark.asyncio
    async def test_music_prompts_fall_back_to_base(self, executor, versions):
        args = {"adId": "ad1", "prompt": "Warm lo-fi beat", "mubert": "Lo-fi, calm, morning, cozy"}
        await executor.execute(_call("create_music_draft", args))

        version = await versions.get_version("ad1", Stream.MUSIC, "v1")
        assert version.music_prompts.mubert == "Lo-fi, calm, morning, cozy"
        assert version.music_prompts.loudly == "Warm lo-fi beat"
        assert version.music_prompts.elevenlabs == "Warm lo-fi beat"
        assert version.provider == "loudly"
        assert version.duration == 30

    @pytest.mark.asyncio
    async def test_sfx_placements(self, executor, versions):
        args = {
            "adId": "ad1",
            "prompts": [
                {"description": "Coffee pouring", "placement": {"type": "start"}},
                {"description": "Cup clink", "placement": {"type": "afterVoice", "index": 1}, "duration": 1.5},
                {"description": "Door bell", "placement": {"type": "afterVoice"}},
                {"description": "Birds"},
            ],
        }
        await executor.execute(_call("create_sfx_draft", args))

        prompts = (await versions.get_version("ad1", Stream.SFX, "v1")).sound_fx_prompts
        assert prompts[0].placement.type == "start"
        assert (prompts[1].placement.type, prompts[1].placement.index) == ("afterVoice", 1)
        assert prompts[1].duration == 1.5
        assert prompts[2].placement.type == "end"
        assert prompts[3].placement.type == "end"
        assert prompts[3].duration == 3


# =============================================================================
# read_ad_state and set_ad_title
# =============================================================================

class TestStateTools:

    @pytest.mark.asyncio
    async def test_empty_state(self, executor):
        payload = json.loads((await executor.execute(_call("read_ad_state", {"adId": "ad1"}))).content)

        assert payload["adId"] == "ad1"
        assert "voices" not in payload
        assert payload["active"] == {"voices": None, "music": None, "sfx": None}
        assert payload["voice_history"] == []

    @pytest.mark.asyncio
    async def test_state_includes_content_and_voice_history(self, executor):
        await executor.execute(_call("create_voice_draft", _voice_args(voice_id="el-anna")))
        await executor.execute(_call("create_voice_draft", _voice_args(voice_id="el-ben")))
        await executor.execute(_call("create_music_draft", {"adId": "ad1", "prompt": "Jazz trio"}))

        payload = json.loads((await executor.execute(_call("read_ad_state", {"adId": "ad1"}))).content)

        assert payload["voices"]["versionId"] == "v2"
        assert payload["voices"]["tracks"][0]["voiceId"] == "el-ben"
        assert payload["music"]["prompt"] == "Jazz trio"
        assert payload["voice_history"] == [
            {"voiceId": "el-anna", "voiceName": "Anna", "usedIn": ["v1"]}
        ]

    @pytest.mark.asyncio
    async def test_get_current_state_alias(self, executor):
        await executor.execute(_call("create_music_draft", {"adId": "ad1", "prompt": "Jazz trio"}))

        primary = json.loads((await executor.execute(_call("read_ad_state", {"adId": "ad1"}))).content)
        alias = json.loads((await executor.execute(_call("get_current_state", {"adId": "ad1"}))).content)

        assert alias == primary

    @pytest.mark.asyncio
    async def test_set_ad_title_creates_ad(self, executor, versions):
        payload = json.loads((await executor.execute(
            _call("set_ad_title", {"adId": "ad1", "title": "  Morning Roast  "})
        )).content)

        assert payload == {"success": True, "title": "Morning Roast"}
        assert (await versions.get_ad_metadata("ad1")).name == "Morning Roast"


# =============================================================================
# Parallel execution
# =============================================================================

class TestExecuteMany:

    @pytest.mark.asyncio
    async def test_results_keep_call_order(self, executor):
        calls = [
            _call("create_music_draft", {"adId": "ad1", "prompt": "Jazz"}, "call_a"),
            _call("search_voices", {"provider": "elevenlabs", "language": "en"}, "call_b"),
            _call("nope", {}, "call_c"),
        ]

        results = await executor.execute_many(calls)

        assert [r.tool_call_id for r in results] == ["call_a", "call_b", "call_c"]
        assert "error" in json.loads(results[2].content)

    @pytest.mark.asyncio
    async def test_same_stream_drafts_in_one_batch(self, executor, versions):
        calls = [
            _call("create_voice_draft", _voice_args(text="One"), "call_1"),
            _call("create_voice_draft", _voice_args(text="Two"), "call_2"),
            _call("create_music_draft", {"adId": "ad1", "prompt": "Jazz"}, "call_3"),
        ]

        results = await executor.execute_many(calls)

        assert [json.loads(r.content)["versionId"] for r in results] == ["v1", "v2", "v1"]
        statuses = {
            vid: v.status
            for vid, v in (await versions.get_all_versions_with_data("ad1", Stream.VOICES)).items()
        }
        assert statuses == {"v1": VersionStatus.FROZEN, "v2": VersionStatus.DRAFT}

    @pytest.mark.asyncio
    async def test_calls_run_concurrently(self, executor, catalogue):
        release = asyncio.Event()
        running = []

        async def slow_search(**kwargs):
            running.append(kwargs["language"])
            if len(running) == 2:
                release.set()
            await asyncio.wait_for(release.wait(), timeout=1)
            return []

        catalogue.search.side_effect = slow_search
        calls = [
            _call("search_voices", {"provider": "openai", "language": "en"}, "call_1"),
            _call("search_voices", {"provider": "openai", "language": "fr"}, "call_2"),
        ]

        results = await executor.execute_many(calls)

        assert sorted(running) == ["en", "fr"]
        assert all(json.loads(r.content)["count"] == 0 for r in results)

    @pytest.mark.asyncio
    async def test_empty_batch(self, executor):
        assert await executor.execute_many([]) == []

    @pytest.mark.asyncio
    async def test_bound_ad_rejects_other_ads(self, executor, versions):
        calls = [
            _call("create_voice_draft", _voice_args(ad_id="other-ad"), "call_1"),
            _call("create_music_draft", {"adId": "ad1", "prompt": "Jazz"}, "call_2"),
            _call("search_voices", {"provider": "elevenlabs", "language": "en"}, "call_3"),
        ]

        results = await executor.execute_many(calls, ad_id="ad1")
        payloads = [json.loads(r.content) for r in results]

        assert "other-ad" in payloads[0]["error"]
        assert "'ad1'" in payloads[0]["suggestion"]
        assert payloads[1]["versionId"] == "v1"
        assert payloads[2]["count"] == 2
        assert await versions.list_versions("other-ad", Stream.VOICES) == []
