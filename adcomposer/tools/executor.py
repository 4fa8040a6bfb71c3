"""
Tool Executor

Maps a tool call to its implementation. `execute` never raises: every failure
is serialized as {"error", "suggestion"} so the model can self-correct on the
next iteration.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Type

import logfire
from pydantic import BaseModel, ValidationError

from .definitions import (
    CREATE_MUSIC_DRAFT,
    CREATE_SFX_DRAFT,
    CREATE_VOICE_DRAFT,
    DRAFT_TOOLS,
    GET_CURRENT_STATE,
    READ_AD_STATE,
    SEARCH_VOICES,
    SET_AD_TITLE,
)
from .implementations import ToolImplementations
from .models import (
    CreateMusicDraftParams,
    CreateSfxDraftParams,
    CreateVoiceDraftParams,
    ReadAdStateParams,
    SearchVoicesParams,
    SetAdTitleParams,
)
from ..agent.types import ToolCall, ToolResult
from ..core.exceptions import (
    ActiveVersionDeletionError,
    AdMismatchError,
    AdNotFoundError,
    UnknownToolError,
    VersionNotFoundError,
    VoiceNotFoundError,
)

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[Dict[str, Any]]]

DEFAULT_SUGGESTION = "Retry with different parameters or check argument format"
NO_VOICES_ERROR = "No voices found matching the criteria"
NO_VOICES_SUGGESTION = "Try broadening your search (remove accent/style filters, try different gender)"


def parse_arguments(raw: Optional[str]) -> Any:
    """
    Decode a tool call's argument string.

    Empty arguments decode to {}.

    Raises:
        json.JSONDecodeError: If the arguments are not valid JSON
    """
    if raw is None or not raw.strip():
        return {}
    return json.loads(raw)


def arguments_for_history(raw: Optional[str]) -> Any:
    """Decoded arguments, or the raw string when they do not parse."""
    try:
        return parse_arguments(raw)
    except json.JSONDecodeError:
        return raw


def target_ad_id(args: Any) -> Optional[str]:
    """The adId a decoded argument object points at, if any."""
    if not isinstance(args, dict):
        return None
    ad_id = args.get("adId") or args.get("ad_id")
    return str(ad_id) if ad_id is not None else None


def _suggestion_for(error: Exception, known_tools: List[str]) -> str:
    if isinstance(error, UnknownToolError):
        return f"Use one of the available tools: {', '.join(known_tools)}"
    if isinstance(error, json.JSONDecodeError):
        return "Arguments must be a valid JSON object. Retry the call with corrected JSON."
    if isinstance(error, ValidationError):
        return "Check argument names and types against the tool schema and retry"
    if isinstance(error, (VersionNotFoundError, AdNotFoundError)):
        return "Call read_ad_state to see which versions exist"
    if isinstance(error, ActiveVersionDeletionError):
        return "Activate another version first"
    if isinstance(error, VoiceNotFoundError):
        return "Use a voice id listed in the system prompt or returned by search_voices"
    if isinstance(error, AdMismatchError):
        return f"Use adId '{error.expected}' for every call in this conversation"
    return DEFAULT_SUGGESTION


class ToolExecutor:
    """
    Dispatches tool calls to ToolImplementations.

    Dispatch is a plain name -> (parameter model, handler) mapping;
    get_current_state is kept as an alias of read_ad_state.
    """

    def __init__(self, implementations: ToolImplementations):
        self.implementations = implementations
        self._dispatch: Dict[str, Tuple[Type[BaseModel], Handler]] = {
            SEARCH_VOICES: (SearchVoicesParams, implementations.search_voices),
            CREATE_VOICE_DRAFT: (CreateVoiceDraftParams, implementations.create_voice_draft),
            CREATE_MUSIC_DRAFT: (CreateMusicDraftParams, implementations.create_music_draft),
            CREATE_SFX_DRAFT: (CreateSfxDraftParams, implementations.create_sfx_draft),
            READ_AD_STATE: (ReadAdStateParams, implementations.read_ad_state),
            GET_CURRENT_STATE: (ReadAdStateParams, implementations.read_ad_state),
            SET_AD_TITLE: (SetAdTitleParams, implementations.set_ad_title),
        }

    @property
    def tool_names(self) -> List[str]:
        return list(self._dispatch)

    async def execute(self, call: ToolCall, ad_id: Optional[str] = None) -> ToolResult:
        """
        Execute a single tool call.

        Args:
            call: Tool call with name and JSON argument string
            ad_id: Ad the calling run is bound to; calls naming another ad
                are rejected

        Returns:
            ToolResult whose content is the JSON result or a JSON error
        """
        name = call.name

        with logfire.span("tool {tool_name}", tool_name=name, tool_call_id=call.id):
            try:
                if name not in self._dispatch:
                    raise UnknownToolError(name)

                params_model, handler = self._dispatch[name]
                args = parse_arguments(call.arguments)
                target = target_ad_id(args)
                if ad_id is not None and target is not None and target != ad_id:
                    raise AdMismatchError(ad_id, target)
                params = params_model.model_validate(args)
                result = await handler(params)

            except Exception as e:
                logger.warning(f"[ToolExecutor] {name} failed: {type(e).__name__}: {e}")
                payload = {"error": str(e), "suggestion": _suggestion_for(e, self.tool_names)}
                return ToolResult(tool_call_id=call.id, content=json.dumps(payload))

        if name == SEARCH_VOICES and not result.get("voices"):
            payload = {
                "error": NO_VOICES_ERROR,
                "suggestion": NO_VOICES_SUGGESTION,
                "voices": [],
                "count": 0,
            }
            return ToolResult(tool_call_id=call.id, content=json.dumps(payload))

        return ToolResult(tool_call_id=call.id, content=json.dumps(result, default=str))

    async def execute_many(self, calls: List[ToolCall], ad_id: Optional[str] = None) -> List[ToolResult]:
        """
        Execute the tool calls of one model turn concurrently.

        Calls that write a draft to the same (ad, stream) go to successive
        waves so freeze-then-create never races within a batch. Results are
        returned in the original call order. `ad_id` binds every call to one
        ad, as in `execute`.
        """
        if not calls:
            return []

        waves: List[List[int]] = []
        seen: Dict[Tuple[str, str], int] = {}
        for index, call in enumerate(calls):
            key = self._draft_target(call)
            wave = 0
            if key is not None:
                wave = seen.get(key, 0)
                seen[key] = wave + 1
            while len(waves) <= wave:
                waves.append([])
            waves[wave].append(index)

        results: List[Optional[ToolResult]] = [None] * len(calls)

        async def run(index: int) -> Tuple[int, ToolResult]:
            return index, await self.execute(calls[index], ad_id=ad_id)

        for wave in waves:
            for index, result in await asyncio.gather(*(run(i) for i in wave)):
                results[index] = result

        return [r for r in results if r is not None]

    @staticmethod
    def _draft_target(call: ToolCall) -> Optional[Tuple[str, str]]:
        stream = DRAFT_TOOLS.get(call.name)
        if stream is None:
            return None
        try:
            args = parse_arguments(call.arguments)
        except json.JSONDecodeError:
            return None
        return (str(target_ad_id(args)), stream.value)
