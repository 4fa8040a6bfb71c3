"""
Agent Executor - bounded LLM tool-calling loop.

One run drives a provider adapter through repeated invoke -> execute tools
-> append results cycles until the model stops calling tools, all three
drafts exist, the run stalls, or the iteration cap is hit. The conversation
is persisted at the end of every run, including runs that end early or fail.
A failed model call ends the run with the drafts made so far; store errors
propagate.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

import logfire

from .adapters import ToolCallingAdapter
from .prompts import FORCE_MUSIC_DIRECTIVE, build_iteration_system_prompt
from .providers import DEFAULT_PROVIDER, ProviderRegistry
from .types import (
    AdapterRequest,
    AgentResult,
    ConversationMessage,
    Drafts,
    InvokeOptions,
    ReasoningEffort,
    StopReason,
    TokenUsage,
    ToolCall,
    ToolCallRecord,
    ToolDefinition,
)
from ..core.config import Config
from ..core.exceptions import ConversationNotFoundError
from ..services.models import Stream
from ..tools.definitions import (
    DRAFT_TOOLS,
    SEARCH_VOICES,
    STATE_READ_TOOLS,
    ToolRegistry,
    ToolSet,
    tool_registry,
)
from ..tools.executor import ToolExecutor, arguments_for_history, target_ad_id

if TYPE_CHECKING:
    from ..storage.ads import AdStore
    from ..storage.conversation import ConversationStore

logger = logging.getLogger(__name__)

STREAM_TOOL_NAMES: Dict[Stream, str] = {stream: name for name, stream in DRAFT_TOOLS.items()}


@dataclass
class _RunState:
    """Mutable loop state for a single run"""
    ad_id: str
    drafts: Drafts = field(default_factory=Drafts)
    history: List[ToolCallRecord] = field(default_factory=list)
    usage: TokenUsage = field(default_factory=TokenUsage)
    iterations: int = 0
    previous_response_id: Optional[str] = None
    forcing_attempted: bool = False
    loop_window_start: int = 0  # history index loop detection looks from
    stop_reason: Optional[StopReason] = None


def _decode(content: str) -> Any:
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        return content


def missing_draft_tools(drafts: Drafts) -> List[str]:
    """Draft tool names whose stream has no draft yet, in stream order."""
    return [
        STREAM_TOOL_NAMES[stream]
        for stream in Stream
        if not getattr(drafts, stream.value)
    ]


def duplicate_draft_message(stream: Stream, existing_id: str, drafts: Drafts) -> str:
    """Tool response for a suppressed duplicate draft call."""
    missing = missing_draft_tools(drafts)
    if missing:
        next_step = f"Still need: [{', '.join(missing)}]"
    else:
        next_step = "Still need: [] - all drafts exist, reply with a short summary"
    return json.dumps({
        "skipped": True,
        "error": f"{stream.value} draft already exists ({existing_id}); call not executed.",
        "message": next_step,
    })


class AgentExecutor:
    """
    Orchestrates agent runs.

    Args:
        providers: Provider registry supplying adapters
        tools: Tool executor for the calls the model issues
        conversations: Conversation store (load on continue, save on finish)
        ads: Ad store for lazy ad creation when a session is given
        registry: Tool registry providing the tool definitions
    """

    def __init__(
        self,
        providers: ProviderRegistry,
        tools: ToolExecutor,
        conversations: "ConversationStore",
        ads: Optional["AdStore"] = None,
        registry: ToolRegistry = tool_registry,
    ):
        self.providers = providers
        self.tools = tools
        self.conversations = conversations
        self.ads = ads
        self.registry = registry

    # =========================================================================
    # Public entry points
    # =========================================================================

    async def run_agent_loop(
        self,
        system_prompt: str,
        user_message: str,
        ad_id: str,
        provider: str = DEFAULT_PROVIDER,
        reasoning_effort: ReasoningEffort = "medium",
        max_iterations: Optional[int] = None,
        continue_conversation: bool = False,
        tool_set: ToolSet = ToolSet.FULL,
        session_id: Optional[str] = None,
        brief: Optional[Dict[str, Any]] = None,
    ) -> AgentResult:
        """
        Run the tool-calling loop for one user message.

        Args:
            system_prompt: System prompt (ignored when a continued
                conversation already starts with one)
            user_message: The user's request
            ad_id: Ad the run works on; also the conversation id
            provider: LLM provider name
            reasoning_effort: Reasoning hint passed to the adapter
            max_iterations: Hard cap (defaults to Config.AGENT_MAX_ITERATIONS)
            continue_conversation: Load the stored conversation first
            tool_set: Which tools to offer
            session_id: Owning session; ensures the ad exists before running
            brief: Brief stored with a lazily created ad

        Returns:
            AgentResult with whatever drafts were produced
        """
        max_iterations = max_iterations or Config.AGENT_MAX_ITERATIONS
        adapter = self.providers.get_adapter(provider)
        tools = self.registry.definitions_for(tool_set)

        if session_id and self.ads is not None:
            await self.ads.ensure_ad_exists(ad_id, session_id=session_id, brief=brief)

        messages: List[ConversationMessage] = []
        if continue_conversation:
            messages = await self.conversations.get_conversation(ad_id)
        if not messages or messages[0].role != "system":
            messages = [ConversationMessage.system(system_prompt)] + messages
        messages.append(ConversationMessage.user(user_message))

        state = _RunState(ad_id=ad_id)

        with logfire.span("agent run {ad_id}", ad_id=ad_id, provider=provider):
            try:
                while state.iterations < max_iterations:
                    state.iterations += 1
                    logger.info(f"[AgentExecutor] Iteration {state.iterations}")

                    if state.drafts.is_complete():
                        logger.info("[AgentExecutor] All drafts complete, finishing without another LLM call")
                        state.stop_reason = StopReason.DRAFTS_COMPLETE
                        break

                    stop = await self._iterate(adapter, messages, tools, reasoning_effort, state)
                    if stop is not None:
                        state.stop_reason = stop
                        break

                if state.stop_reason is None:
                    if state.drafts.is_complete():
                        state.stop_reason = StopReason.DRAFTS_COMPLETE
                    else:
                        logger.warning(
                            f"[AgentExecutor] Reached max iterations ({max_iterations}) for ad {ad_id}"
                        )
                        state.stop_reason = StopReason.MAX_ITERATIONS
            finally:
                await self.conversations.save_conversation(ad_id, messages)

        final_message = next(
            (m.content for m in reversed(messages) if m.role == "assistant" and m.content),
            "",
        )
        total_usage = state.usage if (state.usage.prompt_tokens or state.usage.completion_tokens) else None

        logger.info(
            f"[AgentExecutor] Completed after {state.iterations} iterations "
            f"({state.stop_reason.value}), drafts: {state.drafts.model_dump(exclude_none=True)}"
        )

        return AgentResult(
            conversation_id=ad_id,
            message=final_message,
            drafts=state.drafts,
            tool_call_history=state.history,
            provider=provider,
            total_usage=total_usage,
            iterations=state.iterations,
            stop_reason=state.stop_reason,
        )

    async def continue_conversation(
        self,
        ad_id: str,
        user_message: str,
        provider: str = DEFAULT_PROVIDER,
        max_iterations: Optional[int] = None,
    ) -> AgentResult:
        """
        Continue an existing conversation with a refinement request.

        Uses low reasoning effort since refinements are targeted changes.

        Raises:
            ConversationNotFoundError: If the ad has no stored conversation
        """
        existing = await self.conversations.get_conversation(ad_id)
        if not existing:
            raise ConversationNotFoundError(ad_id)

        if existing[0].role == "system":
            system_prompt = existing[0].content
        else:
            system_prompt = build_iteration_system_prompt()

        return await self.run_agent_loop(
            system_prompt,
            user_message,
            ad_id=ad_id,
            provider=provider,
            reasoning_effort="low",
            max_iterations=max_iterations,
            continue_conversation=True,
        )

    # =========================================================================
    # Loop internals
    # =========================================================================

    async def _iterate(
        self,
        adapter: ToolCallingAdapter,
        messages: List[ConversationMessage],
        tools: List[ToolDefinition],
        reasoning_effort: ReasoningEffort,
        state: _RunState,
    ) -> Optional[StopReason]:
        """One model call plus its tool calls. Returns a stop reason to end the run."""
        previous_response_id = (
            state.previous_response_id if adapter.capabilities.supports_continuation else None
        )
        try:
            response = await adapter.invoke(AdapterRequest(
                messages=messages,
                tools=tools,
                options=InvokeOptions(
                    reasoning_effort=reasoning_effort,
                    previous_response_id=previous_response_id,
                ),
            ))
        except Exception as e:
            logger.error(
                f"[AgentExecutor] {adapter.name} call failed on iteration {state.iterations}: "
                f"{type(e).__name__}: {e}"
            )
            return StopReason.PROVIDER_ERROR

        state.previous_response_id = response.response_id
        state.usage.add(response.usage)
        messages.append(response.message)

        if not response.tool_calls:
            logger.info("[AgentExecutor] No tool calls, conversation complete")
            return StopReason.COMPLETED

        tool_messages = await self._handle_tool_calls(response.tool_calls, state)
        messages.extend(tool_messages)

        if self._is_stalling(state.history[state.loop_window_start:]):
            if state.drafts.voices and not state.drafts.music and not state.forcing_attempted:
                logger.warning("[AgentExecutor] Loop detected, forcing create_music_draft")
                messages.append(ConversationMessage.user(FORCE_MUSIC_DIRECTIVE))
                state.forcing_attempted = True
                state.loop_window_start = len(state.history)
                return None
            logger.warning(
                f"[AgentExecutor] Loop detected, stopping with drafts "
                f"{state.drafts.model_dump(exclude_none=True)}"
            )
            return StopReason.LOOP_DETECTED

        return None

    async def _handle_tool_calls(self, calls: List[ToolCall], state: _RunState) -> List[ConversationMessage]:
        """
        Suppress duplicate draft calls, execute the rest concurrently and
        return one tool message per call in the original call order.
        """
        responses: List[Optional[str]] = [None] * len(calls)
        survivors: List[Tuple[int, ToolCall]] = []

        for index, call in enumerate(calls):
            stream = DRAFT_TOOLS.get(call.name)
            existing = getattr(state.drafts, stream.value) if stream else None
            if existing:
                logger.info(f"[AgentExecutor] Skipping duplicate {call.name} (already have {existing})")
                responses[index] = duplicate_draft_message(stream, existing, state.drafts)
            else:
                survivors.append((index, call))

        if survivors:
            results = await self.tools.execute_many([call for _, call in survivors], ad_id=state.ad_id)
            for (index, call), result in zip(survivors, results):
                responses[index] = result.content
                stream = DRAFT_TOOLS.get(call.name)
                decoded = _decode(result.content)
                if (
                    stream
                    and isinstance(decoded, dict)
                    and decoded.get("versionId")
                    and "error" not in decoded
                    and target_ad_id(arguments_for_history(call.arguments)) == state.ad_id
                ):
                    setattr(state.drafts, stream.value, decoded["versionId"])
        else:
            logger.info("[AgentExecutor] All tool calls were duplicates, sending feedback")

        tool_messages = []
        for call, content in zip(calls, responses):
            state.history.append(ToolCallRecord(
                tool=call.name,
                args=arguments_for_history(call.arguments),
                result=_decode(content),
            ))
            tool_messages.append(ConversationMessage.tool(call.id, content))
        return tool_messages

    @staticmethod
    def _is_stalling(history: List[ToolCallRecord]) -> bool:
        """True if searches or state reads dominate the recent tool calls."""
        recent = [r.tool for r in history[-Config.LOOP_DETECTION_WINDOW:]]
        searches = sum(1 for name in recent if name == SEARCH_VOICES)
        state_reads = sum(1 for name in recent if name in STATE_READ_TOOLS)
        threshold = Config.LOOP_DETECTION_THRESHOLD
        return searches >= threshold or state_reads >= threshold
