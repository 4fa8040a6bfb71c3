"""
Tool Registry - static catalogue of the tools offered to the LLM.

Each tool is registered with a name, a description and a pydantic parameter
model; the JSON schema sent to the model is generated from that model, so the
contract the model sees and the validation the executor applies never drift
apart.
"""

import copy
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Type

from pydantic import BaseModel

from .models import (
    CreateMusicDraftParams,
    CreateSfxDraftParams,
    CreateVoiceDraftParams,
    ReadAdStateParams,
    SearchVoicesParams,
    SetAdTitleParams,
)
from ..agent.types import ToolDefinition
from ..services.models import Stream

logger = logging.getLogger(__name__)


# Tool names
SEARCH_VOICES = "search_voices"
CREATE_VOICE_DRAFT = "create_voice_draft"
CREATE_MUSIC_DRAFT = "create_music_draft"
CREATE_SFX_DRAFT = "create_sfx_draft"
READ_AD_STATE = "read_ad_state"
GET_CURRENT_STATE = "get_current_state"  # legacy alias of read_ad_state
SET_AD_TITLE = "set_ad_title"

# Draft-creating tool -> stream it writes
DRAFT_TOOLS: Dict[str, Stream] = {
    CREATE_VOICE_DRAFT: Stream.VOICES,
    CREATE_MUSIC_DRAFT: Stream.MUSIC,
    CREATE_SFX_DRAFT: Stream.SFX,
}

STATE_READ_TOOLS = frozenset({READ_AD_STATE, GET_CURRENT_STATE})


class ToolSet(str, Enum):
    """Subsets of the catalogue offered to the model"""
    FULL = "full"
    GENERATION = "generation"  # voices were prefetched into the prompt


# ============================================================================
# Schema helpers
# ============================================================================

def _simplify_schema(node: Any, defs: Dict[str, Any]) -> Any:
    """
    Inline $ref definitions, drop pydantic titles and collapse
    Optional[X] (anyOf [X, null]) into X.
    """
    if isinstance(node, list):
        return [_simplify_schema(item, defs) for item in node]
    if not isinstance(node, dict):
        return node

    if "$ref" in node:
        ref_name = node["$ref"].split("/")[-1]
        resolved = copy.deepcopy(defs[ref_name])
        resolved.update({k: v for k, v in node.items() if k != "$ref"})
        return _simplify_schema(resolved, defs)

    any_of = node.get("anyOf")
    if isinstance(any_of, list):
        non_null = [s for s in any_of if s.get("type") != "null"]
        if len(non_null) == 1 and len(any_of) == 2:
            merged = {k: v for k, v in node.items() if k != "anyOf"}
            merged.update(non_null[0])
            if merged.get("default", 0) is None:
                merged.pop("default")
            return _simplify_schema(merged, defs)

    result = {}
    for key, value in node.items():
        if key in ("title", "$defs"):
            continue
        if key == "properties":
            result[key] = {name: _simplify_schema(prop, defs) for name, prop in value.items()}
        else:
            result[key] = _simplify_schema(value, defs)
    return result


def model_to_parameters(model: Type[BaseModel]) -> Dict[str, Any]:
    """
    Generate an LLM-friendly JSON schema for a parameter model.

    Args:
        model: Pydantic parameter model

    Returns:
        Object schema with properties and required fields (by alias)
    """
    schema = model.model_json_schema(by_alias=True)
    defs = schema.get("$defs", {})
    parameters = _simplify_schema(schema, defs)
    parameters["type"] = "object"
    parameters.setdefault("required", [])
    return parameters


# ============================================================================
# Tool Registry
# ============================================================================

@dataclass
class ToolSpec:
    """
    Metadata for a registered tool.

    Attributes:
        name: Unique tool name (e.g., "create_voice_draft")
        description: Description shown to the model
        params_model: Pydantic model validating the arguments
    """
    name: str
    description: str
    params_model: Type[BaseModel]

    def to_definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=model_to_parameters(self.params_model),
        )


class ToolRegistry:
    """
    Central registry of agent tools.

    Definitions are generated once and never mutated afterwards.
    """

    def __init__(self):
        self._tools: Dict[str, ToolSpec] = {}
        self._definitions: Dict[str, ToolDefinition] = {}

    def register(self, name: str, description: str, params_model: Type[BaseModel]) -> ToolSpec:
        """Register a tool and build its definition."""
        spec = ToolSpec(name=name, description=description, params_model=params_model)
        self._tools[name] = spec
        self._definitions[name] = spec.to_definition()
        logger.debug(f"Registered tool: {name}")
        return spec

    def get_tool(self, name: str) -> Optional[ToolSpec]:
        """Get tool metadata by name."""
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def definitions(self, exclude: Iterable[str] = ()) -> List[ToolDefinition]:
        """Tool definitions in registration order, minus `exclude`."""
        excluded = set(exclude)
        return [d for name, d in self._definitions.items() if name not in excluded]

    def definitions_for(self, tool_set: ToolSet) -> List[ToolDefinition]:
        """Tool definitions for a named tool set."""
        if ToolSet(tool_set) == ToolSet.GENERATION:
            return self.definitions(exclude=[SEARCH_VOICES])
        return self.definitions()


tool_registry = ToolRegistry()

tool_registry.register(
    SEARCH_VOICES,
    "Search voice database by provider, language, gender, and accent. Returns voices with "
    "personality descriptions - pick the ones that best fit the creative direction.",
    SearchVoicesParams,
)
tool_registry.register(
    CREATE_VOICE_DRAFT,
    "Create a new voice track version draft. Any previous voice draft for this ad is frozen.",
    CreateVoiceDraftParams,
)
tool_registry.register(
    CREATE_MUSIC_DRAFT,
    "Create a new music track version draft. Any previous music draft for this ad is frozen.",
    CreateMusicDraftParams,
)
tool_registry.register(
    CREATE_SFX_DRAFT,
    "Create a new sound effects version draft. Any previous sound effects draft for this ad is frozen.",
    CreateSfxDraftParams,
)
tool_registry.register(
    READ_AD_STATE,
    "Get current ad state, including voices already tried. ONLY use this when continuing a "
    "previous conversation about an existing ad. Do NOT call for new ad creation - go straight "
    "to search_voices instead.",
    ReadAdStateParams,
)
tool_registry.register(
    SET_AD_TITLE,
    "Set a short, descriptive title for the ad.",
    SetAdTitleParams,
)

TOOL_DEFINITIONS: List[ToolDefinition] = tool_registry.definitions()
