"""
Agent tools: registry, implementations and executor.
"""

from .definitions import (
    DRAFT_TOOLS,
    STATE_READ_TOOLS,
    TOOL_DEFINITIONS,
    ToolRegistry,
    ToolSet,
    tool_registry,
)
from .implementations import ToolImplementations
from .executor import ToolExecutor

__all__ = [
    "DRAFT_TOOLS",
    "STATE_READ_TOOLS",
    "TOOL_DEFINITIONS",
    "ToolRegistry",
    "ToolSet",
    "tool_registry",
    "ToolImplementations",
    "ToolExecutor",
]
