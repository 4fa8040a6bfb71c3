"""
Provider adapters: one ToolCallingAdapter per LLM backend.
"""

from .base import ChatCompletionsAdapter, ProviderCapabilities, ToolCallingAdapter
from .openai_adapter import OpenAIAdapter
from .qwen_adapter import QwenAdapter, repair_json
from .kimi_adapter import KimiAdapter

__all__ = [
    "ChatCompletionsAdapter",
    "ProviderCapabilities",
    "ToolCallingAdapter",
    "OpenAIAdapter",
    "QwenAdapter",
    "KimiAdapter",
    "repair_json",
]
