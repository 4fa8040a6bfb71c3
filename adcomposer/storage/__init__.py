"""
Durable state: version streams, conversations and ad metadata (Redis).
"""

from .keys import AD_KEYS, CONVERSATION_KEYS, INDEX_KEYS
from .versions import VersionStore
from .conversation import ConversationStore
from .ads import AdStore

__all__ = [
    "AD_KEYS",
    "CONVERSATION_KEYS",
    "INDEX_KEYS",
    "VersionStore",
    "ConversationStore",
    "AdStore",
]
