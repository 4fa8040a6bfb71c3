"""
Redis key builders.

Key patterns:
- ad:{adId}:meta                          Ad metadata (JSON)
- ad:{adId}:{stream}:versions             Ordered version IDs (LIST)
- ad:{adId}:{stream}:active               Active version ID (STRING)
- ad:{adId}:{stream}:v:{versionId}        Version blob (JSON)
- ad:{adId}:{stream}:seq                  Version ID counter (INCR)
- ad:{adId}:conversation                  Conversation messages (JSON)
- ads:by_user:{sessionId} / ads:all       Ad indexes (ZSET, score = created ms)
"""

from typing import Union

from ..services.models import Stream

StreamLike = Union[Stream, str]


def _stream(stream: StreamLike) -> str:
    return Stream(stream).value


class AD_KEYS:
    """Version stream keys"""

    @staticmethod
    def meta(ad_id: str) -> str:
        return f"ad:{ad_id}:meta"

    @staticmethod
    def versions(ad_id: str, stream: StreamLike) -> str:
        return f"ad:{ad_id}:{_stream(stream)}:versions"

    @staticmethod
    def active(ad_id: str, stream: StreamLike) -> str:
        return f"ad:{ad_id}:{_stream(stream)}:active"

    @staticmethod
    def version(ad_id: str, stream: StreamLike, version_id: str) -> str:
        return f"ad:{ad_id}:{_stream(stream)}:v:{version_id}"

    @staticmethod
    def seq(ad_id: str, stream: StreamLike) -> str:
        return f"ad:{ad_id}:{_stream(stream)}:seq"


class CONVERSATION_KEYS:
    """Conversation keys"""

    @staticmethod
    def conversation(ad_id: str) -> str:
        return f"ad:{ad_id}:conversation"


class INDEX_KEYS:
    """Ad index keys"""

    ALL_ADS = "ads:all"

    @staticmethod
    def by_user(session_id: str) -> str:
        return f"ads:by_user:{session_id}"
