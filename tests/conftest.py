"""
Shared fixtures: in-process Redis (fakeredis), stores and a mocked voice
catalogue.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fakeredis import aioredis as fake_aioredis

from adcomposer.services.models import Voice
from adcomposer.services.voice_catalogue import VoiceCatalogue
from adcomposer.storage.ads import AdStore
from adcomposer.storage.conversation import ConversationStore
from adcomposer.storage.versions import VersionStore


VOICES = [
    Voice(id="el-anna", name="Anna", provider="elevenlabs", language="en-US",
          gender="female", accent="american", style="warm", personality="Friendly and bright"),
    Voice(id="el-ben", name="Ben", provider="elevenlabs", language="en-GB",
          gender="male", accent="british", style="narration", personality="Calm storyteller"),
]


@pytest.fixture
def redis():
    return fake_aioredis.FakeRedis(decode_responses=True)


@pytest.fixture
def versions(redis):
    return VersionStore(redis)


@pytest.fixture
def conversations(redis):
    return ConversationStore(redis)


@pytest.fixture
def ads(versions):
    return AdStore(versions)


@pytest.fixture
def catalogue():
    """VoiceCatalogue with its Supabase-backed queries mocked out."""
    mock = MagicMock(spec=VoiceCatalogue)
    mock.search = AsyncMock(return_value=list(VOICES))
    mock.get_voices_by_ids = AsyncMock(
        side_effect=lambda ids: {v.id: v for v in VOICES if v.id in ids}
    )
    return mock
