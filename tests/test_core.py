"""Tests for the Recollect hub."""

import pytest

from recollect.config import FeedbackConfig, RecollectConfig
from recollect.core import Recollect
from recollect.feedback import FeedbackEvent, FeedbackOutcome
from recollect.memory.client import MemoryServiceClient
from recollect.retrieval.engine import RetrievalContext


class TestRecollect:
    def test_builds_http_client_by_default(self):
        recollect = Recollect(RecollectConfig())
        assert isinstance(recollect.client, MemoryServiceClient)
        assert recollect.retrieval.client is recollect.client

    @pytest.mark.asyncio
    async def test_feedback_uses_configured_threshold(self, fake_client):
        fake_client.add("m1", feedbackScore=1, accessCount=1)
        recollect = Recollect(
            RecollectConfig(feedback=FeedbackConfig(promotion_threshold=2)), client=fake_client
        )
        result = await recollect.record_feedback(
            FeedbackEvent(session_id="s1", instruction_id="m1", outcome=FeedbackOutcome.SUCCESS)
        )
        assert result.promoted is True

    @pytest.mark.asyncio
    async def test_health_check(self, fake_client):
        recollect = Recollect(RecollectConfig(), client=fake_client)
        assert await recollect.health_check() is True
        fake_client.available = False
        assert await recollect.health_check() is False

    @pytest.mark.asyncio
    async def test_close_flushes_open_sessions(self, fake_client):
        fake_client.add("m1", "Use tabs")
        recollect = Recollect(RecollectConfig(), client=fake_client)
        await recollect.retrieval.retrieve_at_session_start("s1", RetrievalContext())
        await recollect.retrieval.retrieve_for_tool("s2", "git", RetrievalContext())

        await recollect.close()

        assert sorted(memory_id for memory_id, _ in fake_client.updates) == ["m1", "m1"]
        assert len(recollect.retrieval.sessions) == 0
