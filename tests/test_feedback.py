"""Tests for the feedback loop."""

from __future__ import annotations

import pytest

from recollect.feedback import (
    FeedbackEvent,
    FeedbackOutcome,
    apply_outcome,
    record_feedback,
)


def event(outcome: FeedbackOutcome, instruction_id: str = "m1") -> FeedbackEvent:
    return FeedbackEvent(session_id="s1", instruction_id=instruction_id, outcome=outcome)


class TestApplyOutcome:
    def test_success(self):
        meta = apply_outcome({"feedbackScore": 2, "accessCount": 3}, FeedbackOutcome.SUCCESS)
        assert meta["feedbackScore"] == 3
        assert meta["accessCount"] == 4
        assert meta["lastFeedback"] == "success"
        assert "lastFeedbackAt" in meta

    def test_failure(self):
        meta = apply_outcome({"feedbackScore": 2, "accessCount": 3}, FeedbackOutcome.FAILURE)
        assert meta["feedbackScore"] == 1.5
        assert meta["accessCount"] == 3

    def test_dismissed(self):
        meta = apply_outcome({}, FeedbackOutcome.DISMISSED)
        assert meta["feedbackScore"] == -0.25
        assert meta["accessCount"] == 0

    def test_keeps_other_metadata(self):
        meta = apply_outcome({"category": "style"}, FeedbackOutcome.SUCCESS)
        assert meta["category"] == "style"

    def test_does_not_mutate_input(self):
        original = {"feedbackScore": 1}
        apply_outcome(original, FeedbackOutcome.SUCCESS)
        assert original == {"feedbackScore": 1}


class TestRecordFeedback:
    @pytest.mark.asyncio
    async def test_persists_updated_metadata(self, fake_client):
        fake_client.add("m1", "Use tabs", category="style")
        result = await record_feedback(fake_client, event(FeedbackOutcome.SUCCESS))

        assert result.promoted is False
        assert result.feedback_score == 1
        assert result.access_count == 1
        stored = fake_client.memories["m1"].metadata
        assert stored["feedbackScore"] == 1
        assert stored["accessCount"] == 1
        assert stored["lastFeedback"] == "success"
        assert stored["category"] == "style"

    @pytest.mark.asyncio
    async def test_lookup_uses_instruction_id(self, fake_client):
        fake_client.add("m1")
        await record_feedback(fake_client, event(FeedbackOutcome.FAILURE))
        assert fake_client.search_calls == [
            {"query": "m1", "type": "preference", "limit": 1, "min_score": 0.0}
        ]

    @pytest.mark.asyncio
    async def test_promoted_on_tenth_success(self, fake_client):
        fake_client.add("m1")
        results = [
            await record_feedback(fake_client, event(FeedbackOutcome.SUCCESS)) for _ in range(10)
        ]
        assert [r.promoted for r in results] == [False] * 9 + [True]

        again = await record_feedback(fake_client, event(FeedbackOutcome.SUCCESS))
        assert again.promoted is True

    @pytest.mark.asyncio
    async def test_needs_both_score_and_accesses(self, fake_client):
        fake_client.add("m1", feedbackScore=20, accessCount=5)
        result = await record_feedback(fake_client, event(FeedbackOutcome.SUCCESS))
        assert result.promoted is False

    @pytest.mark.asyncio
    async def test_failure_can_drop_below_threshold(self, fake_client):
        fake_client.add("m1", feedbackScore=10, accessCount=12)
        result = await record_feedback(fake_client, event(FeedbackOutcome.FAILURE))
        assert result.feedback_score == 9.5
        assert result.promoted is False

    @pytest.mark.asyncio
    async def test_custom_threshold(self, fake_client):
        fake_client.add("m1", feedbackScore=2, accessCount=2)
        result = await record_feedback(
            fake_client, event(FeedbackOutcome.SUCCESS), promotion_threshold=3
        )
        assert result.promoted is True

    @pytest.mark.asyncio
    async def test_unknown_instruction(self, fake_client):
        result = await record_feedback(fake_client, event(FeedbackOutcome.SUCCESS, "missing"))
        assert result.promoted is False
        assert result.feedback_score is None
        assert fake_client.updates == []

    @pytest.mark.asyncio
    async def test_unrelated_hit_is_not_updated(self, fake_client):
        fake_client.add("other")
        result = await record_feedback(fake_client, event(FeedbackOutcome.SUCCESS, "m1"))
        assert result.promoted is False
        assert fake_client.updates == []

    @pytest.mark.asyncio
    async def test_unavailable(self, fake_client):
        fake_client.add("m1")
        fake_client.available = False
        result = await record_feedback(fake_client, event(FeedbackOutcome.SUCCESS))
        assert result.promoted is False
        assert fake_client.search_calls == []

    @pytest.mark.asyncio
    async def test_update_failure(self, fake_client):
        fake_client.add("m1", feedbackScore=9, accessCount=9)
        fake_client.fail_all_updates = True
        result = await record_feedback(fake_client, event(FeedbackOutcome.SUCCESS))
        assert result.promoted is False

    @pytest.mark.asyncio
    async def test_search_failure(self, fake_client):
        fake_client.search_error = RuntimeError("down")
        result = await record_feedback(fake_client, event(FeedbackOutcome.DISMISSED))
        assert result.promoted is False
