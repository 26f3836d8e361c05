"""Tests for the memory read model and the guarded-call helper."""

import pytest

from recollect.memory.types import Memory, MemoryClient, MemorySearchResult, access_count_of
from recollect.result import guard


class TestMemoryModel:
    def test_from_dict(self):
        memory = Memory.from_dict(
            {
                "id": 7,
                "content": None,
                "type": "preference",
                "metadata": {"scope": "project"},
                "createdAt": "2026-01-01T00:00:00Z",
            }
        )
        assert memory.id == "7"
        assert memory.content == ""
        assert memory.metadata == {"scope": "project"}
        assert memory.created_at == "2026-01-01T00:00:00Z"
        assert memory.updated_at is None

    def test_to_dict_omits_missing_dates(self):
        assert Memory(id="a", content="x").to_dict() == {
            "id": "a",
            "content": "x",
            "type": "preference",
            "metadata": {},
        }

    def test_search_result_from_dict(self):
        result = MemorySearchResult.from_dict({"memory": {"id": "a"}, "score": "0.5"})
        assert result.score == 0.5
        assert result.memory.id == "a"

    def test_access_count_of(self):
        assert access_count_of({"accessCount": 3}) == 3
        assert access_count_of({"accessCount": "4"}) == 4
        assert access_count_of({"accessCount": "lots"}) == 0
        assert access_count_of({}) == 0
        assert access_count_of(None) == 0

    def test_fake_satisfies_protocol(self, fake_client):
        assert isinstance(fake_client, MemoryClient)


class TestGuard:
    @pytest.mark.asyncio
    async def test_success(self):
        async def ok():
            return [1]

        result = await guard(ok(), "search")
        assert result.ok
        assert result.unwrap_or([]) == [1]

    @pytest.mark.asyncio
    async def test_failure_captures_reason(self):
        async def boom():
            raise ConnectionError("reset")

        result = await guard(boom(), "search")
        assert not result.ok
        assert result.reason == "reset"
        assert result.unwrap_or([]) == []

    @pytest.mark.asyncio
    async def test_failure_without_message(self):
        async def boom():
            raise TimeoutError()

        result = await guard(boom(), "search")
        assert result.reason == "TimeoutError"
