"""Shared fixtures: an in-memory stand-in for the memory service."""

from __future__ import annotations

import pytest

from recollect.memory.types import Memory, MemorySearchResult


class FakeMemoryClient:
    """Implements the MemoryClient protocol over a dict.

    `search` returns the entry whose id equals the query when there is one,
    otherwise every stored entry at or above `min_score`, in insertion order.
    """

    def __init__(self) -> None:
        self.memories: dict[str, Memory] = {}
        self.scores: dict[str, float] = {}
        self.available = True
        self.search_error: Exception | None = None
        self.failing_updates: set[str] = set()
        self.fail_all_updates = False
        self.search_calls: list[dict] = []
        self.updates: list[tuple[str, dict]] = []
        self.health_calls = 0

    def add(
        self,
        memory_id: str,
        content: str = "",
        *,
        score: float = 0.9,
        created_at: str | None = None,
        **metadata,
    ) -> Memory:
        memory = Memory(
            id=memory_id,
            content=content or f"instruction {memory_id}",
            metadata=dict(metadata),
            created_at=created_at,
        )
        self.memories[memory_id] = memory
        self.scores[memory_id] = score
        return memory

    async def is_available(self) -> bool:
        self.health_calls += 1
        return self.available

    async def search(self, query, *, type=None, limit=10, min_score=0.0):
        self.search_calls.append(
            {"query": query, "type": type, "limit": limit, "min_score": min_score}
        )
        if self.search_error is not None:
            raise self.search_error
        if query in self.memories:
            return [MemorySearchResult(self.memories[query], self.scores[query])]
        hits = [
            MemorySearchResult(m, self.scores[m.id])
            for m in self.memories.values()
            if self.scores[m.id] >= min_score
        ]
        return hits[:limit]

    async def update(self, memory_id, *, metadata=None, content=None):
        self.updates.append((memory_id, dict(metadata or {})))
        if self.fail_all_updates or memory_id in self.failing_updates:
            raise ConnectionError(f"update {memory_id} refused")
        memory = self.memories.get(memory_id)
        if memory is None:
            raise KeyError(memory_id)
        memory.metadata = {**memory.metadata, **(metadata or {})}
        if content is not None:
            memory.content = content
        return memory

    async def create(self, content, type, metadata=None):
        memory = self.add(f"mem-{len(self.memories) + 1}", content, **(metadata or {}))
        memory.type = type
        return memory

    async def batch_create(self, items):
        return [await self.create(i["content"], i["type"], i.get("metadata")) for i in items]

    async def delete(self, memory_id):
        self.memories.pop(memory_id, None)


@pytest.fixture
def fake_client() -> FakeMemoryClient:
    return FakeMemoryClient()
