"""Memory read model and the client protocol the engines depend on."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Protocol, runtime_checkable

MemoryType = Literal["preference", "semantic_knowledge", "episodic", "procedural"]


def access_count_of(metadata: dict | None) -> int:
    """Stored `accessCount`, 0 when missing or malformed."""
    try:
        return int((metadata or {}).get("accessCount") or 0)
    except (TypeError, ValueError):
        return 0


@dataclass
class Memory:
    """A memory as stored by the external service."""

    id: str
    content: str
    type: str = "preference"
    metadata: dict = field(default_factory=dict)
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> Memory:
        return cls(
            id=str(data["id"]),
            content=data.get("content") or "",
            type=data.get("type", "preference"),
            metadata=dict(data.get("metadata") or {}),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )

    def to_dict(self) -> dict:
        data: dict = {
            "id": self.id,
            "content": self.content,
            "type": self.type,
            "metadata": self.metadata,
        }
        if self.created_at:
            data["createdAt"] = self.created_at
        if self.updated_at:
            data["updatedAt"] = self.updated_at
        return data


@dataclass
class MemorySearchResult:
    memory: Memory
    score: float = 0.0

    @classmethod
    def from_dict(cls, data: dict) -> MemorySearchResult:
        return cls(memory=Memory.from_dict(data["memory"]), score=float(data.get("score", 0.0)))


@runtime_checkable
class MemoryClient(Protocol):
    """Contract of the memory service as consumed by retrieval, pruning and feedback."""

    async def is_available(self) -> bool:
        """Health probe. Returns False on any error, never raises."""
        ...

    async def search(
        self,
        query: str,
        *,
        type: MemoryType | None = None,
        limit: int = 10,
        min_score: float = 0.0,
    ) -> list[MemorySearchResult]:
        """Ranked search over stored memories."""
        ...

    async def update(
        self,
        memory_id: str,
        *,
        metadata: dict | None = None,
        content: str | None = None,
    ) -> Memory:
        """Partially update a memory."""
        ...

    async def create(
        self, content: str, type: MemoryType, metadata: dict | None = None
    ) -> Memory: ...

    async def batch_create(self, items: list[dict]) -> list[Memory]: ...

    async def delete(self, memory_id: str) -> None: ...
