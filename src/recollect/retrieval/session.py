"""Per-session retrieval state and the registry that owns it."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from recollect.retrieval.engine import RetrievedInstruction

logger = logging.getLogger(__name__)


@dataclass
class SessionCache:
    """What one session has already been shown and queried."""

    session_start: list[RetrievedInstruction] | None = None
    queried_tools: set[str] = field(default_factory=set)
    access_log: dict[str, int] = field(default_factory=dict)
    start_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def claim_tool(self, tool: str) -> bool:
        """Mark `tool` as queried. False if it was already claimed this session."""
        if tool in self.queried_tools:
            return False
        self.queried_tools.add(tool)
        return True

    def track_access(self, instruction: RetrievedInstruction) -> None:
        self.access_log[instruction.id] = self.access_log.get(instruction.id, 0) + 1


class SessionRegistry:
    """Session id → SessionCache, owned by one retrieval engine."""

    def __init__(self) -> None:
        self._caches: dict[str, SessionCache] = {}

    def create(self, session_id: str) -> SessionCache:
        cache = SessionCache()
        self._caches[session_id] = cache
        logger.debug("Session cache created: %s", session_id)
        return cache

    def get(self, session_id: str) -> SessionCache | None:
        return self._caches.get(session_id)

    def get_or_create(self, session_id: str) -> SessionCache:
        cache = self._caches.get(session_id)
        if cache is None:
            cache = self.create(session_id)
        return cache

    def delete(self, session_id: str) -> SessionCache | None:
        return self._caches.pop(session_id, None)

    def ids(self) -> list[str]:
        return list(self._caches)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._caches

    def __len__(self) -> int:
        return len(self._caches)
