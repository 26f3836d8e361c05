"""Instruction retrieval: surface stored preferences into a session.

Instructions are pulled from the memory service once at session start and
once per tool the session invokes, filtered against the directives already
active in the session, and counted so that usage can be written back when
the session ends. Retrieval is advisory: every failure degrades to an empty
result instead of interrupting the session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from recollect.config import RetrievalConfig
from recollect.memory.types import access_count_of
from recollect.result import guard
from recollect.retrieval.dedup import is_duplicate
from recollect.retrieval.session import SessionRegistry

if TYPE_CHECKING:
    from recollect.memory.types import MemoryClient, MemorySearchResult
    from recollect.retrieval.session import SessionCache

logger = logging.getLogger(__name__)

FALLBACK_QUERY = "development preferences"

TOOL_CATEGORY_MAP: dict[str, list[str]] = {
    "playwright": ["testing"],
    "vitest": ["testing"],
    "jest": ["testing"],
    "cypress": ["testing"],
    "git": ["workflow"],
    "github": ["workflow"],
    "build": ["environment"],
    "docker": ["environment"],
    "npm": ["environment", "tooling"],
    "pnpm": ["environment", "tooling"],
    "yarn": ["environment", "tooling"],
    "eslint": ["quality", "style"],
    "prettier": ["style"],
}


@dataclass
class RetrievedInstruction:
    """An instruction surfaced to a session."""

    id: str
    content: str
    category: str | None = None
    scope: str = "global"
    score: float = 0.0
    access_count: int = 0
    created_at: str | None = None

    def to_dict(self) -> dict:
        data: dict = {
            "id": self.id,
            "content": self.content,
            "category": self.category,
            "scope": self.scope,
            "score": self.score,
            "accessCount": self.access_count,
        }
        if self.created_at:
            data["createdAt"] = self.created_at
        return data


@dataclass
class RetrievalContext:
    """Caller-supplied signals for one retrieval call."""

    project_name: str | None = None
    language: str | None = None
    active_tools: list[str] = field(default_factory=list)
    active_directives: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict | None) -> RetrievalContext:
        data = data or {}
        return cls(
            project_name=data.get("projectName") or None,
            language=data.get("language") or None,
            active_tools=list(data.get("activeTools") or []),
            active_directives=list(data.get("activeDirectives") or []),
        )


def build_session_query(context: RetrievalContext) -> str:
    parts: list[str] = []
    if context.project_name:
        parts.append(context.project_name)
    if context.language:
        parts.append(context.language)
    parts.extend(context.active_tools[:3])
    return " ".join(parts) or FALLBACK_QUERY


def build_tool_query(tool_name: str, context: RetrievalContext) -> str:
    categories = TOOL_CATEGORY_MAP.get(tool_name.lower(), [])
    parts = [tool_name, *categories, context.project_name]
    return " ".join(p for p in parts if p)


def to_retrieved_instruction(result: MemorySearchResult) -> RetrievedInstruction:
    meta = result.memory.metadata or {}
    return RetrievedInstruction(
        id=result.memory.id,
        content=result.memory.content,
        category=meta.get("category"),
        scope=meta.get("scope") or "global",
        score=result.score,
        access_count=access_count_of(meta),
        created_at=result.memory.created_at,
    )


def compose_retrieved_section(instructions: list[RetrievedInstruction]) -> str:
    """Format retrieved instructions for injection into the system prompt.

    Returns an empty string when there is nothing to inject.
    """
    if not instructions:
        return ""
    lines = []
    for inst in instructions:
        saved = f" (saved {inst.created_at.split('T')[0]})" if inst.created_at else ""
        lines.append(f"- {inst.content}{saved}")
    return "## Retrieved Preferences\n" + "\n".join(lines) + "\n"


class InstructionRetrieval:
    """Session-start and per-tool retrieval with dedup, cooldown and access tracking."""

    def __init__(
        self,
        client: MemoryClient,
        config: RetrievalConfig | None = None,
        sessions: SessionRegistry | None = None,
    ) -> None:
        self.client = client
        self.config = config or RetrievalConfig()
        self.sessions = sessions if sessions is not None else SessionRegistry()

    async def retrieve_at_session_start(
        self, session_id: str, context: RetrievalContext
    ) -> list[RetrievedInstruction]:
        """Retrieve instructions for a new session.

        The first answer from the store is cached for the session's lifetime;
        later calls return the cached list without touching the store.
        """
        cache = self.sessions.get_or_create(session_id)
        async with cache.start_lock:
            if cache.session_start is not None:
                return cache.session_start

            instructions = await self._search(
                build_session_query(context),
                context,
                fetch=self.config.session_start_fetch,
                keep=self.config.session_start_keep,
            )
            if instructions is None:
                return []

            cache.session_start = instructions
            self._track(cache, instructions)
            logger.info(
                "Session %s: %d instruction(s) retrieved at start", session_id, len(instructions)
            )
            return instructions

    async def retrieve_for_tool(
        self, session_id: str, tool_name: str, context: RetrievalContext
    ) -> list[RetrievedInstruction]:
        """Retrieve tool-specific instructions, at most once per tool per session."""
        cache = self.sessions.get_or_create(session_id)
        tool = tool_name.lower()
        # The attempt consumes the cooldown, whatever the store does next.
        if not cache.claim_tool(tool):
            return []

        instructions = await self._search(
            build_tool_query(tool_name, context),
            context,
            fetch=self.config.tool_fetch,
            keep=self.config.tool_keep,
        )
        if not instructions:
            return []

        self._track(cache, instructions)
        logger.info(
            "Session %s: %d instruction(s) retrieved for tool %s",
            session_id,
            len(instructions),
            tool,
        )
        return instructions

    async def flush_access_counts(self, session_id: str) -> int:
        """Write the session's access counts back to the store and drop the session.

        Returns the number of instructions successfully updated. Individual
        update failures are ignored; the session cache is removed on every path.
        """
        cache = self.sessions.get(session_id)
        if cache is None:
            return 0

        try:
            available = await guard(self.client.is_available(), "health probe")
            if not available.unwrap_or(False):
                logger.debug("Memory service unavailable, dropping access log for %s", session_id)
                return 0

            flushed = 0
            for instruction_id, count in list(cache.access_log.items()):
                metadata = {
                    "lastAccessed": datetime.now(timezone.utc).isoformat(),
                    "accessCount": count,
                }
                result = await guard(
                    self.client.update(instruction_id, metadata=metadata),
                    f"access flush {instruction_id}",
                )
                if result.ok:
                    flushed += 1
            logger.info(
                "Session %s: flushed %d/%d access count(s)",
                session_id,
                flushed,
                len(cache.access_log),
            )
            return flushed
        finally:
            self.sessions.delete(session_id)

    # ── internals ─────────────────────────────────────────────

    async def _search(
        self, query: str, context: RetrievalContext, *, fetch: int, keep: int
    ) -> list[RetrievedInstruction] | None:
        """Search, map, dedup and truncate. None when the store could not answer."""
        available = await guard(self.client.is_available(), "health probe")
        if not available.unwrap_or(False):
            logger.debug("Memory service unavailable, skipping retrieval")
            return None

        found = await guard(
            self.client.search(
                query, type="preference", limit=fetch, min_score=self.config.min_score
            ),
            f"search {query!r}",
        )
        if not found.ok:
            logger.warning("Instruction retrieval failed: %s", found.reason)
            return None

        instructions = [
            inst
            for inst in map(to_retrieved_instruction, found.value or [])
            if not is_duplicate(
                inst.content, context.active_directives, self.config.duplicate_threshold
            )
        ]
        return instructions[:keep]

    @staticmethod
    def _track(cache: SessionCache, instructions: list[RetrievedInstruction]) -> None:
        for inst in instructions:
            cache.track_access(inst)
