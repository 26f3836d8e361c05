"""Recollect hub: one memory client shared by retrieval, pruning and feedback.

Responsibilities:
1. Build the memory service client from configuration
2. Own the retrieval engine (and with it every live session cache)
3. Run pruning sweeps and record feedback against the same client
4. Close the client on shutdown
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from recollect.config import RecollectConfig
from recollect.feedback import FeedbackEvent, FeedbackResult, record_feedback
from recollect.memory.client import MemoryServiceClient
from recollect.pruning import InstructionPruner, PruneResult
from recollect.retrieval.engine import InstructionRetrieval

if TYPE_CHECKING:
    from recollect.memory.types import MemoryClient

logger = logging.getLogger(__name__)


class Recollect:
    """Memory-lifecycle engine facade."""

    def __init__(self, config: RecollectConfig, client: MemoryClient | None = None) -> None:
        self.config = config
        self.client = client or MemoryServiceClient(config.memory_service)
        self.retrieval = InstructionRetrieval(self.client, config.retrieval)
        self.pruner = InstructionPruner(self.client, config.pruning)

    async def prune(self, project_path: str | None = None) -> PruneResult:
        return await self.pruner.prune(project_path)

    async def record_feedback(self, event: FeedbackEvent) -> FeedbackResult:
        return await record_feedback(
            self.client,
            event,
            promotion_threshold=self.config.feedback.promotion_threshold,
        )

    async def health_check(self) -> bool:
        return await self.client.is_available()

    async def close(self) -> None:
        """Flush every open session, then close the client if it supports it."""
        for session_id in list(self.retrieval.sessions.ids()):
            await self.retrieval.flush_access_counts(session_id)

        close = getattr(self.client, "close", None)
        if close and callable(close):
            await close()
