"""Feedback loop: session outcomes adjust an instruction's running score.

An instruction that keeps helping accumulates score and accesses until it
qualifies for promotion to a persistent directive. Promotion itself happens
elsewhere; this module only reports eligibility.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING

from recollect.memory.types import access_count_of
from recollect.result import guard

if TYPE_CHECKING:
    from recollect.memory.types import MemoryClient

logger = logging.getLogger(__name__)

PROMOTION_THRESHOLD = 10


class FeedbackOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    DISMISSED = "dismissed"


# outcome → (score delta, access delta)
OUTCOME_DELTAS: dict[FeedbackOutcome, tuple[float, int]] = {
    FeedbackOutcome.SUCCESS: (1.0, 1),
    FeedbackOutcome.FAILURE: (-0.5, 0),
    FeedbackOutcome.DISMISSED: (-0.25, 0),
}


@dataclass
class FeedbackEvent:
    session_id: str
    instruction_id: str
    outcome: FeedbackOutcome


@dataclass
class FeedbackResult:
    promoted: bool = False
    feedback_score: float | None = None
    access_count: int | None = None

    def to_dict(self) -> dict:
        return {
            "promoted": self.promoted,
            "feedbackScore": self.feedback_score,
            "accessCount": self.access_count,
        }


def apply_outcome(metadata: dict, outcome: FeedbackOutcome) -> dict:
    """Return a copy of `metadata` with the outcome applied."""
    try:
        score = float(metadata.get("feedbackScore") or 0)
    except (TypeError, ValueError):
        score = 0.0
    score_delta, access_delta = OUTCOME_DELTAS[outcome]
    return {
        **metadata,
        "feedbackScore": score + score_delta,
        "accessCount": access_count_of(metadata) + access_delta,
        "lastFeedback": outcome.value,
        "lastFeedbackAt": datetime.now(timezone.utc).isoformat(),
    }


def is_promotable(metadata: dict, threshold: float = PROMOTION_THRESHOLD) -> bool:
    return metadata["feedbackScore"] >= threshold and metadata["accessCount"] >= threshold


async def record_feedback(
    client: MemoryClient,
    event: FeedbackEvent,
    *,
    promotion_threshold: float = PROMOTION_THRESHOLD,
) -> FeedbackResult:
    """Apply a session outcome to the stored instruction and report promotion.

    Unknown instructions, an unavailable store and failed writes all yield
    ``promoted=False``; nothing is raised.
    """
    available = await guard(client.is_available(), "health probe")
    if not available.unwrap_or(False):
        logger.debug("Memory service unavailable, feedback for %s dropped", event.instruction_id)
        return FeedbackResult()

    found = await guard(
        client.search(event.instruction_id, type="preference", limit=1, min_score=0.0),
        f"feedback lookup {event.instruction_id}",
    )
    hits = found.unwrap_or([])
    if not hits or hits[0].memory.id != event.instruction_id:
        logger.info("Feedback for unknown instruction %s ignored", event.instruction_id)
        return FeedbackResult()

    metadata = apply_outcome(hits[0].memory.metadata, event.outcome)
    saved = await guard(
        client.update(event.instruction_id, metadata=metadata),
        f"feedback update {event.instruction_id}",
    )
    if not saved.ok:
        logger.warning("Failed to record feedback for %s: %s", event.instruction_id, saved.reason)
        return FeedbackResult()

    promoted = is_promotable(metadata, promotion_threshold)
    if promoted:
        logger.info(
            "Instruction %s eligible for promotion (score=%.2f, accesses=%d)",
            event.instruction_id,
            metadata["feedbackScore"],
            metadata["accessCount"],
        )
    return FeedbackResult(
        promoted=promoted,
        feedback_score=metadata["feedbackScore"],
        access_count=metadata["accessCount"],
    )
