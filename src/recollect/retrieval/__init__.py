"""Session-scoped instruction retrieval."""

from recollect.retrieval.dedup import is_duplicate
from recollect.retrieval.engine import (
    InstructionRetrieval,
    RetrievalContext,
    RetrievedInstruction,
    compose_retrieved_section,
)
from recollect.retrieval.session import SessionCache, SessionRegistry

__all__ = [
    "InstructionRetrieval",
    "RetrievalContext",
    "RetrievedInstruction",
    "SessionCache",
    "SessionRegistry",
    "compose_retrieved_section",
    "is_duplicate",
]
