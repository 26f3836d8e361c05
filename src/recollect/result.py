"""Explicit success/failure values for best-effort store calls.

Engines never let a memory-service exception cross their public methods.
Each store call goes through `guard()`, which turns the outcome into a
`Result`; callers branch on `result.ok` and collapse failures to an empty
or default value at the boundary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of one store interaction."""

    ok: bool
    value: T | None = None
    reason: str = ""

    def unwrap_or(self, default: Any) -> Any:
        return self.value if self.ok else default


def success(value: T) -> Result[T]:
    return Result(ok=True, value=value)


def failure(reason: str) -> Result[Any]:
    return Result(ok=False, reason=reason)


async def guard(awaitable: Awaitable[T], label: str) -> Result[T]:
    """Await a store call and capture any exception as a failed Result."""
    try:
        return success(await awaitable)
    except Exception as e:
        logger.debug("%s failed: %s", label, e)
        return failure(str(e) or type(e).__name__)
