"""Pruning engine: flag stale instructions and archive unused or over-quota ones.

A run lists every stored preference, plans the metadata patches it wants
(a pure step over the listing), then applies them one by one. Each patch is
independent: a failed update is reported in `PruneResult.errors` and the run
moves on. Nothing is rolled back.

Rules, in order:
1. Stale: last access (or creation) older than `stale_days` → flagged_stale
2. Unused: zero accesses and older than `zero_access_days` → archived
3. Project quota: more than `max_per_project` entries for the project →
   archive the least accessed, oldest first (archived_limit)
4. Global quota: same over entries with no project, against `max_global`
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from recollect.config import PruningConfig
from recollect.memory.types import access_count_of
from recollect.result import Result, guard

if TYPE_CHECKING:
    from recollect.memory.types import MemoryClient, MemorySearchResult

logger = logging.getLogger(__name__)

LISTING_QUERY = "development preferences instructions guidance"

FLAGGED_STALE = "flagged_stale"
ARCHIVED = "archived"
ARCHIVED_LIMIT = "archived_limit"

_SECONDS_PER_DAY = 60 * 60 * 24


@dataclass
class PruneResult:
    """Report of one pruning run."""

    flagged_for_review: list[str] = field(default_factory=list)
    archived: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def absorb(self, action: PruneAction, outcome: Result) -> PruneResult:
        """Fold one applied action into the report."""
        bucket = self.flagged_for_review if action.status == FLAGGED_STALE else self.archived
        bucket.append(action.memory_id)
        if not outcome.ok:
            self.errors.append(action.error_message)
        return self

    def to_dict(self) -> dict:
        return {
            "flaggedForReview": list(self.flagged_for_review),
            "archived": list(self.archived),
            "errors": list(self.errors),
        }


@dataclass(frozen=True)
class PruneAction:
    """One planned metadata patch."""

    memory_id: str
    status: str
    metadata: dict

    @property
    def error_message(self) -> str:
        if self.status == FLAGGED_STALE:
            return f"Failed to flag {self.memory_id}"
        if self.status == ARCHIVED_LIMIT:
            return f"Failed to archive (limit) {self.memory_id}"
        return f"Failed to archive {self.memory_id}"


def parse_timestamp(value: object) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def age_in_days(entry: MemorySearchResult, now: datetime) -> float | None:
    """Days since last access, else since creation. None without a usable date."""
    reference = entry.memory.metadata.get("lastAccessed") or entry.memory.created_at
    when = parse_timestamp(reference)
    if when is None:
        return None
    return (now - when).total_seconds() / _SECONDS_PER_DAY


def partition(
    entries: list[MemorySearchResult], project_path: str | None
) -> tuple[list[MemorySearchResult], list[MemorySearchResult]]:
    """Split into (project-scoped, global). Other projects' entries are in neither."""
    project: list[MemorySearchResult] = []
    global_: list[MemorySearchResult] = []
    for entry in entries:
        owner = entry.memory.metadata.get("projectPath")
        if not owner:
            global_.append(entry)
        elif owner == project_path:
            project.append(entry)
    return project, global_


def _patch(entry: MemorySearchResult, status: str, stamp_key: str, now: datetime) -> PruneAction:
    metadata = {**entry.memory.metadata, "pruneStatus": status, stamp_key: now.isoformat()}
    return PruneAction(memory_id=entry.memory.id, status=status, metadata=metadata)


def _eviction_key(entry: MemorySearchResult) -> tuple[int, float]:
    created = parse_timestamp(entry.memory.created_at)
    return access_count_of(entry.memory.metadata), created.timestamp() if created else 0.0


def plan_age_actions(
    entries: list[MemorySearchResult], now: datetime, config: PruningConfig
) -> list[PruneAction]:
    actions: list[PruneAction] = []
    for entry in entries:
        age = age_in_days(entry, now)
        if age is None:
            continue
        if age > config.stale_days:
            actions.append(_patch(entry, FLAGGED_STALE, "flaggedAt", now))
        if access_count_of(entry.memory.metadata) == 0 and age > config.zero_access_days:
            actions.append(_patch(entry, ARCHIVED, "archivedAt", now))
    return actions


def plan_limit_actions(
    entries: list[MemorySearchResult],
    limit: int,
    already_archived: set[str],
    now: datetime,
) -> list[PruneAction]:
    """Archive the lowest-value entries beyond `limit`, skipping ids already archived."""
    if len(entries) <= limit:
        return []
    ranked = sorted(entries, key=_eviction_key)
    actions = []
    for entry in ranked[: len(ranked) - limit]:
        if entry.memory.id in already_archived:
            continue
        already_archived.add(entry.memory.id)
        actions.append(_patch(entry, ARCHIVED_LIMIT, "archivedAt", now))
    return actions


def plan(
    entries: list[MemorySearchResult],
    project_path: str | None,
    now: datetime,
    config: PruningConfig,
) -> list[PruneAction]:
    """All patches one run would apply, in application order."""
    project, global_ = partition(entries, project_path)
    actions = plan_age_actions(entries, now, config)
    archived = {a.memory_id for a in actions if a.status == ARCHIVED}
    actions += plan_limit_actions(project, config.max_per_project, archived, now)
    actions += plan_limit_actions(global_, config.max_global, archived, now)
    return actions


class InstructionPruner:
    """Run the pruning sweep against the memory service."""

    def __init__(self, client: MemoryClient, config: PruningConfig | None = None) -> None:
        self.client = client
        self.config = config or PruningConfig()

    async def prune(
        self, project_path: str | None = None, now: datetime | None = None
    ) -> PruneResult:
        """Flag stale instructions, archive unused ones, enforce quotas.

        Never raises: failures end up in the returned report.
        """
        result = PruneResult()
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        try:
            available = await guard(self.client.is_available(), "health probe")
            if not available.unwrap_or(False):
                logger.info("Memory service unavailable, pruning skipped")
                return result

            listing = await guard(
                self.client.search(
                    LISTING_QUERY,
                    type="preference",
                    limit=self.config.fetch_limit,
                    min_score=0.0,
                ),
                "pruning listing",
            )
            if not listing.ok:
                result.errors.append(f"Pruning failed: {listing.reason}")
                return result

            for action in plan(listing.value or [], project_path, now, self.config):
                outcome = await guard(
                    self.client.update(action.memory_id, metadata=action.metadata),
                    f"{action.status} {action.memory_id}",
                )
                result.absorb(action, outcome)
        except Exception as e:
            logger.exception("Pruning aborted")
            result.errors.append(f"Pruning failed: {str(e) or type(e).__name__}")

        logger.info(
            "Pruning (%s): %d flagged, %d archived, %d error(s)",
            project_path or "global",
            len(result.flagged_for_review),
            len(result.archived),
            len(result.errors),
        )
        return result
