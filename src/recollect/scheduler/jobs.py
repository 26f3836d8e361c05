"""Scheduler for periodic tasks using pure asyncio.

Jobs:
- Heartbeat: probe the memory service
- Pruning: once a day at the configured hour, sweep every configured
  project and then the global scope
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from recollect.config import RecollectConfig
    from recollect.core import Recollect

logger = logging.getLogger(__name__)


def _parse_cron_hour(cron_expr: str) -> int:
    """Extract hour from simple cron expression like '0 4 * * *'."""
    parts = cron_expr.split()
    if len(parts) >= 2:
        try:
            return int(parts[1])
        except ValueError:
            pass
    return 4  # default: 4 AM


class Scheduler:
    """Simple asyncio-based scheduler for periodic tasks."""

    def __init__(self, recollect: Recollect, config: RecollectConfig) -> None:
        self._recollect = recollect
        self._prune_hour = _parse_cron_hour(config.scheduler.prune_cron)
        self._heartbeat_interval = config.scheduler.heartbeat_interval
        self._project_paths = list(config.scheduler.project_paths)
        self._service_healthy: bool | None = None

    async def start(self, shutdown_event: asyncio.Event) -> None:
        """Run scheduled jobs until shutdown_event is set."""
        logger.info(
            "Scheduler started (heartbeat=%ds, prune@%02d:00)",
            self._heartbeat_interval,
            self._prune_hour,
        )

        last_prune_date: str | None = None

        while not shutdown_event.is_set():
            try:
                await asyncio.wait_for(
                    shutdown_event.wait(),
                    timeout=self._heartbeat_interval,
                )
                break  # shutdown requested
            except asyncio.TimeoutError:
                pass

            await self._heartbeat()

            now = datetime.now()
            today = now.strftime("%Y-%m-%d")
            if now.hour == self._prune_hour and last_prune_date != today:
                await self._prune_all()
                last_prune_date = today

        logger.info("Scheduler stopped.")

    async def _heartbeat(self) -> None:
        """Probe the memory service, logging only on state changes."""
        healthy = await self._recollect.health_check()
        if healthy != self._service_healthy:
            if healthy:
                logger.info("Memory service reachable")
            else:
                logger.warning("Memory service unreachable, retrieval will return nothing")
        self._service_healthy = healthy

    async def _prune_all(self) -> None:
        """Prune each configured project, then the global scope."""
        scopes: list[str | None] = [*self._project_paths, None]
        for project_path in scopes:
            try:
                result = await self._recollect.prune(project_path)
            except Exception as e:
                logger.error("Pruning %s failed: %s", project_path or "global", e)
                continue
            for error in result.errors:
                logger.warning("Pruning %s: %s", project_path or "global", error)
