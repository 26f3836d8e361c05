"""Daemon process: always-on mode for production.

Usage: python -m recollect serve

Manages:
- HTTP API lifecycle
- Scheduler (heartbeat, periodic pruning)
- PID file (prevent duplicate instances)
- Graceful shutdown (SIGTERM/SIGINT), flushing open sessions
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys

from recollect.api import APIServer
from recollect.config import RecollectConfig, load_config
from recollect.core import Recollect
from recollect.scheduler.jobs import Scheduler

logger = logging.getLogger(__name__)


class RecollectDaemon:
    """Always-on daemon process."""

    def __init__(self, config: RecollectConfig | None = None) -> None:
        self.config = config or load_config()
        self._shutdown_event = asyncio.Event()

    # ── PID file management ──────────────────────────────────

    def _write_pid(self) -> None:
        self.config.pid_file.parent.mkdir(parents=True, exist_ok=True)
        self.config.pid_file.write_text(str(os.getpid()))
        logger.info("PID file written: %s (pid=%d)", self.config.pid_file, os.getpid())

    def _remove_pid(self) -> None:
        if self.config.pid_file.exists():
            self.config.pid_file.unlink()

    def _check_existing(self) -> None:
        if not self.config.pid_file.exists():
            return
        try:
            pid = int(self.config.pid_file.read_text().strip())
            os.kill(pid, 0)  # Check if process exists
            print(f"Recollect daemon already running (pid={pid}). Exiting.", file=sys.stderr)
            sys.exit(1)
        except (ProcessLookupError, ValueError):
            # Stale PID file
            self._remove_pid()

    # ── Signal handling ──────────────────────────────────────

    def _setup_signals(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._handle_signal, sig)

    def _handle_signal(self, sig: signal.Signals) -> None:
        logger.info("Received %s, shutting down...", sig.name)
        self._shutdown_event.set()

    # ── Main run loop ────────────────────────────────────────

    async def run(self) -> None:
        self._check_existing()
        self._write_pid()
        self._setup_signals()

        recollect = Recollect(self.config)
        api = APIServer(recollect, self.config.server)
        scheduler = Scheduler(recollect, self.config)

        logger.info(
            "Recollect daemon starting (memory service=%s)", self.config.memory_service.base_url
        )

        try:
            await api.start()
            await scheduler.start(self._shutdown_event)
        except asyncio.CancelledError:
            pass
        finally:
            await api.stop()
            await recollect.close()
            self._remove_pid()
            logger.info("Recollect daemon stopped.")
