"""Configuration loading from environment variables and recollect.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_CONFIG_FILENAME = "recollect.toml"
_HOME_DIR = Path.home() / ".recollect"


@dataclass
class MemoryServiceConfig:
    """Connection settings for the external memory service."""

    base_url: str = "http://localhost:8000"
    api_key: str | None = None
    connect_timeout: float = 5.0
    request_timeout: float = 10.0
    max_retries: int = 2


@dataclass
class RetrievalConfig:
    """Limits for session-start and per-tool retrieval."""

    session_start_fetch: int = 10
    session_start_keep: int = 5
    tool_fetch: int = 5
    tool_keep: int = 3
    min_score: float = 0.7
    duplicate_threshold: float = 0.75


@dataclass
class PruningConfig:
    """Thresholds for the pruning sweep."""

    stale_days: int = 90
    zero_access_days: int = 30
    max_per_project: int = 50
    max_global: int = 100
    fetch_limit: int = 250


@dataclass
class FeedbackConfig:
    promotion_threshold: float = 10


@dataclass
class SchedulerConfig:
    """Scheduler configuration."""

    prune_cron: str = "0 4 * * *"
    heartbeat_interval: int = 300
    project_paths: list[str] = field(default_factory=list)


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8765


@dataclass
class RecollectConfig:
    """Top-level configuration."""

    memory_service: MemoryServiceConfig = field(default_factory=MemoryServiceConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    pruning: PruningConfig = field(default_factory=PruningConfig)
    feedback: FeedbackConfig = field(default_factory=FeedbackConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    pid_file: Path = _HOME_DIR / "recollect.pid"
    log_level: str = "INFO"


def load_config(config_path: Path | None = None) -> RecollectConfig:
    """Load configuration from environment variables and optional recollect.toml.

    Priority: environment variables > recollect.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.recollect/
        for candidate in [Path.cwd() / _CONFIG_FILENAME, _HOME_DIR / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    service_data = file_data.get("memory_service", {})
    retrieval_data = file_data.get("retrieval", {})
    pruning_data = file_data.get("pruning", {})
    feedback_data = file_data.get("feedback", {})
    scheduler_data = file_data.get("scheduler", {})
    server_data = file_data.get("server", {})

    defaults = RecollectConfig()

    config = RecollectConfig(
        memory_service=MemoryServiceConfig(
            base_url=os.getenv(
                "RECOLLECT_MEMORY_URL", service_data.get("base_url", "http://localhost:8000")
            ).rstrip("/"),
            api_key=os.getenv("RECOLLECT_MEMORY_API_KEY", service_data.get("api_key")),
            connect_timeout=float(service_data.get("connect_timeout", 5.0)),
            request_timeout=float(service_data.get("request_timeout", 10.0)),
            max_retries=int(
                os.getenv("RECOLLECT_MAX_RETRIES", service_data.get("max_retries", 2))
            ),
        ),
        retrieval=RetrievalConfig(
            **{k: v for k, v in retrieval_data.items() if hasattr(defaults.retrieval, k)}
        ),
        pruning=PruningConfig(
            **{k: v for k, v in pruning_data.items() if hasattr(defaults.pruning, k)}
        ),
        feedback=FeedbackConfig(
            promotion_threshold=feedback_data.get("promotion_threshold", 10),
        ),
        scheduler=SchedulerConfig(
            prune_cron=scheduler_data.get("prune_cron", "0 4 * * *"),
            heartbeat_interval=int(
                os.getenv("RECOLLECT_HEARTBEAT", scheduler_data.get("heartbeat_interval", 300))
            ),
            project_paths=list(scheduler_data.get("project_paths", [])),
        ),
        server=ServerConfig(
            host=os.getenv("RECOLLECT_HOST", server_data.get("host", "127.0.0.1")),
            port=int(os.getenv("RECOLLECT_PORT", server_data.get("port", 8765))),
        ),
        pid_file=Path(file_data.get("pid_file", str(defaults.pid_file))),
        log_level=os.getenv("RECOLLECT_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    return config
