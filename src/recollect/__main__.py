"""Entry point: python -m recollect [serve|prune|health]

- "serve":            Daemon mode (HTTP API + scheduler)
- "prune [PROJECT]":  One pruning sweep, report printed as JSON
- "health":           Probe the memory service (exit 1 when unreachable)
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys

from recollect.config import RecollectConfig, load_config


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _run_serve() -> None:
    config = load_config()
    _setup_logging(config.log_level)

    from recollect.daemon import RecollectDaemon

    daemon = RecollectDaemon(config)
    asyncio.run(daemon.run())


async def _prune_once(config: RecollectConfig, project_path: str | None) -> dict:
    from recollect.core import Recollect

    recollect = Recollect(config)
    try:
        result = await recollect.prune(project_path)
    finally:
        await recollect.close()
    return result.to_dict()


async def _probe(config: RecollectConfig) -> bool:
    from recollect.core import Recollect

    recollect = Recollect(config)
    try:
        return await recollect.health_check()
    finally:
        await recollect.close()


def _run_prune(project_path: str | None) -> None:
    config = load_config()
    _setup_logging(config.log_level)
    report = asyncio.run(_prune_once(config, project_path))
    print(json.dumps(report, indent=2, ensure_ascii=False))


def _run_health() -> None:
    config = load_config()
    _setup_logging(config.log_level)
    healthy = asyncio.run(_probe(config))
    print(f"{config.memory_service.base_url}: {'ok' if healthy else 'unreachable'}")
    if not healthy:
        sys.exit(1)


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "serve"

    if cmd == "serve":
        _run_serve()
    elif cmd == "prune":
        _run_prune(sys.argv[2] if len(sys.argv) > 2 else None)
    elif cmd == "health":
        _run_health()
    else:
        print("Usage: python -m recollect [serve|prune [PROJECT]|health]")
        print("  serve   - HTTP API + scheduled pruning (default)")
        print("  prune   - Run one pruning sweep and print the report")
        print("  health  - Check the memory service")
        sys.exit(1)


if __name__ == "__main__":
    main()
