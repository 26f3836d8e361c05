"""HTTP client for the memory service.

Handles CRUD operations on memories with bounded retries and a health probe
that never raises.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp

from recollect.config import MemoryServiceConfig
from recollect.memory.types import Memory, MemorySearchResult, MemoryType

logger = logging.getLogger(__name__)


class MemoryServiceError(Exception):
    """A memory service request failed (non-2xx response or timeout)."""

    def __init__(self, method: str, path: str, status: int | None = None, detail: str = "") -> None:
        self.method = method
        self.path = path
        self.status = status
        self.detail = detail
        where = f"{method} {path}"
        super().__init__(f"Memory service {where}: {status or 'no response'} {detail}".rstrip())


class MemoryServiceClient:
    """Async client for the memory service REST API.

    Only 5xx responses and timeouts are retried, with a linear backoff of
    ``attempt * retry_delay`` seconds. 4xx responses fail immediately.
    """

    retry_delay = 0.5

    def __init__(
        self,
        config: MemoryServiceConfig | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.config = config or MemoryServiceConfig()
        self._session = session
        self._owns_session = session is None

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()

    async def _request(self, method: str, path: str, body: Any = None) -> Any:
        url = f"{self.config.base_url}{path}"
        timeout = aiohttp.ClientTimeout(
            total=self.config.request_timeout, connect=self.config.connect_timeout
        )
        attempt = 0
        while True:
            try:
                async with self._get_session().request(
                    method, url, json=body, headers=self._headers(), timeout=timeout
                ) as resp:
                    text = await resp.text()
                    if resp.status >= 400:
                        if resp.status >= 500 and attempt < self.config.max_retries:
                            attempt += 1
                            logger.debug(
                                "%s %s returned %d, retry %d", method, path, resp.status, attempt
                            )
                            await asyncio.sleep(attempt * self.retry_delay)
                            continue
                        raise MemoryServiceError(method, path, resp.status, text)
                    return json.loads(text) if text else None
            except asyncio.TimeoutError:
                if attempt < self.config.max_retries:
                    attempt += 1
                    logger.debug("%s %s timed out, retry %d", method, path, attempt)
                    await asyncio.sleep(attempt * self.retry_delay)
                    continue
                raise MemoryServiceError(method, path, detail="timeout")

    # ── CRUD ──────────────────────────────────────────────────

    async def create(
        self, content: str, type: MemoryType, metadata: dict | None = None
    ) -> Memory:
        body: dict = {"content": content, "type": type}
        if metadata is not None:
            body["metadata"] = metadata
        return Memory.from_dict(await self._request("POST", "/api/memories", body))

    async def search(
        self,
        query: str,
        *,
        type: MemoryType | None = None,
        limit: int = 10,
        min_score: float = 0.0,
    ) -> list[MemorySearchResult]:
        body: dict = {"query": query, "limit": limit, "minScore": min_score}
        if type:
            body["type"] = type
        data = await self._request("POST", "/api/memories/search", body)
        return [MemorySearchResult.from_dict(item) for item in data or []]

    async def batch_create(self, items: list[dict]) -> list[Memory]:
        data = await self._request("POST", "/api/memories/batch", {"items": items})
        return [Memory.from_dict(item) for item in data or []]

    async def update(
        self,
        memory_id: str,
        *,
        metadata: dict | None = None,
        content: str | None = None,
    ) -> Memory:
        patch: dict = {}
        if metadata is not None:
            patch["metadata"] = metadata
        if content is not None:
            patch["content"] = content
        return Memory.from_dict(await self._request("PATCH", f"/api/memories/{memory_id}", patch))

    async def delete(self, memory_id: str) -> None:
        await self._request("DELETE", f"/api/memories/{memory_id}")

    # ── Health check ──────────────────────────────────────────

    async def is_available(self) -> bool:
        try:
            timeout = aiohttp.ClientTimeout(total=self.config.connect_timeout)
            async with self._get_session().get(
                f"{self.config.base_url}/health", timeout=timeout
            ) as resp:
                return resp.status < 400
        except Exception as e:
            logger.debug("Memory service health probe failed: %s", e)
            return False
