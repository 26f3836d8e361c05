"""HTTP API through which the assistant front-end drives the engine.

Routes (JSON, camelCase):
    POST /api/era/retrieval/session-start  {sessionId, context}
    POST /api/era/retrieval/tool           {sessionId, toolName, context}
    POST /api/era/retrieval/flush          {sessionId}
    POST /api/feedback                     {sessionId, instructionId, outcome}
    POST /api/prune                        {projectPath?}
    GET  /health
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aiohttp import web

from recollect.feedback import FeedbackEvent, FeedbackOutcome
from recollect.retrieval.engine import RetrievalContext, compose_retrieved_section

if TYPE_CHECKING:
    from recollect.config import ServerConfig
    from recollect.core import Recollect
    from recollect.retrieval.engine import RetrievedInstruction

logger = logging.getLogger(__name__)


class BadRequest(ValueError):
    pass


def _bad_request(message: str) -> web.Response:
    return web.json_response({"error": message}, status=400)


def _require_str(body: dict, key: str) -> str:
    value = body.get(key)
    if not isinstance(value, str) or not value.strip():
        raise BadRequest(f"'{key}' is required")
    return value


def _instructions_payload(instructions: list[RetrievedInstruction]) -> dict:
    return {
        "instructions": [inst.to_dict() for inst in instructions],
        "composed": compose_retrieved_section(instructions),
    }


class APIServer:
    """aiohttp application exposing retrieval, feedback and pruning."""

    def __init__(self, recollect: Recollect, config: ServerConfig) -> None:
        self._recollect = recollect
        self._config = config
        self._runner: web.AppRunner | None = None

    @property
    def name(self) -> str:
        return "api"

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/api/era/retrieval/session-start", self._session_start)
        app.router.add_post("/api/era/retrieval/tool", self._tool)
        app.router.add_post("/api/era/retrieval/flush", self._flush)
        app.router.add_post("/api/feedback", self._feedback)
        app.router.add_post("/api/prune", self._prune)
        app.router.add_get("/health", self._health)
        return app

    async def start(self) -> None:
        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._config.host, self._config.port)
        await site.start()
        logger.info("API listening on %s:%d", self._config.host, self._config.port)

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            logger.info("API stopped")

    # ── handlers ──────────────────────────────────────────────

    @staticmethod
    async def _body(request: web.Request) -> dict:
        if not request.can_read_body:
            return {}
        try:
            body = await request.json()
        except ValueError:
            raise BadRequest("request body must be JSON")
        if not isinstance(body, dict):
            raise BadRequest("request body must be a JSON object")
        return body

    async def _session_start(self, request: web.Request) -> web.Response:
        try:
            body = await self._body(request)
            session_id = _require_str(body, "sessionId")
        except BadRequest as e:
            return _bad_request(str(e))
        context = RetrievalContext.from_dict(body.get("context"))
        instructions = await self._recollect.retrieval.retrieve_at_session_start(
            session_id, context
        )
        return web.json_response(_instructions_payload(instructions))

    async def _tool(self, request: web.Request) -> web.Response:
        try:
            body = await self._body(request)
            session_id = _require_str(body, "sessionId")
            tool_name = _require_str(body, "toolName")
        except BadRequest as e:
            return _bad_request(str(e))
        context = RetrievalContext.from_dict(body.get("context"))
        instructions = await self._recollect.retrieval.retrieve_for_tool(
            session_id, tool_name, context
        )
        return web.json_response(_instructions_payload(instructions))

    async def _flush(self, request: web.Request) -> web.Response:
        try:
            body = await self._body(request)
            session_id = _require_str(body, "sessionId")
        except BadRequest as e:
            return _bad_request(str(e))
        updated = await self._recollect.retrieval.flush_access_counts(session_id)
        return web.json_response({"flushed": True, "updated": updated})

    async def _feedback(self, request: web.Request) -> web.Response:
        try:
            body = await self._body(request)
            event = FeedbackEvent(
                session_id=_require_str(body, "sessionId"),
                instruction_id=_require_str(body, "instructionId"),
                outcome=FeedbackOutcome(_require_str(body, "outcome")),
            )
        except BadRequest as e:
            return _bad_request(str(e))
        except ValueError:
            return _bad_request("'outcome' must be one of success, failure, dismissed")
        result = await self._recollect.record_feedback(event)
        return web.json_response(result.to_dict())

    async def _prune(self, request: web.Request) -> web.Response:
        try:
            body = await self._body(request)
        except BadRequest as e:
            return _bad_request(str(e))
        project_path = body.get("projectPath") or None
        if project_path is not None and not isinstance(project_path, str):
            return _bad_request("'projectPath' must be a string")
        result = await self._recollect.prune(project_path)
        return web.json_response(result.to_dict())

    async def _health(self, request: web.Request) -> web.Response:
        available = await self._recollect.health_check()
        return web.json_response({"status": "ok", "memoryService": available})
