"""aiohttp server: session REST API, ground-rules API and chat websockets.

Uses aiohttp's AppRunner/TCPSite for non-blocking start/stop so the
server shares one asyncio event loop with the mediator's background work.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from aiohttp import WSMsgType, web
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from diplomat.config import settings
from diplomat.errors import (
    GroundRulesNotFoundError,
    ParticipantNotFoundError,
    SessionFullError,
    SessionNotFoundError,
)
from diplomat.storage.ground_rules import DEFAULT_TITLE
from diplomat.web.chat import ChatHandler

if TYPE_CHECKING:
    from diplomat.delivery.hub import SessionHub
    from diplomat.mediator.engine import InterventionEngine
    from diplomat.storage.conversations import ConversationStore
    from diplomat.storage.ground_rules import GroundRulesStore

logger = logging.getLogger(__name__)


# -- Request bodies ----------------------------------------------------------


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class JoinRequest(_Body):
    session_code: str = Field(default="", alias="sessionCode")
    participant_name: str = Field(alias="participantName", min_length=1)


class ModeRequest(_Body):
    mode: str


class InteractionLevelRequest(_Body):
    participant: str
    level: int


class AttachGroundRulesRequest(_Body):
    ground_rules_id: int = Field(alias="groundRulesId")


class GroundRulesRequest(_Body):
    title: str = Field(default=DEFAULT_TITLE)
    content: str


class FromTemplateRequest(_Body):
    created_by: str = Field(default="TEMPLATE", alias="createdBy")


class SuggestRequest(_Body):
    request: str


async def _body(request: web.Request, model: type[BaseModel]) -> Any:
    if not request.body_exists:
        return model.model_validate({})
    try:
        data = await request.json()
    except json.JSONDecodeError as exc:
        msg = "invalid JSON"
        raise ValueError(msg) from exc
    return model.model_validate(data or {})


# -- Error mapping -----------------------------------------------------------


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Map domain errors onto JSON error responses."""
    try:
        return await handler(request)
    except (SessionNotFoundError, GroundRulesNotFoundError, ParticipantNotFoundError) as exc:
        return web.json_response({"error": str(exc)}, status=404)
    except SessionFullError as exc:
        return web.json_response({"error": str(exc)}, status=409)
    except ValidationError as exc:
        details = [e["msg"] for e in exc.errors()]
        return web.json_response({"error": "invalid request", "details": details}, status=400)
    except ValueError as exc:
        return web.json_response({"error": str(exc)}, status=400)


# -- Handlers ----------------------------------------------------------------


class DiplomatApi:
    """Request handlers bound to the stores, hub and engine."""

    def __init__(
        self,
        store: ConversationStore,
        ground_rules: GroundRulesStore,
        hub: SessionHub,
        engine: InterventionEngine,
    ) -> None:
        self._store = store
        self._ground_rules = ground_rules
        self._hub = hub
        self._engine = engine
        self._chat = ChatHandler(store, hub, engine)

    def register(self, app: web.Application) -> None:
        r = app.router
        r.add_get("/health", self.health)

        r.add_post("/api/conversations/create", self.create_session)
        r.add_post("/api/conversations/join", self.join_session)
        r.add_get("/api/conversations/{session_code}", self.get_session)
        r.add_get("/api/conversations/{session_code}/messages", self.get_messages)
        r.add_get(
            "/api/conversations/{session_code}/private/{participant}", self.get_private_messages
        )
        r.add_post("/api/conversations/{session_code}/mode", self.set_mode)
        r.add_post("/api/conversations/{session_code}/debrief", self.debrief)
        r.add_post("/api/conversations/{session_code}/interaction-level", self.set_level)
        r.add_post("/api/conversations/{session_code}/ground-rules", self.attach_ground_rules)
        r.add_post("/api/conversations/{session_code}/end", self.end_session)

        r.add_get("/api/ground-rules/template", self.ground_rules_template)
        r.add_post("/api/ground-rules/from-template", self.ground_rules_from_template)
        r.add_post("/api/ground-rules", self.create_ground_rules)
        r.add_get("/api/ground-rules", self.list_ground_rules)
        r.add_get("/api/ground-rules/{rules_id:\\d+}", self.get_ground_rules)
        r.add_put("/api/ground-rules/{rules_id:\\d+}", self.update_ground_rules)
        r.add_post("/api/ground-rules/{rules_id:\\d+}/finalize", self.finalize_ground_rules)
        r.add_post("/api/ground-rules/{rules_id:\\d+}/suggest", self.suggest_ground_rules)

        r.add_get("/ws/{session_code}/{participant}", self.websocket)

    async def health(self, request: web.Request) -> web.Response:
        """GET /health: basic liveness check."""
        return web.json_response({"status": "ok", "inFlight": self._engine.in_flight})

    # -- Conversations -------------------------------------------------------

    async def create_session(self, request: web.Request) -> web.Response:
        body: JoinRequest = await _body(request, JoinRequest)
        conversation = await self._store.create_session(body.participant_name)
        return web.json_response(conversation.to_dict())

    async def join_session(self, request: web.Request) -> web.Response:
        body: JoinRequest = await _body(request, JoinRequest)
        conversation = await self._store.join_session(body.session_code, body.participant_name)
        return web.json_response(conversation.to_dict())

    async def get_session(self, request: web.Request) -> web.Response:
        code = request.match_info["session_code"]
        conversation = await self._store.require_conversation(code)
        data = conversation.to_dict()
        data["connected"] = self._hub.connected(code)
        return web.json_response(data)

    async def get_messages(self, request: web.Request) -> web.Response:
        """Full history, or only what ``?viewer=<name>`` is allowed to see."""
        code = request.match_info["session_code"]
        await self._store.require_conversation(code)
        messages = await self._store.list_messages(code)
        viewer = request.query.get("viewer")
        if viewer:
            messages = [m for m in messages if m.visible_to(viewer)]
        return web.json_response([m.to_payload(code) for m in messages])

    async def get_private_messages(self, request: web.Request) -> web.Response:
        """One participant's private exchange with the mediator."""
        code = request.match_info["session_code"]
        participant = request.match_info["participant"]
        conversation = await self._store.require_conversation(code)
        if not conversation.is_participant(participant):
            msg = f"Participant not found in session: {participant}"
            raise ParticipantNotFoundError(msg)
        messages = await self._store.list_private_messages(code, participant)
        return web.json_response([m.to_payload(code) for m in messages])

    async def set_mode(self, request: web.Request) -> web.Response:
        code = request.match_info["session_code"]
        body: ModeRequest = await _body(request, ModeRequest)
        conversation = await self._store.set_mode(code, body.mode)
        return web.json_response({"mode": str(conversation.mode)})

    async def debrief(self, request: web.Request) -> web.Response:
        code = request.match_info["session_code"]
        decision = await self._engine.debrief(code)
        routed = await self._engine.deliver(code, decision)
        return web.json_response(routed.payload)

    async def set_level(self, request: web.Request) -> web.Response:
        code = request.match_info["session_code"]
        body: InteractionLevelRequest = await _body(request, InteractionLevelRequest)
        conversation = await self._store.set_engagement_level(code, body.participant, body.level)
        return web.json_response({
            "participant": body.participant,
            "level": body.level,
            "interactionLevelA": conversation.engagement_a,
            "interactionLevelB": conversation.engagement_b,
        })

    async def attach_ground_rules(self, request: web.Request) -> web.Response:
        code = request.match_info["session_code"]
        body: AttachGroundRulesRequest = await _body(request, AttachGroundRulesRequest)
        conversation = await self._store.attach_ground_rules(code, body.ground_rules_id)
        return web.json_response(conversation.to_dict())

    async def end_session(self, request: web.Request) -> web.Response:
        code = request.match_info["session_code"]
        conversation = await self._store.end_session(code)
        return web.json_response({"status": str(conversation.status)})

    # -- Ground rules --------------------------------------------------------

    async def ground_rules_template(self, request: web.Request) -> web.Response:
        return web.json_response({"template": self._ground_rules.template()})

    async def ground_rules_from_template(self, request: web.Request) -> web.Response:
        body: FromTemplateRequest = await _body(request, FromTemplateRequest)
        rules = await self._ground_rules.create_from_template(body.created_by)
        return web.json_response(rules.to_dict())

    async def create_ground_rules(self, request: web.Request) -> web.Response:
        body: GroundRulesRequest = await _body(request, GroundRulesRequest)
        rules = await self._ground_rules.create(body.title, body.content, "CUSTOM")
        return web.json_response(rules.to_dict())

    async def list_ground_rules(self, request: web.Request) -> web.Response:
        return web.json_response([r.to_dict() for r in await self._ground_rules.list_all()])

    async def get_ground_rules(self, request: web.Request) -> web.Response:
        rules = await self._ground_rules.get(int(request.match_info["rules_id"]))
        return web.json_response(rules.to_dict())

    async def update_ground_rules(self, request: web.Request) -> web.Response:
        body: GroundRulesRequest = await _body(request, GroundRulesRequest)
        rules = await self._ground_rules.update(int(request.match_info["rules_id"]), body.content)
        return web.json_response(rules.to_dict())

    async def finalize_ground_rules(self, request: web.Request) -> web.Response:
        rules = await self._ground_rules.finalize(int(request.match_info["rules_id"]))
        return web.json_response(rules.to_dict())

    async def suggest_ground_rules(self, request: web.Request) -> web.Response:
        current = await self._ground_rules.get(int(request.match_info["rules_id"]))
        body: SuggestRequest = await _body(request, SuggestRequest)
        suggestion = await self._engine.suggest_ground_rules(current.content, body.request)
        return web.json_response({"suggestion": suggestion})

    # -- Chat ----------------------------------------------------------------

    async def websocket(self, request: web.Request) -> web.StreamResponse:
        """GET /ws/{session_code}/{participant}: live chat for one participant."""
        code = request.match_info["session_code"]
        participant = request.match_info["participant"]
        conversation = await self._store.require_conversation(code)
        if not conversation.is_participant(participant):
            msg = f"Participant not found in session: {participant}"
            raise ParticipantNotFoundError(msg)

        ws = web.WebSocketResponse(heartbeat=30)
        await ws.prepare(request)
        self._hub.subscribe(code, participant, ws)
        try:
            async for msg in ws:
                if msg.type == WSMsgType.TEXT:
                    await self._on_frame(ws, code, participant, msg.data)
                elif msg.type == WSMsgType.ERROR:
                    logger.warning(
                        "[%s] Socket error for %s: %s", code, participant, ws.exception()
                    )
        finally:
            self._hub.unsubscribe(code, participant, ws)
        return ws

    async def _on_frame(
        self, ws: web.WebSocketResponse, code: str, participant: str, raw: str
    ) -> None:
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                msg = "expected a JSON object"
                raise ValueError(msg)
            await self._chat.handle(code, participant, data)
        except ValidationError:
            await ws.send_json({"error": "invalid event"})
        except ValueError as exc:
            await ws.send_json({"error": str(exc)})
        except (SessionNotFoundError, ParticipantNotFoundError) as exc:
            await ws.send_json({"error": str(exc)})


def create_web_app(
    store: ConversationStore,
    ground_rules: GroundRulesStore,
    hub: SessionHub,
    engine: InterventionEngine,
) -> web.Application:
    """Build the aiohttp Application with routes."""
    app = web.Application(middlewares=[error_middleware])
    DiplomatApi(store, ground_rules, hub, engine).register(app)

    async def _drain(_app: web.Application) -> None:
        await engine.drain()

    app.on_shutdown.append(_drain)
    return app


class DiplomatServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(
        self, app: web.Application, host: str | None = None, port: int | None = None
    ) -> None:
        self.app = app
        self.host = host or settings.web_host
        self.port = port or settings.web_port
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("Diplomat listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Shut down the server gracefully."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Diplomat server stopped")
