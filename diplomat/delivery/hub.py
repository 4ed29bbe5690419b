"""SessionHub: in-process fan-out of payloads to websocket subscribers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from aiohttp import web

logger = logging.getLogger(__name__)


class SessionHub:
    """Tracks live websocket connections per session and participant.

    Broadcasts reach every socket in a session; private sends reach only
    the named participant's sockets. Sockets that fail to send are dropped.
    """

    def __init__(self) -> None:
        self._sockets: dict[str, dict[str, list[web.WebSocketResponse]]] = {}

    def subscribe(self, session_code: str, participant: str, ws: web.WebSocketResponse) -> None:
        by_participant = self._sockets.setdefault(session_code, {})
        by_participant.setdefault(participant, []).append(ws)
        logger.info("[%s] %s connected", session_code, participant)

    def unsubscribe(self, session_code: str, participant: str, ws: web.WebSocketResponse) -> None:
        by_participant = self._sockets.get(session_code)
        if not by_participant:
            return
        sockets = by_participant.get(participant, [])
        if ws in sockets:
            sockets.remove(ws)
        if not sockets:
            by_participant.pop(participant, None)
        if not by_participant:
            self._sockets.pop(session_code, None)
        logger.info("[%s] %s disconnected", session_code, participant)

    def connected(self, session_code: str) -> list[str]:
        """Names of participants with at least one open socket."""
        return list(self._sockets.get(session_code, {}))

    async def broadcast(self, session_code: str, payload: dict[str, Any]) -> None:
        by_participant = self._sockets.get(session_code, {})
        for participant, sockets in list(by_participant.items()):
            for ws in list(sockets):
                await self._send(session_code, participant, ws, payload)

    async def send_private(
        self, session_code: str, participant: str, payload: dict[str, Any]
    ) -> None:
        sockets = self._sockets.get(session_code, {}).get(participant, [])
        if not sockets:
            logger.debug("[%s] No open socket for %s", session_code, participant)
        for ws in list(sockets):
            await self._send(session_code, participant, ws, payload)

    async def _send(
        self,
        session_code: str,
        participant: str,
        ws: web.WebSocketResponse,
        payload: dict[str, Any],
    ) -> None:
        try:
            await ws.send_json(payload)
        except (ConnectionError, RuntimeError):
            logger.warning("[%s] Send to %s failed, dropping socket", session_code, participant)
            self.unsubscribe(session_code, participant, ws)
