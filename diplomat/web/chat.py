"""Inbound chat events from a participant's websocket."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from diplomat.models import MEDIATOR, SYSTEM, InterventionKind, MessageKind, StoredMessage

if TYPE_CHECKING:
    from diplomat.delivery.hub import SessionHub
    from diplomat.mediator.engine import InterventionEngine
    from diplomat.storage.conversations import ConversationStore

logger = logging.getLogger(__name__)

TEMPERATURE_CHECK_TEXT = (
    "\N{THERMOMETER}\N{VARIATION SELECTOR-16} Temperature check! On a scale of 1-10 "
    "(1 = calm, 10 = boiling), how are you each feeling right now?"
)


class ChatEvent(BaseModel):
    """A JSON frame sent by a client over the chat websocket.

    ``sender`` only matters for ``translate``, where it names who
    originally said the text; every other event is attributed to the
    socket's participant.
    """

    type: str = Field(default="chat")
    content: str = Field(default="")
    sender: str | None = None


class ChatHandler:
    """Applies chat events: persists, fans out, and hands work to the engine."""

    def __init__(
        self,
        store: ConversationStore,
        hub: SessionHub,
        engine: InterventionEngine,
    ) -> None:
        self._store = store
        self._hub = hub
        self._engine = engine
        self._handlers = {
            "chat": self._on_chat,
            "private": self._on_private,
            "translate": self._on_translate,
            "join": self._on_join,
            "rewind": self._on_rewind,
            "tempcheck": self._on_tempcheck,
            "parking_lot": self._on_parking_lot,
        }

    @property
    def event_types(self) -> list[str]:
        return list(self._handlers)

    async def handle(self, session_code: str, participant: str, data: dict[str, Any]) -> None:
        """Dispatch one event. Raises ValueError for unknown event types."""
        event = ChatEvent.model_validate(data)
        handler = self._handlers.get(event.type.lower())
        if handler is None:
            msg = f"Unknown event type: {event.type}"
            raise ValueError(msg)
        await handler(session_code, participant, event)

    async def _publish(self, session_code: str, message: StoredMessage) -> None:
        await self._store.append_message(session_code, message)
        await self._hub.broadcast(session_code, message.to_payload(session_code))

    async def _on_chat(self, session_code: str, participant: str, event: ChatEvent) -> None:
        logger.info("[%s] %s says: %s", session_code, participant, event.content)
        await self._publish(
            session_code,
            StoredMessage(sender=participant, body=event.content, kind=MessageKind.CHAT),
        )
        self._engine.submit_message(session_code, participant, event.content)

    async def _on_private(self, session_code: str, participant: str, event: ChatEvent) -> None:
        logger.info("[%s] PRIVATE from %s", session_code, participant)
        message = StoredMessage(
            sender=participant,
            body=event.content,
            kind=MessageKind.PRIVATE,
            recipient=participant,
        )
        await self._store.append_message(session_code, message)
        # Echo so the message shows in the sender's private panel
        await self._hub.send_private(session_code, participant, message.to_payload(session_code))
        self._engine.submit_private_message(session_code, participant, event.content)

    async def _on_translate(self, session_code: str, participant: str, event: ChatEvent) -> None:
        original_sender = event.sender or participant
        logger.info(
            "[%s] %s requested translation of %s's message",
            session_code,
            participant,
            original_sender,
        )
        self._engine.submit_translation(session_code, original_sender, event.content)

    async def _on_join(self, session_code: str, participant: str, event: ChatEvent) -> None:
        logger.info("[%s] %s joined the conversation", session_code, participant)
        notice = StoredMessage(
            sender=SYSTEM,
            body=(
                f"{participant} has joined the conversation. Welcome! I'm The Diplomat, "
                "your communication helper. I'll be here if you need me."
            ),
            kind=MessageKind.JOIN,
        )
        await self._hub.broadcast(session_code, notice.to_payload(session_code))

    async def _on_rewind(self, session_code: str, participant: str, event: ChatEvent) -> None:
        logger.info("[%s] %s requested a rewind", session_code, participant)
        await self._publish(
            session_code,
            StoredMessage(
                sender=SYSTEM,
                body=(
                    f"{participant} would like to rewind. "
                    f"{participant}, go ahead and rephrase what you meant."
                ),
                kind=MessageKind.SYSTEM,
            ),
        )

    async def _on_tempcheck(self, session_code: str, participant: str, event: ChatEvent) -> None:
        await self._publish(
            session_code,
            StoredMessage(
                sender=MEDIATOR,
                body=TEMPERATURE_CHECK_TEXT,
                kind=InterventionKind.TEMPERATURE_CHECK,
            ),
        )

    async def _on_parking_lot(self, session_code: str, participant: str, event: ChatEvent) -> None:
        logger.info("[%s] %s parked topic: %s", session_code, participant, event.content)
        await self._publish(
            session_code,
            StoredMessage(
                sender=MEDIATOR,
                body=(
                    '\N{NEGATIVE SQUARED LATIN CAPITAL LETTER P}\N{VARIATION SELECTOR-16} '
                    f'Parked for later: "{event.content}". Great idea to set that aside. '
                    "You can come back to it when you're ready."
                ),
                kind=MessageKind.PARKING_LOT,
            ),
        )
