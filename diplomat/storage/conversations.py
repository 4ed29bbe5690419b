"""ConversationStore: aiosqlite persistence for sessions and their messages."""

from __future__ import annotations

import logging
import uuid

from diplomat.errors import (
    GroundRulesNotFoundError,
    ParticipantNotFoundError,
    SessionFullError,
    SessionNotFoundError,
)
from diplomat.models import (
    ConversationState,
    Mode,
    Status,
    StoredMessage,
    clamp_engagement,
    utc_now,
)
from diplomat.storage.schema import SqliteStore

logger = logging.getLogger(__name__)

_SELECT_CONVERSATION = """
SELECT c.session_code, c.participant_a, c.participant_b, c.status, c.mode,
       c.engagement_a, c.engagement_b, c.ground_rules_id, g.content,
       c.created_at, c.ended_at
FROM conversations c
LEFT JOIN ground_rules g ON g.id = c.ground_rules_id
WHERE c.session_code = ?
"""


def _new_session_code() -> str:
    return uuid.uuid4().hex[:8].upper()


def _conversation_from_row(row: tuple) -> ConversationState:
    return ConversationState(
        session_code=row[0],
        participant_a=row[1],
        participant_b=row[2] or None,
        status=Status(row[3]),
        mode=Mode(row[4]),
        engagement_a=row[5],
        engagement_b=row[6],
        ground_rules_id=row[7],
        ground_rules=row[8],
        created_at=row[9],
        ended_at=row[10],
    )


class ConversationStore(SqliteStore):
    """Persists conversations and their append-only message history."""

    # -- Sessions --------------------------------------------------------------

    async def create_session(self, participant_a: str) -> ConversationState:
        """Open a new session with ``participant_a`` in the first seat."""
        conversation = ConversationState(
            session_code=_new_session_code(),
            participant_a=participant_a,
        )
        db = await self._connect()
        try:
            await db.execute(
                """
                INSERT INTO conversations
                    (session_code, participant_a, participant_b, status, mode,
                     engagement_a, engagement_b, ground_rules_id, created_at, ended_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    conversation.session_code,
                    conversation.participant_a,
                    None,
                    str(conversation.status),
                    str(conversation.mode),
                    conversation.engagement_a,
                    conversation.engagement_b,
                    None,
                    conversation.created_at,
                    None,
                ),
            )
            await db.commit()
            logger.info("Created session %s for %s", conversation.session_code, participant_a)
            return conversation
        finally:
            await db.close()

    async def find_conversation(self, session_code: str) -> ConversationState | None:
        """Fetch a session by code, or None if not found."""
        db = await self._connect()
        try:
            cursor = await db.execute(_SELECT_CONVERSATION, (session_code,))
            row = await cursor.fetchone()
            return _conversation_from_row(row) if row else None
        finally:
            await db.close()

    async def require_conversation(self, session_code: str) -> ConversationState:
        """Fetch a session by code. Raises SessionNotFoundError if missing."""
        conversation = await self.find_conversation(session_code)
        if conversation is None:
            raise SessionNotFoundError(session_code)
        return conversation

    async def join_session(self, session_code: str, participant_b: str) -> ConversationState:
        """Seat ``participant_b`` and mark the session ACTIVE."""
        conversation = await self.require_conversation(session_code)
        if conversation.status == Status.ACTIVE:
            msg = f"Session {session_code} already has two participants"
            raise SessionFullError(msg)
        if conversation.status == Status.ENDED:
            msg = f"Session {session_code} has ended"
            raise SessionFullError(msg)
        if participant_b.casefold() == conversation.participant_a.casefold():
            msg = f"{participant_b} is already in session {session_code}"
            raise ValueError(msg)
        await self._update(
            session_code,
            "UPDATE conversations SET participant_b = ?, status = ? WHERE session_code = ?",
            (participant_b, str(Status.ACTIVE), session_code),
        )
        logger.info("%s joined session %s", participant_b, session_code)
        return await self.require_conversation(session_code)

    async def set_mode(self, session_code: str, mode: Mode | str) -> ConversationState:
        """Change the conversation mode. Raises ValueError for unknown modes."""
        new_mode = Mode(str(mode).upper())
        await self._update(
            session_code,
            "UPDATE conversations SET mode = ? WHERE session_code = ?",
            (str(new_mode), session_code),
        )
        return await self.require_conversation(session_code)

    async def set_engagement_level(
        self, session_code: str, participant: str, level: int
    ) -> ConversationState:
        """Set one participant's engagement level, clamped to 1-10."""
        conversation = await self.require_conversation(session_code)
        clamped = clamp_engagement(level)
        if participant == conversation.participant_a:
            column = "engagement_a"
        elif participant == conversation.participant_b:
            column = "engagement_b"
        else:
            msg = f"Participant not found in session: {participant}"
            raise ParticipantNotFoundError(msg)
        await self._update(
            session_code,
            f"UPDATE conversations SET {column} = ? WHERE session_code = ?",  # noqa: S608
            (clamped, session_code),
        )
        return await self.require_conversation(session_code)

    async def attach_ground_rules(
        self, session_code: str, ground_rules_id: int
    ) -> ConversationState:
        """Point the session at a ground-rules document."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT id FROM ground_rules WHERE id = ?", (ground_rules_id,)
            )
            if await cursor.fetchone() is None:
                msg = f"Ground rules not found: {ground_rules_id}"
                raise GroundRulesNotFoundError(msg)
        finally:
            await db.close()
        await self._update(
            session_code,
            "UPDATE conversations SET ground_rules_id = ? WHERE session_code = ?",
            (ground_rules_id, session_code),
        )
        return await self.require_conversation(session_code)

    async def end_session(self, session_code: str) -> ConversationState:
        await self._update(
            session_code,
            "UPDATE conversations SET status = ?, ended_at = ? WHERE session_code = ?",
            (str(Status.ENDED), utc_now(), session_code),
        )
        logger.info("Ended session %s", session_code)
        return await self.require_conversation(session_code)

    async def _update(self, session_code: str, sql: str, params: tuple) -> None:
        db = await self._connect()
        try:
            cursor = await db.execute(sql, params)
            await db.commit()
            if cursor.rowcount == 0:
                raise SessionNotFoundError(session_code)
        finally:
            await db.close()

    # -- Messages --------------------------------------------------------------

    async def append_message(self, session_code: str, message: StoredMessage) -> int:
        """Persist a message. Returns its row id.

        Raises SessionNotFoundError for unknown sessions and
        ParticipantNotFoundError if the recipient is not a participant.
        """
        conversation = await self.require_conversation(session_code)
        if message.recipient is not None and not conversation.is_participant(message.recipient):
            msg = f"Recipient {message.recipient!r} is not a participant of {session_code}"
            raise ParticipantNotFoundError(msg)
        db = await self._connect()
        try:
            cursor = await db.execute(
                """
                INSERT INTO messages
                    (session_code, sender, body, kind, fallacy, recipient, timestamp)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                message.to_row(session_code),
            )
            await db.commit()
            return cursor.lastrowid
        finally:
            await db.close()

    async def list_messages(self, session_code: str) -> list[StoredMessage]:
        """Return the full history ordered by timestamp, then insertion order."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                """
                SELECT id, sender, body, kind, fallacy, recipient, timestamp
                FROM messages WHERE session_code = ?
                ORDER BY timestamp, id
                """,
                (session_code,),
            )
            rows = await cursor.fetchall()
            return [StoredMessage.from_row(row) for row in rows]
        finally:
            await db.close()

    async def list_private_messages(
        self, session_code: str, participant: str
    ) -> list[StoredMessage]:
        """The participant's private exchange with the mediator."""
        return [
            m
            for m in await self.list_messages(session_code)
            if m.recipient is not None and (m.recipient == participant or m.sender == participant)
        ]
