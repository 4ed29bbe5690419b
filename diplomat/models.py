"""Conversation, message and intervention data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

MEDIATOR = "DIPLOMAT"
SYSTEM = "SYSTEM"

DEFAULT_ENGAGEMENT = 5
MIN_ENGAGEMENT = 1
MAX_ENGAGEMENT = 10


def utc_now() -> str:
    """ISO 8601 timestamp with fixed microsecond precision (sorts lexically)."""
    return datetime.now(UTC).isoformat(timespec="microseconds")


def clamp_engagement(level: int) -> int:
    return max(MIN_ENGAGEMENT, min(MAX_ENGAGEMENT, level))


class Status(StrEnum):
    WAITING = "WAITING"
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"


class Mode(StrEnum):
    FREE_TALK = "FREE_TALK"
    GUIDED = "GUIDED"
    DEBRIEF = "DEBRIEF"


class InterventionKind(StrEnum):
    """Known intervention kinds. The vocabulary is open: unknown kinds pass through."""

    OBSERVATION = "OBSERVATION"
    REFRAME = "REFRAME"
    FALLACY_ALERT = "FALLACY_ALERT"
    TEMPERATURE_CHECK = "TEMPERATURE_CHECK"
    CONSTITUTION_REMINDER = "CONSTITUTION_REMINDER"
    REFLECTION = "REFLECTION"
    APPRECIATION_PROMPT = "APPRECIATION_PROMPT"
    TRANSLATION = "TRANSLATION"
    SUMMARY = "SUMMARY"
    PRIVATE_COACHING = "PRIVATE_COACHING"


class MessageKind(StrEnum):
    """Kinds for messages that are not mediator interventions."""

    CHAT = "CHAT"
    PRIVATE = "PRIVATE"
    SYSTEM = "SYSTEM"
    JOIN = "JOIN"
    REWIND = "REWIND"
    PARKING_LOT = "PARKING_LOT"


@dataclass
class ConversationState:
    """A two-party session as seen by the mediator core.

    Attributes:
        session_code: Short code both participants use to join.
        participant_a: The person who created the session.
        participant_b: The person who joined (None until someone joins).
        status: WAITING, ACTIVE or ENDED.
        mode: FREE_TALK, GUIDED or DEBRIEF.
        engagement_a: Participant A's 1-10 engagement preference.
        engagement_b: Participant B's 1-10 engagement preference.
        ground_rules_id: Attached ground-rules document, if any.
        ground_rules: Text of the attached ground-rules document.
    """

    session_code: str
    participant_a: str
    participant_b: str | None = None
    status: Status = Status.WAITING
    mode: Mode = Mode.FREE_TALK
    engagement_a: int = DEFAULT_ENGAGEMENT
    engagement_b: int = DEFAULT_ENGAGEMENT
    ground_rules_id: int | None = None
    ground_rules: str | None = None
    created_at: str = field(default_factory=utc_now)
    ended_at: str | None = None

    @property
    def participants(self) -> tuple[str, ...]:
        """Known participant names, skipping an unfilled second seat."""
        return tuple(p for p in (self.participant_a, self.participant_b) if p)

    @property
    def effective_engagement(self) -> int:
        """Either participant opting into more help raises activity for both."""
        return max(clamp_engagement(self.engagement_a), clamp_engagement(self.engagement_b))

    def is_participant(self, name: str | None) -> bool:
        return bool(name) and name in self.participants

    def other_participant(self, name: str) -> str | None:
        if name == self.participant_a:
            return self.participant_b
        if name == self.participant_b:
            return self.participant_a
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionCode": self.session_code,
            "participantA": self.participant_a,
            "participantB": self.participant_b or "",
            "status": str(self.status),
            "mode": str(self.mode),
            "interactionLevelA": self.engagement_a,
            "interactionLevelB": self.engagement_b,
            "groundRulesId": self.ground_rules_id,
        }


@dataclass(frozen=True)
class StoredMessage:
    """An append-only conversation entry.

    ``recipient`` is None for public messages; otherwise it names the one
    participant allowed to see the message.
    """

    sender: str
    body: str
    kind: str
    fallacy: str | None = None
    recipient: str | None = None
    timestamp: str = field(default_factory=utc_now)
    id: int | None = None

    def visible_to(self, viewer: str) -> bool:
        """Public, addressed to the viewer, or sent by the viewer."""
        return self.recipient is None or self.recipient == viewer or self.sender == viewer

    def to_payload(self, session_code: str) -> dict[str, Any]:
        """Serialize for delivery to connected clients."""
        payload: dict[str, Any] = {
            "sessionCode": session_code,
            "sender": self.sender,
            "content": self.body,
            "type": str(self.kind),
            "timestamp": self.timestamp,
        }
        if self.fallacy:
            payload["fallacyType"] = self.fallacy
        if self.recipient:
            payload["recipient"] = self.recipient
        return payload

    def to_row(self, session_code: str) -> tuple:
        """Serialize to a tuple matching the ``messages`` insert column order."""
        return (
            session_code,
            self.sender,
            self.body,
            str(self.kind),
            self.fallacy,
            self.recipient,
            self.timestamp,
        )

    @classmethod
    def from_row(cls, row: tuple) -> StoredMessage:
        """Deserialize from ``SELECT id, sender, body, kind, fallacy, recipient, timestamp``."""
        return cls(
            id=row[0],
            sender=row[1],
            body=row[2],
            kind=row[3],
            fallacy=row[4],
            recipient=row[5],
            timestamp=row[6],
        )


@dataclass(frozen=True)
class Visibility:
    """Who may see an intervention: everyone, or one named participant."""

    recipient: str | None = None

    @property
    def is_private(self) -> bool:
        return self.recipient is not None

    @classmethod
    def private_to(cls, participant: str) -> Visibility:
        return cls(recipient=participant)

    def __str__(self) -> str:
        return f"PRIVATE_TO_{self.recipient}" if self.recipient else "PUBLIC"


PUBLIC = Visibility()


@dataclass(frozen=True)
class InterventionDecision:
    """A parsed mediator judgment, consumed immediately by the router."""

    kind: str
    body: str
    fallacy: str | None = None
    visibility: Visibility = PUBLIC


@dataclass
class GroundRules:
    """A ground-rules ("constitution") document both participants agree on."""

    id: int
    title: str
    content: str
    created_by: str
    finalized: bool = False
    created_at: str = field(default_factory=utc_now)
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: tuple) -> GroundRules:
        return cls(
            id=row[0],
            title=row[1],
            content=row[2],
            created_by=row[3],
            finalized=bool(row[4]),
            created_at=row[5],
            updated_at=row[6],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "createdBy": self.created_by,
            "finalized": self.finalized,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
