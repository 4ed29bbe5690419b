"""Resolves an intervention's visibility into a concrete delivery target."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from diplomat.models import MEDIATOR, StoredMessage

if TYPE_CHECKING:
    from diplomat.models import ConversationState, InterventionDecision

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryTarget:
    """Broadcast to the whole session, or deliver to one participant."""

    session_code: str
    participant: str | None = None

    @property
    def is_broadcast(self) -> bool:
        return self.participant is None


@dataclass(frozen=True)
class RoutedIntervention:
    """Where an intervention goes and the message to persist for it."""

    target: DeliveryTarget
    message: StoredMessage

    @property
    def payload(self) -> dict:
        return self.message.to_payload(self.target.session_code)


def route(decision: InterventionDecision, conversation: ConversationState) -> RoutedIntervention:
    """Turn a decision into a delivery target plus a mediator message.

    A private recipient that is not one of the session's participants is
    downgraded to a broadcast; a recipient is never invented.
    """
    recipient = decision.visibility.recipient
    if recipient is not None and not conversation.is_participant(recipient):
        logger.warning(
            "Dropping unknown recipient %r for session %s, broadcasting instead",
            recipient,
            conversation.session_code,
        )
        recipient = None

    message = StoredMessage(
        sender=MEDIATOR,
        body=decision.body,
        kind=str(decision.kind),
        fallacy=decision.fallacy,
        recipient=recipient,
    )
    return RoutedIntervention(
        target=DeliveryTarget(session_code=conversation.session_code, participant=recipient),
        message=message,
    )
