"""ConversationRepository protocol: what the mediator core needs from storage."""

from typing import Protocol, runtime_checkable

from diplomat.models import ConversationState, StoredMessage


@runtime_checkable
class ConversationRepository(Protocol):
    """Storage contract consumed by the mediator core.

    Implementations serialize their own writes per session.
    """

    async def find_conversation(self, session_code: str) -> ConversationState | None:
        """Return the session, or None if the code is unknown."""
        ...

    async def append_message(self, session_code: str, message: StoredMessage) -> int:
        """Persist a message. Returns the stored row id."""
        ...

    async def list_messages(self, session_code: str) -> list[StoredMessage]:
        """Return the full history in canonical (timestamp) order."""
        ...
