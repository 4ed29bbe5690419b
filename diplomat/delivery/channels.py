"""DeliveryChannel protocol: interface the mediator core uses to reach clients."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class DeliveryChannel(Protocol):
    """Fire-and-forget fan-out to a session's connected clients."""

    async def broadcast(self, session_code: str, payload: dict[str, Any]) -> None:
        """Send a payload to everyone in the session."""
        ...

    async def send_private(
        self, session_code: str, participant: str, payload: dict[str, Any]
    ) -> None:
        """Send a payload only to one participant of the session."""
        ...
