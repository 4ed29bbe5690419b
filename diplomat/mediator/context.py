"""Visibility-filtered, windowed conversation history for model prompts."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from diplomat.models import StoredMessage
    from diplomat.storage.protocol import ConversationRepository

logger = logging.getLogger(__name__)

EMPTY_PLACEHOLDER = "(conversation just started)"


def filter_for_viewer(messages: list[StoredMessage], viewer: str | None) -> list[StoredMessage]:
    """Drop messages the viewer may not see. No viewer means no filtering."""
    if viewer is None:
        return list(messages)
    return [m for m in messages if m.visible_to(viewer)]


def last_n(messages: list[StoredMessage], limit: int | None) -> list[StoredMessage]:
    """Keep the newest ``limit`` entries, preserving order."""
    if limit is None or len(messages) <= limit:
        return list(messages)
    if limit <= 0:
        return []
    return messages[-limit:]


def render_history(messages: list[StoredMessage]) -> str:
    """Format a window as ``sender [kind]: body`` lines."""
    if not messages:
        return EMPTY_PLACEHOLDER
    return "\n".join(f"{m.sender} [{m.kind}]: {m.body}" for m in messages)


class ContextAssembler:
    """Builds the context window handed to the text-generation collaborator.

    Args:
        store: Source of the session's ordered message history.
        window_size: Default number of most recent messages to keep.
    """

    def __init__(self, store: ConversationRepository, window_size: int = 30) -> None:
        self._store = store
        self._window_size = window_size

    async def window(
        self,
        session_code: str,
        *,
        viewer: str | None = None,
        limit: int | None = -1,
    ) -> list[StoredMessage]:
        """Return the filtered, windowed history for a session.

        Args:
            session_code: The session to read.
            viewer: When given, keep only public messages plus the viewer's
                own private exchange with the mediator.
            limit: Window size. ``-1`` uses the configured default, ``None``
                keeps the whole history.
        """
        history = await self._store.list_messages(session_code)
        visible = filter_for_viewer(history, viewer)
        size = self._window_size if limit == -1 else limit
        window = last_n(visible, size)
        logger.debug(
            "Context for %s (viewer=%s): %d of %d messages",
            session_code,
            viewer,
            len(window),
            len(history),
        )
        return window

    async def render(
        self,
        session_code: str,
        *,
        viewer: str | None = None,
        limit: int | None = -1,
    ) -> str:
        """Like :meth:`window`, rendered as prompt text."""
        return render_history(await self.window(session_code, viewer=viewer, limit=limit))
