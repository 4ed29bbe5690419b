"""Shared test fixtures and fake collaborators."""

from __future__ import annotations

from typing import Any

import pytest

from diplomat.models import ConversationState, Mode, Status, StoredMessage
from diplomat.storage.conversations import ConversationStore
from diplomat.storage.ground_rules import GroundRulesStore

# -- Fakes -------------------------------------------------------------------


class FakeGenerator:
    """Text generator that replays canned replies.

    Each reply is a string or an exception instance (raised). The last
    reply repeats once the list is exhausted.
    """

    def __init__(self, *replies: str | Exception) -> None:
        self._replies = list(replies) or ["[NO_INTERVENTION]"]
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        reply = self._replies.pop(0) if len(self._replies) > 1 else self._replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeDelivery:
    """Delivery channel that records what it was asked to send."""

    def __init__(self) -> None:
        self.broadcasts: list[tuple[str, dict[str, Any]]] = []
        self.private: list[tuple[str, str, dict[str, Any]]] = []
        self.order: list[str] = []

    async def broadcast(self, session_code: str, payload: dict[str, Any]) -> None:
        self.broadcasts.append((session_code, payload))
        self.order.append(payload["content"])

    async def send_private(
        self, session_code: str, participant: str, payload: dict[str, Any]
    ) -> None:
        self.private.append((session_code, participant, payload))
        self.order.append(payload["content"])


class MemoryRepository:
    """In-memory ConversationRepository."""

    def __init__(self, *conversations: ConversationState) -> None:
        self.conversations = {c.session_code: c for c in conversations}
        self.messages: dict[str, list[StoredMessage]] = {c: [] for c in self.conversations}

    async def find_conversation(self, session_code: str) -> ConversationState | None:
        return self.conversations.get(session_code)

    async def append_message(self, session_code: str, message: StoredMessage) -> int:
        self.messages.setdefault(session_code, []).append(message)
        return len(self.messages[session_code])

    async def list_messages(self, session_code: str) -> list[StoredMessage]:
        return list(self.messages.get(session_code, []))


# -- Fixtures ----------------------------------------------------------------


@pytest.fixture
def conversation() -> ConversationState:
    return ConversationState(
        session_code="ABCD1234",
        participant_a="Alex",
        participant_b="Sam",
        status=Status.ACTIVE,
        mode=Mode.FREE_TALK,
    )


@pytest.fixture
def repo(conversation: ConversationState) -> MemoryRepository:
    return MemoryRepository(conversation)


@pytest.fixture
def delivery() -> FakeDelivery:
    return FakeDelivery()


@pytest.fixture
def store(tmp_path) -> ConversationStore:
    """ConversationStore backed by a temp database."""
    return ConversationStore(db_path=tmp_path / "test.db")


@pytest.fixture
def ground_rules_store(tmp_path) -> GroundRulesStore:
    """GroundRulesStore sharing the temp database with ``store``."""
    return GroundRulesStore(db_path=tmp_path / "test.db")


@pytest.fixture
def make_generator() -> type[FakeGenerator]:
    """Factory for FakeGenerator with canned replies."""
    return FakeGenerator
