"""Tests for websocket chat event handling."""

from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from diplomat.models import MEDIATOR, SYSTEM
from diplomat.web.chat import TEMPERATURE_CHECK_TEXT, ChatHandler


@pytest.fixture
async def session(store) -> str:
    created = await store.create_session("Alex")
    await store.join_session(created.session_code, "Sam")
    return created.session_code


@pytest.fixture
def hub(delivery):
    """Records fan-out in place of a live SessionHub."""
    return delivery


@pytest.fixture
def engine() -> MagicMock:
    return MagicMock()


@pytest.fixture
def handler(store, hub, engine) -> ChatHandler:
    return ChatHandler(store, hub, engine)


async def test_chat_persists_broadcasts_and_submits(handler, store, hub, engine, session) -> None:
    await handler.handle(session, "Alex", {"type": "chat", "content": "You never listen."})

    messages = await store.list_messages(session)
    assert [(m.sender, m.kind, m.body) for m in messages] == [
        ("Alex", "CHAT", "You never listen.")
    ]
    assert hub.broadcasts[0][1]["content"] == "You never listen."
    engine.submit_message.assert_called_once_with(session, "Alex", "You never listen.")


async def test_type_defaults_to_chat(handler, engine, session) -> None:
    await handler.handle(session, "Sam", {"content": "hi"})
    engine.submit_message.assert_called_once_with(session, "Sam", "hi")


async def test_private_is_echoed_only_to_sender(handler, store, hub, engine, session) -> None:
    await handler.handle(session, "Sam", {"type": "private", "content": "Am I overreacting?"})

    messages = await store.list_messages(session)
    assert messages[0].recipient == "Sam"
    assert messages[0].kind == "PRIVATE"
    assert hub.broadcasts == []
    assert hub.private[0][1] == "Sam"
    engine.submit_private_message.assert_called_once_with(session, "Sam", "Am I overreacting?")


async def test_translate_uses_named_sender(handler, store, engine, session) -> None:
    await handler.handle(
        session, "Alex", {"type": "translate", "content": "Whatever.", "sender": "Sam"}
    )
    engine.submit_translation.assert_called_once_with(session, "Sam", "Whatever.")
    assert await store.list_messages(session) == []


async def test_translate_defaults_to_requester(handler, engine, session) -> None:
    await handler.handle(session, "Alex", {"type": "translate", "content": "Fine."})
    engine.submit_translation.assert_called_once_with(session, "Alex", "Fine.")


async def test_join_is_broadcast_not_persisted(handler, store, hub, engine, session) -> None:
    await handler.handle(session, "Sam", {"type": "join"})

    payload = hub.broadcasts[0][1]
    assert payload["sender"] == SYSTEM
    assert payload["type"] == "JOIN"
    assert "Sam has joined" in payload["content"]
    assert await store.list_messages(session) == []
    engine.submit_message.assert_not_called()


async def test_rewind_is_persisted(handler, store, hub, session) -> None:
    await handler.handle(session, "Alex", {"type": "rewind"})

    messages = await store.list_messages(session)
    assert messages[0].sender == SYSTEM
    assert "Alex would like to rewind" in messages[0].body
    assert hub.broadcasts[0][1]["type"] == "SYSTEM"


async def test_tempcheck(handler, store, hub, engine, session) -> None:
    await handler.handle(session, "Sam", {"type": "TEMPCHECK"})

    payload = hub.broadcasts[0][1]
    assert payload["sender"] == MEDIATOR
    assert payload["type"] == "TEMPERATURE_CHECK"
    assert payload["content"] == TEMPERATURE_CHECK_TEXT
    assert len(await store.list_messages(session)) == 1
    engine.submit_message.assert_not_called()


async def test_parking_lot(handler, hub, session) -> None:
    await handler.handle(session, "Alex", {"type": "parking_lot", "content": "the holidays"})

    payload = hub.broadcasts[0][1]
    assert payload["type"] == "PARKING_LOT"
    assert '"the holidays"' in payload["content"]


async def test_unknown_event_type(handler, session) -> None:
    with pytest.raises(ValueError, match="Unknown event type"):
        await handler.handle(session, "Alex", {"type": "dance"})


async def test_malformed_event(handler, session) -> None:
    with pytest.raises(ValidationError):
        await handler.handle(session, "Alex", {"type": ["chat"]})


def test_event_types(handler) -> None:
    assert set(handler.event_types) == {
        "chat", "private", "translate", "join", "rewind", "tempcheck", "parking_lot",
    }
