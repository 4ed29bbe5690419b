"""Tests for visibility-filtered context windows."""

import pytest

from diplomat.mediator.context import (
    EMPTY_PLACEHOLDER,
    ContextAssembler,
    filter_for_viewer,
    last_n,
    render_history,
)
from diplomat.models import MEDIATOR, StoredMessage

# -- Helpers -----------------------------------------------------------------


def _msg(sender: str, body: str, kind: str = "CHAT", recipient: str | None = None) -> StoredMessage:
    return StoredMessage(sender=sender, body=body, kind=kind, recipient=recipient)


def _mixed_history() -> list[StoredMessage]:
    return [
        _msg("Alex", "public from alex"),
        _msg("Alex", "alex asks the mediator", "PRIVATE", recipient="Alex"),
        _msg(MEDIATOR, "coaching for alex", "PRIVATE_COACHING", recipient="Alex"),
        _msg("Sam", "public from sam"),
        _msg("Sam", "sam asks the mediator", "PRIVATE", recipient="Sam"),
        _msg(MEDIATOR, "coaching for sam", "PRIVATE_COACHING", recipient="Sam"),
        _msg(MEDIATOR, "public observation", "OBSERVATION"),
    ]


# -- Filtering ---------------------------------------------------------------


def test_viewer_sees_public_and_own_private() -> None:
    bodies = [m.body for m in filter_for_viewer(_mixed_history(), "Alex")]
    assert bodies == [
        "public from alex",
        "alex asks the mediator",
        "coaching for alex",
        "public from sam",
        "public observation",
    ]


@pytest.mark.parametrize("viewer", ["Alex", "Sam"])
def test_no_leak_of_other_participants_private_channel(viewer: str) -> None:
    for m in filter_for_viewer(_mixed_history(), viewer):
        assert m.recipient in (None, viewer) or m.sender == viewer


def test_no_viewer_keeps_everything() -> None:
    history = _mixed_history()
    assert filter_for_viewer(history, None) == history


# -- Windowing ---------------------------------------------------------------


def test_last_n_keeps_newest_in_order() -> None:
    history = [_msg("Alex", str(i)) for i in range(50)]
    window = last_n(history, 30)
    assert [m.body for m in window] == [str(i) for i in range(20, 50)]


def test_last_n_short_history_untouched() -> None:
    history = [_msg("Alex", str(i)) for i in range(3)]
    assert last_n(history, 30) == history


def test_last_n_none_keeps_all() -> None:
    history = [_msg("Alex", str(i)) for i in range(40)]
    assert last_n(history, None) == history


def test_last_n_zero_is_empty() -> None:
    assert last_n([_msg("Alex", "x")], 0) == []


# -- Rendering ---------------------------------------------------------------


def test_render_empty_uses_placeholder() -> None:
    assert render_history([]) == EMPTY_PLACEHOLDER
    assert render_history([]) != ""


def test_render_lines() -> None:
    text = render_history([_msg("Alex", "hi"), _msg(MEDIATOR, "welcome", "OBSERVATION")])
    assert text == "Alex [CHAT]: hi\nDIPLOMAT [OBSERVATION]: welcome"


# -- ContextAssembler ----------------------------------------------------------


async def test_assembler_filters_then_windows(repo, conversation) -> None:
    code = conversation.session_code
    for i in range(5):
        await repo.append_message(code, _msg("Alex", f"a{i}"))
        await repo.append_message(code, _msg(MEDIATOR, f"s{i}", "REFRAME", recipient="Sam"))

    assembler = ContextAssembler(repo, window_size=3)
    window = await assembler.window(code, viewer="Alex")
    assert [m.body for m in window] == ["a2", "a3", "a4"]


async def test_assembler_default_window_size(repo, conversation) -> None:
    code = conversation.session_code
    for i in range(35):
        await repo.append_message(code, _msg("Sam", str(i)))

    window = await ContextAssembler(repo).window(code)
    assert len(window) == 30
    assert window[0].body == "5"
    assert window[-1].body == "34"


async def test_assembler_unbounded_limit(repo, conversation) -> None:
    code = conversation.session_code
    for i in range(40):
        await repo.append_message(code, _msg("Sam", str(i)))

    window = await ContextAssembler(repo, window_size=10).window(code, limit=None)
    assert len(window) == 40


async def test_assembler_render_empty_session(repo, conversation) -> None:
    text = await ContextAssembler(repo).render(conversation.session_code)
    assert text == EMPTY_PLACEHOLDER
