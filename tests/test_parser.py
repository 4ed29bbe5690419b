"""Tests for the bracket-tag completion parser."""

from diplomat.mediator.parser import extract_tag, parse_response, resolve_visibility, strip_tags
from diplomat.models import PUBLIC, Visibility

PARTICIPANTS = ("Alex", "Sam")


def test_well_formed_fallacy_alert() -> None:
    raw = (
        "[TYPE: FALLACY_ALERT]\n"
        "[FALLACY: Straw Man]\n"
        "[VISIBILITY: PUBLIC]\n"
        "[RESPONSE: Let's stick to what was actually said.]"
    )
    decision = parse_response(raw, PARTICIPANTS)
    assert decision is not None
    assert decision.kind == "FALLACY_ALERT"
    assert decision.fallacy == "Straw Man"
    assert decision.visibility == PUBLIC
    assert decision.body == "Let's stick to what was actually said."


def test_sentinel_alone() -> None:
    assert parse_response("[NO_INTERVENTION]", PARTICIPANTS) is None


def test_sentinel_anywhere_wins() -> None:
    raw = (
        "[TYPE: REFRAME]\n[RESPONSE: Try again more gently.]\n"
        "Actually, on reflection: [NO_INTERVENTION]"
    )
    assert parse_response(raw, PARTICIPANTS) is None


def test_none_completion_is_no_intervention() -> None:
    assert parse_response(None, PARTICIPANTS) is None


def test_untagged_text_becomes_public_observation() -> None:
    decision = parse_response("  You both seem tired. Maybe take a break?  \n", PARTICIPANTS)
    assert decision is not None
    assert decision.kind == "OBSERVATION"
    assert decision.fallacy is None
    assert decision.visibility == PUBLIC
    assert decision.body == "You both seem tired. Maybe take a break?"


def test_private_to_known_participant() -> None:
    raw = "[TYPE: REFRAME]\n[VISIBILITY: PRIVATE_TO_Alex]\n[RESPONSE: Maybe soften that.]"
    decision = parse_response(raw, PARTICIPANTS)
    assert decision.visibility == Visibility.private_to("Alex")


def test_private_to_matches_case_insensitively() -> None:
    raw = "[VISIBILITY: private_to_sam]\n[RESPONSE: A thought for you.]"
    decision = parse_response(raw, PARTICIPANTS)
    assert decision.visibility.recipient == "Sam"


def test_private_to_unknown_participant_is_public() -> None:
    raw = "[TYPE: REFRAME]\n[VISIBILITY: PRIVATE_TO_Nobody]\n[RESPONSE: Hmm.]"
    decision = parse_response(raw, PARTICIPANTS)
    assert decision.visibility == PUBLIC
    assert decision.visibility.recipient is None


def test_private_to_ignores_unfilled_seat() -> None:
    raw = "[VISIBILITY: PRIVATE_TO_]\n[RESPONSE: Hello.]"
    decision = parse_response(raw, ("Alex", None))
    assert decision.visibility == PUBLIC


def test_missing_visibility_defaults_public() -> None:
    decision = parse_response("[TYPE: REFLECTION]\n[RESPONSE: What I heard is...]", PARTICIPANTS)
    assert decision.visibility == PUBLIC


def test_missing_type_defaults_to_observation() -> None:
    decision = parse_response("[RESPONSE: Just noting the tone shift.]", PARTICIPANTS)
    assert decision.kind == "OBSERVATION"


def test_unknown_type_passes_through() -> None:
    decision = parse_response("[TYPE: ENCOURAGEMENT]\n[RESPONSE: Nice work.]", PARTICIPANTS)
    assert decision.kind == "ENCOURAGEMENT"


def test_fallacy_none_is_absent_case_insensitive() -> None:
    decision = parse_response("[FALLACY: none]\n[RESPONSE: ok]", PARTICIPANTS)
    assert decision.fallacy is None


def test_fallacy_value_kept_verbatim() -> None:
    decision = parse_response("[FALLACY: ad Hominem]\n[RESPONSE: ok]", PARTICIPANTS)
    assert decision.fallacy == "ad Hominem"


def test_multiline_response_body() -> None:
    raw = "[TYPE: SUMMARY]\n[RESPONSE: First point.\nSecond point.\n\nThird point.]"
    decision = parse_response(raw, PARTICIPANTS)
    assert decision.body == "First point.\nSecond point.\n\nThird point."


def test_response_stops_at_first_close_bracket() -> None:
    raw = "[RESPONSE: Keep it short] and this trails off]"
    assert parse_response(raw, PARTICIPANTS).body == "Keep it short"


def test_missing_response_uses_stripped_text() -> None:
    raw = "[TYPE: OBSERVATION]\n[FALLACY: NONE]\nYou might pause here."
    decision = parse_response(raw, PARTICIPANTS)
    assert decision.body == "You might pause here."


def test_only_tags_falls_back_to_raw_text() -> None:
    raw = "[TYPE: OBSERVATION]\n[VISIBILITY: PUBLIC]"
    decision = parse_response(raw, PARTICIPANTS)
    assert decision.body == raw
    assert decision.body


def test_extract_tag_missing() -> None:
    assert extract_tag("no tags here", "TYPE") is None


def test_tag_names_are_case_sensitive() -> None:
    assert extract_tag("[type: REFRAME]", "TYPE") is None


def test_strip_tags_removes_all_four() -> None:
    text = "[TYPE: A] [FALLACY: B] [VISIBILITY: C] [RESPONSE: D] rest"
    assert strip_tags(text) == "rest"


def test_resolve_visibility_public_values() -> None:
    assert resolve_visibility(None, PARTICIPANTS) == PUBLIC
    assert resolve_visibility("PUBLIC", PARTICIPANTS) == PUBLIC
    assert resolve_visibility("everyone please", PARTICIPANTS) == PUBLIC
