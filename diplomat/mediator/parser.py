"""Parser for the mediator's bracket-tagged completion format.

The model answers an ongoing-analysis prompt with either::

    [TYPE: <kind>]
    [FALLACY: <name> | NONE]
    [VISIBILITY: PUBLIC | PRIVATE_TO_<name>]
    [RESPONSE: <free text, may span multiple lines>]

or the sentinel ``[NO_INTERVENTION]``. Parsing never raises: malformed
output degrades to a public OBSERVATION carrying the raw text.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from diplomat.models import PUBLIC, InterventionDecision, InterventionKind, Visibility

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

TAG_TYPE = "TYPE"
TAG_FALLACY = "FALLACY"
TAG_VISIBILITY = "VISIBILITY"
TAG_RESPONSE = "RESPONSE"
TAGS = (TAG_TYPE, TAG_FALLACY, TAG_VISIBILITY, TAG_RESPONSE)

NO_INTERVENTION = "NO_INTERVENTION"
_SENTINEL = f"[{NO_INTERVENTION}]"

PRIVATE_PREFIX = "PRIVATE_TO_"

# Shortest run up to the next "]"; DOTALL so RESPONSE bodies may contain newlines.
_EXTRACT = {tag: re.compile(rf"\[{tag}:\s*(.+?)\]", re.DOTALL) for tag in TAGS}
# Stripping is line-bound: a tag whose value spans lines is left in place.
_STRIP = [re.compile(rf"\[{tag}:.*?\]") for tag in TAGS]


def is_no_intervention(raw: str | None) -> bool:
    return raw is None or _SENTINEL in raw


def extract_tag(text: str, tag: str) -> str | None:
    """Return the trimmed value of the first ``[TAG: value]``, or None."""
    pattern = _EXTRACT.get(tag) or re.compile(rf"\[{re.escape(tag)}:\s*(.+?)\]", re.DOTALL)
    match = pattern.search(text)
    if match is None:
        return None
    return match.group(1).strip()


def strip_tags(text: str) -> str:
    for pattern in _STRIP:
        text = pattern.sub("", text)
    return text.strip()


def resolve_visibility(value: str | None, participants: Iterable[str | None]) -> Visibility:
    """Resolve a VISIBILITY value against the known participants.

    ``PRIVATE_TO_<name>`` selects the participant whose name matches
    case-insensitively. Anything else, including an unknown name, is PUBLIC.
    """
    if not value:
        return PUBLIC
    value = value.strip()
    if not value.upper().startswith(PRIVATE_PREFIX):
        return PUBLIC
    target = value[len(PRIVATE_PREFIX):].strip().casefold()
    for name in participants:
        if name and name.casefold() == target:
            return Visibility.private_to(name)
    logger.info("Visibility %r names no known participant, delivering publicly", value)
    return PUBLIC


def parse_response(
    raw: str | None,
    participants: Iterable[str | None] = (),
) -> InterventionDecision | None:
    """Parse a completion into a decision, or None for no intervention."""
    if is_no_intervention(raw):
        return None

    kind = extract_tag(raw, TAG_TYPE)
    fallacy = extract_tag(raw, TAG_FALLACY)
    visibility = extract_tag(raw, TAG_VISIBILITY)
    body = extract_tag(raw, TAG_RESPONSE)

    if not body or not body.strip():
        body = strip_tags(raw)
        if not body:
            body = raw

    if not fallacy or fallacy.upper() == "NONE":
        fallacy = None

    return InterventionDecision(
        kind=kind or str(InterventionKind.OBSERVATION),
        body=body,
        fallacy=fallacy,
        visibility=resolve_visibility(visibility, participants),
    )
