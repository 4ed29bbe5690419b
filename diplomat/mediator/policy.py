"""Engagement level → intervention-frequency band."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from diplomat.models import clamp_engagement


class Band(IntEnum):
    """Frequency bands ordered by intensity."""

    MINIMAL = 1
    LOW = 2
    BALANCED = 3
    ACTIVE = 4
    VERY_DIRECTIVE = 5

    @property
    def label(self) -> str:
        return self.name.replace("_", " ")


_DIRECTIVES: dict[Band, str] = {
    Band.MINIMAL: (
        "Stay almost completely silent. Only intervene for serious fallacies or "
        "personal attacks. Let them work it out."
    ),
    Band.LOW: (
        "Intervene sparingly, only for clear fallacies, ground-rule violations, or "
        "sharp escalation. No reframes or observations unless critical."
    ),
    Band.BALANCED: (
        "Intervene when genuinely helpful: fallacies, escalation, good reframing "
        "opportunities. Don't comment on every message."
    ),
    Band.ACTIVE: (
        "Be more engaged. Offer reflections ('What I heard you say is...'), reframes "
        "and encouragement. Actively facilitate the discussion. Call out smaller issues too."
    ),
    Band.VERY_DIRECTIVE: (
        "Actively mediate like a counselor. Summarize each person's points. Ask "
        "clarifying questions. Guide the conversation structure. Suggest next topics. "
        "Offer 'What I heard' reflections frequently."
    ),
}


@dataclass(frozen=True)
class PolicyBand:
    """A band plus the level it was derived from and its prompt directive."""

    band: Band
    level: int
    directive: str

    def render(self) -> str:
        """The line injected into the ongoing-analysis prompt."""
        return f"INTERACTION LEVEL: {self.band.label} ({self.level}/10). {self.directive}"


def band_for(level: int) -> Band:
    """Map a 1-10 level onto its band; out-of-range input is clamped first."""
    return Band((clamp_engagement(level) + 1) // 2)


def policy_for(level: int) -> PolicyBand:
    clamped = clamp_engagement(level)
    band = band_for(clamped)
    return PolicyBand(band=band, level=clamped, directive=_DIRECTIVES[band])
