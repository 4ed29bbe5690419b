"""Instruction text assembly for each mediator call type.

Every prompt follows the same section order: role framing, ground rules,
participants and mode, policy band (ongoing analysis only), context
window, triggering input, output-format instructions. Builders are pure
string functions and never call the model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from diplomat.mediator.parser import (
    NO_INTERVENTION,
    PRIVATE_PREFIX,
    TAG_FALLACY,
    TAG_RESPONSE,
    TAG_TYPE,
    TAG_VISIBILITY,
)
from diplomat.models import InterventionKind

if TYPE_CHECKING:
    from diplomat.mediator.policy import PolicyBand
    from diplomat.models import ConversationState

logger = logging.getLogger(__name__)

SYSTEM_FILE = "SYSTEM.md"
GROUND_RULES_FILE = "GROUND_RULES.md"

DEFAULT_SYSTEM = (
    "You are The Diplomat, an AI communication mediator helping two people have "
    "more productive conversations.\n"
    "You are warm, neutral, and insightful. You never take sides.\n"
    "Your job is to observe, translate, and gently intervene when communication "
    "breaks down.\n"
    "You are directive about establishing good communication practices and the "
    "ground rules."
)

DEFAULT_GROUND_RULES = """# Our Communication Ground Rules

## Core Principles
1. We assume good intent in each other's words.
2. We speak for ourselves using "I feel..." statements.
3. We listen to understand, not to respond.

## Ground Rules
- No name-calling or personal attacks
- No bringing up past resolved issues
- Either person can call a timeout at any time
- We address one topic at a time

## When Things Escalate
- Take a 5-minute break if either person feels overwhelmed
- Return to the conversation after the break
- Start the return with something you appreciate about the other person
"""

NO_GROUND_RULES = "(No ground rules set for this session. Use general best practices.)"

_ANALYSIS_KINDS = "|".join(
    str(k)
    for k in (
        InterventionKind.OBSERVATION,
        InterventionKind.REFRAME,
        InterventionKind.FALLACY_ALERT,
        InterventionKind.TEMPERATURE_CHECK,
        InterventionKind.CONSTITUTION_REMINDER,
        InterventionKind.REFLECTION,
        InterventionKind.APPRECIATION_PROMPT,
    )
)


def _read_config(config_dir: Path, filename: str) -> str:
    """Read a config markdown file, returning empty string if missing."""
    path = config_dir / filename
    try:
        return path.read_text(encoding="utf-8")
    except OSError:
        return ""


@dataclass(frozen=True)
class PromptTemplates:
    """Static framing text, loaded once at startup."""

    system: str = DEFAULT_SYSTEM
    ground_rules: str = DEFAULT_GROUND_RULES

    @classmethod
    def load(cls, config_dir: Path) -> PromptTemplates:
        """Load templates from ``config_dir``, falling back to built-in text."""
        system = _read_config(config_dir, SYSTEM_FILE).strip()
        ground_rules = _read_config(config_dir, GROUND_RULES_FILE).strip()
        if not system:
            logger.warning("Could not load %s from %s, using default", SYSTEM_FILE, config_dir)
        if not ground_rules:
            logger.warning(
                "Could not load %s from %s, using default", GROUND_RULES_FILE, config_dir
            )
        return cls(
            system=system or DEFAULT_SYSTEM,
            ground_rules=ground_rules or DEFAULT_GROUND_RULES,
        )


def _section(title: str, body: str) -> str:
    return f"=== {title} ===\n{body}"


def _join(*parts: str) -> str:
    return "\n\n".join(p for p in parts if p)


def _participants(conversation: ConversationState) -> str:
    return (
        f"Person A: {conversation.participant_a}\n"
        f"Person B: {conversation.participant_b or '(not yet joined)'}"
    )


def _analysis_format(conversation: ConversationState) -> str:
    visibility = " or ".join(
        ["PUBLIC", *(f"{PRIVATE_PREFIX}{name}" for name in conversation.participants)]
    )
    return f"""Analyze the new message in context. Decide if you should intervene.

If you should intervene, respond with EXACTLY this format:
[{TAG_TYPE}: {_ANALYSIS_KINDS}]
[{TAG_FALLACY}: name_of_fallacy or NONE]
[{TAG_VISIBILITY}: {visibility}]
[{TAG_RESPONSE}: your message to the participants]

VISIBILITY guidance:
- Use PUBLIC for most interventions (both people should see it)
- Use PRIVATE_TO_name when you want to privately coach just one person:
  * Suggesting a better way to phrase something BEFORE they say it
  * Pointing out their own pattern without embarrassing them
  * Offering encouragement or validation privately
  * Giving them a heads-up about how their message might land

If no intervention is needed, respond with exactly:
[{NO_INTERVENTION}]

Intervene when you see:
- Logical fallacies (ad hominem, straw man, whataboutism, false equivalence, hasty generalization, etc.)
- Escalation or rising tension
- Ground-rule violations
- Statements that could be reframed more constructively
- One person dominating or the other withdrawing
- Opportunities for positive reinforcement
- Moments where summarizing what someone said would help ("What I heard you say is...")

Adjust your intervention frequency based on the interaction level above.
In FREE_TALK mode, lean toward observing. In GUIDED mode, actively facilitate and structure.
Be warm, brief, and non-judgmental. Never take sides. You are The Diplomat."""


class PromptBuilder:
    """Composes the instruction text for each mediator call type."""

    def __init__(self, templates: PromptTemplates | None = None) -> None:
        self.templates = templates or PromptTemplates()

    def _ground_rules(self, conversation: ConversationState) -> str:
        return _section(
            "GROUND RULES (agreed upon rules)",
            (conversation.ground_rules or "").strip() or NO_GROUND_RULES,
        )

    def analysis(
        self,
        conversation: ConversationState,
        *,
        sender: str,
        message: str,
        history: str,
        policy: PolicyBand,
    ) -> str:
        """Ongoing analysis of a newly posted chat message."""
        return _join(
            self.templates.system.strip(),
            self._ground_rules(conversation),
            _section("PARTICIPANTS", _participants(conversation)),
            _section("CONVERSATION MODE", str(conversation.mode)),
            _section("POLICY", policy.render()),
            _section("RECENT CONVERSATION", history),
            _section("NEW MESSAGE", f"{sender}: {message}"),
            _section("YOUR TASK", _analysis_format(conversation)),
        )

    def coaching(
        self,
        conversation: ConversationState,
        *,
        participant: str,
        message: str,
        history: str,
    ) -> str:
        """Private one-on-one coaching reply to a participant."""
        other = conversation.other_participant(participant) or "the other participant"
        framing = (
            f"You are The Diplomat, a private communication coach. {participant} has sent "
            f"you a PRIVATE message that the other participant ({other}) cannot see.\n\n"
            "You are now in 1-on-1 coaching mode. Be warm, direct, and helpful.\n\n"
            "In this private channel you can:\n"
            "- Help them understand their own feelings and reactions\n"
            "- Suggest better ways to phrase what they want to say\n"
            "- Help them see their partner's perspective\n"
            "- Give them specific scripts or phrases to try\n"
            "- Validate their feelings while challenging unhelpful patterns\n"
            "- Help them prepare what to say before saying it in the shared chat\n"
            "- Be more candid than you would be publicly"
        )
        return _join(
            framing,
            self._ground_rules(conversation),
            _section("PARTICIPANTS", _participants(conversation)),
            _section("CONVERSATION MODE", str(conversation.mode)),
            _section("RECENT CONVERSATION (includes shared + private)", history),
            _section(f"{participant}'s PRIVATE MESSAGE TO YOU", message),
            _section(
                "RESPONSE FORMAT",
                "Respond directly, warmly, and helpfully. Keep it conversational: you're "
                "their coach, not a textbook.\n"
                "Be brief (2-4 sentences) unless they're asking for something more detailed.\n"
                "Do NOT use bracket formatting. Just respond naturally.",
            ),
        )

    def debrief(self, conversation: ConversationState, *, history: str) -> str:
        """Constructive summary of the whole session."""
        return _join(
            "You are The Diplomat, a communication mediator. Provide a brief, "
            "constructive debrief of this conversation.",
            self._ground_rules(conversation),
            _section("PARTICIPANTS", _participants(conversation)),
            _section("CONVERSATION MODE", str(conversation.mode)),
            _section("CONVERSATION", history),
            _section(
                "RESPONSE FORMAT",
                "Include:\n"
                "1. What went well: positive communication moments\n"
                "2. Patterns observed: recurring themes or friction points\n"
                "3. Fallacies detected: any logical fallacies that appeared\n"
                "4. Suggestions: concrete tips for next time\n\n"
                "Keep it balanced, kind, and actionable. Don't take sides.",
            ),
        )

    def translation(
        self,
        conversation: ConversationState,
        *,
        original_sender: str,
        message: str,
    ) -> str:
        """Reframe a statement to surface the feeling and need underneath it."""
        return _join(
            "You are The Diplomat, a relationship translator. Reframe this statement to "
            "reveal the underlying feeling and need, without losing the speaker's intent.",
            self._ground_rules(conversation),
            _section("PARTICIPANTS", _participants(conversation)),
            _section("STATEMENT", f'{original_sender} said: "{message}"'),
            _section(
                "RESPONSE FORMAT",
                "Provide a brief, warm translation that:\n"
                "1. Removes blame language\n"
                '2. Expresses the underlying feeling ("I feel...")\n'
                '3. States the underlying need ("I need...")\n'
                "4. Keeps it natural and conversational\n\n"
                "Respond with ONLY the translated version, like:\n"
                '"What [name] might be trying to say is: ..."',
            ),
        )

    def suggestion(self, current: str, request: str) -> str:
        """Revise a ground-rules document according to a request."""
        return _join(
            "You are The Diplomat, helping a couple create their communication ground "
            "rules: a set of agreed-upon rules for how they communicate during difficult "
            "conversations.\n\n"
            "Be directive and proactive: guide them toward best practices. If the current "
            "ground rules are missing important elements, proactively suggest additions. "
            "Make it feel collaborative, not imposed.",
            _section("CURRENT GROUND RULES", current.strip() or NO_GROUND_RULES),
            _section("THEIR REQUEST", request),
            _section(
                "RESPONSE FORMAT",
                "Provide an updated version of the ground rules incorporating their "
                "request.\nKeep it clear, fair, and balanced. Use Markdown formatting.\n"
                "Only output the updated ground rules text, nothing else.",
            ),
        )
