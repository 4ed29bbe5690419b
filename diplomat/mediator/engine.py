"""InterventionEngine: runs the mediation pipeline for each triggering event.

Each event goes RECEIVED → CONTEXT_BUILT → PROMPTED → AWAITING_COMPLETION
→ PARSED → ROUTED → DELIVERED, or ends SUPPRESSED when the model declines
to intervene or the text-generation call fails. Nothing is retried.

Background events run as independent asyncio tasks with no per-session
ordering: two messages in the same session may be analysed concurrently
and their interventions delivered in completion order.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from diplomat.config import settings
from diplomat.errors import ParticipantNotFoundError, SessionNotFoundError
from diplomat.mediator.context import ContextAssembler
from diplomat.mediator.parser import parse_response
from diplomat.mediator.policy import policy_for
from diplomat.mediator.prompt import PromptBuilder
from diplomat.mediator.router import RoutedIntervention, route
from diplomat.models import PUBLIC, InterventionDecision, InterventionKind, Visibility

if TYPE_CHECKING:
    from collections.abc import Coroutine

    from diplomat.delivery.channels import DeliveryChannel
    from diplomat.llm.client import TextGenerator
    from diplomat.models import ConversationState
    from diplomat.storage.protocol import ConversationRepository

logger = logging.getLogger(__name__)

COACHING_APOLOGY = "Sorry, I'm having trouble responding right now. Try again in a moment."
DEBRIEF_APOLOGY = "I wasn't able to generate a debrief at this time."
TRANSLATION_APOLOGY = "Sorry, I couldn't translate that right now."
SUGGESTION_APOLOGY = "Sorry, I couldn't suggest changes to the ground rules right now."


class Stage(StrEnum):
    RECEIVED = "RECEIVED"
    CONTEXT_BUILT = "CONTEXT_BUILT"
    PROMPTED = "PROMPTED"
    AWAITING_COMPLETION = "AWAITING_COMPLETION"
    PARSED = "PARSED"
    ROUTED = "ROUTED"
    DELIVERED = "DELIVERED"
    SUPPRESSED = "SUPPRESSED"


@dataclass(frozen=True)
class Outcome:
    """Terminal result of one pipeline run."""

    session_code: str
    stage: Stage
    routed: RoutedIntervention | None = None

    @property
    def delivered(self) -> bool:
        return self.stage == Stage.DELIVERED


class InterventionEngine:
    """Orchestrates context, prompt, completion, parsing, routing and delivery.

    Args:
        store: Conversation lookup, history and message persistence.
        generator: Text-generation collaborator.
        delivery: Fan-out to connected participants.
        prompts: Prompt builder (defaults to built-in templates).
        window_size: Context window size (defaults to settings).
        max_concurrent: Bound on in-flight background units; None or 0
            means unbounded.
    """

    def __init__(
        self,
        store: ConversationRepository,
        generator: TextGenerator,
        delivery: DeliveryChannel,
        *,
        prompts: PromptBuilder | None = None,
        window_size: int | None = None,
        max_concurrent: int | None = None,
    ) -> None:
        self._store = store
        self._generator = generator
        self._delivery = delivery
        self._prompts = prompts or PromptBuilder()
        self._context = ContextAssembler(
            store, window_size if window_size is not None else settings.context_window_size
        )
        if max_concurrent is None:
            max_concurrent = settings.get_analysis_limit()
        if max_concurrent is not None and max_concurrent <= 0:
            max_concurrent = None
        self._limiter = asyncio.Semaphore(max_concurrent) if max_concurrent else None
        self._tasks: set[asyncio.Task] = set()

    # -- Helpers -----------------------------------------------------------------

    async def _conversation(self, session_code: str) -> ConversationState:
        conversation = await self._store.find_conversation(session_code)
        if conversation is None:
            raise SessionNotFoundError(session_code)
        return conversation

    @staticmethod
    def _stage(session_code: str, stage: Stage) -> None:
        logger.debug("[%s] %s", session_code, stage)

    async def _complete(self, label: str, prompt: str) -> str | None:
        """Call the model once. Failures and blank completions yield None.

        ``label`` prefixes the log lines: a session code, or the name of a
        flow that has no session.
        """
        logger.debug("[%s] %s", label, Stage.AWAITING_COMPLETION)
        try:
            raw = await self._generator.generate(prompt)
        except Exception:
            logger.exception("[%s] Text generation failed", label)
            return None
        if not raw or not raw.strip():
            logger.info("[%s] Text generation returned nothing", label)
            return None
        return raw

    # -- Ongoing analysis ----------------------------------------------------------

    async def analyze(
        self, session_code: str, sender: str, message: str
    ) -> InterventionDecision | None:
        """Decide whether a newly posted message warrants an intervention.

        Returns None when the mediator stays silent or the model call fails.
        Raises SessionNotFoundError for unknown sessions.
        """
        self._stage(session_code, Stage.RECEIVED)
        conversation = await self._conversation(session_code)
        history = await self._context.render(session_code)
        self._stage(session_code, Stage.CONTEXT_BUILT)

        policy = policy_for(conversation.effective_engagement)
        prompt = self._prompts.analysis(
            conversation, sender=sender, message=message, history=history, policy=policy
        )
        self._stage(session_code, Stage.PROMPTED)
        logger.debug("[%s] Sending analysis prompt (%s band)", session_code, policy.band.name)

        raw = await self._complete(session_code, prompt)
        if raw is None:
            return None
        decision = parse_response(raw, conversation.participants)
        if decision is None:
            logger.debug("[%s] No intervention", session_code)
        else:
            self._stage(session_code, Stage.PARSED)
        return decision

    async def process_message(self, session_code: str, sender: str, message: str) -> Outcome:
        """Run the full pipeline for one chat message."""
        decision = await self.analyze(session_code, sender, message)
        if decision is None:
            self._stage(session_code, Stage.SUPPRESSED)
            return Outcome(session_code, Stage.SUPPRESSED)
        routed = await self.deliver(session_code, decision)
        return Outcome(session_code, Stage.DELIVERED, routed)

    # -- Direct requests -------------------------------------------------------------

    async def coach_privately(
        self, session_code: str, participant: str, message: str
    ) -> InterventionDecision:
        """Answer a participant's private message to the mediator."""
        conversation = await self._conversation(session_code)
        if not conversation.is_participant(participant):
            msg = f"Participant not found in session: {participant}"
            raise ParticipantNotFoundError(msg)
        history = await self._context.render(session_code, viewer=participant)
        prompt = self._prompts.coaching(
            conversation, participant=participant, message=message, history=history
        )
        raw = await self._complete(session_code, prompt)
        return InterventionDecision(
            kind=str(InterventionKind.PRIVATE_COACHING),
            body=raw.strip() if raw else COACHING_APOLOGY,
            visibility=Visibility.private_to(participant),
        )

    async def debrief(self, session_code: str) -> InterventionDecision:
        """Summarise the whole session, private exchanges included."""
        conversation = await self._conversation(session_code)
        history = await self._context.render(session_code, limit=None)
        prompt = self._prompts.debrief(conversation, history=history)
        raw = await self._complete(session_code, prompt)
        return InterventionDecision(
            kind=str(InterventionKind.SUMMARY),
            body=raw.strip() if raw else DEBRIEF_APOLOGY,
            visibility=PUBLIC,
        )

    async def translate(
        self, session_code: str, original_sender: str, message: str
    ) -> InterventionDecision:
        """Reframe a statement into the feeling and need behind it."""
        conversation = await self._conversation(session_code)
        prompt = self._prompts.translation(
            conversation, original_sender=original_sender, message=message
        )
        raw = await self._complete(session_code, prompt)
        return InterventionDecision(
            kind=str(InterventionKind.TRANSLATION),
            body=raw.strip() if raw else TRANSLATION_APOLOGY,
            visibility=PUBLIC,
        )

    async def suggest_ground_rules(self, current: str, request: str) -> str:
        """Propose a revised ground-rules document."""
        prompt = self._prompts.suggestion(current, request)
        logger.info("Suggesting ground-rules revision")
        raw = await self._complete("ground-rules suggestion", prompt)
        return raw.strip() if raw else SUGGESTION_APOLOGY

    # -- Routing and delivery ----------------------------------------------------------

    async def deliver(
        self,
        session_code: str,
        decision: InterventionDecision,
        conversation: ConversationState | None = None,
    ) -> RoutedIntervention:
        """Route a decision, persist it, then push it to its audience."""
        if conversation is None:
            conversation = await self._conversation(session_code)
        routed = route(decision, conversation)
        self._stage(session_code, Stage.ROUTED)

        await self._store.append_message(session_code, routed.message)
        if routed.target.is_broadcast:
            await self._delivery.broadcast(session_code, routed.payload)
        else:
            await self._delivery.send_private(
                session_code, routed.target.participant, routed.payload
            )
        self._stage(session_code, Stage.DELIVERED)
        logger.info(
            "[%s] Mediator %s delivered to %s",
            session_code,
            routed.message.kind,
            routed.target.participant or "everyone",
        )
        return routed

    async def _coach_and_deliver(
        self, session_code: str, participant: str, message: str
    ) -> Outcome:
        decision = await self.coach_privately(session_code, participant, message)
        routed = await self.deliver(session_code, decision)
        return Outcome(session_code, Stage.DELIVERED, routed)

    async def _translate_and_deliver(
        self, session_code: str, original_sender: str, message: str
    ) -> Outcome:
        decision = await self.translate(session_code, original_sender, message)
        routed = await self.deliver(session_code, decision)
        return Outcome(session_code, Stage.DELIVERED, routed)

    # -- Background dispatch ------------------------------------------------------------

    def submit_message(self, session_code: str, sender: str, message: str) -> asyncio.Task:
        """Analyse a chat message in the background."""
        return self._spawn(
            self.process_message(session_code, sender, message),
            f"analysis for session {session_code}",
        )

    def submit_private_message(
        self, session_code: str, participant: str, message: str
    ) -> asyncio.Task:
        """Coach a participant privately in the background."""
        return self._spawn(
            self._coach_and_deliver(session_code, participant, message),
            f"private coaching for {participant} in session {session_code}",
        )

    def submit_translation(
        self, session_code: str, original_sender: str, message: str
    ) -> asyncio.Task:
        """Translate a message in the background and broadcast the result."""
        return self._spawn(
            self._translate_and_deliver(session_code, original_sender, message),
            f"translation for session {session_code}",
        )

    def _spawn(self, coro: Coroutine[Any, Any, Outcome], description: str) -> asyncio.Task:
        task = asyncio.create_task(self._run(coro, description))
        # Hold a reference until done so the task is not garbage collected.
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, coro: Coroutine[Any, Any, Outcome], description: str) -> Outcome | None:
        try:
            if self._limiter is None:
                return await coro
            async with self._limiter:
                return await coro
        except Exception:
            logger.exception("Background %s failed", description)
            return None

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every in-flight background unit to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
