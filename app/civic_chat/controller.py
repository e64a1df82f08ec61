"""
Purpose: The single orchestration point for a chat. Owns the turn pipeline
and the session lifecycle (submit, new_chat, select_chat, escalate).
Prevents the UI from knowing how prompts/LLM/services work.

One turn:
- Validate input (security guard) and refuse while another turn runs.
- Append the user message (Session Store).
- Plan and play the scripted reasoning (query classifier + simulator),
  or a short "processing" placeholder for simple questions.
- Call the completion gateway with the token budget; any failure becomes
  the fixed apology reply.
- Append the assistant message and reveal it.
- After the reveal: escalation detection, then follow-up suggestions.

Every await re-checks that the session the turn started in is still the
active one; if not, the turn's results are dropped.

Testing: Pure unit tests with fakes: fake gateway, no-op sleep, seeded rng.
"""

from __future__ import annotations
import asyncio
import logging
import random
from typing import Callable, Optional

from .config import (
    APOLOGY_REPLY,
    PROCESSING_DELAY_MS,
    PROCESSING_PLACEHOLDER,
    ChatConfig,
)
from .errors import CredentialError, TurnInProgressError
from .interfaces import CompletionGateway, EscalationSink, PromptFactory
from .models import (
    ChatSession,
    EscalationOutcome,
    Message,
    Role,
    TurnPhase,
    TurnResult,
)
from .persistence.session_store import SessionStore
from .prompts import DefaultPromptFactory
from .services import query_classifier
from .services.escalation import EscalationDetector
from .services.handoff import LoggingEscalationSink, render_context
from .services.reasoning import ReasoningSimulator, Sleep
from .services.reveal import RevealScheduler
from .services.security import DefaultSecurity
from .services.suggestions import generate_suggestions

logger = logging.getLogger(__name__)

TextListener = Callable[[str], None]


class ChatTurnController:
    def __init__(
        self,
        llm: Optional[CompletionGateway],
        *,
        config: Optional[ChatConfig] = None,
        store: Optional[SessionStore] = None,
        sink: Optional[EscalationSink] = None,
        prompts: Optional[PromptFactory] = None,
        rng: Optional[random.Random] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.llm: Optional[CompletionGateway] = llm
        self.config = config or ChatConfig()
        self.store = store or SessionStore()
        self.sink: EscalationSink = sink or LoggingEscalationSink()
        self.prompts: PromptFactory = prompts or DefaultPromptFactory()
        self.security = DefaultSecurity()
        self.rng = rng or random.Random()
        self.sleep = sleep

        self.simulator = ReasoningSimulator(rng=self.rng, sleep=sleep)
        self.revealer = RevealScheduler(self.config.reveal_interval_ms, sleep=sleep)
        self.detector = EscalationDetector(
            self.config.escalation_policy, self.config.canonical_refusal
        )

        self.phase: TurnPhase = TurnPhase.IDLE
        self.thinking_message: str = ""
        self._turn_seq = 0

    # ---------------------------
    # Status
    # ---------------------------
    def is_ready(self) -> bool:
        """True if the controller can chat (has a completion gateway)."""
        return self.llm is not None

    @property
    def is_thinking(self) -> bool:
        return bool(self.thinking_message)

    @property
    def is_processing(self) -> bool:
        return self.phase != TurnPhase.IDLE

    @property
    def accepts_input(self) -> bool:
        return self.is_ready() and self.phase == TurnPhase.IDLE

    def set_gateway(self, llm: Optional[CompletionGateway]) -> None:
        self.llm = llm

    # ---------------------------
    # Session lifecycle
    # ---------------------------
    def new_chat(self) -> str:
        """Start a fresh draft. Any in-flight turn becomes stale."""
        self._turn_seq += 1
        self._reset_flags()
        return self.store.start_new_chat()

    def select_chat(self, session_id: str) -> ChatSession:
        self._turn_seq += 1
        self._reset_flags()
        return self.store.select(session_id)

    def current_session(self) -> Optional[ChatSession]:
        return self.store.active()

    def get_history(self) -> tuple[Message, ...]:
        return self.store.active_messages()

    def finish_reveal(self, message_id: str) -> bool:
        """
        Show an interrupted reveal in full and run the escalation check
        it missed. False if the message was already revealed.
        """
        session_id = self.store.active_id
        if not session_id or not self.store.finish_reveal(session_id, message_id):
            return False
        self._detect_escalation(session_id, message_id)
        return True

    def follow_ups(self, session: Optional[ChatSession] = None) -> list[str]:
        """Suggestions for the latest assistant message, once it is revealed."""
        session = session or self.store.active()
        if not session or not session.messages:
            return []
        latest = session.messages[-1]
        if latest.role != Role.ASSISTANT or latest.is_revealing:
            return []
        if latest.content == APOLOGY_REPLY:
            return []
        return generate_suggestions(
            latest.content,
            session.user_questions(),
            limit=self.config.suggestion_limit,
            needs_escalation=latest.needs_escalation,
        )

    def escalate(self, question: str, context: Optional[str] = None) -> bool:
        """Forward a question to the human team for the active session."""
        session = self.store.active()
        if context is None:
            context = render_context(session.messages) if session else ""
        try:
            ok = self.sink.escalate(question, context)
        except Exception:
            logger.exception("Escalation hand-off failed")
            return False
        if ok and session is not None:
            self.store.mark_escalation_sent(session.id)
        return ok

    # ---------------------------
    # Turn pipeline
    # ---------------------------
    async def submit(
        self,
        text: str,
        *,
        on_step: Optional[TextListener] = None,
        on_reveal: Optional[TextListener] = None,
    ) -> TurnResult:
        """
        Run one full turn. Raises ValueError/CredentialError for bad input
        and TurnInProgressError if a turn is already running; everything
        after validation resolves into a TurnResult.
        """
        if self.phase != TurnPhase.IDLE:
            raise TurnInProgressError()
        if self.llm is None:
            raise CredentialError("Please set your OpenAI API key first")
        self.security.validate_user_input(text)
        question = self.security.sanitize_for_prompt(text)

        session_id = self.store.active_id
        if self.store.get(session_id) is None:
            session_id = self.store.start_new_chat()

        self._turn_seq += 1
        turn = self._turn_seq

        def is_current() -> bool:
            return turn == self._turn_seq and self.store.is_active(session_id)

        self.phase = TurnPhase.STEPPING
        try:
            self.store.append(session_id, Message(Role.USER, question))
            return await self._run_turn(
                session_id, question, is_current, on_step, on_reveal
            )
        finally:
            if turn == self._turn_seq:
                self._reset_flags()

    async def _run_turn(
        self,
        session_id: str,
        question: str,
        is_current: Callable[[], bool],
        on_step: Optional[TextListener],
        on_reveal: Optional[TextListener],
    ) -> TurnResult:
        plan = query_classifier.build_plan(
            question,
            policy=self.config.reasoning_policy,
            rng=self.rng,
            min_steps=self.config.min_steps,
        )

        def show_step(step: str) -> None:
            self.thinking_message = step
            if on_step:
                on_step(step)

        if plan.show_reasoning:
            logger.debug("Reasoning plan: %s", list(plan.steps))
            still_current = await self.simulator.run(
                plan, on_step=show_step, is_current=is_current
            )
        else:
            show_step(PROCESSING_PLACEHOLDER)
            await self.sleep(PROCESSING_DELAY_MS / 1000)
            still_current = is_current()
        if not still_current:
            return TurnResult(session_id, cancelled=True)

        self.phase = TurnPhase.AWAITING_RESPONSE
        failed = False
        try:
            reply = await self.llm.complete(
                self.prompts.build_system(strict=self.config.strict_persona),
                question,
                plan.token_budget,
                self.config.temperature,
            )
        except Exception:
            logger.exception("Completion request failed")
            reply = APOLOGY_REPLY
            failed = True

        if not is_current():
            return TurnResult(session_id, cancelled=True)
        self.thinking_message = ""

        message = Message(Role.ASSISTANT, reply, is_revealing=True)
        if self.store.append(session_id, message) is None:
            return TurnResult(session_id, cancelled=True)

        self.phase = TurnPhase.REVEALING
        revealed = await self.revealer.reveal(
            reply,
            on_progress=on_reveal,
            on_complete=lambda: self.store.finish_reveal(session_id, message.id),
            is_current=is_current,
        )
        if not revealed:
            return TurnResult(session_id, message=message, cancelled=True)

        outcome = (
            EscalationOutcome(False)
            if failed
            else self._detect_escalation(session_id, message.id)
        )

        session = self.store.get(session_id)
        final = next(m for m in session.messages if m.id == message.id)
        suggestions = (
            []
            if failed
            else generate_suggestions(
                final.content,
                session.user_questions(),
                limit=self.config.suggestion_limit,
                needs_escalation=final.needs_escalation,
            )
        )
        return TurnResult(
            session_id,
            message=final,
            suggestions=suggestions,
            escalation=outcome,
            failed=failed,
        )

    def _detect_escalation(
        self, session_id: str, message_id: str
    ) -> EscalationOutcome:
        """Classify the conversation up to this reply and flag the reply."""
        session = self.store.get(session_id)
        if session is None:
            return EscalationOutcome(False)
        upto = next(
            (i for i, m in enumerate(session.messages) if m.id == message_id), None
        )
        if upto is None or session.messages[upto].content == APOLOGY_REPLY:
            return EscalationOutcome(False)
        outcome = self.detector.detect(session.messages[: upto + 1])
        if outcome.needs_escalation:
            self.store.flag_escalation(session_id, message_id)
        return outcome

    def _reset_flags(self) -> None:
        self.phase = TurnPhase.IDLE
        self.thinking_message = ""
