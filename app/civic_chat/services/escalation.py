"""
Purpose: Decide whether the latest reply should be handed to a human team.
Only classifies; dispatch lives in services.handoff.

Policies (pick one through ChatConfig, never both):
- WINDOW: uncertainty in a recent assistant reply AND the user keeps asking
  about the same topic.
- LAST_TURN: uncertainty in the latest reply OR a specificity-seeking
  latest question.
A configured canonical refusal sentence (strict persona) is checked first by
exact, trimmed equality.
"""

from __future__ import annotations
import logging
from collections import Counter
from typing import Optional, Sequence

from ..models import EscalationOutcome, EscalationPolicy, Message, Role

logger = logging.getLogger(__name__)

UNCERTAINTY_PHRASES = [
    "i'm not sure",
    "i don't have specific",
    "unclear",
    "i apologize, i don't have",
    "i don't have access to",
    "would need to check",
    "specific details aren't available",
    "i'd recommend contacting",
]

SPECIFIC_QUESTION_PHRASES = [
    "exact date",
    "exactly when",
    "exactly how",
    "how much exactly",
    "specific date",
    "specific number",
    "specific amount",
    "what is the address",
    "phone number",
    "email address",
    "who do i contact",
    "can you confirm",
    "my street",
    "my neighborhood",
    "my property",
]

TOPIC_KEYWORDS = [
    "housing",
    "transportation",
    "great park",
    "budget",
    "development",
    "bike lanes",
    "shuttle",
    "policy",
    "meeting",
    "council",
    "vote",
    "ordinance",
]

WINDOW_SIZE = 6
MIN_WINDOW_MESSAGES = 4


def find_phrase(text: str, phrases: Sequence[str]) -> Optional[str]:
    lowered = (text or "").lower()
    return next((p for p in phrases if p in lowered), None)


def extract_topic(text: str) -> str:
    lowered = (text or "").lower()
    return next((k for k in TOPIC_KEYWORDS if k in lowered), "general")


def _latest(messages: Sequence[Message], role: Role) -> Optional[Message]:
    return next((m for m in reversed(messages) if m.role == role), None)


class EscalationDetector:
    def __init__(
        self,
        policy: EscalationPolicy = EscalationPolicy.LAST_TURN,
        canonical_refusal: Optional[str] = None,
    ):
        self.policy = policy
        self.canonical_refusal = (canonical_refusal or "").strip() or None

    def detect(self, messages: Sequence[Message]) -> EscalationOutcome:
        latest_reply = _latest(messages, Role.ASSISTANT)
        if latest_reply is None:
            return EscalationOutcome(False)

        if (
            self.canonical_refusal
            and latest_reply.content.strip() == self.canonical_refusal
        ):
            return EscalationOutcome(True, self.canonical_refusal)

        if self.policy == EscalationPolicy.WINDOW:
            outcome = self._window(messages)
        else:
            outcome = self._last_turn(messages, latest_reply)

        if outcome.needs_escalation:
            logger.info("Escalation suggested (trigger=%r)", outcome.trigger)
        return outcome

    def _window(self, messages: Sequence[Message]) -> EscalationOutcome:
        if len(messages) < MIN_WINDOW_MESSAGES:
            return EscalationOutcome(False)

        recent = list(messages)[-WINDOW_SIZE:]
        trigger = None
        for m in recent:
            if m.role == Role.ASSISTANT:
                trigger = find_phrase(m.content, UNCERTAINTY_PHRASES)
                if trigger:
                    break
        if not trigger:
            return EscalationOutcome(False)

        topics = Counter(
            extract_topic(m.content) for m in recent if m.role == Role.USER
        )
        if any(count >= 2 for count in topics.values()):
            return EscalationOutcome(True, trigger)
        return EscalationOutcome(False)

    def _last_turn(
        self, messages: Sequence[Message], latest_reply: Message
    ) -> EscalationOutcome:
        trigger = find_phrase(latest_reply.content, UNCERTAINTY_PHRASES)
        if trigger:
            return EscalationOutcome(True, trigger)

        latest_question = _latest(messages, Role.USER)
        if latest_question is not None:
            trigger = find_phrase(latest_question.content, SPECIFIC_QUESTION_PHRASES)
            if trigger:
                return EscalationOutcome(True, trigger)
        return EscalationOutcome(False)
