"""
Canonical data shapes, shared truth for typing between layers.

Typical contents:
- Message / ChatSession (what the Session Store owns).
- ReasoningPlan / StepTiming (ephemeral, per question).
- EscalationOutcome, TurnResult.
- LLMSettings (model, temperature, max_tokens).

Messages and sessions are frozen: flag changes go through
dataclasses.replace so readers holding an old reference never see a
partial write.
"""

from __future__ import annotations
import itertools
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class TurnPhase(str, Enum):
    IDLE = "idle"
    STEPPING = "stepping"
    AWAITING_RESPONSE = "awaiting_response"
    REVEALING = "revealing"


class ReasoningPolicy(str, Enum):
    KEYWORD = "keyword"
    MEANINGFUL_WORDS = "meaningful_words"


class EscalationPolicy(str, Enum):
    WINDOW = "window"
    LAST_TURN = "last_turn"


_id_counter = itertools.count()


def new_id() -> str:
    """Nanosecond clock plus a process counter, so ids never collide."""
    return f"{time.time_ns()}-{next(_id_counter)}"


@dataclass(frozen=True)
class Message:
    role: Role
    content: str
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=datetime.now)
    is_revealing: bool = False
    needs_escalation: bool = False


NEW_CHAT_TITLE = "New Chat"
TITLE_MAX_CHARS = 30


def derive_title(first_user_text: Optional[str]) -> str:
    """First 30 characters of the opening question, ellipsized if cut."""
    if not first_user_text:
        return NEW_CHAT_TITLE
    if len(first_user_text) > TITLE_MAX_CHARS:
        return first_user_text[:TITLE_MAX_CHARS] + "..."
    return first_user_text


@dataclass(frozen=True)
class ChatSession:
    id: str
    title: str = NEW_CHAT_TITLE
    messages: tuple[Message, ...] = ()
    last_modified: datetime = field(default_factory=datetime.now)
    archived: bool = False
    escalation_sent: bool = False

    def with_message(self, message: Message) -> "ChatSession":
        return replace(
            self,
            messages=self.messages + (message,),
            last_modified=datetime.now(),
        )

    def user_questions(self) -> list[str]:
        return [m.content for m in self.messages if m.role == Role.USER]


@dataclass(frozen=True)
class StepTiming:
    base_delay_ms: int
    jitter_ms: int


@dataclass(frozen=True)
class ReasoningPlan:
    show_reasoning: bool
    steps: tuple[str, ...]
    timing: StepTiming
    token_budget: int


@dataclass(frozen=True)
class EscalationOutcome:
    needs_escalation: bool
    trigger: Optional[str] = None


@dataclass
class TurnResult:
    session_id: str
    message: Optional[Message] = None
    suggestions: list[str] = field(default_factory=list)
    escalation: EscalationOutcome = field(
        default_factory=lambda: EscalationOutcome(False)
    )
    failed: bool = False
    cancelled: bool = False


@dataclass
class LLMSettings:
    model: str
    temperature: float = 0.7
    max_tokens: int = 220
