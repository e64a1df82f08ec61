from __future__ import annotations

import os
from dataclasses import dataclass

from .models import EscalationPolicy, ReasoningPolicy

# ---------------------------------------------------------------------------
# App identity
# ---------------------------------------------------------------------------

APP_NAME = "Civic Chat"
APP_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Completion endpoint
#
# The credential is never embedded here. It comes from the user (sidebar)
# or from OPENAI_API_KEY at startup.
# ---------------------------------------------------------------------------

DEFAULT_MODEL = "gpt-4.1-2025-04-14"
TEMPERATURE = 0.7
API_KEY_ENV = "OPENAI_API_KEY"
API_KEY_PREFIX = "sk-"

# ---------------------------------------------------------------------------
# Turn pipeline timing (milliseconds)
# ---------------------------------------------------------------------------

PROCESSING_PLACEHOLDER = "Processing your question..."
PROCESSING_DELAY_MS = 500
DEFAULT_REVEAL_MS = 8

APOLOGY_REPLY = (
    "I apologize, I encountered a technical issue. "
    "Please check your API key and try again."
)
EMPTY_REPLY_PLACEHOLDER = "I apologize, I encountered an issue generating a response."

CANONICAL_REFUSAL = (
    "I don't have that specific information right now. "
    "Would you like me to forward your question to my team?"
)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


@dataclass(frozen=True)
class ChatConfig:
    """The one coherent variant the pipeline runs with."""

    model: str = DEFAULT_MODEL
    temperature: float = TEMPERATURE
    escalation_policy: EscalationPolicy = EscalationPolicy.LAST_TURN
    reasoning_policy: ReasoningPolicy = ReasoningPolicy.KEYWORD
    min_steps: int = 3
    suggestion_limit: int = 2
    reveal_interval_ms: int = DEFAULT_REVEAL_MS
    strict_persona: bool = False
    log_level: str = "INFO"

    @property
    def canonical_refusal(self) -> str | None:
        return CANONICAL_REFUSAL if self.strict_persona else None


def load_config() -> ChatConfig:
    """Build ChatConfig from CIVIC_CHAT_* environment variables."""
    return ChatConfig(
        model=os.getenv("CIVIC_CHAT_MODEL", DEFAULT_MODEL).strip() or DEFAULT_MODEL,
        escalation_policy=EscalationPolicy(
            os.getenv("CIVIC_CHAT_ESCALATION_POLICY", "last_turn").strip().lower()
        ),
        reasoning_policy=ReasoningPolicy(
            os.getenv("CIVIC_CHAT_REASONING_POLICY", "keyword").strip().lower()
        ),
        min_steps=max(2, _env_int("CIVIC_CHAT_MIN_STEPS", 3)),
        suggestion_limit=min(3, max(2, _env_int("CIVIC_CHAT_SUGGESTION_LIMIT", 2))),
        reveal_interval_ms=min(
            30, max(8, _env_int("CIVIC_CHAT_REVEAL_MS", DEFAULT_REVEAL_MS))
        ),
        strict_persona=_env_bool("CIVIC_CHAT_STRICT_PERSONA"),
        log_level=os.getenv("CIVIC_CHAT_LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
