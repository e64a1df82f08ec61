"""
Purpose: Escalation side channel (forward a question to the human team).
The default sink only records and logs the hand-off; a real deployment
plugs in its own EscalationSink.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import datetime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Handoff:
    question: str
    context: str
    created_at: datetime = field(default_factory=datetime.now)


class LoggingEscalationSink:
    def __init__(self, team_name: str = "the team") -> None:
        self.team_name = team_name
        self.sent: list[Handoff] = []

    def escalate(self, question: str, context: str) -> bool:
        if not (question or "").strip():
            return False
        self.sent.append(Handoff(question=question.strip(), context=context))
        logger.info("Forwarded question to %s: %r", self.team_name, question.strip())
        return True


def render_context(messages, max_chars: int = 2000) -> str:
    """Plain transcript of the conversation for the human team."""
    lines = []
    for m in messages:
        who = "Resident" if m.role.value == "user" else "Assistant"
        content = (m.content or "").strip()
        if content:
            lines.append(f"{who}: {content}")
    text = "\n\n".join(lines)
    if len(text) <= max_chars:
        return text
    return "…" + text[-(max_chars - 1):]
