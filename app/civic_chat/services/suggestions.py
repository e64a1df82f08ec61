"""
Purpose: Follow-up questions ("Related") under the latest reply.
Topic comes from the reply text; candidates the user already asked (same
leading three words) are filtered out.
"""

from __future__ import annotations
import re
from typing import Sequence

# (bucket, keywords, candidates) in priority order
SUGGESTION_BUCKETS: list[tuple[str, tuple[str, ...], tuple[str, ...]]] = [
    (
        "policy",
        ("policy", "policies"),
        (
            "What's the timeline for policy implementation?",
            "How can residents provide input on these policies?",
            "How are these policies being funded?",
        ),
    ),
    (
        "housing",
        ("housing", "development", "affordable"),
        (
            "What's the timeline for new housing developments?",
            "Who qualifies for affordable housing programs?",
            "How will new housing impact traffic?",
        ),
    ),
    (
        "transportation",
        ("transport", "bike", "shuttle"),
        (
            "What's the cost of these transportation projects?",
            "What safety measures are included in bike lane designs?",
            "When will shuttle service be expanded?",
        ),
    ),
    (
        "park",
        ("great park", "park"),
        (
            "What's the construction timeline for Great Park phases?",
            "How is Great Park development funded?",
            "What recreational programs will be available?",
        ),
    ),
    (
        "budget",
        ("budget", "cost", "funding"),
        (
            "How can residents track budget spending?",
            "Will this impact local taxes?",
            "Are there alternative funding sources being considered?",
        ),
    ),
]

COMMUNITY_SUGGESTIONS = (
    "When are the next community meetings?",
    "What are your top 3 priorities for 2025?",
    "How can students get more involved in local government?",
)

GENERAL_SUGGESTIONS = (
    "What challenges do you foresee with implementation?",
    "How does this compare to other Orange County cities?",
    "What role can local businesses play in this?",
)

_WORD = re.compile(r"[a-z0-9']+")


def _words(text: str) -> list[str]:
    return _WORD.findall((text or "").lower())


def leading_words(text: str, n: int = 3) -> str:
    return " ".join(_words(text)[:n])


def already_asked(candidate: str, previous_questions: Sequence[str]) -> bool:
    key = leading_words(candidate)
    if not key:
        return False
    return any(
        f" {key} " in f" {' '.join(_words(q))} " for q in previous_questions
    )


def topic_bucket(reply: str) -> str:
    lowered = (reply or "").lower()
    for name, keys, _ in SUGGESTION_BUCKETS:
        if any(k in lowered for k in keys):
            return name
    return "community"


def generate_suggestions(
    reply: str,
    previous_questions: Sequence[str],
    *,
    limit: int = 2,
    needs_escalation: bool = False,
) -> list[str]:
    if needs_escalation or "?" in (reply or ""):
        return []

    bucket = topic_bucket(reply)
    candidates = next(
        (c for name, _, c in SUGGESTION_BUCKETS if name == bucket),
        COMMUNITY_SUGGESTIONS,
    )

    out = [c for c in candidates if not already_asked(c, previous_questions)]
    if not out:
        out = [c for c in GENERAL_SUGGESTIONS if not already_asked(c, previous_questions)]
    return out[:limit]
