"""
Purpose: Pure heuristics over the raw question text.
Decides the token budget, whether to show the scripted reasoning phase,
which canned steps to show and how long each one lingers.

Nothing here touches real data; the steps are labels only.

Testing: Pure functions; inject random.Random for the padding.
"""

from __future__ import annotations
import random
import re
from typing import Optional

from ..models import ReasoningPlan, ReasoningPolicy, StepTiming

# ---------------------------------------------------------------------------
# Token budget
# ---------------------------------------------------------------------------

LARGE_BUDGET = 300
SMALL_BUDGET = 150
DEFAULT_BUDGET = 220
SHORT_QUESTION_CHARS = 30

LARGE_MARKERS = [
    "comprehensive",
    "detailed",
    "explain",
    "overview",
    "tell me about",
    "describe",
    "what are your plans",
    "plan",
    "policy",
    "policies",
    "strategy",
]
SMALL_MARKERS = re.compile(r"\b(yes|no|when|where)\b")

# ---------------------------------------------------------------------------
# Reasoning visibility
# ---------------------------------------------------------------------------

MIN_REASONING_CHARS = 6

GREETINGS = [
    "hi",
    "hello",
    "hey",
    "thanks",
    "thank you",
    "ok",
    "okay",
    "cool",
    "got it",
    "good morning",
    "good afternoon",
    "good evening",
    "bye",
]

COMPLEX_KEYWORDS = [
    "comprehensive",
    "detailed",
    "explain",
    "overview",
    "describe",
    "tell me about",
    "policy",
    "policies",
    "strategy",
    "plan",
    "goal",
    "priorit",
    "housing",
    "affordable",
    "transportation",
    "transit",
    "bike",
    "shuttle",
    "traffic",
    "great park",
    "development",
    "budget",
    "funding",
    "cost",
    "student",
    "youth",
    "education",
    "background",
    "experience",
    "safety",
]

COMPREHENSIVE_MARKERS = [
    "comprehensive",
    "detailed",
    "explain",
    "overview",
    "tell me about",
    "describe",
]

MEANINGFUL_WORDS = {
    "william",
    "go",
    "district",
    "great",
    "park",
    "housing",
    "transportation",
    "bike",
    "lanes",
    "irvine",
    "council",
    "policy",
    "what",
    "how",
    "why",
    "when",
    "where",
    "goals",
    "priorities",
    "plans",
    "student",
    "youth",
}
_ALPHA_WORD = re.compile(r"^[a-z]+$")

# ---------------------------------------------------------------------------
# Canned step catalog
# ---------------------------------------------------------------------------

OPENING_STEP = "Searching District 2 resident database..."

# (bucket, keywords, steps) in priority order
STEP_BUCKETS: list[tuple[str, tuple[str, ...], tuple[str, ...]]] = [
    (
        "background",
        ("william", "background", "experience"),
        (
            "Accessing City Council meeting archives...",
            "Retrieving William Go's background information...",
        ),
    ),
    (
        "development",
        ("great park", "development"),
        (
            "Connecting to Irvine planning department records...",
            "Analyzing Great Park development plans...",
        ),
    ),
    (
        "housing",
        ("housing", "affordable"),
        (
            "Loading housing affordability data for Irvine...",
            "Retrieving housing policy positions...",
            "Analyzing zoning regulation updates...",
        ),
    ),
    (
        "transportation",
        ("transportation", "bike", "transit"),
        (
            "Connecting to Irvine transit planning documents...",
            "Accessing transportation initiatives...",
            "Loading traffic pattern studies...",
        ),
    ),
    (
        "youth",
        ("student", "youth", "education"),
        (
            "Analyzing student concerns across District 2...",
            "Fetching community feedback from District 2 residents...",
        ),
    ),
    (
        "goals",
        ("goal", "priority", "priorities", "plan"),
        (
            "Reviewing William Go's policy positions...",
            "Connecting to Orange County planning database...",
        ),
    ),
    (
        "budget",
        ("cost", "budget", "funding"),
        (
            "Searching budget allocation records...",
            "Accessing environmental impact assessments...",
        ),
    ),
]

FALLBACK_STEPS = (
    "Gathering District 2 updates...",
    "Connecting to Irvine community data...",
)

RESERVE_STEPS = (
    "Retrieving demographic analysis for District 2...",
    "Searching community event participation data...",
    "Fetching public safety incident reports...",
    "Accessing environmental impact assessments...",
)


def _norm(question: str) -> str:
    return (question or "").strip().lower()


def token_budget(question: str) -> int:
    """Large for explanation/strategy/policy questions, small for quick ones."""
    q = _norm(question)
    if any(m in q for m in LARGE_MARKERS):
        return LARGE_BUDGET
    if SMALL_MARKERS.search(q) or len(q) < SHORT_QUESTION_CHARS:
        return SMALL_BUDGET
    return DEFAULT_BUDGET


def is_greeting(question: str) -> bool:
    q = re.sub(r"[^\w\s']", "", _norm(question)).strip()
    if not q:
        return False
    for g in GREETINGS:
        if q == g or q.startswith(g + " "):
            return True
    return False


def should_show_reasoning(
    question: str, policy: ReasoningPolicy = ReasoningPolicy.KEYWORD
) -> bool:
    q = _norm(question)
    if len(q) < MIN_REASONING_CHARS:
        return False

    if policy == ReasoningPolicy.MEANINGFUL_WORDS:
        return any(
            len(w) > 2 and (w in MEANINGFUL_WORDS or _ALPHA_WORD.match(w))
            for w in q.split(" ")
        )

    if is_greeting(q):
        return False
    return any(k in q for k in COMPLEX_KEYWORDS)


def reasoning_steps(
    question: str,
    *,
    rng: Optional[random.Random] = None,
    min_steps: int = 3,
) -> list[str]:
    """
    Opening step, then every matching bucket's steps in bucket order.
    Falls back to a two-step default when no bucket matches, then pads
    with reserve steps (random, no duplicates) up to min_steps.
    """
    rng = rng or random.Random()
    q = _norm(question)

    steps = [OPENING_STEP]
    for _, keys, bucket_steps in STEP_BUCKETS:
        if any(k in q for k in keys):
            for step in bucket_steps:
                if step not in steps:
                    steps.append(step)

    if len(steps) == 1:
        steps.extend(FALLBACK_STEPS)

    while len(steps) < min_steps:
        remaining = [s for s in RESERVE_STEPS if s not in steps]
        if not remaining:
            break
        steps.append(rng.choice(remaining))

    return steps


def step_timing(question: str) -> StepTiming:
    q = _norm(question)
    if is_greeting(q) or len(q) < SHORT_QUESTION_CHARS // 2:
        return StepTiming(300, 200)
    if any(m in q for m in COMPREHENSIVE_MARKERS):
        return StepTiming(1800, 700)
    if any(k in q for k in COMPLEX_KEYWORDS):
        return StepTiming(1000, 500)
    return StepTiming(600, 300)


def build_plan(
    question: str,
    *,
    policy: ReasoningPolicy = ReasoningPolicy.KEYWORD,
    rng: Optional[random.Random] = None,
    min_steps: int = 3,
) -> ReasoningPlan:
    show = should_show_reasoning(question, policy)
    steps = reasoning_steps(question, rng=rng, min_steps=min_steps) if show else []
    return ReasoningPlan(
        show_reasoning=show,
        steps=tuple(steps),
        timing=step_timing(question),
        token_budget=token_budget(question),
    )
