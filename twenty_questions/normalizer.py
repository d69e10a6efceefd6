"""Answer normalizer - turns free-form model output into a strict game signal.

Primary parse: the first brace-delimited JSON object in the reply, e.g.
    {"answer": "Yes", "is_guess": true}
Fallback parse (no JSON, or JSON that won't load): classify the trimmed raw
text directly, and treat it as a confirmed guess only when the answer is
"Yes" and the text carries a correctness marker.

The decision is made by classify_reply(), a pure function returning one of

    Direct(value)       - an ordinary answer from the fixed vocabulary
    GuessConfirmed()    - the player named the secret
    Malformed(raw)      - nothing recognisable; raw is kept for display

A reply that claims is_guess with a non-"Yes" answer breaks the backend's
output contract. It is logged as a validation error and never reported as a
win.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass

from twenty_questions.models import ANSWER_VOCABULARY

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{[^}]*\}")

CORRECTNESS_MARKERS = ("correct", "you got it", "that's right", "exactly")

TEMPORAL_WORDS = ("currently", "still", "now", "recent", "lately", "nowadays", "today")
STATUS_WORDS = ("active", "retired", "playing", "current", "present", "ongoing")
SUPERLATIVE_WORDS = (
    "champion", "winner", "best", "top", "leading", "fastest", "largest", "most", "highest",
)
FACT_CHECK_TRIGGERS = (
    "verify", "confirm", "check", "sure", "certain", "correct",
    "real", "actual", "true", "false", "wrong", "right",
)

SEARCH_MARKER = "SEARCH FUNCTION CALLED"

HINT_MAX_LENGTH = 200
_HINT_LABEL = re.compile(r"^(Hint:|Answer:|Here's a hint:|The hint is:)\s*", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Tagged classification
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Direct:
    value: str
    kind: str = "direct"


@dataclass(frozen=True)
class GuessConfirmed:
    kind: str = "guess_confirmed"

    @property
    def value(self) -> str:
        return "Yes"


@dataclass(frozen=True)
class Malformed:
    raw: str
    kind: str = "malformed"

    @property
    def value(self) -> str:
        return self.raw


Answer = Direct | GuessConfirmed | Malformed


@dataclass(frozen=True)
class GameReply:
    """Normalized reply for one guess-mode turn."""

    answer: str
    is_guess: bool = False
    contract_violation: bool = False


# ---------------------------------------------------------------------------
# Cleaning
# ---------------------------------------------------------------------------

def clean_answer(text: str) -> str:
    """Map text onto Yes / No / Sometimes / Not sure, or truncate to 50 chars."""
    cleaned = str(text).strip()
    lower = cleaned.lower()

    # "not sure" starts with "no"
    if "not sure" in lower or "unsure" in lower:
        return "Not sure"
    if lower.startswith("yes"):
        return "Yes"
    if lower.startswith("no"):
        return "No"
    if lower.startswith("sometimes"):
        return "Sometimes"

    words = lower.split()
    first = words[0].strip(".,!\"'") if words else ""
    if first in ("yes", "no", "sometimes"):
        return first.capitalize()

    return cleaned[:50]


def _extract_json(raw: str) -> dict | None:
    match = _JSON_OBJECT.search(raw)
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _truthy(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True


def has_correctness_marker(raw: str) -> bool:
    lower = raw.lower()
    return any(marker in lower for marker in CORRECTNESS_MARKERS)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_game_response(raw: str) -> GameReply:
    data = _extract_json(raw)
    if data is not None and "answer" in data:
        answer = clean_answer(data.get("answer") or "")
        claimed_guess = _truthy(data.get("is_guess"))
    else:
        answer = clean_answer(raw.strip())
        claimed_guess = answer == "Yes" and has_correctness_marker(raw)

    if claimed_guess and answer != "Yes":
        logger.error(
            "validation error: is_guess=true with answer %r; raw=%r", answer, raw[:200]
        )
        return GameReply(answer=answer, is_guess=False, contract_violation=True)

    return GameReply(answer=answer, is_guess=claimed_guess)


def classify_reply(raw: str) -> Answer:
    reply = parse_game_response(raw)
    if reply.is_guess:
        return GuessConfirmed()
    if reply.answer in ANSWER_VOCABULARY:
        return Direct(reply.answer)
    return Malformed(reply.answer or raw.strip()[:50])


def parse_hint_response(raw: str) -> str:
    data = _extract_json(raw)
    hint = raw
    if data is not None:
        hint = data.get("answer") or data.get("hint") or data.get("text") or raw

    hint = _HINT_LABEL.sub("", str(hint).strip())
    hint = re.sub(r"^[\"']|[\"']$", "", hint)
    hint = re.sub(r"\n+", " ", hint).strip()

    if len(hint) > HINT_MAX_LENGTH:
        hint = hint[:HINT_MAX_LENGTH].strip() + "..."
    return hint


# ---------------------------------------------------------------------------
# Validation (logging only)
# ---------------------------------------------------------------------------

def is_fact_sensitive(question: str) -> bool:
    """Temporal, status or superlative questions whose answer may have changed."""
    lower = question.lower()
    return any(
        word in lower for word in TEMPORAL_WORDS + STATUS_WORDS + SUPERLATIVE_WORDS
    )


def validate_game_response(
    reply: GameReply,
    raw: str,
    question: str,
    secret_item: str | None,
    searched: bool = False,
) -> list[str]:
    """Log suspicious replies. Returns the names of the checks that fired."""
    fired: list[str] = []
    lower_q = question.lower()

    if reply.contract_violation:
        fired.append("guess_contract")

    if is_fact_sensitive(question) and not (searched or SEARCH_MARKER in raw):
        fired.append("accuracy")
        logger.warning(
            "accuracy warning: fact-sensitive question answered without search: "
            "question=%r answer=%r secret=%r",
            question, reply.answer, secret_item,
        )

    if reply.answer not in ANSWER_VOCABULARY:
        fired.append("format")
        logger.warning(
            "format warning: non-standard answer %r for question=%r raw=%r",
            reply.answer, question, raw[:200],
        )

    if any(trigger in lower_q for trigger in FACT_CHECK_TRIGGERS):
        fired.append("fact_check")
        logger.info(
            "fact-check opportunity: question=%r answer=%r", question, reply.answer
        )

    return fired
