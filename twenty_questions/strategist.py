"""Question strategist for ai_guessing mode.

Picks the next question the AI asks:

  1. With three or fewer candidates left, confirm the best one ("Is it X?").
  2. Otherwise take the canned category question with the highest estimated
     information gain that hasn't effectively been asked yet.
  3. When nothing canned applies, ask the model (low temperature), with the
     categorized facts and the list of already-asked questions in the prompt.

A model-authored question that breaks the one-yes/no-question format, or
repeats an earlier question, gets exactly one corrective regeneration. A
second answer with format problems is used as-is; a second repeat is replaced
by a fallback question nobody has asked yet.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass

from twenty_questions import prompts
from twenty_questions.categories import is_people_category
from twenty_questions.facts import categorize_facts
from twenty_questions.llm.base import LLMProvider
from twenty_questions.models import ChatMessage, FactLedger, LLMRequest, PossibilitySpace
from twenty_questions.similarity import is_redundant

logger = logging.getLogger(__name__)

QUESTION_TEMPERATURE = 0.05
QUESTION_MAX_TOKENS = 60

FALLBACK_QUESTION = "Is it commonly found in homes?"


# ── Phases ───────────────────────────────────────────────


def game_phase(question_number: int) -> str:
    if question_number <= 5:
        return "broad categorization"
    if question_number <= 12:
        return "property identification"
    if question_number <= 18:
        return "narrowing"
    return "final guesses"


# ── Information gain ─────────────────────────────────────


def elimination_fraction(question: str) -> float:
    q = question.lower()
    if "living" in q or "alive" in q:
        return 0.5
    if "size" in q or "small" in q or "large" in q or "big" in q:
        return 0.4
    if "edible" in q:
        return 0.3
    return 0.25


def information_gain(remaining: int, question: str) -> float:
    """How close the question comes to halving `remaining` candidates, 0..0.5."""
    if remaining <= 1:
        return 0.0
    estimated = math.floor(remaining * elimination_fraction(question))
    optimal = remaining / 2
    return max(0.0, optimal - abs(estimated - optimal)) / remaining


# ── Canned candidates ────────────────────────────────────


# (question, keywords that mean it was already covered)
_CANDIDATES: dict[str, tuple[tuple[str, tuple[str, ...]], ...]] = {
    "animals": (
        ("Is it a mammal?", ("mammal",)),
        ("Is it commonly kept as a pet?", ("pet", "domesticated")),
        ("Does it live in the wild?", ("wild",)),
        ("Does it eat meat?", ("carnivore", "meat")),
        ("Can it fly?", ("fly",)),
        ("Does it live in water?", ("water", "aquatic")),
    ),
    "food": (
        ("Is it sweet?", ("sweet",)),
        ("Is it a fruit?", ("fruit",)),
        ("Is it typically cooked before eating?", ("cooked", "prepared")),
        ("Is it a type of meat?", ("meat",)),
        ("Is it a vegetable?", ("vegetable",)),
        ("Is it made from grains?", ("grain",)),
    ),
    "objects": (
        ("Is it electronic?", ("electronic",)),
        ("Is it furniture?", ("furniture",)),
        ("Is it a tool?", ("tool",)),
        ("Can you hold it in your hand?", ("hold", "handheld")),
        ("Is it made of metal?", ("metal",)),
        ("Is it commonly found in homes?", ("home", "house")),
    ),
    "places": (
        ("Is it indoors?", ("indoor", "outdoor", "inside")),
        ("Is it man-made?", ("man-made", "natural", "built")),
        ("Do people go there to learn?", ("learn", "school", "education")),
        ("Is it near water?", ("water", "beach", "sea")),
    ),
    "people": (
        ("Are they male?", ("male", "man", "woman")),
        ("Are they still active?", ("active", "retired", "currently")),
        ("Are they from Europe?", ("europe",)),
        ("Are they from Asia?", ("asia",)),
        ("Are they from the Americas?", ("america",)),
    ),
}

_DEFAULT_CANDIDATES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Is it living?", ("living", "alive")),
    ("Is it man-made?", ("man-made",)),
    ("Is it larger than a car?", ("larger", "size")),
)


def _candidate_key(category: str) -> str:
    key = category.strip().lower()
    if is_people_category(key):
        return "people"
    return key


def _covered(keywords: tuple[str, ...], asked_words: set[str]) -> bool:
    # prefix match so "mammals" covers "mammal" but "germany" doesn't cover "man"
    return any(w.startswith(k) for w in asked_words for k in keywords)


def candidate_questions(category: str, asked: list[str]) -> list[str]:
    asked_words = {w for q in asked for w in re.findall(r"[a-z][a-z'-]*", q.lower())}
    pool = _CANDIDATES.get(_candidate_key(category), _DEFAULT_CANDIDATES)
    return [
        question
        for question, keywords in pool
        if not _covered(keywords, asked_words)
        and not is_redundant(question, asked)
    ]


def suggest_question(space: PossibilitySpace, asked: list[str]) -> str | None:
    remaining = len(space.remaining)
    if 0 < remaining <= 3:
        for item in space.top_candidates(remaining):
            q = f"Is it {item}?"
            if not is_redundant(q, asked):
                return q

    best: str | None = None
    best_gain = -1.0
    for question in candidate_questions(space.category, asked):
        gain = information_gain(remaining, question)
        if gain > best_gain:
            best, best_gain = question, gain
    return best


def fallback_question(space: PossibilitySpace, asked: list[str]) -> str:
    """A question that repeats nothing in `asked`, for when the model can't supply one."""
    pool = [FALLBACK_QUESTION, *(q for q, _ in _DEFAULT_CANDIDATES)]
    pool += [f"Is it {item}?" for item in space.top_candidates(len(space.remaining))]
    for question in pool:
        if not is_redundant(question, asked):
            return question
    logger.warning("every fallback question was already asked")
    return FALLBACK_QUESTION


# ── Guessing thresholds ──────────────────────────────────


@dataclass(frozen=True)
class GuessThresholds:
    min_questions: int
    max_remaining: int
    late_game: int


def _thresholds(category: str) -> GuessThresholds:
    key = category.strip().lower()
    if key == "world leaders":
        return GuessThresholds(8, 3, 15)
    if is_people_category(key):
        return GuessThresholds(7, 3, 14)
    return GuessThresholds(6, 2, 12)


def should_start_guessing(space: PossibilitySpace, question_count: int) -> bool:
    remaining = len(space.remaining)
    if remaining == 1:
        return True
    if remaining == 0:
        return False
    t = _thresholds(space.category)
    if question_count < t.min_questions:
        return False
    if remaining <= t.max_remaining:
        return True
    return question_count >= t.late_game and remaining <= 5


# ── Format validation ────────────────────────────────────


_STANDALONE_OR = re.compile(r"\bor\b", re.IGNORECASE)
_SIZE_COMPARISON = re.compile(
    r"\b(bigger|smaller|larger|heavier|lighter|taller|shorter)\b.*\bor\b", re.IGNORECASE
)

# Categories whose questions must never cross into another domain.
_CONTAMINATION: dict[str, tuple[str, ...]] = {
    "animals": (
        r"are they human", r"do they have a job", r"are they (famous|married|retired)",
        r"are they electronic", r"made of (metal|plastic|wood)", r"need (electricity|batteries)",
    ),
    "objects": (
        r"\bare they alive\b", r"\bdo they (eat|breathe|sleep|reproduce)\b",
        r"\bare they (male|female|born)\b", r"\bare they (wild|predators|domesticated)\b",
    ),
    "people": (
        r"\bdo they (hibernate|migrate)\b", r"\bare they (domesticated|wild|mammals)\b",
        r"\bdo they have (fur|claws)\b", r"\bare they electronic\b", r"\bcan they fly\b",
    ),
}


def validate_question_format(question: str) -> list[str]:
    """Problems with a generated question; empty when it is a clean yes/no question."""
    problems: list[str] = []
    q = question.strip()
    if not q:
        return ["empty"]
    if q.count("?") > 1:
        problems.append("multiple questions")
    if _SIZE_COMPARISON.search(q):
        problems.append("comparison")
    elif _STANDALONE_OR.search(q):
        problems.append("either/or")
    return problems


def category_violation(question: str, category: str) -> str | None:
    key = _candidate_key(category)
    lower = question.lower()
    for pattern in _CONTAMINATION.get(key, ()):
        if re.search(pattern, lower):
            return pattern
    return None


def clean_question(text: str) -> str:
    """First line of the model reply, stripped of numbering and quotes."""
    line = next((ln for ln in text.strip().splitlines() if ln.strip()), "")
    line = re.sub(r"^\s*(?:Q?\d+[.:)]|Question\s*\d*:)\s*", "", line, flags=re.IGNORECASE)
    return line.strip().strip("\"'").strip()


# ── Generation ───────────────────────────────────────────


class QuestionStrategist:
    def __init__(self, max_questions: int = 20) -> None:
        self.max_questions = max_questions

    def propose(self, space: PossibilitySpace, asked: list[str]) -> str | None:
        return suggest_question(space, asked)

    async def generate_question(
        self,
        provider: LLMProvider,
        space: PossibilitySpace,
        ledger: FactLedger,
        asked: list[str],
        question_number: int,
    ) -> str:
        """Next question for the AI to ask; canned if possible, else model-authored."""
        canned = self.propose(space, asked)
        if canned is not None:
            logger.debug("strategist canned question=%r", canned)
            return canned

        system_prompt = prompts.ai_guessing_prompt(
            category=space.category,
            facts=categorize_facts(ledger),
            asked=asked,
            question_number=question_number,
            phase=game_phase(question_number),
            max_questions=self.max_questions,
            should_guess=should_start_guessing(space, question_number - 1),
            candidates=space.top_candidates(5) if len(space.remaining) <= 10 else None,
        )
        messages = [ChatMessage(
            role="user",
            content=f"Based on my previous answers, ask your next yes/no question (question {question_number}).",
        )]
        question = await self._ask(provider, system_prompt, messages)

        problems = self._problems(question, asked, space.category)
        if problems:
            logger.warning("regenerating question %r: %s", question, ", ".join(problems))
            messages += [
                ChatMessage(role="assistant", content=question),
                ChatMessage(role="user", content=prompts.FORMAT_CORRECTION),
            ]
            retry = await self._ask(provider, system_prompt, messages)
            if retry:
                question = retry
            leftover = self._problems(question, asked, space.category)
            if question and is_redundant(question, asked):
                logger.warning("model repeated %r twice, using a fallback question", question)
                return fallback_question(space, asked)
            if leftover:
                logger.warning("using question %r despite: %s", question, ", ".join(leftover))

        return question or fallback_question(space, asked)

    def _problems(self, question: str, asked: list[str], category: str) -> list[str]:
        problems = validate_question_format(question)
        duplicate = is_redundant(question, asked) if question else None
        if duplicate:
            problems.append(f"repeats {duplicate!r}")
        if question and category_violation(question, category):
            problems.append("outside category")
        return problems

    async def _ask(
        self, provider: LLMProvider, system_prompt: str, messages: list[ChatMessage]
    ) -> str:
        response = await provider.generate_response(LLMRequest(
            messages=list(messages),
            system_prompt=system_prompt,
            temperature=QUESTION_TEMPERATURE,
            max_tokens=QUESTION_MAX_TOKENS,
        ))
        return clean_question(response.content)
