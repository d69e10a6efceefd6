"""Fact extraction from the message stream.

Pairs each question with the answer carrying the same question_number
(assistant asks and user answers in ai_guessing mode; the other way round
in guess mode) and sorts the pair into confirmed_yes / confirmed_no /
uncertain. The ledger is always recomputed from history; it is a pure
function of the messages and does not depend on their order beyond the
question numbers themselves.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass, field

from twenty_questions.models import Fact, FactLedger, Message, UncertainFact

UNCERTAIN_QUALIFIERS = (
    "sometimes", "maybe", "not sure", "unsure", "don't know", "dont know",
    "depends", "unknown",
)
AFFIRMATIVE_WORDS = ("yeah", "yep", "correct", "right")
NEGATIVE_WORDS = ("nope", "wrong", "incorrect")


class AnswerPolarity(enum.Enum):
    YES = "yes"
    NO = "no"
    UNCERTAIN = "uncertain"


def _normalize(text: str) -> str:
    return text.strip().lower().replace("’", "'")


def is_dont_know(answer: str) -> bool:
    """A "Don't know" reply, which does not count toward the question limit."""
    n = _normalize(answer).rstrip(".!")
    return n in ("don't know", "dont know", "i don't know", "i dont know", "unknown")


def classify_answer(answer: str) -> AnswerPolarity:
    n = _normalize(answer)
    if not n or any(q in n for q in UNCERTAIN_QUALIFIERS):
        return AnswerPolarity.UNCERTAIN
    if n.startswith("y"):
        return AnswerPolarity.YES
    if n.startswith("n"):
        return AnswerPolarity.NO
    # "incorrect" contains "correct", so negatives go first
    if any(w in n for w in NEGATIVE_WORDS):
        return AnswerPolarity.NO
    if any(w in n for w in AFFIRMATIVE_WORDS):
        return AnswerPolarity.YES
    return AnswerPolarity.UNCERTAIN


def answer_confidence(answer: str) -> float:
    n = _normalize(answer)
    if "definitely" in n or "absolutely" in n:
        return 1.0
    if "probably" in n or "likely" in n:
        return 0.8
    if "maybe" in n or "sometimes" in n:
        return 0.5
    if "unsure" in n or "don't know" in n:
        return 0.2
    return 0.9


def question_answer_pairs(messages: Iterable[Message]) -> list[tuple[int, str, str]]:
    """(question_number, question, answer) for every answered question, ascending."""
    questions: dict[int, str] = {}
    answers: dict[int, str] = {}
    for msg in messages:
        if msg.question_number <= 0:
            continue
        if msg.message_type == "question":
            questions[msg.question_number] = msg.content
        elif msg.message_type == "answer":
            answers[msg.question_number] = msg.content
    return [
        (n, questions[n], answers[n])
        for n in sorted(questions)
        if n in answers
    ]


def extract_facts(messages: Iterable[Message]) -> FactLedger:
    ledger = FactLedger()
    eliminated: list[str] = []

    for number, question, answer in question_answer_pairs(messages):
        polarity = classify_answer(answer)
        q_lower = question.lower()

        if polarity is AnswerPolarity.YES:
            ledger.confirmed_yes.append(
                Fact(question=question, confidence=answer_confidence(answer), question_number=number)
            )
            if "living" in q_lower or "alive" in q_lower:
                eliminated.append("non-living")
            if "animal" in q_lower:
                eliminated.extend(["plants", "objects"])
        elif polarity is AnswerPolarity.NO:
            ledger.confirmed_no.append(
                Fact(question=question, confidence=answer_confidence(answer), question_number=number)
            )
            if "animal" in q_lower:
                eliminated.append("animals")
        else:
            ledger.uncertain.append(
                UncertainFact(question=question, answer=answer, question_number=number)
            )

    # dedupe, first occurrence wins
    ledger.eliminated_categories = list(dict.fromkeys(eliminated))
    return ledger


def asked_questions(messages: Iterable[Message]) -> list[str]:
    """Gameplay questions in question order, whoever asked them."""
    asked = {
        m.question_number: m.content
        for m in messages
        if m.message_type == "question" and m.question_number > 0
    }
    return [asked[n] for n in sorted(asked)]


# ---------------------------------------------------------------------------
# Prompt-side grouping
# ---------------------------------------------------------------------------

@dataclass
class CategorizedFacts:
    """Ledger regrouped for prompt framing: uncertain answers split in two."""

    yes: list[str] = field(default_factory=list)
    no: list[str] = field(default_factory=list)
    maybe: list[str] = field(default_factory=list)
    unknown: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.yes or self.no or self.maybe or self.unknown)


def categorize_facts(ledger: FactLedger) -> CategorizedFacts:
    grouped = CategorizedFacts(yes=ledger.yes_questions, no=ledger.no_questions)
    for fact in ledger.uncertain:
        n = _normalize(fact.answer)
        if "don't know" in n or "dont know" in n or "unknown" in n or "unsure" in n or "not sure" in n:
            grouped.unknown.append(fact.question)
        else:
            grouped.maybe.append(fact.question)
    return grouped
