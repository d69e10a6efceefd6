"""Possibility-space builder.

Narrows a category's seed items using the fact ledger:

  * a "No" to a trait question removes items the knowledge layer says have
    that trait ("Is it a mammal?" → No removes the mammals);
  * a firm "Yes" to a trait question removes items known to lack it
    ("Is it a mammal?" → Yes removes the snake);
  * a "No" to "Is it <item>?" removes that item;
  * each remaining item gets a fit score of 1.0, minus 0.2 for every
    confirmed fact it is known to contradict, floored at 0.

Facts the knowledge layer knows nothing about cost nothing.
"""

from __future__ import annotations

import logging
import re

from twenty_questions.knowledge import ItemKnowledge, KeywordItemKnowledge
from twenty_questions.models import FactLedger, PossibilitySpace

logger = logging.getLogger(__name__)

FIT_PENALTY = 0.2
FIRM_CONFIDENCE = 0.9  # "probably yes" only lowers the fit score

_DIRECT_GUESS = re.compile(r"^\s*is (?:it|this|that|they|he|she)\s+(?:an?\s+|the\s+)?(.+?)\s*\??\s*$", re.IGNORECASE)

_default_knowledge = KeywordItemKnowledge()


def guessed_item(question: str) -> str | None:
    """The item named by an "Is it <item>?" question, lowercased."""
    m = _DIRECT_GUESS.match(question)
    return m.group(1).strip().lower() if m else None


def _is_eliminated(item: str, ledger: FactLedger, knowledge: ItemKnowledge) -> bool:
    item_lower = item.lower()
    for fact in ledger.confirmed_no:
        if guessed_item(fact.question) == item_lower:
            return True
        if knowledge.matches(item, fact.question, expected=False) is False:
            return True
    for fact in ledger.confirmed_yes:
        if fact.confidence < FIRM_CONFIDENCE:
            continue
        if knowledge.matches(item, fact.question, expected=True) is False:
            return True
    return False


def fit_score(item: str, ledger: FactLedger, knowledge: ItemKnowledge) -> float:
    score = 1.0
    for fact in ledger.confirmed_yes:
        if knowledge.matches(item, fact.question, expected=True) is False:
            score -= FIT_PENALTY
    for fact in ledger.confirmed_no:
        if knowledge.matches(item, fact.question, expected=False) is False:
            score -= FIT_PENALTY
    return round(max(0.0, score), 4)


def build_possibility_space(
    category: str,
    ledger: FactLedger,
    items: list[str],
    knowledge: ItemKnowledge | None = None,
) -> PossibilitySpace:
    knowledge = knowledge or _default_knowledge
    remaining = [i for i in items if not _is_eliminated(i, ledger, knowledge)]
    remaining_set = set(remaining)
    eliminated = [i for i in items if i not in remaining_set]

    space = PossibilitySpace(
        category=category,
        total_items=len(items),
        eliminated=eliminated,
        remaining=remaining,
        confidence_scores={i: fit_score(i, ledger, knowledge) for i in remaining},
    )
    logger.debug(
        "possibility space category=%s total=%d remaining=%d",
        category, len(items), len(remaining),
    )
    return space
