"""Cross-turn consistency and accuracy checks for guess mode.

After each answer the validator compares the new (question, answer) pair
with every established fact. A finding is a pair of related questions whose
answers disagree: the same question answered with flipped polarity, or
opposite questions ("still active?" / "retired?") answered the same way.

Findings are logged, never enforced. When the turn went through a web
search, a disagreement is most likely a correction of stale knowledge and is
logged at INFO; otherwise it is logged at WARNING.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from twenty_questions.facts import AnswerPolarity, classify_answer
from twenty_questions.models import FactLedger
from twenty_questions.similarity import relation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConsistencyFinding:
    question: str
    answer: AnswerPolarity
    prior_question: str
    prior_answer: AnswerPolarity
    relation: str  # "same" | "opposite"
    severity: str  # "info" | "warning"


class ConsistencyValidator:
    def check(
        self,
        question: str,
        answer: str,
        ledger: FactLedger,
        searched: bool = False,
    ) -> list[ConsistencyFinding]:
        polarity = classify_answer(answer)
        if polarity is AnswerPolarity.UNCERTAIN:
            return []

        severity = "info" if searched else "warning"
        prior = [(f.question, AnswerPolarity.YES) for f in ledger.confirmed_yes]
        prior += [(f.question, AnswerPolarity.NO) for f in ledger.confirmed_no]

        findings: list[ConsistencyFinding] = []
        for prior_question, prior_polarity in prior:
            rel = relation(question, prior_question)
            if rel is None:
                continue
            conflict = (
                (rel == "same" and prior_polarity is not polarity)
                or (rel == "opposite" and prior_polarity is polarity)
            )
            if conflict:
                findings.append(ConsistencyFinding(
                    question=question,
                    answer=polarity,
                    prior_question=prior_question,
                    prior_answer=prior_polarity,
                    relation=rel,
                    severity=severity,
                ))

        for f in findings:
            log = logger.info if searched else logger.warning
            log(
                "consistency %s: %r answered %s conflicts with %r answered %s (%s)%s",
                f.severity, f.question, f.answer.value, f.prior_question,
                f.prior_answer.value, f.relation,
                " after search, likely a correction" if searched else "",
            )
        return findings
