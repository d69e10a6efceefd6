"""Core domain models.

Sessions and messages are persisted; the fact ledger and possibility space
are derived from the message stream on every turn and never stored.
Pydantic is used for validation and serialisation at every data boundary.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

Mode = Literal["guess", "ai_guessing"]
Status = Literal["active", "won", "lost"]
Role = Literal["system", "user", "assistant"]
MessageType = Literal["question", "answer", "hint", "guess"]
AnswerType = Literal["chip", "text", "voice"]
AnswerValue = Literal["Yes", "No", "Sometimes", "Not sure"]

ANSWER_VOCABULARY: tuple[str, ...] = ("Yes", "No", "Sometimes", "Not sure")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
# Persisted state
# ---------------------------------------------------------------------------

class GameSession(BaseModel):
    """One game. Non-active sessions accept no further turns."""

    id: str = Field(default_factory=_new_id)
    category: str
    mode: Mode = "guess"
    secret_item: str | None = None  # None when the human holds the secret
    status: Status = "active"
    questions_asked: int = Field(default=0, ge=0)
    hints_used: int = Field(default=0, ge=0)
    created_at: str = Field(default_factory=_now)
    updated_at: str = Field(default_factory=_now)

    @property
    def is_active(self) -> bool:
        return self.status == "active"


class Message(BaseModel):
    """A single entry in a session's append-only message stream.

    question_number 0 is the system priming message; 1..20 are gameplay.
    """

    id: str = Field(default_factory=_new_id)
    session_id: str
    role: Role
    content: str
    message_type: MessageType = "question"
    question_number: int = Field(default=0, ge=0)
    created_at: str = Field(default_factory=_now)


# ---------------------------------------------------------------------------
# Derived state
# ---------------------------------------------------------------------------

class Fact(BaseModel):
    question: str
    confidence: float = Field(ge=0.0, le=1.0)
    question_number: int


class UncertainFact(BaseModel):
    question: str
    answer: str
    question_number: int


class FactLedger(BaseModel):
    """Everything established so far, recomputed from history each turn."""

    confirmed_yes: list[Fact] = Field(default_factory=list)
    confirmed_no: list[Fact] = Field(default_factory=list)
    uncertain: list[UncertainFact] = Field(default_factory=list)
    eliminated_categories: list[str] = Field(default_factory=list)

    @property
    def yes_questions(self) -> list[str]:
        return [f.question for f in self.confirmed_yes]

    @property
    def no_questions(self) -> list[str]:
        return [f.question for f in self.confirmed_no]


class PossibilitySpace(BaseModel):
    category: str
    total_items: int
    eliminated: list[str] = Field(default_factory=list)
    remaining: list[str] = Field(default_factory=list)
    confidence_scores: dict[str, float] = Field(default_factory=dict)

    def top_candidates(self, limit: int = 3) -> list[str]:
        """Remaining items ordered by fit score, ties in seed order."""
        ranked = sorted(
            self.remaining,
            key=lambda item: -self.confidence_scores.get(item, 1.0),
        )
        return ranked[:limit]


# ---------------------------------------------------------------------------
# LLM wire-neutral shapes
# ---------------------------------------------------------------------------

Provider = Literal["openai", "anthropic", "mock"]


class LLMConfig(BaseModel):
    provider: Provider
    api_key: str = ""
    model: str = ""
    organization_id: str | None = None
    base_url: str | None = None


class ChatMessage(BaseModel):
    role: Role
    content: str


class FunctionCall(BaseModel):
    name: str
    arguments: str = "{}"  # JSON-encoded


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class LLMRequest(BaseModel):
    messages: list[ChatMessage]
    system_prompt: str | None = None
    temperature: float = 0.7
    max_tokens: int = 500
    functions: list[dict] | None = None
    function_call: str | None = None  # "auto" | "none" | function name


class LLMResponse(BaseModel):
    content: str = ""
    function_call: FunctionCall | None = None
    usage: Usage | None = None
