"""Pydantic request models for API endpoints."""

from pydantic import BaseModel

from twenty_questions.models import Mode


class StartGameBody(BaseModel):
    category: str | None = None
    mode: Mode = "guess"


class SessionBody(BaseModel):
    session_id: str


class AskQuestionBody(BaseModel):
    session_id: str
    question: str


class MakeGuessBody(BaseModel):
    session_id: str
    guess: str


class SubmitAnswerBody(BaseModel):
    session_id: str
    answer: str
    answer_type: str = "text"


class FinalizeResultBody(BaseModel):
    session_id: str
    result: str
    secret_item: str | None = None
