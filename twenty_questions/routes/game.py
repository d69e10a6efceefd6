"""Game action endpoints.

Each endpoint hands its body to the TurnOrchestrator stored on app.state and
translates domain errors into HTTP errors.
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from fastapi import APIRouter, HTTPException, Request

from twenty_questions.errors import (
    ConfigurationError,
    ConflictError,
    GameRuleError,
    SessionNotFound,
    UpstreamError,
)
from twenty_questions.orchestrator import TurnOrchestrator

from .models import (
    AskQuestionBody,
    FinalizeResultBody,
    MakeGuessBody,
    SessionBody,
    StartGameBody,
    SubmitAnswerBody,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _orchestrator(request: Request) -> TurnOrchestrator:
    return request.app.state.orchestrator


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, SessionNotFound):
        return HTTPException(404, str(e))
    if isinstance(e, ConflictError):
        return HTTPException(409, str(e))
    if isinstance(e, UpstreamError):
        return HTTPException(502, str(e))
    return HTTPException(400, str(e))


async def _run(action: str, work: Coroutine[Any, Any, dict[str, Any]]) -> dict[str, Any]:
    try:
        return await asyncio.shield(work)
    except (ConfigurationError, UpstreamError) as e:
        logger.error("%s failed: %s", action, e)
        raise _http_error(e)
    except GameRuleError as e:
        logger.info("%s rejected: %s", action, e)
        raise _http_error(e)


@router.post("/start-game")
async def start_game(body: StartGameBody, request: Request):
    """Start a guess game (AI holds the secret) or an ai_guessing round."""
    return await _run("start-game", _orchestrator(request).start_game(body.category, body.mode))


@router.post("/ask-question")
async def ask_question(body: AskQuestionBody, request: Request):
    """Ask the game master a yes/no question."""
    return await _run(
        "ask-question", _orchestrator(request).ask_question(body.session_id, body.question)
    )


@router.post("/get-hint")
async def get_hint(body: SessionBody, request: Request):
    """Spend a hint (and a question) in guess mode."""
    return await _run("get-hint", _orchestrator(request).get_hint(body.session_id))


@router.post("/make-guess")
async def make_guess(body: MakeGuessBody, request: Request):
    """Make a final guess; ends the game either way."""
    return await _run("make-guess", _orchestrator(request).make_guess(body.session_id, body.guess))


@router.post("/submit-answer")
async def submit_answer(body: SubmitAnswerBody, request: Request):
    """Answer the AI's question in ai_guessing mode."""
    return await _run(
        "submit-answer",
        _orchestrator(request).submit_answer(body.session_id, body.answer, body.answer_type),
    )


@router.post("/finalize-result")
async def finalize_result(body: FinalizeResultBody, request: Request):
    """Record whether the AI guessed the human's item."""
    return await _run(
        "finalize-result",
        _orchestrator(request).finalize_result(body.session_id, body.result, body.secret_item),
    )


@router.post("/quit")
async def quit_game(body: SessionBody, request: Request):
    """Leave the game and reveal the secret."""
    return await _run("quit", _orchestrator(request).quit(body.session_id))


@router.get("/sessions/{session_id}")
async def get_session(session_id: str, request: Request):
    """Session state with its gameplay messages (secret hidden while a guess game runs)."""
    try:
        return _orchestrator(request).get_state(session_id)
    except GameRuleError as e:
        raise _http_error(e)
