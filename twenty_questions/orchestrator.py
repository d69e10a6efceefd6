"""Turn orchestrator - one method per game action.

Every call follows the same shape:

    1. load the session and its full message history from storage
    2. rebuild derived state (fact ledger, possibility space) from history
    3. do the LLM work under a per-turn time budget
       (at most one web-search round-trip)
    4. commit the new messages together with the counter/status update
       in a single storage write

Nothing is held in memory between turns. If step 3 fails or times out,
step 4 never happens and the session is exactly as it was.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable
from typing import Any, TypeVar

from twenty_questions import prompts
from twenty_questions.categories import get_items, pick_category, pick_item, resolve_category
from twenty_questions.config import Settings
from twenty_questions.consistency import ConsistencyValidator
from twenty_questions.errors import GameRuleError, SessionNotFound, UpstreamError
from twenty_questions.facts import (
    AnswerPolarity,
    asked_questions,
    categorize_facts,
    classify_answer,
    extract_facts,
    is_dont_know,
)
from twenty_questions.knowledge import ItemKnowledge, KeywordItemKnowledge
from twenty_questions.llm.base import LLMProvider
from twenty_questions.llm.functions import SEARCH_FUNCTION, Searcher, execute_function
from twenty_questions.llm.registry import ProviderRegistry
from twenty_questions.models import (
    AnswerType,
    ChatMessage,
    GameSession,
    LLMRequest,
    Message,
    Mode,
)
from twenty_questions.normalizer import parse_game_response, parse_hint_response, validate_game_response
from twenty_questions.possibility import build_possibility_space
from twenty_questions.storage import Storage
from twenty_questions.strategist import QuestionStrategist, game_phase

logger = logging.getLogger(__name__)

T = TypeVar("T")

ANSWER_TYPES = ("chip", "text", "voice")
MAX_INPUT_LENGTH = 500

ASK_TEMPERATURE = 0.1
ASK_MAX_TOKENS = 50
HINT_TEMPERATURE = 0.7
HINT_MAX_TOKENS = 150
HINT_FOLLOWUP_MAX_TOKENS = 100

HINT_REQUEST = "I need a hint!"


def _validate_text(value: str, field: str) -> str:
    text = (value or "").strip()
    if not text or len(text) > MAX_INPUT_LENGTH:
        raise GameRuleError(
            f"Invalid {field}: must be a non-empty string with max {MAX_INPUT_LENGTH} characters"
        )
    return text


def _strip_article(text: str) -> str:
    t = text.strip().lower()
    for article in ("a ", "an ", "the "):
        if t.startswith(article):
            return t[len(article):].strip()
    return t


def guess_matches(guess: str, secret: str) -> bool:
    """Case-insensitive match that ignores a leading a / an / the."""
    return _strip_article(guess) == _strip_article(secret)


class TurnOrchestrator:
    def __init__(
        self,
        storage: Storage,
        registry: ProviderRegistry,
        search: Searcher,
        settings: Settings | None = None,
        rng: random.Random | None = None,
        knowledge: ItemKnowledge | None = None,
        validator: ConsistencyValidator | None = None,
    ) -> None:
        self.storage = storage
        self.registry = registry
        self.search = search
        self.settings = settings or Settings()
        self.rng = rng or random.Random()
        self.knowledge = knowledge or KeywordItemKnowledge()
        self.validator = validator or ConsistencyValidator()
        self.strategist = QuestionStrategist(self.settings.max_questions)

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _load_active(self, session_id: str, mode: Mode) -> GameSession:
        session = self.storage.get_session(session_id)
        if session is None:
            raise SessionNotFound("Game not found")
        if session.mode != mode:
            raise GameRuleError(f"This action is not available in {session.mode} mode")
        if not session.is_active:
            raise GameRuleError("Game is not active")
        return session

    def _remaining(self, questions_asked: int) -> int:
        return max(0, self.settings.max_questions - questions_asked)

    def _game_over_text(self, secret: str | None) -> str:
        return (
            f"Game over! You've used all {self.settings.max_questions} questions. "
            f'The answer was "{secret}".'
        )

    async def _within_budget(self, work: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(work, timeout=self.settings.turn_timeout)
        except asyncio.TimeoutError as e:
            raise UpstreamError(
                f"Turn timed out after {self.settings.turn_timeout:g}s"
            ) from e

    async def _generate_with_search(
        self,
        provider: LLMProvider,
        messages: list[ChatMessage],
        system_prompt: str | None,
        temperature: float,
        max_tokens: int,
        followup_instruction: str,
        followup_max_tokens: int | None = None,
    ) -> tuple[str, bool]:
        """Run one generation with web search available.

        If the model asks for a search, run it once, append the results and
        generate again without functions. Returns (content, searched).
        """
        response = await provider.generate_response(LLMRequest(
            messages=messages,
            system_prompt=system_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            functions=[SEARCH_FUNCTION],
            function_call="auto",
        ))
        if response.function_call is None:
            return response.content, False

        call = response.function_call
        logger.info("model requested %s(%s)", call.name, call.arguments)
        result = await execute_function(call.name, call.arguments, self.search)
        followup = messages + [
            ChatMessage(role="assistant", content=f"[SEARCH FUNCTION CALLED: {call.name}]"),
            ChatMessage(role="user", content=prompts.search_followup(result, followup_instruction)),
        ]
        response = await provider.generate_response(LLMRequest(
            messages=followup,
            system_prompt=system_prompt,
            temperature=temperature,
            max_tokens=followup_max_tokens or max_tokens,
        ))
        return response.content, True

    @staticmethod
    def _chat_history(messages: list[Message]) -> tuple[str | None, list[ChatMessage]]:
        """(system prompt, gameplay chat) from stored messages."""
        system_prompt = next(
            (m.content for m in messages if m.role == "system" and m.question_number == 0), None
        )
        chat = [
            ChatMessage(role=m.role, content=m.content)
            for m in messages
            if m.role != "system"
        ]
        return system_prompt, chat

    # ------------------------------------------------------------------
    # start_game
    # ------------------------------------------------------------------

    async def start_game(self, category: str | None = None, mode: Mode = "guess") -> dict[str, Any]:
        canonical = resolve_category(category)
        if canonical is None:
            if category:
                logger.info("unknown category %r, picking one at random", category)
            canonical = pick_category(self.rng)

        if mode == "ai_guessing":
            return await self._start_ai_round(canonical)

        secret = pick_item(canonical, self.rng)
        session = GameSession(category=canonical, mode="guess", secret_item=secret)
        priming = Message(
            session_id=session.id,
            role="system",
            content=prompts.game_master_prompt(canonical, secret),
            message_type="question",
            question_number=0,
        )
        self.storage.create_session(session, [priming])
        logger.info("started guess game session=%s category=%s", session.id, canonical)
        return {
            "session_id": session.id,
            "category": canonical,
            "mode": "guess",
            "message": (
                f"Let's play 20 Questions! I'm thinking of something in the {canonical} category. "
                f"You have {self.settings.max_questions} questions to guess what it is. "
                "Ask yes/no questions!"
            ),
        }

    async def _start_ai_round(self, category: str) -> dict[str, Any]:
        session = GameSession(category=category, mode="ai_guessing", secret_item=None)
        first_question = await self._within_budget(self._next_question(category, [], 1))

        system_prompt = prompts.ai_guessing_prompt(
            category=category,
            facts=categorize_facts(extract_facts([])),
            asked=[],
            question_number=1,
            phase=game_phase(1),
            max_questions=self.settings.max_questions,
        )
        self.storage.create_session(session, [
            Message(session_id=session.id, role="system", content=system_prompt,
                    message_type="question", question_number=0),
            Message(session_id=session.id, role="assistant", content=first_question,
                    message_type="question", question_number=1),
        ])
        logger.info("started ai_guessing round session=%s category=%s", session.id, category)
        return {
            "session_id": session.id,
            "category": category,
            "mode": "ai_guessing",
            "first_question": first_question,
        }

    async def _next_question(self, category: str, messages: list[Message], question_number: int) -> str:
        ledger = extract_facts(messages)
        space = build_possibility_space(category, ledger, get_items(category), self.knowledge)
        asked = asked_questions(messages)

        canned = self.strategist.propose(space, asked)
        if canned is not None:
            return canned

        provider = self.registry.get("submit-answer")
        return await self.strategist.generate_question(
            provider, space, ledger, asked, question_number
        )

    # ------------------------------------------------------------------
    # ask_question (guess mode)
    # ------------------------------------------------------------------

    async def ask_question(self, session_id: str, question: str) -> dict[str, Any]:
        question = _validate_text(question, "question")
        session = self._load_active(session_id, "guess")
        max_q = self.settings.max_questions

        if session.questions_asked >= max_q:
            self.storage.update_session(session_id, status="lost")
            return {
                "answer": self._game_over_text(session.secret_item),
                "questions_remaining": 0,
                "status": "lost",
                "secret_item": session.secret_item,
            }

        history = self.storage.get_messages(session_id)
        system_prompt, chat = self._chat_history(history)
        if len(history) > 2:
            chat.append(ChatMessage(role="system", content=prompts.CONSISTENCY_REMINDER))
        chat.append(ChatMessage(role="user", content=question))

        provider = self.registry.get("ask-question")
        raw, searched = await self._within_budget(self._generate_with_search(
            provider, chat, system_prompt,
            temperature=ASK_TEMPERATURE,
            max_tokens=ASK_MAX_TOKENS,
            followup_instruction=(
                f'Based on these search results, answer the question "{question}" about the '
                'secret item. Respond ONLY with the JSON object, e.g. {"answer": "Yes"}.'
            ),
        ))

        reply = parse_game_response(raw)
        validate_game_response(reply, raw, question, session.secret_item, searched=searched)
        self.validator.check(question, reply.answer, extract_facts(history), searched=searched)

        number = session.questions_asked + 1
        won = reply.is_guess and reply.answer == "Yes"
        status = "won" if won else ("lost" if number >= max_q else "active")

        self.storage.commit_turn(
            session_id,
            [
                Message(session_id=session_id, role="user", content=question,
                        message_type="guess" if won else "question", question_number=number),
                Message(session_id=session_id, role="assistant", content=reply.answer,
                        message_type="answer", question_number=number),
            ],
            expected_questions_asked=session.questions_asked,
            questions_asked=number,
            status=status,
        )

        if won:
            text = f'{reply.answer}! You got it! The answer was "{session.secret_item}".'
        elif status == "lost":
            text = f"{reply.answer} {self._game_over_text(session.secret_item)}"
        else:
            text = reply.answer

        result: dict[str, Any] = {
            "answer": text,
            "questions_remaining": self._remaining(number),
            "status": status,
        }
        if status != "active":
            result["secret_item"] = session.secret_item
        return result

    # ------------------------------------------------------------------
    # get_hint (guess mode)
    # ------------------------------------------------------------------

    async def get_hint(self, session_id: str) -> dict[str, Any]:
        session = self._load_active(session_id, "guess")
        max_hints = self.settings.max_hints
        max_q = self.settings.max_questions

        if session.hints_used >= max_hints:
            raise GameRuleError(f"You've already used all {max_hints} hints!")
        if session.questions_asked >= max_q:
            raise GameRuleError(f"You've already used all {max_q} questions!")

        history = self.storage.get_messages(session_id)
        system_prompt, chat = self._chat_history(history)
        previous_hints = [
            m.content for m in history if m.role == "assistant" and m.message_type == "hint"
        ]
        answers = [
            classify_answer(m.content)
            for m in history
            if m.role == "assistant" and m.message_type == "answer"
        ]
        chat.append(ChatMessage(role="system", content=prompts.hint_summary(
            session.questions_asked,
            previous_hints,
            yes_count=answers.count(AnswerPolarity.YES),
            no_count=answers.count(AnswerPolarity.NO),
            max_questions=max_q,
        )))
        hint_number = session.hints_used + 1
        chat.append(ChatMessage(role="user", content=prompts.hint_prompt(
            session.secret_item or "", hint_number, previous_hints, session.questions_asked,
        )))

        provider = self.registry.get("get-hint")
        raw, _ = await self._within_budget(self._generate_with_search(
            provider, chat, system_prompt,
            temperature=HINT_TEMPERATURE,
            max_tokens=HINT_MAX_TOKENS,
            followup_instruction=(
                f"Based on these search results and our conversation, provide hint #{hint_number} "
                f"about the secret item ({session.secret_item}). "
                "Respond with ONLY the hint text, without revealing the answer."
            ),
            followup_max_tokens=HINT_FOLLOWUP_MAX_TOKENS,
        ))
        hint = parse_hint_response(raw)

        number = session.questions_asked + 1
        status = "lost" if number >= max_q else "active"
        self.storage.commit_turn(
            session_id,
            [
                Message(session_id=session_id, role="user", content=HINT_REQUEST,
                        message_type="hint", question_number=number),
                Message(session_id=session_id, role="assistant", content=hint,
                        message_type="hint", question_number=number),
            ],
            expected_questions_asked=session.questions_asked,
            questions_asked=number,
            hints_used=hint_number,
            status=status,
        )

        result: dict[str, Any] = {
            "hint": hint,
            "hints_remaining": max_hints - hint_number,
            "questions_remaining": self._remaining(number),
            "status": status,
        }
        if status == "lost":
            result["secret_item"] = session.secret_item
        return result

    # ------------------------------------------------------------------
    # make_guess (guess mode)
    # ------------------------------------------------------------------

    async def make_guess(self, session_id: str, guess: str) -> dict[str, Any]:
        guess = _validate_text(guess, "guess")
        session = self._load_active(session_id, "guess")
        correct = guess_matches(guess, session.secret_item or "")
        status = "won" if correct else "lost"

        self.storage.commit_turn(
            session_id,
            [Message(session_id=session_id, role="user", content=f"My guess is: {guess}",
                     message_type="guess", question_number=session.questions_asked + 1)],
            expected_questions_asked=session.questions_asked,
            status=status,
        )

        if correct:
            hints = f" and {session.hints_used} hints" if session.hints_used else ""
            message = (
                f'Congratulations! You guessed it! The answer was "{session.secret_item}". '
                f"You won in {session.questions_asked} questions{hints}!"
            )
        else:
            message = (
                f"Sorry, that's not correct. The answer was \"{session.secret_item}\". "
                "Better luck next time!"
            )
        return {
            "correct": correct,
            "secret_item": session.secret_item,
            "status": status,
            "message": message,
        }

    # ------------------------------------------------------------------
    # submit_answer (ai_guessing mode)
    # ------------------------------------------------------------------

    async def submit_answer(
        self, session_id: str, answer: str, answer_type: AnswerType | str = "text"
    ) -> dict[str, Any]:
        answer = _validate_text(answer, "answer")
        if answer_type not in ANSWER_TYPES:
            raise GameRuleError("Invalid answer_type: must be one of chip, text, or voice")
        session = self._load_active(session_id, "ai_guessing")
        max_q = self.settings.max_questions

        history = self.storage.get_messages(session_id)
        current = max((m.question_number for m in history), default=0)
        dont_know = is_dont_know(answer)
        counted = session.questions_asked if dont_know else session.questions_asked + 1

        user_answer = Message(session_id=session_id, role="user", content=answer,
                              message_type="answer", question_number=current)
        logger.debug(
            "submit_answer session=%s q=%d answer=%r type=%s counted=%d",
            session_id, current, answer, answer_type, counted,
        )

        if not dont_know and counted >= max_q:
            self.storage.commit_turn(
                session_id, [user_answer],
                expected_questions_asked=session.questions_asked,
                questions_asked=max_q,
                status="lost",
            )
            return {"questions_asked": max_q, "questions_remaining": 0, "status": "lost"}

        next_number = current + 1
        next_question = await self._within_budget(
            self._next_question(session.category, history + [user_answer], next_number)
        )

        self.storage.commit_turn(
            session_id,
            [
                user_answer,
                Message(session_id=session_id, role="assistant", content=next_question,
                        message_type="question", question_number=next_number),
            ],
            expected_questions_asked=session.questions_asked,
            questions_asked=counted,
        )
        return {
            "next_question": next_question,
            "questions_asked": counted,
            "questions_remaining": self._remaining(counted),
            "status": "active",
        }

    # ------------------------------------------------------------------
    # finalize_result (ai_guessing mode)
    # ------------------------------------------------------------------

    async def finalize_result(
        self, session_id: str, result: str, secret_item: str | None = None
    ) -> dict[str, Any]:
        """The human's explicit verdict on the AI's round: "ai_win" or "ai_loss"."""
        if result not in ("ai_win", "ai_loss"):
            raise GameRuleError("Invalid result: must be ai_win or ai_loss")
        session = self._load_active(session_id, "ai_guessing")
        won = result == "ai_win"
        n = session.questions_asked

        final = (
            "Great! I successfully guessed what you were thinking of!"
            if won else
            f"I couldn't guess it in {self.settings.max_questions} questions. Well played!"
        )
        fields: dict[str, Any] = {"status": "won" if won else "lost"}
        if secret_item:
            fields["secret_item"] = secret_item.strip()
        self.storage.commit_turn(
            session_id,
            [Message(session_id=session_id, role="assistant", content=final,
                     message_type="answer", question_number=0)],
            expected_questions_asked=n,
            **fields,
        )
        return {
            "message": (
                f"I guessed it in {n} questions!"
                if won else
                f"I couldn't guess it in {n} questions. What were you thinking of?"
            ),
            "questions_used": n,
            "status": fields["status"],
        }

    # ------------------------------------------------------------------
    # quit
    # ------------------------------------------------------------------

    async def quit(self, session_id: str) -> dict[str, Any]:
        session = self.storage.get_session(session_id)
        if session is None:
            raise SessionNotFound("Game not found")
        if not session.is_active:
            raise GameRuleError("Game is not active")
        self.storage.update_session(session_id, status="lost")
        logger.info("session %s quit after %d questions", session_id, session.questions_asked)
        if session.secret_item is None:
            message = "You have left the game."
        else:
            message = f'You have left the game. The answer was "{session.secret_item}".'
        return {"message": message, "secret_item": session.secret_item}

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def get_state(self, session_id: str) -> dict[str, Any]:
        session = self.storage.get_session(session_id)
        if session is None:
            raise SessionNotFound("Game not found")
        messages = [
            m for m in self.storage.get_messages(session_id) if m.role != "system"
        ]
        data = session.model_dump()
        if session.is_active and session.mode == "guess":
            data["secret_item"] = None
        data["questions_remaining"] = self._remaining(session.questions_asked)
        data["messages"] = [m.model_dump() for m in messages]
        return data
