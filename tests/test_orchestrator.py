"""Tests for the turn orchestrator, with scripted providers and tmp storage."""

import asyncio
import random

import pytest

from conftest import FakeSearch, ScriptedProvider, search_call
from twenty_questions.config import Settings
from twenty_questions.errors import (
    ConfigurationError,
    ConflictError,
    GameRuleError,
    SessionNotFound,
    UpstreamError,
)
from twenty_questions.llm.registry import ProviderRegistry
from twenty_questions.orchestrator import TurnOrchestrator, guess_matches
from twenty_questions.storage import JsonStorage
from twenty_questions.strategist import candidate_questions


class SlowProvider(ScriptedProvider):
    def __init__(self, *replies, delay: float = 0) -> None:
        super().__init__(*replies)
        self.delay = delay

    async def generate_response(self, request):
        await asyncio.sleep(self.delay)
        return await super().generate_response(request)


@pytest.fixture
def orch(storage: JsonStorage, registry: ProviderRegistry, search: FakeSearch, settings: Settings) -> TurnOrchestrator:
    return TurnOrchestrator(storage, registry, search, settings=settings, rng=random.Random(3))


async def _guess_game(orch: TurnOrchestrator, category: str = "Animals") -> tuple[str, str]:
    started = await orch.start_game(category)
    session = orch.storage.get_session(started["session_id"])
    return session.id, session.secret_item


# ---------------------------------------------------------------------------
# start_game
# ---------------------------------------------------------------------------

class TestStartGame:
    async def test_guess_mode(self, orch: TurnOrchestrator) -> None:
        result = await orch.start_game("animals")
        assert result["category"] == "Animals"
        assert result["mode"] == "guess"
        assert "I'm thinking of something in the Animals category" in result["message"]
        assert "secret_item" not in result

        session = orch.storage.get_session(result["session_id"])
        assert session.secret_item in orch.storage.get_messages(session.id)[0].content
        assert session.status == "active"
        assert session.questions_asked == 0

    async def test_unknown_category_picks_one(self, orch: TurnOrchestrator) -> None:
        result = await orch.start_game("Spaceships")
        assert result["category"] in {"Animals", "Objects", "Places", "Cricketers",
                                      "Football Players", "NBA Players", "World Leaders"}

    async def test_ai_guessing_canned_first_question(self, storage, search, settings) -> None:
        # unconfigured providers don't matter while a canned question applies
        orch = TurnOrchestrator(storage, ProviderRegistry(env={}), search, settings=settings)
        result = await orch.start_game("Animals", mode="ai_guessing")
        assert result["mode"] == "ai_guessing"
        assert result["first_question"] in candidate_questions("Animals", [])

        session = storage.get_session(result["session_id"])
        assert session.secret_item is None
        messages = storage.get_messages(session.id)
        assert [(m.role, m.question_number) for m in messages] == [("system", 0), ("assistant", 1)]


# ---------------------------------------------------------------------------
# ask_question
# ---------------------------------------------------------------------------

class TestAskQuestion:
    async def test_win_end_to_end(self, orch: TurnOrchestrator, provider: ScriptedProvider) -> None:
        session_id, secret = await _guess_game(orch)
        provider.queue('{"answer": "Yes"}', '{"answer": "Yes", "is_guess": true} That\'s right!')

        first = await orch.ask_question(session_id, "Is it a mammal?")
        assert first == {"answer": "Yes", "questions_remaining": 19, "status": "active"}

        won = await orch.ask_question(session_id, f"Is it a {secret}?")
        assert won["status"] == "won"
        assert "You got it!" in won["answer"]
        assert secret in won["answer"]
        assert won["secret_item"] == secret
        assert won["questions_remaining"] == 18

        session = orch.storage.get_session(session_id)
        assert session.status == "won"
        assert session.questions_asked == 2
        with pytest.raises(GameRuleError, match="not active"):
            await orch.ask_question(session_id, "Is it big?")

    async def test_request_shape(self, orch: TurnOrchestrator, provider: ScriptedProvider) -> None:
        session_id, secret = await _guess_game(orch)
        provider.queue('{"answer": "No"}', '{"answer": "No"}')
        await orch.ask_question(session_id, "Can it fly?")
        await orch.ask_question(session_id, "Is it green?")

        first, second = provider.requests
        assert secret in first.system_prompt
        assert first.temperature == 0.1
        assert first.max_tokens == 50
        assert first.functions[0]["name"] == "web_search"
        assert [m.content for m in first.messages] == ["Can it fly?"]
        assert second.messages[-2].content.startswith("[CONSISTENCY REMINDER")
        assert second.messages[-1].content == "Is it green?"

    async def test_messages_stored(self, orch: TurnOrchestrator, provider: ScriptedProvider) -> None:
        session_id, _ = await _guess_game(orch)
        provider.queue("No, it doesn't.")
        await orch.ask_question(session_id, "Can it fly?")
        stored = [
            (m.role, m.content, m.message_type, m.question_number)
            for m in orch.storage.get_messages(session_id)[1:]
        ]
        assert stored == [
            ("user", "Can it fly?", "question", 1),
            ("assistant", "No", "answer", 1),
        ]

    async def test_search_round_trip(self, orch: TurnOrchestrator, provider: ScriptedProvider, search: FakeSearch) -> None:
        session_id, _ = await _guess_game(orch)
        provider.queue(search_call("animal still alive"), '{"answer": "Yes"}')
        result = await orch.ask_question(session_id, "Is it still common today?")
        assert result["answer"] == "Yes"
        assert search.queries == ["animal still alive"]

        followup = provider.requests[1]
        assert followup.functions is None
        assert followup.messages[-2].content == "[SEARCH FUNCTION CALLED: web_search]"
        assert followup.messages[-1].content.startswith("Search results: ")

    async def test_search_failure_still_answers(self, storage, registry, settings, provider) -> None:
        orch = TurnOrchestrator(storage, registry, FakeSearch(error="quota"), settings=settings)
        session_id, _ = await _guess_game(orch)
        provider.queue(search_call("x"), '{"answer": "No"}')
        result = await orch.ask_question(session_id, "Is it currently endangered?")
        assert result["answer"] == "No"
        assert "Failed to execute web_search" in provider.requests[1].messages[-1].content

    async def test_twentieth_question_loses(self, orch: TurnOrchestrator, provider: ScriptedProvider) -> None:
        session_id, secret = await _guess_game(orch)
        orch.storage.update_session(session_id, questions_asked=19)
        provider.queue('{"answer": "No"}')
        result = await orch.ask_question(session_id, "Is it a cat?")
        assert result["status"] == "lost"
        assert result["questions_remaining"] == 0
        assert result["secret_item"] == secret
        assert result["answer"].startswith("No Game over!")

    async def test_already_out_of_questions(self, orch: TurnOrchestrator, provider: ScriptedProvider) -> None:
        session_id, secret = await _guess_game(orch)
        orch.storage.update_session(session_id, questions_asked=20)
        result = await orch.ask_question(session_id, "Is it a cat?")
        assert result == {
            "answer": f'Game over! You\'ve used all 20 questions. The answer was "{secret}".',
            "questions_remaining": 0,
            "status": "lost",
            "secret_item": secret,
        }
        assert provider.requests == []
        assert orch.storage.get_session(session_id).status == "lost"

    async def test_guess_with_wrong_answer_is_not_a_win(self, orch: TurnOrchestrator, provider: ScriptedProvider) -> None:
        session_id, _ = await _guess_game(orch)
        provider.queue('{"answer": "No", "is_guess": true}')
        result = await orch.ask_question(session_id, "Is it a unicorn?")
        assert result["status"] == "active"
        assert result["answer"] == "No"

    async def test_upstream_failure_leaves_session_untouched(self, orch: TurnOrchestrator, provider: ScriptedProvider) -> None:
        session_id, _ = await _guess_game(orch)
        provider.queue(UpstreamError("openai API request failed after 3 attempts: HTTP 500"))
        with pytest.raises(UpstreamError, match="openai"):
            await orch.ask_question(session_id, "Is it big?")
        assert orch.storage.get_session(session_id).questions_asked == 0
        assert len(orch.storage.get_messages(session_id)) == 1

    async def test_turn_timeout(self, storage, search) -> None:
        registry = ProviderRegistry(env={})
        registry.register("ask-question", SlowProvider('{"answer": "Yes"}', delay=1))
        orch = TurnOrchestrator(storage, registry, search, settings=Settings(turn_timeout=0.05))
        session_id, _ = await _guess_game(orch)
        with pytest.raises(UpstreamError, match="timed out"):
            await orch.ask_question(session_id, "Is it big?")
        assert storage.get_session(session_id).questions_asked == 0

    async def test_configuration_error(self, storage, search, settings) -> None:
        orch = TurnOrchestrator(storage, ProviderRegistry(env={}), search, settings=settings)
        session_id, _ = await _guess_game(orch)
        with pytest.raises(ConfigurationError, match="API key not found"):
            await orch.ask_question(session_id, "Is it big?")

    async def test_concurrent_turns_conflict(self, storage, search, settings) -> None:
        registry = ProviderRegistry(env={})
        registry.register("ask-question", SlowProvider('{"answer": "Yes"}', '{"answer": "No"}'))
        orch = TurnOrchestrator(storage, registry, search, settings=settings)
        session_id, _ = await _guess_game(orch)

        results = await asyncio.gather(
            orch.ask_question(session_id, "Is it big?"),
            orch.ask_question(session_id, "Is it small?"),
            return_exceptions=True,
        )
        assert sum(isinstance(r, ConflictError) for r in results) == 1
        assert storage.get_session(session_id).questions_asked == 1
        assert len(storage.get_messages(session_id)) == 3

    async def test_input_validation(self, orch: TurnOrchestrator) -> None:
        session_id, _ = await _guess_game(orch)
        with pytest.raises(GameRuleError, match="Invalid question"):
            await orch.ask_question(session_id, "   ")
        with pytest.raises(GameRuleError, match="Invalid question"):
            await orch.ask_question(session_id, "x" * 501)

    async def test_unknown_session(self, orch: TurnOrchestrator) -> None:
        with pytest.raises(SessionNotFound):
            await orch.ask_question("deadbeef", "Is it big?")

    async def test_wrong_mode(self, orch: TurnOrchestrator) -> None:
        started = await orch.start_game("Animals", mode="ai_guessing")
        with pytest.raises(GameRuleError, match="ai_guessing mode"):
            await orch.ask_question(started["session_id"], "Is it big?")


# ---------------------------------------------------------------------------
# get_hint
# ---------------------------------------------------------------------------

class TestGetHint:
    async def test_hint(self, orch: TurnOrchestrator, provider: ScriptedProvider) -> None:
        session_id, secret = await _guess_game(orch)
        provider.queue('{"answer": "Yes"}', 'Hint: "It is often seen in stories."')
        await orch.ask_question(session_id, "Is it a mammal?")
        result = await orch.get_hint(session_id)
        assert result == {
            "hint": "It is often seen in stories.",
            "hints_remaining": 2,
            "questions_remaining": 18,
            "status": "active",
        }

        request = provider.requests[1]
        assert request.temperature == 0.7
        assert request.max_tokens == 150
        assert f"secret item ({secret})" in request.messages[-1].content
        assert '"Yes" answers: 1' in request.messages[-2].content

        hints = [m for m in orch.storage.get_messages(session_id) if m.message_type == "hint"]
        assert [(m.role, m.content, m.question_number) for m in hints] == [
            ("user", "I need a hint!", 2),
            ("assistant", "It is often seen in stories.", 2),
        ]
        session = orch.storage.get_session(session_id)
        assert (session.hints_used, session.questions_asked) == (1, 2)

    async def test_hint_with_search(self, orch: TurnOrchestrator, provider: ScriptedProvider, search: FakeSearch) -> None:
        session_id, secret = await _guess_game(orch)
        provider.queue(search_call("habitat"), "It can be found on several continents.")
        result = await orch.get_hint(session_id)
        assert result["hint"] == "It can be found on several continents."
        followup = provider.requests[1]
        assert followup.max_tokens == 100
        assert followup.functions is None
        assert f"provide hint #1 about the secret item ({secret})" in followup.messages[-1].content

    async def test_hint_budget_spent(self, orch: TurnOrchestrator, provider: ScriptedProvider) -> None:
        session_id, _ = await _guess_game(orch)
        orch.storage.update_session(session_id, hints_used=3)
        before = orch.storage.get_messages(session_id)
        with pytest.raises(GameRuleError, match="all 3 hints"):
            await orch.get_hint(session_id)
        assert provider.requests == []
        assert orch.storage.get_messages(session_id) == before
        assert orch.storage.get_session(session_id).hints_used == 3

    async def test_hint_on_last_question_loses(self, orch: TurnOrchestrator, provider: ScriptedProvider) -> None:
        session_id, secret = await _guess_game(orch)
        orch.storage.update_session(session_id, questions_asked=19)
        provider.queue("It is bigger than a breadbox.")
        result = await orch.get_hint(session_id)
        assert result["status"] == "lost"
        assert result["questions_remaining"] == 0
        assert result["secret_item"] == secret


# ---------------------------------------------------------------------------
# make_guess / quit
# ---------------------------------------------------------------------------

class TestMakeGuessAndQuit:
    def test_guess_matches(self) -> None:
        assert guess_matches("an Elephant", "elephant")
        assert guess_matches("elephant", "the elephant")
        assert not guess_matches("elephants", "elephant")

    async def test_correct_guess(self, orch: TurnOrchestrator) -> None:
        session_id, secret = await _guess_game(orch)
        result = await orch.make_guess(session_id, f"The {secret.upper()}")
        assert result["correct"] is True
        assert result["status"] == "won"
        assert result["secret_item"] == secret
        assert result["message"].startswith("Congratulations! You guessed it!")
        guess = orch.storage.get_messages(session_id)[-1]
        assert (guess.content, guess.message_type, guess.question_number) == (
            f"My guess is: The {secret.upper()}", "guess", 1,
        )

    async def test_wrong_guess(self, orch: TurnOrchestrator) -> None:
        session_id, secret = await _guess_game(orch)
        result = await orch.make_guess(session_id, "a unicorn")
        assert result["correct"] is False
        assert result["status"] == "lost"
        assert result["message"] == f'Sorry, that\'s not correct. The answer was "{secret}". Better luck next time!'

    async def test_quit(self, orch: TurnOrchestrator) -> None:
        session_id, secret = await _guess_game(orch)
        result = await orch.quit(session_id)
        assert result == {
            "message": f'You have left the game. The answer was "{secret}".',
            "secret_item": secret,
        }
        assert orch.storage.get_session(session_id).status == "lost"
        with pytest.raises(GameRuleError, match="not active"):
            await orch.quit(session_id)


# ---------------------------------------------------------------------------
# ai_guessing: submit_answer / finalize_result
# ---------------------------------------------------------------------------

class TestAIGuessing:
    async def _round(self, orch: TurnOrchestrator) -> str:
        started = await orch.start_game("Animals", mode="ai_guessing")
        return started["session_id"]

    async def test_submit_answer(self, orch: TurnOrchestrator) -> None:
        session_id = await self._round(orch)
        result = await orch.submit_answer(session_id, "Yes", "chip")
        assert result["questions_asked"] == 1
        assert result["questions_remaining"] == 19
        assert result["status"] == "active"
        assert result["next_question"]

        messages = orch.storage.get_messages(session_id)
        assert [(m.role, m.message_type, m.question_number) for m in messages[1:]] == [
            ("assistant", "question", 1),
            ("user", "answer", 1),
            ("assistant", "question", 2),
        ]

    async def test_questions_never_repeat(self, orch: TurnOrchestrator) -> None:
        session_id = await self._round(orch)
        for answer in ("Yes", "No", "No"):
            await orch.submit_answer(session_id, answer)
        questions = [
            m.content for m in orch.storage.get_messages(session_id)
            if m.role == "assistant" and m.message_type == "question"
        ]
        assert len(questions) == len(set(questions)) == 4

    async def test_dont_know_is_free(self, orch: TurnOrchestrator) -> None:
        session_id = await self._round(orch)
        result = await orch.submit_answer(session_id, "Don't know", "chip")
        assert result["questions_asked"] == 0
        assert result["next_question"]
        assert orch.storage.get_messages(session_id)[-1].question_number == 2

    async def test_last_answer_ends_round(self, orch: TurnOrchestrator) -> None:
        session_id = await self._round(orch)
        orch.storage.update_session(session_id, questions_asked=19)
        result = await orch.submit_answer(session_id, "No", "voice")
        assert result == {"questions_asked": 20, "questions_remaining": 0, "status": "lost"}
        assert orch.storage.get_session(session_id).status == "lost"

    async def test_invalid_answer_type(self, orch: TurnOrchestrator) -> None:
        session_id = await self._round(orch)
        with pytest.raises(GameRuleError, match="answer_type"):
            await orch.submit_answer(session_id, "Yes", "telepathy")

    async def test_submit_in_guess_mode_rejected(self, orch: TurnOrchestrator) -> None:
        session_id, _ = await _guess_game(orch)
        with pytest.raises(GameRuleError):
            await orch.submit_answer(session_id, "Yes")

    async def test_finalize_win(self, orch: TurnOrchestrator) -> None:
        session_id = await self._round(orch)
        await orch.submit_answer(session_id, "Yes")
        result = await orch.finalize_result(session_id, "ai_win", secret_item="dog")
        assert result == {"message": "I guessed it in 1 questions!", "questions_used": 1, "status": "won"}
        session = orch.storage.get_session(session_id)
        assert (session.status, session.secret_item) == ("won", "dog")
        assert orch.storage.get_messages(session_id)[-1].content.startswith("Great!")

    async def test_finalize_loss(self, orch: TurnOrchestrator) -> None:
        session_id = await self._round(orch)
        result = await orch.finalize_result(session_id, "ai_loss")
        assert result["status"] == "lost"
        assert result["message"] == "I couldn't guess it in 0 questions. What were you thinking of?"

    async def test_finalize_invalid(self, orch: TurnOrchestrator) -> None:
        session_id = await self._round(orch)
        with pytest.raises(GameRuleError, match="ai_win or ai_loss"):
            await orch.finalize_result(session_id, "draw")

    async def test_quit_without_secret(self, orch: TurnOrchestrator) -> None:
        session_id = await self._round(orch)
        result = await orch.quit(session_id)
        assert result == {"message": "You have left the game.", "secret_item": None}
        assert orch.storage.get_session(session_id).status == "lost"


# ---------------------------------------------------------------------------
# get_state
# ---------------------------------------------------------------------------

class TestGetState:
    async def test_secret_hidden_while_active(self, orch: TurnOrchestrator, provider: ScriptedProvider) -> None:
        session_id, secret = await _guess_game(orch)
        provider.queue('{"answer": "No"}')
        await orch.ask_question(session_id, "Can it fly?")
        state = orch.get_state(session_id)
        assert state["secret_item"] is None
        assert state["questions_remaining"] == 19
        assert [m["role"] for m in state["messages"]] == ["user", "assistant"]

        await orch.quit(session_id)
        assert orch.get_state(session_id)["secret_item"] == secret

    def test_unknown(self, orch: TurnOrchestrator) -> None:
        with pytest.raises(SessionNotFound):
            orch.get_state("deadbeef")
