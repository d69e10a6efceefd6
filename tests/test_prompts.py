import pytest

from twenty_questions.facts import CategorizedFacts
from twenty_questions.prompts import (
    CONSISTENCY_REMINDER,
    PromptError,
    ai_guessing_prompt,
    categorized_summary,
    category_profile,
    game_master_prompt,
    hint_guidance,
    hint_prompt,
    hint_summary,
    logical_deductions,
    render_prompt,
    search_followup,
)


# ── render_prompt ────────────────────────────────────────────


def test_render_simple():
    assert render_prompt("Hello {{name}}", {"name": "World"}) == "Hello World"


def test_triple_stash_not_escaped():
    assert render_prompt("{{{x}}}", {"x": "Tom & \"Jerry\""}) == 'Tom & "Jerry"'


def test_render_error():
    with pytest.raises(PromptError):
        render_prompt("{{> missing_partial}}", {})


# ── Game master ──────────────────────────────────────────────


def test_game_master_prompt_names_secret():
    prompt = game_master_prompt("Animals", "elephant")
    assert "The secret item is: elephant" in prompt
    assert '"Is it elephant?" → {"answer": "Yes", "is_guess": true}' in prompt
    assert '"Is it a mammal?"' in prompt


def test_unknown_category_uses_default_profile():
    assert category_profile("Vegetables").noun == "item"
    assert category_profile("NBA Players").noun == "NBA player"


def test_consistency_reminder_asks_for_json():
    assert CONSISTENCY_REMINDER.startswith("[CONSISTENCY REMINDER")
    assert '{"answer": "Yes"}' in CONSISTENCY_REMINDER


# ── AI guessing ──────────────────────────────────────────────


def test_categorized_summary_sections():
    facts = CategorizedFacts(yes=["Is it alive?"], no=["Can it fly?"], maybe=[], unknown=["Is it rare?"])
    summary = categorized_summary(facts)
    assert "✓ CONFIRMED TRUE" in summary
    assert "  → Is it alive?" in summary
    assert "~ PARTIAL YES" not in summary
    assert "CRITICAL: Do NOT ask about these topic areas" in summary


def test_logical_deductions():
    facts = CategorizedFacts(yes=["Is it a mammal?"], no=["Is it wild?"])
    text = logical_deductions("Animals", facts)
    assert "It is a mammal" in text
    assert "likely a pet or farm animal" in text
    assert logical_deductions("Places", facts) == ""


def test_ai_guessing_prompt():
    prompt = ai_guessing_prompt(
        category="Animals",
        facts=CategorizedFacts(yes=["Is it a mammal?"]),
        asked=["Is it a mammal?"],
        question_number=2,
        phase="broad categorization",
        should_guess=True,
        candidates=["dog", "cat"],
    )
    assert "category: Animals" in prompt
    assert "question 2 of 20" in prompt
    assert "start naming specific items" in prompt
    assert "1. Is it a mammal?" in prompt
    assert "Items still consistent with the answers: dog, cat" in prompt


def test_ai_guessing_prompt_without_candidates():
    prompt = ai_guessing_prompt("Objects", CategorizedFacts(), [], 1, "broad categorization")
    assert "Items still consistent" not in prompt
    assert "start naming" not in prompt


# ── Hints ────────────────────────────────────────────────────


def test_hint_guidance_by_stage():
    assert hint_guidance(0).startswith("Early game")
    assert hint_guidance(7).startswith("Mid game")
    assert hint_guidance(12).startswith("Late game")
    assert hint_guidance(18).startswith("Very late game")


def test_hint_prompt():
    prompt = hint_prompt("giraffe", 2, ["It is tall."], 6)
    assert "secret item (giraffe)" in prompt
    assert "hint #2" in prompt
    assert '"It is tall."' in prompt
    assert "Mid game" in prompt


def test_hint_summary():
    summary = hint_summary(4, [], yes_count=3, no_count=1)
    assert "Total questions asked: 4" in summary
    assert "Question #5 of 20" in summary
    assert "No previous hints given." in summary
    assert '"Yes" answers: 3, "No" answers: 1' in summary
    assert '- "It is tall."' in hint_summary(4, ["It is tall."], 3, 1)


def test_search_followup():
    assert search_followup('{"results": []}', "Answer now.") == 'Search results: {"results": []}\n\nAnswer now.'
