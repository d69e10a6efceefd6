from twenty_questions.categories import get_items
from twenty_questions.knowledge import DEFAULT_TRAITS, KeywordItemKnowledge
from twenty_questions.models import Fact, FactLedger
from twenty_questions.possibility import build_possibility_space, fit_score, guessed_item


def _ledger(yes=(), no=()) -> FactLedger:
    return FactLedger(
        confirmed_yes=[Fact(question=q, confidence=0.9, question_number=i) for i, q in enumerate(yes, 1)],
        confirmed_no=[Fact(question=q, confidence=0.9, question_number=i) for i, q in enumerate(no, 50)],
    )


# ── Knowledge ────────────────────────────────────────────────


def test_trait_lookup():
    knowledge = KeywordItemKnowledge()
    mammal = next(t for t in DEFAULT_TRAITS if t.name == "mammal")
    assert knowledge.has_trait("dog", mammal) is True
    assert knowledge.has_trait("snake", mammal) is False
    assert knowledge.has_trait("chair", mammal) is None


def test_matches_unknown_question():
    assert KeywordItemKnowledge().matches("dog", "Is it famous?", expected=True) is None


# ── Space ────────────────────────────────────────────────────


def test_empty_ledger_keeps_everything():
    items = get_items("Animals")
    space = build_possibility_space("Animals", _ledger(), items)
    assert space.remaining == items
    assert space.eliminated == []
    assert space.total_items == len(items)
    assert all(score == 1.0 for score in space.confidence_scores.values())


def test_no_to_trait_removes_members():
    space = build_possibility_space("Animals", _ledger(no=["Is it a mammal?"]), get_items("Animals"))
    assert "dog" not in space.remaining
    assert "dog" in space.eliminated
    assert "snake" in space.remaining


def test_no_to_direct_guess_removes_item():
    space = build_possibility_space("Objects", _ledger(no=["Is it a chair?"]), get_items("Objects"))
    assert "chair" in space.eliminated
    assert "table" in space.remaining


def test_yes_to_trait_removes_non_members():
    space = build_possibility_space("Animals", _ledger(yes=["Is it a mammal?"]), get_items("Animals"))
    assert "snake" in space.eliminated
    assert "snake" not in space.remaining
    assert "dog" in space.remaining
    assert len(space.remaining) < space.total_items


def test_yes_facts_narrow_to_a_few():
    ledger = _ledger(yes=["Can it fly?", "Is it a farm animal?"])
    space = build_possibility_space("Animals", ledger, get_items("Animals"))
    assert sorted(space.remaining) == ["duck", "goose"]


def test_probable_yes_only_lowers_score():
    ledger = FactLedger(confirmed_yes=[Fact(question="Can it fly?", confidence=0.8, question_number=1)])
    space = build_possibility_space("Animals", ledger, get_items("Animals"))
    assert "dog" in space.remaining
    assert space.confidence_scores["dog"] == 0.8
    assert space.confidence_scores["eagle"] == 1.0
    assert space.top_candidates(1) == ["eagle"]


def test_contradicted_yes_lowers_fit_score():
    ledger = _ledger(yes=["Can it fly?"])
    knowledge = KeywordItemKnowledge()
    assert fit_score("eagle", ledger, knowledge) == 1.0
    assert fit_score("dog", ledger, knowledge) == 0.8


def test_fit_score_floor():
    ledger = _ledger(yes=["Can it fly?", "Does it live in water?", "Is it a bird?",
                          "Is it a farm animal?", "Does it have wings?", "Is it a pet?"])
    assert fit_score("tiger", ledger, KeywordItemKnowledge()) == 0.0


def test_unknown_facts_cost_nothing():
    space = build_possibility_space("Cricketers", _ledger(yes=["Is he from India?"]), get_items("Cricketers"))
    assert len(space.remaining) == space.total_items
    assert set(space.confidence_scores.values()) == {1.0}


def test_guessed_item():
    assert guessed_item("Is it a golden retriever?") == "golden retriever"
    assert guessed_item("Is he Virat Kohli?") == "virat kohli"
    assert guessed_item("Does it bark?") is None
