"""Handlebars prompt rendering for the game master, the AI questioner and hints.

Every template is rendered through render_prompt(); values are inserted with
triple-stash ({{{x}}}) so quotes and ampersands reach the model unescaped.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pybars

from twenty_questions.facts import CategorizedFacts

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


# ── Game master (guess mode) ─────────────────────────────


@dataclass(frozen=True)
class CategoryProfile:
    description: str
    noun: str  # "animal", "object", "cricketer", ...
    properties: tuple[str, ...]
    example_questions: tuple[str, ...]
    synonyms: str


_PROFILES: dict[str, CategoryProfile] = {
    "animals": CategoryProfile(
        "Any living creature from the animal kingdom - mammals, birds, fish, reptiles, insects, etc.",
        "animal",
        ("classification", "habitat", "diet"),
        ("Is it a mammal?", "Does it have fur?", "Can it fly?"),
        'Common synonyms (e.g. "dog/hound", "cat/feline", "snake/serpent"), regional names, '
        "and widely known scientific names",
    ),
    "objects": CategoryProfile(
        "Any physical object or item - tools, furniture, electronics, vehicles, household items, etc.",
        "object",
        ("function", "materials", "size"),
        ("Is it furniture?", "Is it electronic?", "Can you hold it in your hand?"),
        'Common synonyms (e.g. "couch/sofa", "car/automobile", "phone/telephone") '
        "and generic names for branded items",
    ),
    "places": CategoryProfile(
        "Any kind of place people can visit - natural landmarks, buildings, public spaces",
        "place",
        ("indoors or outdoors", "purpose", "natural or man-made"),
        ("Is it indoors?", "Is it man-made?", "Do people go there to learn?"),
        "Common synonyms and regional names for the same kind of place",
    ),
    "cricketers": CategoryProfile(
        "Professional cricket players from any era, country, or format (Test, ODI, T20)",
        "cricketer",
        ("nationality", "position", "bowling style", "batting style"),
        ("Are they Indian?", "Do they bowl?", "Are they a captain?"),
        "Full name, first or last name when commonly used, nicknames, alternate spellings",
    ),
    "football players": CategoryProfile(
        "Professional football (soccer) players from any era, league, or country",
        "football player",
        ("nationality", "position", "club", "league"),
        ("Are they from Argentina?", "Do they play forward?", "Are they still active?"),
        "Full name, first or last name when commonly used, nicknames, alternate spellings",
    ),
    "nba players": CategoryProfile(
        "Professional NBA basketball players from any era or team",
        "NBA player",
        ("position", "team", "nationality", "conference"),
        ("Do they play point guard?", "Are they over 30 years old?", "Are they still active?"),
        "Full name, first or last name when commonly used, nicknames, alternate spellings",
    ),
    "world leaders": CategoryProfile(
        "Current or recent world leaders - presidents, prime ministers, monarchs, etc.",
        "world leader",
        ("country", "position", "political party", "continent"),
        ("Are they from Europe?", "Are they a president?", "Are they currently in office?"),
        "Full name, first or last name when commonly used, titles, alternate spellings",
    ),
}

_DEFAULT_PROFILE = CategoryProfile(
    "Any item, concept, or entity that fits the general category",
    "item",
    ("properties", "attributes"),
    ("Is it man-made?", "Is it larger than a car?"),
    "Common variations and synonyms",
)


def category_profile(category: str) -> CategoryProfile:
    return _PROFILES.get(category.strip().lower(), _DEFAULT_PROFILE)


GAME_MASTER_TEMPLATE = """You are the game master in 20 Questions. The secret item is: {{{secret}}}
Category: {{{category}}} ({{{description}}})

CRITICAL RULES:
1. Only return JSON in the exact format specified
2. Never reveal the secret item in your responses
3. The "is_guess" field should ONLY be true when the player correctly guesses the secret item
4. MAINTAIN CONSISTENCY: Every answer must be consistent with all previous answers in the conversation
5. Track what you've revealed: Remember your previous responses to avoid contradictions
6. WEB SEARCH: Use web search when questions require current information, recent events, or facts that might have changed since your training data (current status, recent results, statistics, availability)

RESPONSE RULES:
1. If the player asks about properties ({{{properties}}}, etc): Return {"answer": "Yes"} or {"answer": "No"} or {"answer": "Sometimes"}
2. If the player guesses a WRONG {{{noun}}}: Return {"answer": "No"}
3. If the player guesses the CORRECT {{{noun}}} ({{{secret}}}): Return {"answer": "Yes", "is_guess": true}

CRITICAL OUTPUT FORMAT:
- NEVER add explanations, extra text, or commentary
- NEVER add "because...", "since...", or any reasoning
- Return ONLY the JSON object specified above
- NO additional words before or after the JSON

When the player correctly guesses the secret item, you MUST include both "answer": "Yes" AND "is_guess": true in the same JSON response.

SYNONYMS AND VARIATIONS:
Accept these variations of {{{secret}}} as correct guesses: {{{synonyms}}}.

Examples for {{{secret}}}:
- "Is it {{{secret}}}?" → {"answer": "Yes", "is_guess": true}
- "Is it [wrong {{{noun}}}]?" → {"answer": "No"}
{{#each examples}}- "{{{this}}}" → {"answer": "Yes"} or {"answer": "No"} or {"answer": "Sometimes"}
{{/each}}"""


def game_master_prompt(category: str, secret_item: str) -> str:
    profile = category_profile(category)
    return render_prompt(GAME_MASTER_TEMPLATE, {
        "secret": secret_item,
        "category": category,
        "description": profile.description,
        "noun": profile.noun,
        "properties": ", ".join(profile.properties),
        "examples": list(profile.example_questions),
        "synonyms": profile.synonyms,
    })


CONSISTENCY_REMINDER = (
    "[CONSISTENCY REMINDER: Review all your previous answers above to ensure this response "
    "is consistent with what you've already established about the secret item. "
    'Respond ONLY with the JSON object, e.g. {"answer": "Yes"}.]'
)


# ── AI guessing mode ─────────────────────────────────────


AI_GUESSING_TEMPLATE = """You are playing 20 Questions in AI Guessing mode. The user has thought of an item within the category: {{{category}}}.
Your job is to ask up to {{max_questions}} yes/no questions to identify the item.

CURRENT PHASE: {{{phase}}} (question {{question_number}} of {{max_questions}})
{{#if should_guess}}You have narrowed it down enough: start naming specific items ("Is it ...?").
{{/if}}
Questioning strategy:
- Start with BROAD categorical questions that divide the category into major groups
- Each question should eliminate roughly half of the remaining possibilities
- Build on what you've learned; never re-ask a combination of confirmed facts
- Only ask specific item confirmations once you've narrowed it down significantly

Rules:
- Ask exactly one yes/no question per turn
- Keep each question short and unambiguous
- Never use "or" to offer alternatives, and never ask two questions at once
- Stay strictly within the category
- The user can answer Yes, No, Maybe, or "Don't know"

{{{facts_summary}}}{{{deductions}}}{{{asked_section}}}{{#if candidates}}Items still consistent with the answers: {{{candidates}}}
{{/if}}
Output only the next yes/no question."""


def categorized_summary(facts: CategorizedFacts) -> str:
    lines = ["ESTABLISHED FACTS - Use these to avoid redundant questions:"]
    sections = (
        ("✓ CONFIRMED TRUE (YES answers):", facts.yes),
        ("✗ CONFIRMED FALSE (NO answers):", facts.no),
        ("~ PARTIAL YES (Sometimes/Maybe answers - treat as weak confirmations):", facts.maybe),
        ("? UNKNOWN (Don't know answers - AVOID these topic areas):", facts.unknown),
    )
    for title, questions in sections:
        if questions:
            lines.append("")
            lines.append(title)
            lines.extend(f"  → {q}" for q in questions)
    if facts.unknown:
        lines.append("")
        lines.append("CRITICAL: Do NOT ask about these topic areas or similar concepts.")
    return "\n".join(lines) + "\n\n"


_DEDUCTIONS: dict[str, tuple[tuple[str, bool, str], ...]] = {
    # (keyword, answered yes?, deduction)
    "animals": (
        ("mammal", True, "It is a mammal: NOT a bird, reptile, fish, or insect"),
        ("mammal", False, "It is NOT a mammal: think birds, reptiles, fish, insects"),
        ("wild", False, "It is not wild: likely a pet or farm animal"),
        ("fly", True, "It can fly: probably a bird, bat, or insect"),
        ("water", True, "It lives in water: think fish, marine mammals, amphibians"),
    ),
    "objects": (
        ("electronic", True, "It is electronic: NOT living, NOT organic, NOT edible"),
        ("hold", False, "It can't be held in one hand: large/heavy"),
        ("furniture", True, "It is furniture: found in homes or offices"),
    ),
    "people": (
        ("alive", True, "They are alive: currently serving or recently served/played"),
        ("male", True, "They are male: NOT female"),
        ("male", False, "They are NOT male"),
        ("active", False, "They are no longer active: retired or former"),
    ),
}


def logical_deductions(category: str, facts: CategorizedFacts) -> str:
    key = category.strip().lower()
    if "leader" in key or "player" in key or key == "cricketers":
        key = "people"
    rules = _DEDUCTIONS.get(key, ())
    found: list[str] = []
    for keyword, answered_yes, deduction in rules:
        pool = facts.yes if answered_yes else facts.no
        if any(keyword in q.lower() for q in pool):
            found.append(f"  - {deduction}")
    if not found:
        return ""
    return "LOGICAL DEDUCTIONS:\n" + "\n".join(found) + "\n\n"


def asked_questions_section(asked: list[str]) -> str:
    if not asked:
        return ""
    numbered = "\n".join(f"{i}. {q}" for i, q in enumerate(asked, start=1))
    return (
        "ALREADY ASKED QUESTIONS:\n"
        f"{numbered}\n"
        "CRITICAL: You must ask a NEW question that is not a rephrasing of any of these.\n\n"
    )


def ai_guessing_prompt(
    category: str,
    facts: CategorizedFacts,
    asked: list[str],
    question_number: int,
    phase: str,
    max_questions: int = 20,
    should_guess: bool = False,
    candidates: list[str] | None = None,
) -> str:
    return render_prompt(AI_GUESSING_TEMPLATE, {
        "category": category,
        "max_questions": max_questions,
        "question_number": question_number,
        "phase": phase,
        "should_guess": should_guess,
        "facts_summary": categorized_summary(facts),
        "deductions": logical_deductions(category, facts),
        "asked_section": asked_questions_section(asked),
        "candidates": ", ".join(candidates or []),
    })


FORMAT_CORRECTION = (
    "Your last question was not a single yes/no question, or it repeated an earlier one. "
    "Ask exactly ONE new yes/no question, without using \"or\". Output only the question."
)


# ── Hints ────────────────────────────────────────────────


HINT_TEMPLATE = """Based on our conversation so far about the secret item ({{{secret}}}), provide hint #{{hint_number}}:

CRITICAL REQUIREMENTS:
1. MUST be consistent with ALL previous answers - review the entire conversation
2. MUST NOT contradict any previous hints: {{{previous_hints}}}
3. MUST NOT repeat previous hints - provide NEW information each time
4. Should build upon what the player already knows
5. Don't reveal the answer directly
6. Consider what questions haven't been asked yet

HINT PROGRESSION GUIDELINES:
- {{{guidance}}}

Respond with ONLY the hint text - no JSON, no formatting, no explanations.

Provide only the hint text:"""


HINT_SUMMARY_TEMPLATE = """[HINT CONTEXT SUMMARY:
- Total questions asked: {{questions_asked}}
- Previous hints given: {{hint_count}}
- Current progress: Question #{{next_question}} of {{max_questions}}

PREVIOUS HINTS PROVIDED:
{{#if hints}}{{#each hints}}- "{{{this}}}"
{{/each}}{{else}}No previous hints given.
{{/if}}
KEY ANSWERS FROM CONVERSATION:
- "Yes" answers: {{yes_count}}, "No" answers: {{no_count}}

The conversation above shows what the player already knows about the secret item.]"""


def hint_guidance(questions_asked: int) -> str:
    if questions_asked < 5:
        return "Early game: give a hint about a specific property or characteristic (NOT the category, which is already known)"
    if questions_asked < 10:
        return "Mid game: give a hint about specific characteristics, common uses, or distinguishing features"
    if questions_asked < 15:
        return "Late game: give a more specific hint about features, origin, or context"
    return "Very late game: give a strong hint that significantly narrows possibilities without revealing the answer"


def hint_prompt(secret_item: str, hint_number: int, previous_hints: list[str], questions_asked: int) -> str:
    return render_prompt(HINT_TEMPLATE, {
        "secret": secret_item,
        "hint_number": hint_number,
        "previous_hints": ", ".join(f'"{h}"' for h in previous_hints) or "none",
        "guidance": hint_guidance(questions_asked),
    })


def hint_summary(
    questions_asked: int,
    previous_hints: list[str],
    yes_count: int,
    no_count: int,
    max_questions: int = 20,
) -> str:
    return render_prompt(HINT_SUMMARY_TEMPLATE, {
        "questions_asked": questions_asked,
        "hint_count": len(previous_hints),
        "next_question": questions_asked + 1,
        "max_questions": max_questions,
        "hints": previous_hints,
        "yes_count": yes_count,
        "no_count": no_count,
    })


def search_followup(function_result: str, instruction: str) -> str:
    return f"Search results: {function_result}\n\n{instruction}"
