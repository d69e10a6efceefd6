"""Item knowledge: which seed items have which traits.

The possibility-space builder asks one question of this layer:

    matches(item, question, expected) -> True | False | None

None means "no data", and callers must treat it as neither confirming nor
contradicting. KeywordItemKnowledge is a small hard-coded lookup. It is a
coarse approximation and can be swapped for anything implementing the
ItemKnowledge protocol.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from twenty_questions.categories import CATEGORIES


class ItemKnowledge(Protocol):
    def matches(self, item: str, question: str, expected: bool) -> bool | None: ...


@dataclass(frozen=True)
class Trait:
    name: str
    keywords: tuple[str, ...]
    category: str  # items outside this category are unknown for the trait
    members: frozenset[str]


def _trait(name: str, keywords: tuple[str, ...], category: str, members: str) -> Trait:
    return Trait(name, keywords, category, frozenset(m.strip() for m in members.split(",")))


DEFAULT_TRAITS: tuple[Trait, ...] = (
    # Animals
    _trait("mammal", ("mammal",), "Animals",
           "dog, cat, elephant, lion, dolphin, tiger, bear, whale, kangaroo, giraffe, zebra,"
           "monkey, wolf, fox, rabbit, horse, cow, pig, cheetah, leopard, rhino, hippo, camel,"
           "deer, moose, raccoon, hamster, hedgehog, squirrel, beaver, otter, seal, walrus, bat, sloth"),
    _trait("bird", ("bird", "feathers"), "Animals",
           "penguin, eagle, chicken, duck, owl, parrot, flamingo, swan, goose, hummingbird, falcon"),
    _trait("fly", ("fly", "flying", "wings"), "Animals",
           "eagle, butterfly, owl, parrot, duck, goose, swan, hummingbird, falcon, bat, flamingo"),
    _trait("water", ("water", "aquatic", "swim", "ocean", "sea"), "Animals",
           "dolphin, whale, shark, octopus, turtle, frog, penguin, seal, walrus, jellyfish,"
           "starfish, crab, lobster, seahorse, salmon, goldfish, otter, beaver, hippo, crocodile"),
    _trait("pet", ("pet", "domesticated"), "Animals",
           "dog, cat, rabbit, hamster, parrot, goldfish, horse, turtle, hedgehog"),
    _trait("farm", ("farm",), "Animals", "cow, pig, chicken, duck, horse, goose"),
    _trait("meat", ("meat", "carnivore", "carnivorous", "predator"), "Animals",
           "lion, tiger, eagle, snake, shark, wolf, fox, crocodile, cheetah, leopard, owl,"
           "falcon, octopus, seal, spider, penguin, dolphin, whale, bear, cat, dog"),
    # Objects
    _trait("electronic", ("electronic", "electric", "electricity", "digital", "battery", "batteries"),
           "Objects",
           "computer, phone, television, lamp, keyboard, mouse, watch, camera, headphones,"
           "calculator, flashlight, refrigerator, drill, thermometer"),
    _trait("furniture", ("furniture",), "Objects", "chair, table, sofa, bed, lamp"),
    _trait("tool", ("tool",), "Objects",
           "knife, scissors, screwdriver, hammer, drill, wrench, stapler, calculator"),
    _trait("handheld", ("hold", "handheld", "hand"), "Objects",
           "phone, book, mouse, watch, camera, knife, fork, spoon, cup, bottle, pen, pencil,"
           "wallet, toothbrush, scissors, screwdriver, hammer, wrench, stapler, calculator,"
           "notebook, flashlight, candle, thermometer, clock, mirror, plate"),
    _trait("metal", ("metal",), "Objects",
           "knife, fork, spoon, scissors, screwdriver, hammer, wrench, car, bicycle, stapler"),
    _trait("vehicle", ("vehicle", "ride", "transport"), "Objects", "car, bicycle"),
)


class KeywordItemKnowledge:
    def __init__(self, traits: tuple[Trait, ...] = DEFAULT_TRAITS) -> None:
        self._traits = traits
        self._category_items = {
            cat: {i.lower() for i in items} for cat, items in CATEGORIES.items()
        }

    def traits_in(self, question: str) -> list[Trait]:
        words = set(question.lower().replace("?", " ").replace(",", " ").split())
        return [t for t in self._traits if words & set(t.keywords)]

    def has_trait(self, item: str, trait: Trait) -> bool | None:
        item_lower = item.lower()
        if item_lower not in self._category_items.get(trait.category, set()):
            return None
        return item_lower in trait.members

    def matches(self, item: str, question: str, expected: bool) -> bool | None:
        """Whether `item` agrees with `expected` as the answer to `question`."""
        verdicts = [self.has_trait(item, t) for t in self.traits_in(question)]
        known = [v for v in verdicts if v is not None]
        if not known:
            return None
        # several traits in one question: any of them holding counts as yes
        return any(known) == expected
