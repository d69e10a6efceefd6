"""Category seed data.

Read-only. Each category carries a sample of items used to pick the secret
in guess mode and to seed the possibility space in ai_guessing mode.
"""

from __future__ import annotations

import random

CATEGORIES: dict[str, list[str]] = {
    "Animals": [
        "dog", "cat", "elephant", "lion", "penguin", "dolphin", "eagle", "snake",
        "tiger", "bear", "whale", "shark", "butterfly", "spider", "kangaroo", "giraffe",
        "zebra", "monkey", "wolf", "fox", "rabbit", "turtle", "frog", "octopus",
        "horse", "cow", "pig", "chicken", "duck", "owl", "parrot", "crocodile",
        "cheetah", "leopard", "rhino", "hippo", "camel", "deer", "moose", "raccoon",
        "hamster", "hedgehog", "squirrel", "beaver", "otter", "seal", "walrus",
        "jellyfish", "starfish", "crab", "lobster", "seahorse", "salmon", "goldfish",
        "flamingo", "swan", "goose", "hummingbird", "falcon", "bat", "sloth",
    ],
    "Objects": [
        "chair", "computer", "phone", "book", "car", "bicycle", "television", "lamp",
        "table", "keyboard", "mouse", "watch", "camera", "guitar", "piano", "knife",
        "fork", "spoon", "plate", "cup", "bottle", "pen", "pencil", "mirror",
        "wallet", "backpack", "shoes", "hat", "umbrella", "toothbrush", "pillow",
        "clock", "headphones", "scissors", "screwdriver", "hammer", "drill",
        "wrench", "stapler", "calculator", "notebook", "telescope", "microscope",
        "flashlight", "candle", "thermometer", "refrigerator", "sofa", "bed",
    ],
    "Places": [
        "beach", "mountain", "library", "restaurant", "hospital", "school", "park",
        "museum", "airport", "desert", "forest", "stadium", "zoo", "castle",
    ],
    "Cricketers": [
        "Virat Kohli", "MS Dhoni", "Rohit Sharma", "Joe Root", "Steve Smith",
        "Kane Williamson", "Babar Azam", "AB de Villiers", "Chris Gayle",
        "David Warner", "Ben Stokes", "Kagiso Rabada", "Jasprit Bumrah",
        "Pat Cummins", "Rashid Khan", "Sachin Tendulkar", "Brian Lara",
        "Ricky Ponting", "Shane Warne", "Muttiah Muralitharan", "Wasim Akram",
        "Don Bradman", "Kapil Dev", "Imran Khan", "James Anderson",
    ],
    "Football Players": [
        "Lionel Messi", "Cristiano Ronaldo", "Neymar Jr", "Kylian Mbappé",
        "Kevin De Bruyne", "Robert Lewandowski", "Virgil van Dijk", "Mohamed Salah",
        "Sadio Mané", "Luka Modrić", "Karim Benzema", "Erling Haaland",
        "Vinicius Jr", "Jude Bellingham", "Sergio Ramos", "Harry Kane",
        "Son Heung-min", "Manuel Neuer", "Bukayo Saka", "Antoine Griezmann",
    ],
    "NBA Players": [
        "LeBron James", "Stephen Curry", "Kevin Durant", "Giannis Antetokounmpo",
        "Luka Dončić", "Nikola Jokić", "Joel Embiid", "Jayson Tatum",
        "Damian Lillard", "Jimmy Butler", "Kawhi Leonard", "Russell Westbrook",
        "Michael Jordan", "Kobe Bryant", "Shaquille O'Neal", "Magic Johnson",
        "Larry Bird", "Tim Duncan", "Dirk Nowitzki", "Victor Wembanyama",
    ],
    "World Leaders": [
        "Joe Biden", "Emmanuel Macron", "Olaf Scholz", "Justin Trudeau",
        "Volodymyr Zelenskyy", "Narendra Modi", "Xi Jinping", "Vladimir Putin",
        "Giorgia Meloni", "Rishi Sunak", "Fumio Kishida", "Moon Jae-in",
        "Recep Erdoğan", "Benjamin Netanyahu", "Cyril Ramaphosa",
        "Anthony Albanese", "Jacinda Ardern", "Pedro Sánchez", "King Charles III",
    ],
}

PEOPLE_CATEGORIES = frozenset({"cricketers", "football players", "nba players", "world leaders"})

_ALIASES = {"cricket players": "Cricketers"}


def list_categories() -> list[str]:
    return list(CATEGORIES)


def resolve_category(name: str | None) -> str | None:
    """Return the canonical category name, or None if unknown."""
    if not name:
        return None
    key = name.strip().lower()
    if key in _ALIASES:
        return _ALIASES[key]
    for canonical in CATEGORIES:
        if canonical.lower() == key:
            return canonical
    return None


def get_items(category: str) -> list[str]:
    canonical = resolve_category(category)
    return list(CATEGORIES[canonical]) if canonical else []


def is_people_category(category: str) -> bool:
    return category.strip().lower() in PEOPLE_CATEGORIES


def pick_category(rng: random.Random) -> str:
    return rng.choice(list(CATEGORIES))


def pick_item(category: str, rng: random.Random) -> str:
    items = get_items(category)
    if not items:
        raise ValueError(f"Category has no items: {category}")
    return rng.choice(items)
