"""Curated sentence-starter catalog shown on the prompts page.

Categories that only make sense for some storytellers (children, college,
siblings, a spouse, pets) are gated by facts the user has shared. Sensitive
categories are flagged so the client can ask before showing them.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class Sensitivity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CatalogItem(BaseModel):
    id: str
    text: str
    gates: List[str] = Field(default_factory=list)
    sensitivity: Sensitivity = Sensitivity.LOW


class CatalogGates(BaseModel):
    requires_children: bool = False
    requires_college: bool = False
    has_siblings: bool = False
    has_spouse_or_partner: bool = False
    has_pets: bool = False


class CatalogCategory(BaseModel):
    name: str
    sensitive: bool
    items: List[CatalogItem]


SENSITIVE_CATEGORIES = frozenset({"Dating", "Health & Hard Times", "Spirituality & Faith", "Reflections & Legacy"})

_CATEGORY_GATES = {
    "Children": "requires_children",
    "College": "requires_college",
    "Siblings": "has_siblings",
    "Spouse or Partner": "has_spouse_or_partner",
    "Pets": "has_pets",
}


def _items(prefix: str, *entries: str | tuple[str, ...]) -> List[CatalogItem]:
    items: List[CatalogItem] = []
    for index, entry in enumerate(entries, start=1):
        if isinstance(entry, tuple):
            text, *flags = entry
        else:
            text, flags = entry, []
        gates = [flag for flag in flags if flag != "medium"]
        sensitivity = Sensitivity.MEDIUM if "medium" in flags else Sensitivity.LOW
        items.append(CatalogItem(id=f"{prefix}-{index}", text=text, gates=gates, sensitivity=sensitivity))
    return items


CATALOG: Dict[str, List[CatalogItem]] = {
    "Advice": _items(
        "advice",
        "When life feels heavy, I remind myself that…",
        "When things go sideways, what helps me most is…",
        "A piece of advice I wish I had learned sooner is…",
    ),
    "Ancestry": _items(
        "ancestry",
        "A story about one of my ancestors that still sticks with me is…",
        "Something passed down for generations in my family is…",
        ("A family secret or little-known truth is…", "medium"),
    ),
    "Celebrations": _items(
        "cele",
        "A favorite holiday memory of mine is…",
        "A unique tradition my family kept was…",
        "A birthday I will never forget was…",
    ),
    "Childhood": _items(
        "child",
        "One of my very first memories is…",
        "If you stood outside my childhood home, you would see…",
        "A toy or game I adored was…",
        "Someone from my childhood who shaped me was…",
    ),
    "Children": _items(
        "kids",
        ("A favorite story from when my child was little is…", "requires_children"),
        ("A quality I admire in my child is…", "requires_children"),
        ("An important value I tried to pass on is…", "requires_children"),
    ),
    "College": _items(
        "college",
        ("A friend I made in college who shaped me was…", "requires_college"),
        ("A class I loved and why was…", "requires_college"),
    ),
    "Dating": _items(
        "dating",
        ("A breakup that taught me something was…", "medium"),
        ("The story of my first kiss is…", "medium"),
        ("My first love as a teenager was…", "medium"),
    ),
    "Feelings": _items(
        "feel",
        "A moment that still makes me laugh is…",
        "A time I scared myself but kept going was…",
        "A time I felt truly proud was…",
        ("One of the hardest times in my life was…", "medium"),
    ),
    "Friends": _items(
        "friends",
        "A great friend from childhood was…",
        ("A great friend from college was…", "requires_college"),
        "One of my longest friendships is with…",
    ),
    "Grandparents": _items(
        "gp",
        "A favorite memory with my grandparent is…",
        "My favorite thing my grandparent cooked was…",
    ),
    "Health & Hard Times": _items(
        "health",
        "A childhood accident I can laugh about now was…",
        ("Watching family face illness taught me…", "medium"),
    ),
    "Historical": _items(
        "hist",
        "The first big news event I remember as a child was…",
        "A technological change that influenced my life was…",
    ),
    "Parents": _items(
        "parents",
        "A time I felt especially close to my parent was…",
        "A lesson I learned from my parent is…",
        ("How I would describe my relationship with my parents is…", "medium"),
    ),
    "Pets": _items(
        "pets",
        ("One of the best pets I ever had was…", "has_pets"),
        ("A memorable story about one of our pets is…", "has_pets"),
        "I have not been much of a pet owner because…",
    ),
    "Reflections & Legacy": _items(
        "refl",
        "A turning point in my life was…",
        "Something I built or made with my own hands is…",
        ("One of my biggest regrets is…", "medium"),
    ),
    "Siblings": _items(
        "sib",
        ("A good story about my brother or sister and me is…", "has_siblings"),
        ("A time we got into trouble together was…", "has_siblings"),
    ),
    "Spirituality & Faith": _items(
        "faith",
        ("The role of faith in my life is…", "medium"),
        ("An experience that tested my faith was…", "medium"),
    ),
    "Spouse or Partner": _items(
        "sp",
        ("How I first met my spouse or partner is…", "has_spouse_or_partner"),
        ("A moment we felt especially happy was…", "has_spouse_or_partner"),
    ),
    "Songs & Music": _items(
        "music",
        "A song I love to sing is…",
        ("A song I sang to my children was…", "requires_children"),
    ),
    "Travel": _items(
        "travel",
        "A city I loved exploring was…",
        "The best road trip I took was…",
    ),
    "Work & Career": _items(
        "work",
        "A professional achievement I am proud of is…",
        "The worst or strangest job I had was…",
        "A turning point in my career was when…",
    ),
}


def is_sensitive_category(category: str) -> bool:
    return category in SENSITIVE_CATEGORIES


def category_allowed(category: str, gates: CatalogGates) -> bool:
    gate = _CATEGORY_GATES.get(category)
    return True if gate is None else bool(getattr(gates, gate))


def item_allowed(item: CatalogItem, gates: CatalogGates) -> bool:
    return all(getattr(gates, gate, False) for gate in item.gates)


def build_catalog(gates: Optional[CatalogGates] = None) -> List[CatalogCategory]:
    """Return the catalog filtered by what the storyteller has told us."""
    gates = gates or CatalogGates()
    categories: List[CatalogCategory] = []
    for name, items in CATALOG.items():
        if not category_allowed(name, gates):
            continue
        visible = [item for item in items if item_allowed(item, gates)]
        if visible:
            categories.append(CatalogCategory(name=name, sensitive=is_sensitive_category(name), items=visible))
    return categories


def find_catalog_item(item_id: str) -> Optional[tuple[str, CatalogItem]]:
    for name, items in CATALOG.items():
        for item in items:
            if item.id == item_id:
                return name, item
    return None
