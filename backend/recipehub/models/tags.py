# recipehub/models/tags.py
from typing import Iterable, List, Literal, get_args
import re

# === Fixed vocabularies =======================================================

Category = Literal["breakfast", "lunch", "dinner", "desserts", "drinks", "snacks", "appetizers"]
Cuisine = Literal[
    "italian", "chinese", "indian", "mexican", "mediterranean",
    "american", "french", "thai", "japanese", "other",
]
DietaryTag = Literal[
    "vegetarian", "vegan", "keto", "gluten-free", "dairy-free",
    "paleo", "low-carb", "pescatarian", "nut-free", "soy-free",
]
Unit = Literal[
    "cups", "tbsp", "tsp", "grams", "kg", "pounds", "oz", "liters", "ml",
    "pieces", "cloves", "slices", "pinch", "dash", "whole",
]
Difficulty = Literal["Easy", "Medium", "Hard"]
WeekDay = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
MealSlot = Literal["breakfast", "lunch", "dinner", "snacks"]

WEEK_DAYS: List[str] = list(get_args(WeekDay))

# === Field limits =============================================================

MIN_TITLE = 3
MAX_TITLE = 100
MAX_DESCRIPTION = 1000
MAX_STEP_TEXT = 500
MAX_REVIEW = 500
MAX_TAG = 30
MIN_SERVINGS = 1
MAX_SERVINGS = 100
MIN_RATING = 1
MAX_RATING = 5

URL_RE = re.compile(r"^https?://.+")

# === Free-form tags ===========================================================

def normalize_tags(candidates: Iterable[str]) -> List[str]:
    """Trim + lowercase, drop empties and duplicates, keep first-seen order."""
    out: List[str] = []
    for t in candidates or []:
        s = re.sub(r"\s+", " ", str(t)).strip().lower()
        if s and s not in out:
            out.append(s)
    return out

def dedupe(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(values or []))

def is_url(value: str) -> bool:
    return bool(URL_RE.match(value or ""))
