# recipehub/db/models/recipe.py
# Canonical Recipe entity. Every operation validates and stores through these models.
from __future__ import annotations
from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StrictInt, field_validator

from recipehub.models.tags import (
    Category, Cuisine, DietaryTag, Difficulty, Unit,
    MIN_TITLE, MAX_TITLE, MAX_DESCRIPTION, MAX_STEP_TEXT, MAX_REVIEW, MAX_TAG,
    MIN_SERVINGS, MAX_SERVINGS, MIN_RATING, MAX_RATING,
    dedupe, is_url, normalize_tags,
)

Tag = Annotated[str, Field(max_length=MAX_TAG)]


def _check_url(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return None
    if not is_url(v):
        raise ValueError("must be a valid http(s) URL")
    return v


MediaUrl = Annotated[Optional[str], AfterValidator(_check_url)]


class Ingredient(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1)
    quantity: float = Field(..., gt=0)
    unit: Unit


class InstructionStep(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    stepNumber: int = Field(..., ge=1)
    description: str = Field(..., min_length=1, max_length=MAX_STEP_TEXT)
    image: MediaUrl = None
    videoUrl: MediaUrl = None
    timer: Optional[float] = Field(default=None, ge=0)   # minutes


class NutritionInfo(BaseModel):
    calories: Optional[float] = Field(default=None, ge=0)
    protein: Optional[float] = Field(default=None, ge=0)   # g
    carbs: Optional[float] = Field(default=None, ge=0)     # g
    fat: Optional[float] = Field(default=None, ge=0)       # g
    fiber: Optional[float] = Field(default=None, ge=0)     # g
    sugar: Optional[float] = Field(default=None, ge=0)     # g
    sodium: Optional[float] = Field(default=None, ge=0)    # mg


class RatingEntry(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    user: str = Field(..., min_length=1)
    rating: StrictInt = Field(..., ge=MIN_RATING, le=MAX_RATING)
    review: Optional[str] = Field(default=None, max_length=MAX_REVIEW)
    helpful: List[str] = Field(default_factory=list)
    createdAt: datetime = Field(default_factory=datetime.utcnow)


class RecipeIn(BaseModel):
    """Author-supplied recipe payload. Derived and server-owned keys are dropped, not trusted."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    title: str = Field(..., min_length=MIN_TITLE, max_length=MAX_TITLE)
    description: str = Field(..., min_length=1, max_length=MAX_DESCRIPTION)
    category: Category
    cuisine: Optional[Cuisine] = None
    dietaryTags: List[DietaryTag] = Field(default_factory=list)
    ingredients: List[Ingredient] = Field(default_factory=list)
    instructions: List[InstructionStep] = Field(default_factory=list)
    prepTime: int = Field(..., ge=1)
    cookingTime: int = Field(..., ge=1)
    difficulty: Difficulty
    servings: int = Field(..., ge=MIN_SERVINGS, le=MAX_SERVINGS)
    images: List[str] = Field(default_factory=list)
    videoUrl: MediaUrl = None
    tags: List[Tag] = Field(default_factory=list)
    nutritionInfo: Optional[NutritionInfo] = None
    isPublished: bool = True
    isPremium: bool = False

    @field_validator("tags", mode="before")
    @classmethod
    def _v_tags(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        return normalize_tags(v)

    @field_validator("dietaryTags")
    @classmethod
    def _v_dietary(cls, v):
        return dedupe(v)

    @field_validator("images")
    @classmethod
    def _v_images(cls, v):
        bad = [i for i, url in enumerate(v) if not is_url(url)]
        if bad:
            raise ValueError(f"image(s) at index {bad} must be valid http(s) URLs")
        return v


# Fields an author may change after creation
EDITABLE_FIELDS = tuple(RecipeIn.model_fields)


class RecipeUpdate(BaseModel):
    """Partial edit. Only keys the caller actually sent are applied."""
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    cuisine: Optional[str] = None
    dietaryTags: Optional[List[str]] = None
    ingredients: Optional[List[dict]] = None
    instructions: Optional[List[dict]] = None
    prepTime: Optional[int] = None
    cookingTime: Optional[int] = None
    difficulty: Optional[str] = None
    servings: Optional[int] = None
    images: Optional[List[str]] = None
    videoUrl: Optional[str] = None
    tags: Optional[List[str]] = None
    nutritionInfo: Optional[dict] = None
    isPublished: Optional[bool] = None
    isPremium: Optional[bool] = None


class RecipeDoc(RecipeIn):
    """Stored recipe document (minus _id, which the store assigns)."""

    author: str
    totalTime: int = 0
    ratings: List[RatingEntry] = Field(default_factory=list)
    averageRating: float = Field(default=0.0, ge=0, le=MAX_RATING)
    totalRatings: int = Field(default=0, ge=0)
    views: int = Field(default=0, ge=0)
    likes: List[str] = Field(default_factory=list)
    isApproved: bool = True
    publishedAt: Optional[datetime] = None
    lastModified: datetime = Field(default_factory=datetime.utcnow)
    createdAt: datetime = Field(default_factory=datetime.utcnow)
    updatedAt: datetime = Field(default_factory=datetime.utcnow)
    revision: int = 0
