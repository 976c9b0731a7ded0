# recipehub/db/models/schemas.py
# Outward shapes returned by services and routes.
# Stored documents are never returned directly: ObjectIds become str ids, users become public projections.
from __future__ import annotations
from typing import List, Optional
from datetime import datetime

from pydantic import BaseModel, Field

from recipehub.db.models.recipe import Ingredient, InstructionStep, NutritionInfo


# Minimal public projection of a user record
class AuthorOut(BaseModel):
    id: str
    username: Optional[str] = None
    profileImage: str = ""


class RatingOut(BaseModel):
    user: AuthorOut
    rating: int
    review: Optional[str] = None
    helpfulCount: int = 0
    createdAt: datetime


class ScaledIngredientOut(BaseModel):
    name: str
    unit: str
    quantity: float                 # as stored, for the recipe's base servings
    scaledQuantity: float
    display: float                  # scaledQuantity rounded for presentation


# Catalog card
class RecipeListItem(BaseModel):
    id: str
    title: str
    description: str = ""
    category: str
    cuisine: Optional[str] = None
    dietaryTags: List[str] = Field(default_factory=list)
    difficulty: str
    prepTime: int
    cookingTime: int
    totalTime: int
    servings: int
    images: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    author: Optional[AuthorOut] = None
    averageRating: float = 0.0
    totalRatings: int = 0
    views: int = 0
    likesCount: int = 0
    isPremium: bool = False
    createdAt: Optional[datetime] = None
    publishedAt: Optional[datetime] = None


# Detail view
class RecipeOut(RecipeListItem):
    ingredients: List[Ingredient] = Field(default_factory=list)
    instructions: List[InstructionStep] = Field(default_factory=list)
    videoUrl: Optional[str] = None
    nutritionInfo: Optional[NutritionInfo] = None
    ratings: List[RatingOut] = Field(default_factory=list)
    likes: List[str] = Field(default_factory=list)
    isApproved: bool = True
    isPublished: bool = True
    lastModified: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
    requestedServings: Optional[int] = None
    scaledIngredients: Optional[List[ScaledIngredientOut]] = None


class PaginationOut(BaseModel):
    currentPage: int
    totalPages: int
    totalRecipes: int
    hasNextPage: bool
    hasPrevPage: bool


class RecipeListOut(BaseModel):
    recipes: List[RecipeListItem]
    pagination: PaginationOut


# Rating submission body (userId comes from the principal)
class RateIn(BaseModel):
    rating: int
    review: Optional[str] = None


# Meal-plan cell projection
class RecipeBrief(BaseModel):
    id: str
    title: str
    images: List[str] = Field(default_factory=list)
    cookingTime: int
    difficulty: str


class DayMealsOut(BaseModel):
    day: str
    breakfast: Optional[RecipeBrief] = None
    lunch: Optional[RecipeBrief] = None
    dinner: Optional[RecipeBrief] = None
    snacks: List[RecipeBrief] = Field(default_factory=list)


class MealPlanOut(BaseModel):
    id: str
    user: str
    weekStartDate: datetime
    meals: List[DayMealsOut] = Field(default_factory=list)
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
