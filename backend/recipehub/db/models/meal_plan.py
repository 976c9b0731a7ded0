# recipehub/db/models/meal_plan.py
# Canonical MealPlan entity: one document per (user, weekStartDate)
from __future__ import annotations
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from recipehub.models.tags import MealSlot, WeekDay


class DayMeals(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    day: WeekDay
    breakfast: Optional[str] = None
    lunch: Optional[str] = None
    dinner: Optional[str] = None
    snacks: List[str] = Field(default_factory=list)

    @field_validator("day", mode="before")
    @classmethod
    def _v_day(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("breakfast", "lunch", "dinner", mode="before")
    @classmethod
    def _v_blank(cls, v):
        # an emptied slot arrives as "" from the grid
        return v or None

    def recipe_refs(self) -> List[str]:
        refs = [r for r in (self.breakfast, self.lunch, self.dinner) if r]
        return refs + list(self.snacks)


class MealAssignment(BaseModel):
    """One cell of the weekly grid, as produced by the planner UI."""
    day: WeekDay
    mealType: MealSlot
    recipeRef: str = Field(..., min_length=1)


class MealPlanIn(BaseModel):
    meals: Optional[List[DayMeals]] = None
    assignments: Optional[List[MealAssignment]] = None


class MealPlanDoc(BaseModel):
    user: str
    weekStartDate: datetime
    meals: List[DayMeals] = Field(default_factory=list)
    createdAt: datetime = Field(default_factory=datetime.utcnow)
    updatedAt: datetime = Field(default_factory=datetime.utcnow)
