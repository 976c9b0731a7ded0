# recipehub/services/meal_plans.py
# Weekly meal-plan grid: one plan per (user, weekStartDate), saved by full-replacement upsert

from __future__ import annotations
import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from recipehub.core.errors import ConflictError, NotFoundError, ValidationError
from recipehub.db.models.meal_plan import DayMeals, MealAssignment, MealPlanDoc
from recipehub.db.models.schemas import DayMealsOut, MealPlanOut, RecipeBrief
from recipehub.db.store import DocumentStore, as_key
from recipehub.models.tags import WEEK_DAYS

log = logging.getLogger(__name__)

BRIEF_FIELDS = {"_id": 1, "title": 1, "images": 1, "cookingTime": 1, "difficulty": 1}

_days = TypeAdapter(List[DayMeals])
_assignments = TypeAdapter(List[MealAssignment])

def normalize_week_start(value: Union[date, datetime, str]) -> datetime:
    """Calendar date at midnight. Both halves of the natural key must go through this."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError.single("weekStartDate", f"invalid date: {value!r}")
    if isinstance(value, datetime):
        value = value.date()
    if not isinstance(value, date):
        raise ValidationError.single("weekStartDate", "weekStartDate is required")
    return datetime(value.year, value.month, value.day)

def parse_meals(meals: Optional[Iterable[Any]]) -> List[DayMeals]:
    try:
        days = _days.validate_python(list(meals or []))
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e, prefix="meals") from e
    seen = [d.day for d in days]
    dupes = sorted({d for d in seen if seen.count(d) > 1})
    if dupes:
        raise ValidationError([{"field": "meals", "message": f"day listed more than once: {d}"} for d in dupes])
    return sorted(days, key=lambda d: WEEK_DAYS.index(d.day))

def assignments_to_meals(assignments: Iterable[Any]) -> List[DayMeals]:
    """Turn a batch of {day, mealType, recipeRef} cells into a meals body. Later cells win; snacks stack."""
    try:
        cells = _assignments.validate_python(list(assignments or []))
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e, prefix="assignments") from e

    grid: Dict[str, Dict[str, Any]] = {}
    for c in cells:
        day = grid.setdefault(c.day, {"day": c.day, "snacks": []})
        if c.mealType == "snacks":
            day["snacks"].append(c.recipeRef)
        else:
            day[c.mealType] = c.recipeRef
    return parse_meals(grid.values())


class MealPlanService:
    def __init__(self, plans: DocumentStore, recipes: DocumentStore) -> None:
        self.plans = plans
        self.recipes = recipes

    async def _check_recipes(self, days: List[DayMeals]) -> None:
        refs = list(dict.fromkeys(r for d in days for r in d.recipe_refs()))
        if not refs:
            return
        found = await self.recipes.find({"_id": {"$in": [as_key(r) for r in refs]}}, projection={"_id": 1})
        have = {str(d["_id"]) for d in found}
        missing = [r for r in refs if r not in have]
        if missing:
            raise NotFoundError(f"recipes not found: {', '.join(missing)}")

    async def _briefs(self, days: List[DayMeals]) -> Dict[str, RecipeBrief]:
        refs = list(dict.fromkeys(r for d in days for r in d.recipe_refs()))
        if not refs:
            return {}
        docs = await self.recipes.find({"_id": {"$in": [as_key(r) for r in refs]}}, projection=BRIEF_FIELDS)
        return {
            str(d["_id"]): RecipeBrief(
                id=str(d["_id"]),
                title=d.get("title", ""),
                images=d.get("images") or [],
                cookingTime=d.get("cookingTime", 0),
                difficulty=d.get("difficulty", ""),
            )
            for d in docs
        }

    async def _to_out(self, doc: Mapping[str, Any]) -> MealPlanOut:
        plan = MealPlanDoc.model_validate(doc)
        briefs = await self._briefs(plan.meals)
        return MealPlanOut(
            id=str(doc["_id"]),
            user=plan.user,
            weekStartDate=plan.weekStartDate,
            meals=[
                DayMealsOut(
                    day=d.day,
                    breakfast=briefs.get(d.breakfast) if d.breakfast else None,
                    lunch=briefs.get(d.lunch) if d.lunch else None,
                    dinner=briefs.get(d.dinner) if d.dinner else None,
                    # recipes deleted since the plan was saved drop out of the snack list
                    snacks=[briefs[s] for s in d.snacks if s in briefs],
                )
                for d in plan.meals
            ],
            createdAt=plan.createdAt,
            updatedAt=plan.updatedAt,
        )

    async def upsert_plan(
        self,
        user_ref: Any,
        week_start: Union[date, datetime, str],
        meals: Optional[Iterable[Any]] = None,
        assignments: Optional[Iterable[Any]] = None,
    ) -> MealPlanOut:
        """Create or fully replace the plan for (user, week). Days missing from `meals` are cleared."""
        if not user_ref:
            raise ValidationError.single("user", "user is required")
        week = normalize_week_start(week_start)
        days = assignments_to_meals(assignments) if assignments is not None else parse_meals(meals)
        await self._check_recipes(days)

        now = datetime.utcnow()
        key = {"user": str(user_ref), "weekStartDate": week}
        update = {
            "$set": {"meals": [d.model_dump() for d in days], "updatedAt": now},
            "$setOnInsert": {"createdAt": now},
        }
        try:
            doc = await self.plans.find_one_and_update(key, update, upsert=True)
        except ConflictError:
            # a concurrent first save inserted the plan; this time the upsert matches it
            log.info("meal plan upsert raced user=%s week=%s, retrying", user_ref, week.date())
            doc = await self.plans.find_one_and_update(key, update, upsert=True)
        log.info("meal plan saved user=%s week=%s days=%d", user_ref, week.date(), len(days))
        return await self._to_out(doc)

    async def get_plan(self, user_ref: Any, week_start: Union[date, datetime, str]) -> Optional[MealPlanOut]:
        week = normalize_week_start(week_start)
        doc = await self.plans.find_one({"user": str(user_ref), "weekStartDate": week})
        if not doc:
            return None
        return await self._to_out(doc)

    async def delete_plan(self, user_ref: Any, week_start: Union[date, datetime, str]) -> bool:
        week = normalize_week_start(week_start)
        return await self.plans.delete_one({"user": str(user_ref), "weekStartDate": week})
