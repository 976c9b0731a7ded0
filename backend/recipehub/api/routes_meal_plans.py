# recipehub/api/routes_meal_plans.py
# Weekly planner for the signed-in user. weekStartDate is YYYY-MM-DD.

from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, Response

from recipehub.core.deps import get_meal_plan_service, get_principal
from recipehub.db.models.meal_plan import MealPlanIn
from recipehub.db.models.schemas import MealPlanOut
from recipehub.services.meal_plans import MealPlanService
from recipehub.services.recipes import Principal

router = APIRouter(prefix="/meal-plans", tags=["meal-plans"])

@router.get("/{week_start}", response_model=Optional[MealPlanOut])
async def get_meal_plan(
    week_start: str,
    principal: Principal = Depends(get_principal),
    svc: MealPlanService = Depends(get_meal_plan_service),
):
    # no plan for that week yet -> null, not 404
    return await svc.get_plan(principal.userId, week_start)

@router.put("/{week_start}", response_model=MealPlanOut)
async def save_meal_plan(
    week_start: str,
    body: MealPlanIn,
    principal: Principal = Depends(get_principal),
    svc: MealPlanService = Depends(get_meal_plan_service),
):
    # either a full `meals` body or a batch of grid `assignments`; both replace the whole week
    if body.assignments is not None:
        return await svc.upsert_plan(principal.userId, week_start, assignments=body.assignments)
    return await svc.upsert_plan(principal.userId, week_start, meals=body.meals)

@router.delete("/{week_start}", status_code=204)
async def delete_meal_plan(
    week_start: str,
    principal: Principal = Depends(get_principal),
    svc: MealPlanService = Depends(get_meal_plan_service),
):
    await svc.delete_plan(principal.userId, week_start)
    return Response(status_code=204)
