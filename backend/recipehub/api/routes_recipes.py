# recipehub/api/routes_recipes.py
# Catalog listing, recipe detail/creation/editing, ratings, likes and bookmarks
# Domain errors propagate to the handlers registered in main.py

from __future__ import annotations
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel

from recipehub.core.deps import (
    get_catalog, get_optional_principal, get_principal, get_recipe_service, get_user_directory,
)
from recipehub.db.models.recipe import RecipeUpdate
from recipehub.db.models.schemas import RateIn, RecipeListItem, RecipeListOut, RecipeOut
from recipehub.services.catalog import Catalog
from recipehub.services.recipes import Principal, RecipeService
from recipehub.services.users import UserDirectory

router = APIRouter(prefix="/recipes", tags=["recipes"])

class ApprovalIn(BaseModel):
    isApproved: bool

class BookmarkOut(BaseModel):
    recipeId: str
    saved: bool

# ------------------------------
# catalog (static paths before /{recipe_id})
# ------------------------------

@router.get("", response_model=RecipeListOut)
async def list_recipes(
    page: int = 1,
    limit: Optional[int] = None,
    category: Optional[str] = None,
    dietary: Optional[List[str]] = Query(default=None),
    difficulty: Optional[str] = None,
    search: Optional[str] = None,
    sortBy: Optional[str] = None,
    sortOrder: Optional[str] = None,
    catalog: Catalog = Depends(get_catalog),
):
    return await catalog.search({
        "page": page,
        "limit": limit,
        "category": category,
        "dietary": dietary,
        "difficulty": difficulty,
        "search": search,
        "sortBy": sortBy,
        "sortOrder": sortOrder,
    })

@router.get("/popular", response_model=List[RecipeListItem])
async def popular_recipes(limit: int = 10, catalog: Catalog = Depends(get_catalog)):
    return await catalog.popular(limit)

@router.get("/by-ingredient", response_model=RecipeListOut)
async def recipes_by_ingredient(
    ingredient: str,
    page: int = 1,
    limit: Optional[int] = None,
    catalog: Catalog = Depends(get_catalog),
):
    return await catalog.by_ingredient(ingredient, page=page, limit=limit)

# ------------------------------
# lifecycle
# ------------------------------

@router.post("", response_model=RecipeOut, status_code=201)
async def create_recipe(
    payload: Dict[str, Any] = Body(...),
    principal: Principal = Depends(get_principal),
    svc: RecipeService = Depends(get_recipe_service),
):
    # raw dict on purpose: the service reports every invalid field at once
    return await svc.create(payload, principal.userId)

@router.get("/{recipe_id}", response_model=RecipeOut)
async def get_recipe(
    recipe_id: str,
    servings: Optional[int] = Query(default=None, ge=1),
    principal: Optional[Principal] = Depends(get_optional_principal),
    svc: RecipeService = Depends(get_recipe_service),
):
    return await svc.get(recipe_id, principal=principal, servings=servings)

@router.patch("/{recipe_id}", response_model=RecipeOut)
async def update_recipe(
    recipe_id: str,
    patch: RecipeUpdate,
    principal: Principal = Depends(get_principal),
    svc: RecipeService = Depends(get_recipe_service),
):
    return await svc.update(recipe_id, patch.model_dump(exclude_unset=True), principal)

@router.patch("/{recipe_id}/approval", response_model=RecipeOut)
async def set_recipe_approval(
    recipe_id: str,
    body: ApprovalIn,
    principal: Principal = Depends(get_principal),
    svc: RecipeService = Depends(get_recipe_service),
):
    return await svc.set_approval(recipe_id, body.isApproved, principal)

# ------------------------------
# ratings / engagement
# ------------------------------

@router.post("/{recipe_id}/ratings", response_model=RecipeOut)
async def rate_recipe(
    recipe_id: str,
    body: RateIn,
    principal: Principal = Depends(get_principal),
    svc: RecipeService = Depends(get_recipe_service),
):
    return await svc.rate(recipe_id, principal.userId, body.rating, body.review)

@router.post("/{recipe_id}/ratings/{rating_user}/helpful", response_model=RecipeOut)
async def mark_rating_helpful(
    recipe_id: str,
    rating_user: str,
    principal: Principal = Depends(get_principal),
    svc: RecipeService = Depends(get_recipe_service),
):
    return await svc.mark_helpful(recipe_id, rating_user, principal.userId)

@router.post("/{recipe_id}/like", response_model=RecipeOut)
async def like_recipe(
    recipe_id: str,
    principal: Principal = Depends(get_principal),
    svc: RecipeService = Depends(get_recipe_service),
):
    return await svc.toggle_like(recipe_id, principal.userId)

@router.post("/{recipe_id}/bookmark", response_model=BookmarkOut)
async def bookmark_recipe(
    recipe_id: str,
    principal: Principal = Depends(get_principal),
    users: UserDirectory = Depends(get_user_directory),
):
    saved = await users.toggle_saved(principal.userId, recipe_id)
    return BookmarkOut(recipeId=recipe_id, saved=saved)
