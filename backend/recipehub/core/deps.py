# recipehub/core/deps.py
# Shared dependencies: verified principal, stores and services per request
from typing import Optional

from fastapi import Depends, Header, HTTPException

from recipehub.db.init import get_db
from recipehub.db.store import DocumentStore, MotorDocumentStore
from recipehub.services.catalog import Catalog
from recipehub.services.meal_plans import MealPlanService
from recipehub.services.recipes import Principal, RecipeService
from recipehub.services.users import UserDirectory

# set by the auth gateway after it verified the token
USER_HEADER = "X-User-Id"
ROLE_HEADER = "X-User-Role"

def get_optional_principal(
    user_id: Optional[str] = Header(default=None, alias=USER_HEADER),
    role: Optional[str] = Header(default=None, alias=ROLE_HEADER),
) -> Optional[Principal]:
    if not user_id:
        return None
    return Principal(userId=user_id, role=(role or "user").lower())

def get_principal(principal: Optional[Principal] = Depends(get_optional_principal)) -> Principal:
    if principal is None:
        raise HTTPException(status_code=401, detail="authentication required")
    return principal

# stores: one per collection
def get_recipe_store() -> DocumentStore:
    return MotorDocumentStore(get_db()["recipes"])

def get_user_store() -> DocumentStore:
    return MotorDocumentStore(get_db()["users"])

def get_meal_plan_store() -> DocumentStore:
    return MotorDocumentStore(get_db()["meal_plans"])

# services
def get_user_directory(
    users: DocumentStore = Depends(get_user_store),
    recipes: DocumentStore = Depends(get_recipe_store),
) -> UserDirectory:
    return UserDirectory(users, recipes)

def get_catalog(
    recipes: DocumentStore = Depends(get_recipe_store),
    users: UserDirectory = Depends(get_user_directory),
) -> Catalog:
    return Catalog(recipes, users)

def get_recipe_service(
    recipes: DocumentStore = Depends(get_recipe_store),
    users: UserDirectory = Depends(get_user_directory),
) -> RecipeService:
    return RecipeService(recipes, users)

def get_meal_plan_service(
    plans: DocumentStore = Depends(get_meal_plan_store),
    recipes: DocumentStore = Depends(get_recipe_store),
) -> MealPlanService:
    return MealPlanService(plans, recipes)
