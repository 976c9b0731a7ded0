# recipehub/services/catalog.py
# Catalog query builder: filter/sort/pagination request -> store query -> paginated page
# - only approved AND published recipes are ever listed (base predicate, not caller's job)
# - dietary filter is OR (any requested tag), search is OR across title/description/ingredients/tags
# - sort always ends with createdAt desc, _id desc so pages stay stable between calls

from __future__ import annotations
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from recipehub.core.config import settings
from recipehub.core.errors import ValidationError
from recipehub.db.models.schemas import AuthorOut, PaginationOut, RecipeListItem, RecipeListOut
from recipehub.db.store import DocumentStore
from recipehub.models.tags import Category, DietaryTag, Difficulty
from recipehub.services.users import UserDirectory

BASE_PREDICATE: Dict[str, Any] = {"isApproved": True, "isPublished": True}

SEARCH_FIELDS = ("title", "description", "ingredients.name", "tags")

SortField = Literal[
    "createdAt", "publishedAt", "averageRating", "totalRatings", "views",
    "title", "prepTime", "cookingTime", "totalTime", "servings",
]

TIE_BREAK: List[Tuple[str, int]] = [("createdAt", -1), ("_id", -1)]


class CatalogParams(BaseModel):
    page: int = 1
    limit: int = Field(default_factory=lambda: settings.DEFAULT_PAGE_SIZE, ge=1)
    category: Optional[Literal[Category, "all"]] = None
    dietary: List[DietaryTag] = Field(default_factory=list)
    difficulty: Optional[Difficulty] = None
    search: Optional[str] = None
    sortBy: SortField = "createdAt"
    sortOrder: Literal["asc", "desc"] = "desc"

    @field_validator("page", mode="after")
    @classmethod
    def _v_page(cls, v):
        return max(1, v)

    @field_validator("limit", mode="after")
    @classmethod
    def _v_limit(cls, v):
        if v > settings.MAX_PAGE_SIZE:
            raise ValueError(f"limit cannot exceed {settings.MAX_PAGE_SIZE}")
        return v

    @field_validator("dietary", mode="before")
    @classmethod
    def _v_dietary(cls, v):
        # ?dietary=vegan&dietary=keto, ?dietary=vegan,keto and a bare string all work
        if v is None or v == "":
            return []
        if isinstance(v, str):
            v = v.split(",")
        return [s.strip() for s in v if s and s.strip()]

    @field_validator("category", "difficulty", "search", mode="before")
    @classmethod
    def _v_blank(cls, v):
        if isinstance(v, str):
            v = v.strip()
        return v or None

    @classmethod
    def parse(cls, raw: Dict[str, Any]) -> "CatalogParams":
        try:
            return cls.model_validate({k: v for k, v in raw.items() if v is not None})
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e) from e


@dataclass
class CatalogQuery:
    predicate: Dict[str, Any]
    sort: List[Tuple[str, int]]
    skip: int
    limit: int
    page: int = 1


def _search_regex(text: str) -> re.Pattern:
    # literal substring, case-insensitive
    return re.compile(re.escape(text), re.I)

def build_sort(sort_by: str = "createdAt", sort_order: str = "desc") -> List[Tuple[str, int]]:
    primary = (sort_by, 1 if sort_order == "asc" else -1)
    out = [primary]
    for key, direction in TIE_BREAK:
        if key != sort_by:
            out.append((key, direction))
    return out

def build_query(params: Union[CatalogParams, Dict[str, Any]]) -> CatalogQuery:
    if not isinstance(params, CatalogParams):
        params = CatalogParams.parse(params)

    q: Dict[str, Any] = dict(BASE_PREDICATE)

    if params.category and params.category != "all":
        q["category"] = params.category
    if params.dietary:
        q["dietaryTags"] = {"$in": list(params.dietary)}
    if params.difficulty:
        q["difficulty"] = params.difficulty
    if params.search:
        rx = _search_regex(params.search)
        q["$or"] = [{f: rx} for f in SEARCH_FIELDS]

    return CatalogQuery(
        predicate=q,
        sort=build_sort(params.sortBy, params.sortOrder),
        skip=(params.page - 1) * params.limit,
        limit=params.limit,
        page=params.page,
    )

def paginate(page: int, limit: int, total: int) -> PaginationOut:
    pages = math.ceil(total / limit) if limit else 0
    return PaginationOut(
        currentPage=page,
        totalPages=pages,
        totalRecipes=total,
        hasNextPage=page < pages,
        hasPrevPage=page > 1,
    )

def to_list_item(doc: Dict[str, Any], authors: Dict[str, AuthorOut]) -> RecipeListItem:
    author_ref = str(doc.get("author") or "")
    return RecipeListItem(
        id=str(doc["_id"]),
        title=doc.get("title", ""),
        description=doc.get("description", ""),
        category=doc.get("category", ""),
        cuisine=doc.get("cuisine"),
        dietaryTags=doc.get("dietaryTags") or [],
        difficulty=doc.get("difficulty", ""),
        prepTime=doc.get("prepTime", 0),
        cookingTime=doc.get("cookingTime", 0),
        totalTime=doc.get("totalTime") or (doc.get("prepTime", 0) + doc.get("cookingTime", 0)),
        servings=doc.get("servings", 1),
        images=doc.get("images") or [],
        tags=doc.get("tags") or [],
        author=authors.get(author_ref) if author_ref else None,
        averageRating=doc.get("averageRating", 0),
        totalRatings=doc.get("totalRatings", 0),
        views=doc.get("views", 0),
        likesCount=len(doc.get("likes") or []),
        isPremium=bool(doc.get("isPremium", False)),
        createdAt=doc.get("createdAt"),
        publishedAt=doc.get("publishedAt"),
    )


class Catalog:
    def __init__(self, recipes: DocumentStore, users: UserDirectory) -> None:
        self.recipes = recipes
        self.users = users

    async def execute(self, query: CatalogQuery) -> RecipeListOut:
        total = await self.recipes.count(query.predicate)
        docs: List[Dict[str, Any]] = []
        if query.skip < total:
            docs = await self.recipes.find(
                query.predicate, sort=query.sort, skip=query.skip, limit=query.limit
            )
        authors = await self.users.public_profiles(d.get("author") for d in docs)
        return RecipeListOut(
            recipes=[to_list_item(d, authors) for d in docs],
            pagination=paginate(query.page, query.limit, total),
        )

    async def search(self, raw: Dict[str, Any]) -> RecipeListOut:
        return await self.execute(build_query(raw))

    async def popular(self, limit: int = 10) -> List[RecipeListItem]:
        """Top-rated first; ties go to more ratings, then more views."""
        limit = max(1, min(limit, settings.MAX_PAGE_SIZE))
        sort = [("averageRating", -1), ("totalRatings", -1), ("views", -1)] + TIE_BREAK
        docs = await self.recipes.find(dict(BASE_PREDICATE), sort=sort, limit=limit)
        authors = await self.users.public_profiles(d.get("author") for d in docs)
        return [to_list_item(d, authors) for d in docs]

    async def by_ingredient(self, ingredient: str, page: int = 1, limit: Optional[int] = None) -> RecipeListOut:
        ingredient = (ingredient or "").strip()
        if not ingredient:
            raise ValidationError.single("ingredient", "ingredient is required")
        params = CatalogParams.parse({"page": page, "limit": limit})
        q = build_query(params)
        q.predicate["ingredients.name"] = _search_regex(ingredient)
        return await self.execute(q)
