# recipehub/services/recipes.py
# Recipe lifecycle: create / read / edit / moderate, plus rating, like and view bookkeeping.
# Derived fields (totalTime, rating aggregate, publishedAt, lastModified) are recomputed
# here, explicitly, right before each write.

from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from recipehub.core.config import settings
from recipehub.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from recipehub.db.models.recipe import EDITABLE_FIELDS, RecipeDoc, RecipeIn
from recipehub.db.models.schemas import AuthorOut, RatingOut, RecipeOut, ScaledIngredientOut
from recipehub.db.store import DocumentStore, as_key
from recipehub.services.catalog import to_list_item
from recipehub.services.ratings import recompute_aggregate, toggle_helpful, upsert_rating
from recipehub.services.scaling import scale_ingredients
from recipehub.services.users import UserDirectory

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    """Verified caller, as handed over by the auth layer."""
    userId: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _validate(payload: Mapping[str, Any]) -> RecipeIn:
    try:
        return RecipeIn.model_validate(dict(payload))
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e) from e

def stamp_derived(doc: Dict[str, Any], now: datetime) -> Dict[str, Any]:
    """Recompute every derived field of a recipe document in place before it is written."""
    doc["totalTime"] = int(doc.get("prepTime") or 0) + int(doc.get("cookingTime") or 0)
    doc.update(recompute_aggregate(doc.get("ratings") or []))
    if doc.get("isPublished") and not doc.get("publishedAt"):
        doc["publishedAt"] = now
    doc["lastModified"] = now
    doc["updatedAt"] = now
    return doc

def _owns(doc: Mapping[str, Any], principal: Optional[Principal]) -> bool:
    return bool(principal) and (principal.is_admin or str(doc.get("author")) == principal.userId)


class RecipeService:
    def __init__(self, recipes: DocumentStore, users: UserDirectory) -> None:
        self.recipes = recipes
        self.users = users

    # ------------------------------
    # load / shape
    # ------------------------------

    async def _load(self, recipe_id: Any) -> Dict[str, Any]:
        doc = await self.recipes.find_by_id(recipe_id)
        if not doc:
            raise NotFoundError(f"recipe {recipe_id} not found")
        return doc

    async def _to_out(self, doc: Dict[str, Any]) -> RecipeOut:
        ratings = doc.get("ratings") or []
        refs = [doc.get("author")] + [r.get("user") for r in ratings]
        people = await self.users.public_profiles(refs)

        base = to_list_item(doc, people).model_dump()
        return RecipeOut(
            **base,
            ingredients=doc.get("ingredients") or [],
            instructions=doc.get("instructions") or [],
            videoUrl=doc.get("videoUrl"),
            nutritionInfo=doc.get("nutritionInfo"),
            ratings=[
                RatingOut(
                    user=people.get(str(r.get("user"))) or AuthorOut(id=str(r.get("user"))),
                    rating=r.get("rating"),
                    review=r.get("review"),
                    helpfulCount=len(r.get("helpful") or []),
                    createdAt=r.get("createdAt"),
                )
                for r in ratings
            ],
            likes=[str(x) for x in (doc.get("likes") or [])],
            isApproved=bool(doc.get("isApproved")),
            isPublished=bool(doc.get("isPublished")),
            lastModified=doc.get("lastModified"),
            updatedAt=doc.get("updatedAt"),
        )

    async def _commit(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        """Guarded write: only succeeds if nobody saved the document since we loaded it.

        `views` is owned by the atomic counter in increment_views and is never written back here.
        """
        seen = doc.get("revision", 0)
        doc = stamp_derived(doc, datetime.utcnow())
        doc["revision"] = seen + 1
        fields = {k: v for k, v in doc.items() if k not in ("_id", "views")}
        res = await self.recipes.update_one({"_id": doc["_id"], "revision": seen}, {"$set": fields})
        if not res.matched:
            raise ConflictError(f"recipe {doc['_id']} was modified concurrently")
        return doc

    async def _mutate(self, recipe_id: Any, change, retries: Optional[int] = None) -> Dict[str, Any]:
        """load -> change(doc) -> guarded save, re-running `change` on fresh state after a lost race."""
        attempts = max(1, retries or settings.RATING_WRITE_RETRIES)
        for attempt in range(1, attempts + 1):
            doc = await self._load(recipe_id)
            change(doc)
            try:
                return await self._commit(doc)
            except ConflictError:
                log.info("recipe %s write raced (attempt %d/%d)", recipe_id, attempt, attempts)
                if attempt == attempts:
                    raise
        raise ConflictError(f"recipe {recipe_id} could not be saved")  # unreachable

    # ------------------------------
    # lifecycle
    # ------------------------------

    async def create(self, payload: Mapping[str, Any], author_ref: Any) -> RecipeOut:
        if not author_ref:
            raise ValidationError.single("author", "recipe author is required")
        data = _validate(payload)

        now = datetime.utcnow()
        doc = RecipeDoc(
            **data.model_dump(),
            author=str(author_ref),
            isApproved=settings.AUTO_APPROVE,
            createdAt=now,
        ).model_dump()
        stamp_derived(doc, now)

        doc["_id"] = await self.recipes.insert(doc)
        log.info("recipe created id=%s author=%s published=%s", doc["_id"], doc["author"], doc["isPublished"])
        return await self._to_out(doc)

    async def get(
        self,
        recipe_id: Any,
        principal: Optional[Principal] = None,
        servings: Optional[int] = None,
        count_view: bool = True,
    ) -> RecipeOut:
        doc = await self._load(recipe_id)
        visible = doc.get("isApproved") and doc.get("isPublished")
        if not visible and not _owns(doc, principal):
            raise NotFoundError(f"recipe {recipe_id} not found")

        # drafts opened by their author or an admin are not views
        if count_view and visible:
            await self.increment_views(doc["_id"])
            doc["views"] = doc.get("views", 0) + 1

        out = await self._to_out(doc)
        if servings is not None:
            out.requestedServings = servings
            out.scaledIngredients = [
                ScaledIngredientOut(**s)
                for s in scale_ingredients(doc.get("ingredients") or [], doc.get("servings"), servings)
            ]
        return out

    async def update(self, recipe_id: Any, patch: Mapping[str, Any], principal: Principal) -> RecipeOut:
        """Author (or admin) edit. The merged record must still pass full validation."""
        changes = {k: v for k, v in (patch or {}).items() if k in EDITABLE_FIELDS}

        def apply(doc: Dict[str, Any]) -> None:
            if not _owns(doc, principal):
                raise ForbiddenError("only the author can edit this recipe")
            merged = {k: doc.get(k) for k in EDITABLE_FIELDS if k in doc}
            merged.update(changes)
            doc.update(_validate(merged).model_dump())

        doc = await self._mutate(recipe_id, apply)
        return await self._to_out(doc)

    async def set_approval(self, recipe_id: Any, approved: bool, principal: Principal) -> RecipeOut:
        if not principal.is_admin:
            raise ForbiddenError("admin access required")

        def apply(doc: Dict[str, Any]) -> None:
            doc["isApproved"] = bool(approved)

        doc = await self._mutate(recipe_id, apply)
        log.info("recipe %s approval=%s by %s", recipe_id, approved, principal.userId)
        return await self._to_out(doc)

    # ------------------------------
    # ratings / engagement
    # ------------------------------

    async def rate(self, recipe_id: Any, user_ref: Any, rating_value: Any, review: Optional[str] = None) -> RecipeOut:
        # validate before touching the store
        upsert_rating([], user_ref, rating_value, review)

        def apply(doc: Dict[str, Any]) -> None:
            doc["ratings"] = upsert_rating(doc.get("ratings") or [], user_ref, rating_value, review)

        doc = await self._mutate(recipe_id, apply)
        log.info("recipe %s rated %s by %s -> avg=%s n=%s",
                 recipe_id, rating_value, user_ref, doc["averageRating"], doc["totalRatings"])
        return await self._to_out(doc)

    async def mark_helpful(self, recipe_id: Any, rating_user: Any, voter: Any) -> RecipeOut:
        def apply(doc: Dict[str, Any]) -> None:
            doc["ratings"] = toggle_helpful(doc.get("ratings") or [], rating_user, voter)

        doc = await self._mutate(recipe_id, apply)
        return await self._to_out(doc)

    async def toggle_like(self, recipe_id: Any, user_ref: Any) -> RecipeOut:
        if not user_ref:
            raise ValidationError.single("user", "user is required")
        user_ref = str(user_ref)

        def apply(doc: Dict[str, Any]) -> None:
            likes = [str(x) for x in (doc.get("likes") or [])]
            if user_ref in likes:
                likes.remove(user_ref)
            else:
                likes.append(user_ref)
            doc["likes"] = likes

        doc = await self._mutate(recipe_id, apply)
        return await self._to_out(doc)

    async def increment_views(self, recipe_id: Any) -> None:
        # best-effort counter: never fails the surrounding request
        try:
            await self.recipes.update_one({"_id": as_key(recipe_id)}, {"$inc": {"views": 1}})
        except Exception:
            log.warning("view count update failed for recipe %s", recipe_id, exc_info=True)
