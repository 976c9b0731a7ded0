# recipehub/services/users.py
# Read access to the (externally owned) users collection: public projections and bookmarks

from __future__ import annotations
from typing import Any, Dict, Iterable, List

from recipehub.core.errors import NotFoundError
from recipehub.db.models.schemas import AuthorOut
from recipehub.db.store import DocumentStore, as_key

PUBLIC_FIELDS = {"_id": 1, "username": 1, "profileImage": 1}

class UserDirectory:
    def __init__(self, users: DocumentStore, recipes: DocumentStore) -> None:
        self.users = users
        self.recipes = recipes

    async def public_profiles(self, refs: Iterable[Any]) -> Dict[str, AuthorOut]:
        """Batch-resolve user refs to {ref: AuthorOut}. Unknown users still get a stub entry."""
        wanted = list(dict.fromkeys(str(r) for r in refs if r))
        if not wanted:
            return {}
        docs = await self.users.find(
            {"_id": {"$in": [as_key(r) for r in wanted]}}, projection=PUBLIC_FIELDS
        )
        found = {
            str(d["_id"]): AuthorOut(
                id=str(d["_id"]),
                username=d.get("username"),
                profileImage=d.get("profileImage") or "",
            )
            for d in docs
        }
        return {r: found.get(r) or AuthorOut(id=r) for r in wanted}

    async def toggle_saved(self, user_ref: str, recipe_id: str) -> bool:
        """Bookmark or un-bookmark a recipe. Returns True when it is saved afterwards."""
        recipe = await self.recipes.find_by_id(recipe_id)
        if not recipe:
            raise NotFoundError(f"recipe {recipe_id} not found")
        user = await self.users.find_by_id(user_ref)
        if not user:
            raise NotFoundError(f"user {user_ref} not found")

        rid = str(recipe["_id"])
        saved = [str(x) for x in (user.get("savedRecipes") or [])]
        if rid in saved:
            saved.remove(rid)
            now_saved = False
        else:
            saved.append(rid)
            now_saved = True
        await self.users.update_one({"_id": user["_id"]}, {"$set": {"savedRecipes": saved}})
        return now_saved

    async def saved_recipe_ids(self, user_ref: str) -> List[str]:
        user = await self.users.find_by_id(user_ref)
        if not user:
            raise NotFoundError(f"user {user_ref} not found")
        return [str(x) for x in (user.get("savedRecipes") or [])]
