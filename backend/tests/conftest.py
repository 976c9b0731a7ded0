# tests/conftest.py
# In-memory DocumentStore + fixtures. The store understands the Mongo query/update
# subset the services emit: equality (with array membership), $in, $or/$and, regex,
# $exists, $set/$setOnInsert/$inc, sort/skip/limit and inclusion projections.
from __future__ import annotations

import asyncio
import copy
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest
from bson import ObjectId

from recipehub.core.errors import ConflictError
from recipehub.db.store import DocumentStore, UpdateOutcome
from recipehub.services.catalog import Catalog
from recipehub.services.meal_plans import MealPlanService
from recipehub.services.recipes import Principal, RecipeService
from recipehub.services.users import UserDirectory


def run(coro):
    return asyncio.run(coro)


def _values(doc: Dict[str, Any], path: str) -> List[Any]:
    cur: List[Any] = [doc]
    for part in path.split("."):
        nxt: List[Any] = []
        for c in cur:
            if isinstance(c, dict):
                if part in c:
                    nxt.append(c[part])
            elif isinstance(c, list):
                nxt.extend(item[part] for item in c if isinstance(item, dict) and part in item)
        cur = nxt
    out: List[Any] = []
    for v in cur:
        if isinstance(v, list):
            out.extend(v)
        else:
            out.append(v)
    return out


def _match_value(values: List[Any], cond: Any) -> bool:
    if isinstance(cond, re.Pattern):
        return any(isinstance(v, str) and cond.search(v) for v in values)
    if isinstance(cond, dict) and cond and all(k.startswith("$") for k in cond):
        for op, arg in cond.items():
            if op == "$in":
                ok = any(v in arg for v in values)
            elif op == "$exists":
                ok = bool(values) == bool(arg)
            elif op == "$ne":
                ok = all(v != arg for v in values)
            elif op == "$regex":
                ok = _match_value(values, re.compile(arg, re.I if "i" in cond.get("$options", "") else 0))
            elif op == "$options":
                ok = True
            else:
                raise NotImplementedError(op)
            if not ok:
                return False
        return True
    return any(v == cond for v in values)


def matches(doc: Dict[str, Any], predicate: Dict[str, Any]) -> bool:
    for key, cond in (predicate or {}).items():
        if key == "$or":
            if not any(matches(doc, p) for p in cond):
                return False
        elif key == "$and":
            if not all(matches(doc, p) for p in cond):
                return False
        elif not _match_value(_values(doc, key), cond):
            return False
    return True


def _sort_key(v: Any):
    return (v is not None, v)


class MemoryStore(DocumentStore):
    def __init__(self, name: str = "documents", unique: Sequence[Tuple[str, ...]] = ()) -> None:
        self.name = name
        self.docs: List[Dict[str, Any]] = []
        self.unique = list(unique)
        self.calls: List[str] = []

    # helpers
    def _check_unique(self, doc: Dict[str, Any]) -> None:
        for d in self.docs:
            if d["_id"] == doc["_id"]:
                raise ConflictError(f"{self.name}: duplicate _id")
            for keys in self.unique:
                if all(d.get(k) == doc.get(k) for k in keys):
                    raise ConflictError(f"{self.name}: duplicate {keys}")

    def _project(self, doc: Dict[str, Any], projection: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        doc = copy.deepcopy(doc)
        if not projection:
            return doc
        keep = {k for k, v in projection.items() if v} | {"_id"}
        return {k: v for k, v in doc.items() if k in keep}

    @staticmethod
    def _apply(doc: Dict[str, Any], update: Dict[str, Any], inserting: bool = False) -> None:
        for op, fields in update.items():
            if op == "$set" or (op == "$setOnInsert" and inserting):
                doc.update(copy.deepcopy(fields))
            elif op == "$setOnInsert":
                continue
            elif op == "$inc":
                for k, n in fields.items():
                    doc[k] = doc.get(k, 0) + n
            else:
                raise NotImplementedError(op)

    def _first(self, predicate) -> Optional[Dict[str, Any]]:
        return next((d for d in self.docs if matches(d, predicate)), None)

    # DocumentStore
    async def find_one(self, predicate):
        self.calls.append("find_one")
        d = self._first(predicate)
        return copy.deepcopy(d) if d else None

    async def find(self, predicate, sort=None, skip=0, limit=0, projection=None):
        self.calls.append("find")
        docs = [d for d in self.docs if matches(d, predicate)]
        for key, direction in reversed(list(sort or [])):
            docs.sort(key=lambda d: _sort_key(d.get(key)), reverse=direction < 0)
        docs = docs[skip:]
        if limit:
            docs = docs[:limit]
        return [self._project(d, projection) for d in docs]

    async def count(self, predicate):
        self.calls.append("count")
        return sum(1 for d in self.docs if matches(d, predicate))

    async def insert(self, doc):
        self.calls.append("insert")
        doc = copy.deepcopy(doc)
        doc.setdefault("_id", ObjectId())
        self._check_unique(doc)
        self.docs.append(doc)
        return doc["_id"]

    def _update(self, predicate, update, upsert):
        target = self._first(predicate)
        if target is not None:
            self._apply(target, update)
            return target, UpdateOutcome(matched=1)
        if not upsert:
            return None, UpdateOutcome(matched=0)
        doc = {k: copy.deepcopy(v) for k, v in predicate.items() if not k.startswith("$") and not isinstance(v, dict)}
        doc["_id"] = ObjectId()
        self._apply(doc, update, inserting=True)
        self._check_unique(doc)
        self.docs.append(doc)
        return doc, UpdateOutcome(matched=0, upserted_id=doc["_id"])

    async def update_one(self, predicate, update, upsert=False):
        self.calls.append("update_one")
        return self._update(predicate, update, upsert)[1]

    async def find_one_and_update(self, predicate, update, upsert=False):
        self.calls.append("find_one_and_update")
        doc, _ = self._update(predicate, update, upsert)
        return copy.deepcopy(doc) if doc else None

    async def delete_one(self, predicate):
        self.calls.append("delete_one")
        target = self._first(predicate)
        if target is None:
            return False
        self.docs.remove(target)
        return True

    @property
    def writes(self) -> List[str]:
        return [c for c in self.calls if c in ("insert", "update_one", "find_one_and_update", "delete_one")]


# ------------------------------
# fixtures
# ------------------------------

@pytest.fixture
def recipes_store():
    return MemoryStore("recipes")

@pytest.fixture
def users_store():
    return MemoryStore("users")

@pytest.fixture
def plans_store():
    return MemoryStore("meal_plans", unique=[("user", "weekStartDate")])

@pytest.fixture
def directory(users_store, recipes_store):
    return UserDirectory(users_store, recipes_store)

@pytest.fixture
def recipes(recipes_store, directory):
    return RecipeService(recipes_store, directory)

@pytest.fixture
def catalog(recipes_store, directory):
    return Catalog(recipes_store, directory)

@pytest.fixture
def plans(plans_store, recipes_store):
    return MealPlanService(plans_store, recipes_store)

def _add_user(store: MemoryStore, username: str, **extra) -> str:
    oid = ObjectId()
    store.docs.append({
        "_id": oid,
        "username": username,
        "email": f"{username}@example.com",
        "password": "$2a$10$hash",
        "role": extra.pop("role", "user"),
        "profileImage": extra.pop("profileImage", f"https://img.example.com/{username}.png"),
        "savedRecipes": [],
        **extra,
    })
    return str(oid)

@pytest.fixture
def alice(users_store) -> str:
    return _add_user(users_store, "alice")

@pytest.fixture
def bob(users_store) -> str:
    return _add_user(users_store, "bob")

@pytest.fixture
def carol(users_store) -> str:
    return _add_user(users_store, "carol")

@pytest.fixture
def admin(users_store) -> Principal:
    return Principal(userId=_add_user(users_store, "admin", role="admin"), role="admin")

@pytest.fixture
def make_payload():
    def _make(**over) -> Dict[str, Any]:
        payload = {
            "title": "Tomato Soup",
            "description": "Slow simmered tomatoes with basil.",
            "category": "lunch",
            "cuisine": "italian",
            "dietaryTags": ["vegetarian"],
            "ingredients": [
                {"name": "Tomatoes", "quantity": 800, "unit": "grams"},
                {"name": "Basil", "quantity": 0.5, "unit": "cups"},
                {"name": "Olive oil", "quantity": 2, "unit": "tbsp"},
            ],
            "instructions": [
                {"stepNumber": 1, "description": "Roast the tomatoes.", "timer": 25},
                {"stepNumber": 2, "description": "Blend with basil and oil."},
            ],
            "prepTime": 10,
            "cookingTime": 30,
            "difficulty": "Easy",
            "servings": 4,
            "images": ["https://img.example.com/soup.jpg"],
            "tags": ["Soup", " comfort "],
        }
        payload.update(over)
        return payload
    return _make
