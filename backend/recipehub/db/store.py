# recipehub/db/store.py
# Document store contract used by the services, and its motor implementation.
# Predicates/updates use Mongo query syntax; services never touch motor directly.

from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from recipehub.core.errors import ConflictError, StoreError

log = logging.getLogger(__name__)

Doc = Dict[str, Any]
SortSpec = Sequence[Tuple[str, int]]


def as_key(ref: Any) -> Any:
    """String ids that look like ObjectIds are matched as ObjectIds, anything else as-is."""
    if isinstance(ref, str) and ObjectId.is_valid(ref):
        return ObjectId(ref)
    return ref


@dataclass
class UpdateOutcome:
    matched: int
    upserted_id: Any = None


class DocumentStore:
    """What the engine needs from persistence: CRUD by key, filter, sort, skip/limit, count."""

    name: str = "documents"

    async def find_by_id(self, key: Any) -> Optional[Doc]:
        return await self.find_one({"_id": as_key(key)})

    async def find_one(self, predicate: Mapping[str, Any]) -> Optional[Doc]:
        raise NotImplementedError

    async def find(
        self,
        predicate: Mapping[str, Any],
        sort: Optional[SortSpec] = None,
        skip: int = 0,
        limit: int = 0,
        projection: Optional[Mapping[str, Any]] = None,
    ) -> List[Doc]:
        raise NotImplementedError

    async def count(self, predicate: Mapping[str, Any]) -> int:
        raise NotImplementedError

    async def insert(self, doc: Doc) -> Any:
        """Insert a new document, return its key. ConflictError on duplicate key."""
        raise NotImplementedError

    async def update_one(
        self,
        predicate: Mapping[str, Any],
        update: Mapping[str, Any],
        upsert: bool = False,
    ) -> UpdateOutcome:
        """Apply a Mongo update to the first match. A guard field in the predicate makes matched == 0 mean it failed."""
        raise NotImplementedError

    async def find_one_and_update(
        self,
        predicate: Mapping[str, Any],
        update: Mapping[str, Any],
        upsert: bool = False,
    ) -> Optional[Doc]:
        """Apply the update and return the document as it is afterwards."""
        raise NotImplementedError

    async def delete_one(self, predicate: Mapping[str, Any]) -> bool:
        raise NotImplementedError


class MotorDocumentStore(DocumentStore):
    def __init__(self, collection: AsyncIOMotorCollection) -> None:
        self.collection = collection
        self.name = collection.name

    @asynccontextmanager
    async def _errors(self, op: str):
        # DuplicateKeyError is a PyMongoError too, so it is checked first
        try:
            yield
        except DuplicateKeyError as e:
            raise ConflictError(f"{self.name}.{op}: duplicate key") from e
        except PyMongoError as e:
            log.warning("store failure on %s.%s: %s", self.name, op, e)
            raise StoreError(f"{self.name}.{op} failed: {e}") from e

    async def find_one(self, predicate):
        async with self._errors("find_one"):
            return await self.collection.find_one(predicate)

    async def find(self, predicate, sort=None, skip=0, limit=0, projection=None):
        async with self._errors("find"):
            cur = self.collection.find(predicate, projection)
            if sort:
                cur = cur.sort(list(sort))
            if skip:
                cur = cur.skip(skip)
            if limit:
                cur = cur.limit(limit)
            return await cur.to_list(length=None)

    async def count(self, predicate):
        async with self._errors("count"):
            return await self.collection.count_documents(predicate)

    async def insert(self, doc):
        async with self._errors("insert"):
            res = await self.collection.insert_one(doc)
            return res.inserted_id

    async def update_one(self, predicate, update, upsert=False):
        async with self._errors("update_one"):
            res = await self.collection.update_one(predicate, update, upsert=upsert)
            return UpdateOutcome(matched=res.matched_count, upserted_id=res.upserted_id)

    async def find_one_and_update(self, predicate, update, upsert=False):
        async with self._errors("find_one_and_update"):
            return await self.collection.find_one_and_update(
                predicate, update, upsert=upsert, return_document=ReturnDocument.AFTER
            )

    async def delete_one(self, predicate):
        async with self._errors("delete_one"):
            res = await self.collection.delete_one(predicate)
            return res.deleted_count == 1
