# recipehub/db/init.py
# Mongo connection lifecycle, motor based (used from startup/shutdown hooks)

from __future__ import annotations
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from recipehub.core.config import settings

_client: AsyncIOMotorClient | None = None
_db: AsyncIOMotorDatabase | None = None

async def init_db() -> AsyncIOMotorDatabase:
    # called once at startup; builds the shared client
    global _client, _db
    if _db is not None:
        return _db

    _client = AsyncIOMotorClient(settings.MONGODB_URI)
    _db = _client[settings.MONGODB_DB]

    # raises when the server is not reachable yet
    await _db.command("ping")
    return _db

def get_db() -> AsyncIOMotorDatabase:
    # handle for request code; raises before init_db() succeeded
    if _db is None:
        raise RuntimeError("MongoDB is not initialized yet.")
    return _db

async def close_db() -> None:
    global _client, _db
    if _client:
        _client.close()
    _client = None
    _db = None
