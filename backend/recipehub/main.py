# recipehub/main.py
# FastAPI app setup: logging, CORS, DB lifecycle, error mapping, routers
# Each router declares its own prefix

from __future__ import annotations

import logging
from asyncio import sleep
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from recipehub.api.routes_meal_plans import router as meal_plans_router
from recipehub.api.routes_recipes import router as recipes_router
from recipehub.core.config import settings
from recipehub.core.errors import (
    ConflictError, ForbiddenError, NotFoundError, RecipeHubError, StoreError, ValidationError,
)
from recipehub.db.init import close_db, get_db, init_db
from recipehub.db.indexes import ensure_indexes

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("recipehub")

app = FastAPI(title="Recipe Hub - API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# domain error -> HTTP status
STATUS_BY_ERROR = [
    (ValidationError, 422),
    (NotFoundError, 404),
    (ConflictError, 409),
    (ForbiddenError, 403),
    (StoreError, 503),
]

@app.exception_handler(RecipeHubError)
async def recipehub_error_handler(request: Request, exc: RecipeHubError) -> JSONResponse:
    status = next((code for cls, code in STATUS_BY_ERROR if isinstance(exc, cls)), 500)
    if status >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content=exc.to_dict())

@app.on_event("startup")
async def on_startup() -> None:
    # 1) connect first (up to 20 tries, 1s apart)
    db = None
    for i in range(20):
        try:
            db = await init_db()
            log.info("[startup] db ready")
            break
        except Exception as e:
            log.warning("[startup] db init retry %d: %s", i + 1, e)
            await sleep(1.0)
    if db is None:
        log.error("[startup] db init failed after retries")
        return

    # 2) indexes
    try:
        await ensure_indexes()
        log.info("[startup] indexes ensured")
    except Exception as e:
        log.error("[startup] ensure_indexes failed: %s", e)

@app.on_event("shutdown")
async def on_shutdown() -> None:
    await close_db()

@app.get("/health")
async def health():
    ok = {"status": "ok", "db": "skip"}
    try:
        await get_db().command("ping")
        ok["db"] = "ok"
    except Exception as e:
        ok["db"] = f"error: {e}"
    return ok

app.include_router(recipes_router)
app.include_router(meal_plans_router)
