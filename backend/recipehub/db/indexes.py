# recipehub/db/indexes.py
# Collection indexes. main.py awaits ensure_indexes() once at startup.

from recipehub.db.init import get_db

async def ensure_recipe_indexes(db):
    col = db["recipes"]
    # catalog search and filters
    await col.create_index([("title", "text"), ("description", "text"), ("tags", "text")])
    await col.create_index("category")
    await col.create_index("dietaryTags")
    await col.create_index("author")
    await col.create_index("ingredients.name")
    await col.create_index([("isApproved", 1), ("isPublished", 1)])
    # sort keys
    await col.create_index([("createdAt", -1), ("_id", -1)])
    await col.create_index([("averageRating", -1)])
    await col.create_index([("views", -1)])
    # compound
    await col.create_index([("category", 1), ("averageRating", -1)])
    await col.create_index([("dietaryTags", 1), ("category", 1)])

async def ensure_indexes():
    db = get_db()

    await ensure_recipe_indexes(db)

    # one plan per (user, week)
    await db["meal_plans"].create_index([("user", 1), ("weekStartDate", 1)], unique=True)
