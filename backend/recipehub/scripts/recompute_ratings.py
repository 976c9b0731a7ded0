# recipehub/scripts/recompute_ratings.py
# Maintenance: find recipes whose stored rating aggregate / totalTime disagree with their data
# (e.g. rows written by older server builds that skipped rounding) and optionally rewrite them.
# usage: python -m recipehub.scripts.recompute_ratings [--fix] [--limit N]
import argparse
import asyncio
from typing import Any, Dict, List

from recipehub.db.init import close_db, get_db, init_db
from recipehub.db.store import DocumentStore, MotorDocumentStore
from recipehub.services.ratings import recompute_aggregate

def problems(doc: Dict[str, Any]) -> List[str]:
    probs: List[str] = []
    ratings = doc.get("ratings") or []
    agg = recompute_aggregate(ratings)
    if doc.get("averageRating") != agg["averageRating"]:
        probs.append(f"averageRating {doc.get('averageRating')} != {agg['averageRating']}")
    if doc.get("totalRatings") != agg["totalRatings"]:
        probs.append(f"totalRatings {doc.get('totalRatings')} != {agg['totalRatings']}")
    users = [str(r.get("user")) for r in ratings]
    if len(users) != len(set(users)):
        probs.append("duplicate-rater")
    total = (doc.get("prepTime") or 0) + (doc.get("cookingTime") or 0)
    if doc.get("totalTime") != total:
        probs.append(f"totalTime {doc.get('totalTime')} != {total}")
    return probs

def collapse(ratings: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # one entry per rater: first position, latest value
    by_user: Dict[str, Dict[str, Any]] = {}
    for r in ratings:
        by_user[str(r.get("user"))] = r
    return list(by_user.values())

async def scan(store: DocumentStore, fix: bool = False, limit: int = 0) -> List[Dict[str, Any]]:
    docs = await store.find({}, sort=[("_id", 1)], limit=limit)
    bad = []
    for d in docs:
        p = problems(d)
        if not p:
            continue
        bad.append({"id": str(d["_id"]), "title": d.get("title"), "problems": p})
        if fix:
            ratings = collapse(d.get("ratings") or [])
            patch = {"ratings": ratings, **recompute_aggregate(ratings)}
            patch["totalTime"] = (d.get("prepTime") or 0) + (d.get("cookingTime") or 0)
            await store.update_one({"_id": d["_id"]}, {"$set": patch, "$inc": {"revision": 1}})
    return bad

async def main(fix: bool = False, limit: int = 0):
    await init_db()
    try:
        bad = await scan(MotorDocumentStore(get_db()["recipes"]), fix=fix, limit=limit)
    finally:
        await close_db()
    print(f"issues: {len(bad)}{' (fixed)' if fix else ''}")
    for b in bad[:20]:
        print("-", b["id"], "/", b["title"], "=>", b["problems"])

if __name__ == "__main__":
    ap = argparse.ArgumentParser()
    ap.add_argument("--fix", action="store_true")
    ap.add_argument("--limit", type=int, default=0)
    args = ap.parse_args()
    asyncio.run(main(fix=args.fix, limit=args.limit))
