# recipehub/services/ratings.py
# Rating ledger: one rating per user per recipe, plus the derived aggregate.
# Pure list-in / list-out functions; the lifecycle service persists the result.

from __future__ import annotations
import math
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from recipehub.core.errors import NotFoundError, ValidationError
from recipehub.db.models.recipe import RatingEntry

Rating = Dict[str, Any]

def _find(ratings: Sequence[Mapping[str, Any]], user_ref: str) -> int:
    for i, r in enumerate(ratings):
        if str(r.get("user")) == user_ref:
            return i
    return -1

def upsert_rating(
    ratings: Sequence[Mapping[str, Any]],
    user_ref: Any,
    rating_value: Any,
    review: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[Rating]:
    """
    Insert-or-replace the rating of `user_ref`.
    - existing entry: rating/review replaced in place, createdAt refreshed, size unchanged
    - otherwise: appended
    The input sequence is left untouched; a new list is returned.
    """
    user_ref = str(user_ref).strip() if user_ref is not None else ""
    try:
        entry = RatingEntry(
            user=user_ref,
            rating=rating_value,
            review=review or None,
            createdAt=now or datetime.utcnow(),
        )
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e) from e

    out: List[Rating] = [dict(r) for r in ratings or []]
    idx = _find(out, entry.user)
    if idx > -1:
        out[idx].update(rating=entry.rating, review=entry.review, createdAt=entry.createdAt)
    else:
        out.append(entry.model_dump())
    return out

def recompute_aggregate(ratings: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
    """averageRating rounded half-up to one decimal, totalRatings = number of entries."""
    n = len(ratings or [])
    if n == 0:
        return {"averageRating": 0, "totalRatings": 0}
    total = sum(float(r.get("rating") or 0) for r in ratings)
    avg = math.floor(total * 10 / n + 0.5) / 10
    return {"averageRating": avg, "totalRatings": n}

def toggle_helpful(
    ratings: Sequence[Mapping[str, Any]],
    rating_user: Any,
    voter: Any,
) -> List[Rating]:
    """Add or remove `voter` from the helpful votes on `rating_user`'s review."""
    out: List[Rating] = [dict(r) for r in ratings or []]
    idx = _find(out, str(rating_user))
    if idx < 0:
        raise NotFoundError(f"no rating by user {rating_user}")
    votes = [str(v) for v in (out[idx].get("helpful") or [])]
    voter = str(voter)
    if voter in votes:
        votes.remove(voter)
    else:
        votes.append(voter)
    out[idx]["helpful"] = votes
    return out
