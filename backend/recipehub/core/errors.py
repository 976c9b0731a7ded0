# recipehub/core/errors.py
# Typed errors raised by the catalog engine; main.py maps them to HTTP statuses

from __future__ import annotations
from typing import Any, Dict, List, Optional


class RecipeHubError(Exception):
    """Base class for every error the engine surfaces to its callers."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message}


class ValidationError(RecipeHubError):
    """Malformed, missing or out-of-range input. Carries every violation, not just the first."""

    def __init__(self, errors: List[Dict[str, str]], message: str = "validation failed") -> None:
        super().__init__(message)
        self.errors = errors

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([{"field": field, "message": message}])

    @classmethod
    def from_pydantic(cls, exc: Any, prefix: Optional[str] = None) -> "ValidationError":
        # pydantic.ValidationError.errors() -> [{"loc": (...), "msg": "..."}]
        out: List[Dict[str, str]] = []
        for e in exc.errors():
            loc = [str(p) for p in e.get("loc", ())]
            if prefix:
                loc.insert(0, prefix)
            out.append({"field": ".".join(loc) or "__root__", "message": e.get("msg", "invalid")})
        return cls(out)

    @property
    def fields(self) -> List[str]:
        return [e["field"] for e in self.errors]

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "errors": self.errors}


class NotFoundError(RecipeHubError):
    """Referenced recipe, plan or user does not exist."""


class ConflictError(RecipeHubError):
    """Uniqueness invariant would be violated, or a guarded write kept losing the race."""


class ForbiddenError(RecipeHubError):
    """Principal may not mutate a resource it does not own."""


class StoreError(RecipeHubError):
    """Underlying persistence failure. Transient; callers may retry."""
