import re
from datetime import datetime, timedelta

import pytest
from bson import ObjectId

from recipehub.core.errors import ValidationError
from recipehub.services.catalog import CatalogParams, build_query, build_sort, paginate

from conftest import run


def _seed(store, n, author, **fields):
    """Insert n visible recipes straight into the store, newest last."""
    base = datetime(2024, 1, 1)
    ids = []
    for i in range(n):
        doc = {
            "_id": ObjectId(),
            "title": f"Recipe {i:02d}",
            "description": "",
            "category": "dinner",
            "dietaryTags": [],
            "difficulty": "Easy",
            "ingredients": [{"name": "Salt", "quantity": 1, "unit": "pinch"}],
            "tags": [],
            "prepTime": 5, "cookingTime": 10, "totalTime": 15, "servings": 2,
            "author": author,
            "ratings": [], "averageRating": 0, "totalRatings": 0,
            "views": 0, "likes": [],
            "isApproved": True, "isPublished": True,
            "createdAt": base + timedelta(minutes=i),
        }
        doc.update(fields)
        store.docs.append(doc)
        ids.append(doc["_id"])
    return ids


# ------------------------------
# build_query
# ------------------------------

def test_defaults():
    q = build_query({})
    assert q.predicate == {"isApproved": True, "isPublished": True}
    assert q.sort == [("createdAt", -1), ("_id", -1)]
    assert (q.skip, q.limit, q.page) == (0, 12, 1)

def test_filters_compose():
    q = build_query({
        "category": "desserts",
        "dietary": ["vegan", "gluten-free"],
        "difficulty": "Hard",
        "search": "choc (dark)",
        "page": 3,
        "limit": 5,
    })
    p = q.predicate
    assert p["isApproved"] is True and p["isPublished"] is True
    assert p["category"] == "desserts"
    assert p["dietaryTags"] == {"$in": ["vegan", "gluten-free"]}
    assert p["difficulty"] == "Hard"
    fields = [next(iter(c)) for c in p["$or"]]
    assert fields == ["title", "description", "ingredients.name", "tags"]
    rx = p["$or"][0]["title"]
    assert rx.flags & re.I
    assert rx.search("Dark CHOC (DARK) cake")
    assert q.skip == 10 and q.limit == 5

def test_category_all_means_unfiltered():
    assert "category" not in build_query({"category": "all"}).predicate

def test_dietary_accepts_comma_string():
    q = build_query({"dietary": "vegan,keto"})
    assert q.predicate["dietaryTags"] == {"$in": ["vegan", "keto"]}

def test_page_below_one_is_clamped():
    q = build_query({"page": -4})
    assert q.page == 1 and q.skip == 0

def test_invalid_params_report_every_problem():
    with pytest.raises(ValidationError) as e:
        build_query({"category": "brunch", "difficulty": "Extreme", "sortBy": "password", "limit": 0})
    assert set(e.value.fields) >= {"category", "difficulty", "sortBy", "limit"}

def test_limit_is_capped():
    with pytest.raises(ValidationError):
        CatalogParams.parse({"limit": 1000})

def test_sort_tie_breaks():
    assert build_sort("averageRating", "desc") == [("averageRating", -1), ("createdAt", -1), ("_id", -1)]
    assert build_sort("title", "asc") == [("title", 1), ("createdAt", -1), ("_id", -1)]
    assert build_sort("createdAt", "asc") == [("createdAt", 1), ("_id", -1)]

def test_paginate_without_results():
    p = paginate(1, 12, 0)
    assert (p.totalPages, p.hasNextPage, p.hasPrevPage) == (0, False, False)


# ------------------------------
# execute
# ------------------------------

def test_pagination_over_25_recipes(catalog, recipes_store, alice):
    _seed(recipes_store, 25, alice)

    page1 = run(catalog.search({"page": 1, "limit": 12}))
    assert len(page1.recipes) == 12
    assert page1.pagination.model_dump() == {
        "currentPage": 1, "totalPages": 3, "totalRecipes": 25, "hasNextPage": True, "hasPrevPage": False,
    }

    page3 = run(catalog.search({"page": 3, "limit": 12}))
    assert len(page3.recipes) == 1
    assert page3.pagination.hasNextPage is False and page3.pagination.hasPrevPage is True

    page4 = run(catalog.search({"page": 4, "limit": 12}))
    assert page4.recipes == []
    assert page4.pagination.currentPage == 4
    assert page4.pagination.totalPages == 3
    assert page4.pagination.totalRecipes == 25
    assert page4.pagination.hasNextPage is False and page4.pagination.hasPrevPage is True

def test_pages_are_disjoint_and_newest_first(catalog, recipes_store, alice):
    _seed(recipes_store, 25, alice)
    seen = []
    for page in (1, 2, 3):
        seen += [r.id for r in run(catalog.search({"page": page})).recipes]
    assert len(seen) == len(set(seen)) == 25
    assert run(catalog.search({})).recipes[0].title == "Recipe 24"

def test_ties_are_broken_deterministically(catalog, recipes_store, alice):
    # same rating and same createdAt everywhere: order falls back to _id desc
    ids = _seed(recipes_store, 6, alice, averageRating=4.0, createdAt=datetime(2024, 5, 5))
    first = [r.id for r in run(catalog.search({"sortBy": "averageRating", "limit": 3})).recipes]
    second = [r.id for r in run(catalog.search({"sortBy": "averageRating", "limit": 3, "page": 2})).recipes]
    assert first + second == [str(i) for i in sorted(ids, reverse=True)]

def test_hidden_recipes_never_listed(catalog, recipes_store, alice):
    _seed(recipes_store, 2, alice, title="Visible soup")
    _seed(recipes_store, 2, alice, title="Draft soup", isPublished=False)
    _seed(recipes_store, 2, alice, title="Pending soup", isApproved=False)

    for params in ({}, {"search": "soup"}, {"category": "all"}, {"category": "dinner", "difficulty": "Easy"}):
        out = run(catalog.search(params))
        assert {r.title for r in out.recipes} == {"Visible soup"}
        assert out.pagination.totalRecipes == 2

def test_dietary_filter_is_or(catalog, recipes_store, alice):
    _seed(recipes_store, 1, alice, title="V", dietaryTags=["vegan"])
    _seed(recipes_store, 1, alice, title="K", dietaryTags=["keto", "nut-free"])
    _seed(recipes_store, 1, alice, title="None", dietaryTags=[])
    out = run(catalog.search({"dietary": ["vegan", "keto"]}))
    assert {r.title for r in out.recipes} == {"V", "K"}

def test_search_matches_any_field_case_insensitively(catalog, recipes_store, alice):
    _seed(recipes_store, 1, alice, title="Garlic bread")
    _seed(recipes_store, 1, alice, title="Pasta", description="Lots of GARLIC")
    _seed(recipes_store, 1, alice, title="Stew", ingredients=[{"name": "Garlic cloves", "quantity": 3, "unit": "cloves"}])
    _seed(recipes_store, 1, alice, title="Aioli", tags=["garlicky"])
    _seed(recipes_store, 1, alice, title="Pancakes")
    out = run(catalog.search({"search": "garlic"}))
    assert {r.title for r in out.recipes} == {"Garlic bread", "Pasta", "Stew", "Aioli"}

def test_search_is_literal_not_regex(catalog, recipes_store, alice):
    _seed(recipes_store, 1, alice, title="Mac & cheese (baked)")
    _seed(recipes_store, 1, alice, title="Mac")
    out = run(catalog.search({"search": "(baked)"}))
    assert [r.title for r in out.recipes] == ["Mac & cheese (baked)"]

def test_authors_are_public_projections(catalog, recipes_store, alice):
    _seed(recipes_store, 1, alice)
    item = run(catalog.search({})).recipes[0]
    assert item.author.model_dump() == {
        "id": alice, "username": "alice", "profileImage": "https://img.example.com/alice.png",
    }
    dumped = item.model_dump()
    assert "email" not in dumped["author"] and "password" not in dumped["author"]

def test_unknown_author_gets_stub(catalog, recipes_store):
    ghost = str(ObjectId())
    _seed(recipes_store, 1, ghost)
    item = run(catalog.search({})).recipes[0]
    assert item.author.id == ghost and item.author.username is None

def test_popular_orders_by_rating_then_count_then_views(catalog, recipes_store, alice):
    _seed(recipes_store, 1, alice, title="ok", averageRating=3.0, totalRatings=50)
    _seed(recipes_store, 1, alice, title="best-few", averageRating=4.8, totalRatings=4)
    _seed(recipes_store, 1, alice, title="best-many", averageRating=4.8, totalRatings=40, views=1)
    _seed(recipes_store, 1, alice, title="best-many-viewed", averageRating=4.8, totalRatings=40, views=90)
    _seed(recipes_store, 1, alice, title="hidden", averageRating=5.0, totalRatings=99, isApproved=False)
    out = run(catalog.popular(limit=4))
    assert [r.title for r in out] == ["best-many-viewed", "best-many", "best-few", "ok"]

def test_by_ingredient(catalog, recipes_store, alice):
    _seed(recipes_store, 1, alice, title="A", ingredients=[{"name": "Fresh Basil", "quantity": 1, "unit": "cups"}])
    _seed(recipes_store, 1, alice, title="B", description="basil on top")
    out = run(catalog.by_ingredient("basil"))
    assert [r.title for r in out.recipes] == ["A"]
    with pytest.raises(ValidationError):
        run(catalog.by_ingredient("  "))
