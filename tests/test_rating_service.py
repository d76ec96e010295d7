from __future__ import annotations

import pytest
from bson import ObjectId

from conftest import insert_review, insert_user
from services.rating_service import mean_rating, recompute_restaurant_rating


def test_mean_rating() -> None:
    assert mean_rating([]) is None
    assert mean_rating([5, 3]) == 4.0
    assert mean_rating([4]) == 4.0


async def _rating(db, restaurant_id):
    doc = await db.restaurants_collection.find_one({"_id": ObjectId(restaurant_id)})
    return doc.get("rating")


async def test_only_approved_reviews_count(db, alice, bob, restaurant_id) -> None:
    carol = await insert_user(db, "Carol")
    await insert_review(db, alice, restaurant_id, 5)
    await insert_review(db, bob, restaurant_id, 2)
    await insert_review(db, carol, restaurant_id, 1, status="pending")

    assert await recompute_restaurant_rating(db, restaurant_id) == pytest.approx(3.5)
    assert await _rating(db, restaurant_id) == pytest.approx(3.5)


async def test_rating_unset_without_approved_reviews(db, alice, restaurant_id) -> None:
    await db.restaurants_collection.update_one({"_id": ObjectId(restaurant_id)}, {"$set": {"rating": 4.0}})
    await insert_review(db, alice, restaurant_id, 4, status="rejected")

    assert await recompute_restaurant_rating(db, restaurant_id) is None
    doc = await db.restaurants_collection.find_one({"_id": ObjectId(restaurant_id)})
    assert "rating" not in doc


async def test_recompute_is_idempotent(db, alice, bob, restaurant_id) -> None:
    await insert_review(db, alice, restaurant_id, 4)
    await insert_review(db, bob, restaurant_id, 5)
    first = await recompute_restaurant_rating(db, restaurant_id)
    second = await recompute_restaurant_rating(db, restaurant_id)
    assert first == second == pytest.approx(4.5)
