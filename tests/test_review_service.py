from __future__ import annotations

import pytest
from bson import ObjectId

from conftest import insert_restaurant, insert_review, insert_user, random_id
from core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from models.review import ReviewCreate, ReviewUpdate
from services import review_service
from settings.config import settings


async def _rating(db, restaurant_id):
    doc = await db.restaurants_collection.find_one({"_id": ObjectId(restaurant_id)})
    return doc.get("rating")


async def _review(db, review_id):
    return await db.reviews_collection.find_one({"_id": ObjectId(review_id)})


async def test_create_review_starts_pending_and_notifies_owner(db, notifier, alice, owner, restaurant_id) -> None:
    out = await review_service.create_review(
        db, notifier, alice, ReviewCreate(restaurant_id=restaurant_id, rating=4, comment="Great pasta")
    )
    assert out["status"] == "pending"
    assert out["helpful"] == 0
    assert out["report_count"] == 0
    assert out["customer_name"] == "Alice"
    assert notifier.for_user(owner.id) == ["new_review"]
    # pending reviews do not count
    assert await _rating(db, restaurant_id) is None


async def test_duplicate_review_conflicts(db, notifier, alice, restaurant_id) -> None:
    payload = ReviewCreate(restaurant_id=restaurant_id, rating=4, comment="Nice")
    await review_service.create_review(db, notifier, alice, payload)
    with pytest.raises(ConflictError):
        await review_service.create_review(db, notifier, alice, payload)


async def test_owner_cannot_create_review(db, notifier, owner, restaurant_id) -> None:
    with pytest.raises(AuthorizationError):
        await review_service.create_review(db, notifier, owner, ReviewCreate(restaurant_id=restaurant_id, rating=5, comment="Mine"))


async def test_review_for_missing_restaurant(db, notifier, alice) -> None:
    with pytest.raises(NotFoundError):
        await review_service.create_review(db, notifier, alice, ReviewCreate(restaurant_id=random_id(), rating=5, comment="?"))


async def test_moderation_updates_rating(db, notifier, alice, bob, owner, restaurant_id) -> None:
    first = await insert_review(db, alice, restaurant_id, 5, status="pending")
    second = await insert_review(db, bob, restaurant_id, 3, status="pending")

    await review_service.moderate_review(db, notifier, owner, first, "approved")
    assert await _rating(db, restaurant_id) == pytest.approx(5.0)

    await review_service.moderate_review(db, notifier, owner, second, "approved")
    assert await _rating(db, restaurant_id) == pytest.approx(4.0)

    await review_service.moderate_review(db, notifier, owner, first, "rejected")
    assert await _rating(db, restaurant_id) == pytest.approx(3.0)
    assert notifier.for_user(alice.id) == ["review_moderated", "review_moderated"]


async def test_moderation_by_other_owner_is_forbidden(db, notifier, alice, other_owner, restaurant_id) -> None:
    review_id = await insert_review(db, alice, restaurant_id, 5, status="pending")
    with pytest.raises(AuthorizationError):
        await review_service.moderate_review(db, notifier, other_owner, review_id, "approved")
    assert (await _review(db, review_id))["status"] == "pending"


async def test_author_edit_returns_review_to_moderation(db, notifier, alice, bob, owner, restaurant_id) -> None:
    review_id = await insert_review(db, alice, restaurant_id, 5, status="pending")
    await insert_review(db, bob, restaurant_id, 3)
    await review_service.moderate_review(db, notifier, owner, review_id, "approved")
    assert await _rating(db, restaurant_id) == pytest.approx(4.0)

    out = await review_service.update_review(db, notifier, alice, review_id, ReviewUpdate(rating=1, comment="Went downhill"))
    assert out["status"] == "pending"
    assert out["rating"] == 1
    assert await _rating(db, restaurant_id) == pytest.approx(3.0)
    assert "review_updated" in notifier.for_user(owner.id)


async def test_author_edit_needs_rating_or_comment(db, notifier, alice, restaurant_id) -> None:
    review_id = await insert_review(db, alice, restaurant_id, 5)
    with pytest.raises(ValidationError):
        await review_service.update_review(db, notifier, alice, review_id, ReviewUpdate(images=["/uploads/a.jpg"]))


async def test_author_cannot_reply(db, notifier, alice, restaurant_id) -> None:
    review_id = await insert_review(db, alice, restaurant_id, 5)
    with pytest.raises(AuthorizationError):
        await review_service.update_review(db, notifier, alice, review_id, ReviewUpdate(reply="thanks me"))


async def test_owner_reply_keeps_status(db, notifier, alice, owner, restaurant_id) -> None:
    review_id = await insert_review(db, alice, restaurant_id, 4)
    out = await review_service.update_review(db, notifier, owner, review_id, ReviewUpdate(reply="Thank you!"))
    assert out["reply"] == "Thank you!"
    assert out["status"] == "approved"
    assert notifier.for_user(alice.id) == ["review_replied"]


async def test_owner_cannot_change_rating(db, notifier, alice, owner, restaurant_id) -> None:
    review_id = await insert_review(db, alice, restaurant_id, 4)
    with pytest.raises(AuthorizationError):
        await review_service.update_review(db, notifier, owner, review_id, ReviewUpdate(rating=5))


async def test_helpful_counts_every_call_by_default(db, alice, bob, restaurant_id) -> None:
    review_id = await insert_review(db, alice, restaurant_id, 4)
    await review_service.mark_helpful(db, bob, review_id)
    out = await review_service.mark_helpful(db, bob, review_id)
    assert out == {"review_id": review_id, "helpful": 2}


async def test_helpful_once_per_user_when_enabled(db, alice, bob, restaurant_id, monkeypatch) -> None:
    monkeypatch.setattr(settings, "HELPFUL_ONE_PER_USER", True)
    carol = await insert_user(db, "Carol")
    review_id = await insert_review(db, alice, restaurant_id, 4)
    await review_service.mark_helpful(db, bob, review_id)
    again = await review_service.mark_helpful(db, bob, review_id)
    assert again["helpful"] == 1
    out = await review_service.mark_helpful(db, carol, review_id)
    assert out["helpful"] == 2


async def test_helpful_rules(db, alice, bob, restaurant_id) -> None:
    pending = await insert_review(db, alice, restaurant_id, 4, status="pending")
    with pytest.raises(ValidationError):
        await review_service.mark_helpful(db, bob, pending)

    other = await insert_restaurant(db, await insert_user(db, "Second Owner", role="restaurant"), name="Bistro")
    approved = await insert_review(db, alice, other, 4)
    with pytest.raises(AuthorizationError):
        await review_service.mark_helpful(db, alice, approved)

    with pytest.raises(NotFoundError):
        await review_service.mark_helpful(db, bob, random_id())


async def test_report_threshold_sends_review_back_to_pending(db, notifier, alice, bob, owner, restaurant_id) -> None:
    review_id = await insert_review(db, alice, restaurant_id, 5, status="pending")
    await insert_review(db, bob, restaurant_id, 3)
    await review_service.moderate_review(db, notifier, owner, review_id, "approved")
    assert await _rating(db, restaurant_id) == pytest.approx(4.0)

    for _ in range(settings.REPORT_THRESHOLD - 1):
        out = await review_service.report_review(db, notifier, bob, review_id, "spam")
        assert out["status"] == "approved"

    out = await review_service.report_review(db, notifier, bob, review_id, "spam")
    assert out["report_count"] == settings.REPORT_THRESHOLD
    assert out["status"] == "pending"
    assert (await _review(db, review_id))["status"] == "pending"
    assert await _rating(db, restaurant_id) == pytest.approx(3.0)
    assert "review_flagged" in notifier.for_user(owner.id)
    assert await db.reports_collection.count_documents({"review_id": review_id}) == settings.REPORT_THRESHOLD

    report = await db.reports_collection.find_one({"_id": ObjectId(out["report_id"])})
    assert sorted(report) == ["_id", "date", "reason", "reporter_id", "review_id", "status"]
    assert report["status"] == "pending"
    assert report["reporter_id"] == bob.id
    assert report["reason"] == "spam"


async def test_repeated_approval_is_idempotent(db, notifier, alice, bob, owner, restaurant_id) -> None:
    review_id = await insert_review(db, alice, restaurant_id, 5, status="pending")
    await insert_review(db, bob, restaurant_id, 2)

    first = await review_service.moderate_review(db, notifier, owner, review_id, "approved")
    rating = await _rating(db, restaurant_id)
    assert rating == pytest.approx(3.5)

    second = await review_service.moderate_review(db, notifier, owner, review_id, "approved")
    assert first["status"] == second["status"] == "approved"
    assert await _rating(db, restaurant_id) == pytest.approx(rating)

    # same status re-sent through the owner update path
    third = await review_service.update_review(db, notifier, owner, review_id, ReviewUpdate(status="approved"))
    assert third["status"] == "approved"
    assert await _rating(db, restaurant_id) == pytest.approx(rating)


async def test_delete_by_owner_recomputes_and_notifies(db, notifier, alice, bob, owner, restaurant_id) -> None:
    review_id = await insert_review(db, alice, restaurant_id, 1)
    await insert_review(db, bob, restaurant_id, 5)

    out = await review_service.delete_review(db, notifier, owner, review_id)
    assert out["review_id"] == review_id
    assert await _review(db, review_id) is None
    assert await _rating(db, restaurant_id) == pytest.approx(5.0)
    assert notifier.for_user(alice.id) == ["review_deleted"]


async def test_delete_by_stranger_is_forbidden(db, notifier, alice, bob, restaurant_id) -> None:
    review_id = await insert_review(db, alice, restaurant_id, 4)
    with pytest.raises(AuthorizationError):
        await review_service.delete_review(db, notifier, bob, review_id)


async def test_public_listing_shows_approved_only(db, alice, bob, owner, restaurant_id) -> None:
    await insert_review(db, alice, restaurant_id, 5)
    await insert_review(db, bob, restaurant_id, 2, status="pending")

    public = await review_service.list_reviews(db, None, restaurant_id=restaurant_id)
    assert [r["rating"] for r in public] == [5]
    assert public[0]["customer_name"] == "Alice"
    assert public[0]["restaurant_name"] == "Trattoria"

    as_owner = await review_service.list_reviews(db, owner, restaurant_id=restaurant_id, sort_by="rating", sort_order="asc")
    assert [r["rating"] for r in as_owner] == [2, 5]

    pending_only = await review_service.list_reviews(db, owner, restaurant_id=restaurant_id, status="pending")
    assert [r["status"] for r in pending_only] == ["pending"]


async def test_customer_sees_own_reviews_in_every_status(db, alice, restaurant_id) -> None:
    await insert_review(db, alice, restaurant_id, 3, status="rejected")
    mine = await review_service.list_reviews(db, alice, customer_id=alice.id)
    assert [r["status"] for r in mine] == ["rejected"]


async def test_listing_requires_a_filter(db) -> None:
    with pytest.raises(ValidationError):
        await review_service.list_reviews(db, None)
