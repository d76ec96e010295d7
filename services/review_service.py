"""
Review Workflow.

Reviews are created ``pending`` and only ``approved`` reviews are public and
count towards the restaurant rating. Any write that can change the approved
set of a restaurant recomputes its rating afterwards.
"""
from datetime import datetime, timezone
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError
from db.db_operation import MongoConnection, to_object_id
from core.authorization import Action, ensure_allowed, is_owner, CUSTOMER
from core.dependencies import CurrentUser
from core.exceptions import ConflictError, NotFoundError, ValidationError
from models.review import ReviewCreate, ReviewUpdate
from services.rating_service import recompute_after_write, APPROVED
from services.restaurant_service import fetch_restaurant
from services.user_service import get_user_names, UNKNOWN_CUSTOMER
from settings.config import settings
from utils.serializers import serialize_doc
from utils.logger import get_logger

logger = get_logger("Review_Service")

PENDING = "pending"

SORT_FIELDS = {"date": "date", "rating": "rating", "helpful": "helpful"}

async def _fetch_review(db: MongoConnection, review_id: str) -> dict:
    doc = await db.reviews_collection.find_one({"_id": to_object_id(review_id, "review id")})
    if not doc:
        raise NotFoundError("Review not found")
    return doc

async def _restaurant_of(db: MongoConnection, review: dict):
    try:
        return await fetch_restaurant(db, review["restaurant_id"])
    except (NotFoundError, ValidationError):
        return None

def _review_out(doc: dict, customer_name=None, restaurant_name=None) -> dict:
    out = serialize_doc(doc)
    out["customer_name"] = customer_name or UNKNOWN_CUSTOMER
    out["restaurant_name"] = restaurant_name
    return out

async def create_review(db: MongoConnection, notifier, caller: CurrentUser, payload: ReviewCreate) -> dict:
    ensure_allowed(caller, Action.REVIEW_CREATE)
    restaurant = await fetch_restaurant(db, payload.restaurant_id)

    existing = await db.reviews_collection.find_one({"customer_id": caller.id, "restaurant_id": payload.restaurant_id})
    if existing:
        raise ConflictError("You have already reviewed this restaurant")

    review = {
        "restaurant_id": payload.restaurant_id,
        "customer_id": caller.id,
        "rating": int(payload.rating),
        "comment": payload.comment,
        "images": list(payload.images),
        "status": PENDING,
        "helpful": 0,
        "report_count": 0,
        "reply": None,
        "date": datetime.now(timezone.utc),
    }
    try:
        result = await db.reviews_collection.insert_one(review)
    except DuplicateKeyError:
        raise ConflictError("You have already reviewed this restaurant")
    review["_id"] = result.inserted_id
    logger.info("Review created", extra={"review_id": str(result.inserted_id), "customer": caller.id, "restaurant_id": payload.restaurant_id})

    out = _review_out(review, caller.name, restaurant.get("name"))
    notifier.emit_to_restaurant_owner(restaurant, "new_review", out)
    return out

async def list_reviews(
    db: MongoConnection,
    caller: CurrentUser | None = None,
    restaurant_id: str | None = None,
    customer_id: str | None = None,
    status: str | None = None,
    sort_by: str = "date",
    sort_order: str = "desc",
) -> list:
    """
    Public listing shows approved reviews only. The owner of the restaurant
    and a customer listing their own reviews see every status and may filter
    on it.
    """
    if not restaurant_id and not customer_id:
        raise ValidationError("restaurant_id or customer_id is required")

    query = {}
    sees_all = False
    if restaurant_id:
        query["restaurant_id"] = restaurant_id
        if caller is not None:
            restaurant = await db.restaurants_collection.find_one({"_id": to_object_id(restaurant_id, "restaurant id")})
            sees_all = is_owner(caller, restaurant)
    if customer_id:
        query["customer_id"] = customer_id
        if caller is not None and caller.role == CUSTOMER and caller.id == customer_id:
            sees_all = True

    if not sees_all:
        query["status"] = APPROVED
    elif status:
        query["status"] = status

    field = SORT_FIELDS.get(sort_by, "date")
    direction = ASCENDING if sort_order == "asc" else DESCENDING
    docs = await db.reviews_collection.find(query).sort(field, direction).to_list(length=None)

    customer_names = await get_user_names(db, [d["customer_id"] for d in docs])
    restaurant_oids = list({to_object_id(d["restaurant_id"], "restaurant id") for d in docs})
    restaurants = await db.restaurants_collection.find({"_id": {"$in": restaurant_oids}}, {"name": 1}).to_list(length=None)
    restaurant_names = {str(r["_id"]): r.get("name") for r in restaurants}
    return [
        _review_out(d, customer_names.get(d["customer_id"]), restaurant_names.get(d["restaurant_id"]))
        for d in docs
    ]

async def get_review(db: MongoConnection, review_id: str) -> dict:
    review = await _fetch_review(db, review_id)
    names = await get_user_names(db, [review["customer_id"]])
    restaurant = await _restaurant_of(db, review)
    return _review_out(review, names.get(review["customer_id"]), restaurant.get("name") if restaurant else None)

async def update_review(db: MongoConnection, notifier, caller: CurrentUser, review_id: str, payload: ReviewUpdate) -> dict:
    """
    Authors edit rating/comment/images, which sends the review back to
    moderation. Restaurant owners set the reply and/or status.
    """
    review = await _fetch_review(db, review_id)
    restaurant = await _restaurant_of(db, review)
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    ensure_allowed(caller, Action.REVIEW_UPDATE, resource=review, restaurant=restaurant, fields=changes.keys())

    previous_status = review["status"]
    now = datetime.now(timezone.utc)

    if caller.role == CUSTOMER:
        if "rating" not in changes and "comment" not in changes:
            raise ValidationError("Rating or comment is required")
        update_doc = {**changes, "status": PENDING, "updated_at": now}
        await db.reviews_collection.update_one({"_id": review["_id"]}, {"$set": update_doc})
        logger.info(f"Review {review_id} edited by author, back to moderation")
        if previous_status == APPROVED:
            await recompute_after_write(db, review["restaurant_id"])
        updated = await _fetch_review(db, review_id)
        out = _review_out(updated, caller.name, restaurant.get("name") if restaurant else None)
        notifier.emit_to_restaurant_owner(restaurant, "review_updated", out)
        return out

    if not changes:
        raise ValidationError("Nothing to update")
    update_doc = {**changes, "updated_at": now}
    await db.reviews_collection.update_one({"_id": review["_id"]}, {"$set": update_doc})
    new_status = changes.get("status", previous_status)
    logger.info("Review updated by restaurant", extra={"review_id": review_id, "actor": caller.email, "fields": sorted(changes)})
    if APPROVED in (previous_status, new_status) and previous_status != new_status:
        await recompute_after_write(db, review["restaurant_id"])

    updated = await _fetch_review(db, review_id)
    names = await get_user_names(db, [review["customer_id"]])
    out = _review_out(updated, names.get(review["customer_id"]), restaurant.get("name"))
    if "status" in changes:
        notifier.emit(review["customer_id"], "review_moderated", out)
    if "reply" in changes:
        notifier.emit(review["customer_id"], "review_replied", out)
    return out

async def moderate_review(db: MongoConnection, notifier, caller: CurrentUser, review_id: str, status: str) -> dict:
    review = await _fetch_review(db, review_id)
    restaurant = await _restaurant_of(db, review)
    ensure_allowed(caller, Action.REVIEW_MODERATE, resource=review, restaurant=restaurant)

    previous_status = review["status"]
    await db.reviews_collection.update_one(
        {"_id": review["_id"]},
        {"$set": {"status": status, "updated_at": datetime.now(timezone.utc)}}
    )
    logger.info(f"Review {review_id} moderated {previous_status} -> {status}", extra={"actor": caller.email})
    if APPROVED in (previous_status, status) and previous_status != status:
        await recompute_after_write(db, review["restaurant_id"])

    updated = await _fetch_review(db, review_id)
    names = await get_user_names(db, [review["customer_id"]])
    out = _review_out(updated, names.get(review["customer_id"]), restaurant.get("name"))
    notifier.emit(review["customer_id"], "review_moderated", out)
    return out

async def mark_helpful(db: MongoConnection, caller: CurrentUser, review_id: str) -> dict:
    review = await _fetch_review(db, review_id)
    if review["status"] != APPROVED:
        raise ValidationError("Only approved reviews can be marked helpful")
    ensure_allowed(caller, Action.REVIEW_HELPFUL, resource=review)

    if settings.HELPFUL_ONE_PER_USER:
        try:
            await db.helpful_marks_collection.insert_one({
                "review_id": review_id,
                "user_id": caller.id,
                "created_at": datetime.now(timezone.utc),
            })
        except DuplicateKeyError:
            logger.info(f"Helpful mark already recorded for review {review_id} by {caller.id}")
            return {"review_id": review_id, "helpful": review.get("helpful", 0)}

    updated = await db.reviews_collection.find_one_and_update(
        {"_id": review["_id"]},
        {"$inc": {"helpful": 1}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise NotFoundError("Review not found")
    return {"review_id": review_id, "helpful": updated.get("helpful", 0)}

async def report_review(db: MongoConnection, notifier, caller: CurrentUser, review_id: str, reason: str) -> dict:
    """
    Record a report. Once a review collects REPORT_THRESHOLD reports it is
    pulled back to ``pending`` for the owner to look at again.
    """
    review = await _fetch_review(db, review_id)
    ensure_allowed(caller, Action.REVIEW_REPORT, resource=review)

    # append-only audit record; reports never leave pending
    report = {
        "review_id": review_id,
        "reporter_id": caller.id,
        "reason": reason,
        "date": datetime.now(timezone.utc),
        "status": PENDING,
    }
    result = await db.reports_collection.insert_one(report)
    updated = await db.reviews_collection.find_one_and_update(
        {"_id": review["_id"]},
        {"$inc": {"report_count": 1}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise NotFoundError("Review not found")
    logger.info("Review reported", extra={"review_id": review_id, "reporter": caller.id, "report_count": updated.get("report_count")})

    status = updated["status"]
    if updated.get("report_count", 0) >= settings.REPORT_THRESHOLD and status != PENDING:
        await db.reviews_collection.update_one(
            {"_id": review["_id"]},
            {"$set": {"status": PENDING, "updated_at": datetime.now(timezone.utc)}}
        )
        logger.warning(f"Review {review_id} reached {updated['report_count']} reports, back to moderation")
        if status == APPROVED:
            await recompute_after_write(db, review["restaurant_id"])
        restaurant = await _restaurant_of(db, review)
        notifier.emit_to_restaurant_owner(restaurant, "review_flagged", {
            "review_id": review_id,
            "restaurant_id": review["restaurant_id"],
            "report_count": updated["report_count"],
        })
        status = PENDING

    return {
        "review_id": review_id,
        "report_id": str(result.inserted_id),
        "report_count": updated.get("report_count", 0),
        "status": status,
    }

async def delete_review(db: MongoConnection, notifier, caller: CurrentUser, review_id: str) -> dict:
    review = await _fetch_review(db, review_id)
    restaurant = await _restaurant_of(db, review)
    ensure_allowed(caller, Action.REVIEW_DELETE, resource=review, restaurant=restaurant)

    result = await db.reviews_collection.delete_one({"_id": review["_id"]})
    if result.deleted_count == 0:
        raise NotFoundError("Review not found")
    logger.info("Review deleted", extra={"review_id": review_id, "actor": caller.email})

    await recompute_after_write(db, review["restaurant_id"])
    try:
        await db.helpful_marks_collection.delete_many({"review_id": review_id})
    except PyMongoError:
        logger.exception(f"Could not remove helpful marks of review {review_id}")

    if is_owner(caller, restaurant):
        notifier.emit(review["customer_id"], "review_deleted", {
            "review_id": review_id,
            "restaurant_id": review["restaurant_id"],
            "restaurant_name": restaurant.get("name"),
        })
    return {"message": "Review deleted", "review_id": review_id}
