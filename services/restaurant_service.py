# services/restaurant_service.py
from datetime import datetime, timezone
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError
from db.db_operation import MongoConnection, to_object_id
from core.authorization import Action, ensure_allowed
from core.dependencies import CurrentUser
from core.exceptions import ConflictError, NotFoundError, UpstreamError
from models.restaurant import RestaurantCreate, RestaurantUpdate
from utils.serializers import serialize_doc
from utils.logger import get_logger

logger = get_logger("Restaurant_Service")

FEATURE_FLAGS = (
    "is_lgbtq_friendly",
    "is_smoking_allowed",
    "has_outdoor_seating",
    "is_wheelchair_accessible",
    "has_vegan_options",
    "has_vegetarian_options",
)

def restaurant_out(doc: dict) -> dict:
    out = serialize_doc(doc)
    out["menu"] = sorted(out.get("menu") or [], key=lambda c: c.get("order", 0))
    return out

async def fetch_restaurant(db: MongoConnection, restaurant_id: str) -> dict:
    """Raw restaurant document or NotFoundError."""
    oid = to_object_id(restaurant_id, "restaurant id")
    doc = await db.restaurants_collection.find_one({"_id": oid})
    if not doc:
        raise NotFoundError("Restaurant not found")
    return doc

async def create_restaurant(db: MongoConnection, caller: CurrentUser, payload: RestaurantCreate) -> dict:
    """
    Create the caller's restaurant. An owner has at most one restaurant: checked
    here and backed by the unique index on owner_id.
    """
    ensure_allowed(caller, Action.RESTAURANT_CREATE)
    restaurants = db.restaurants_collection
    existing = await restaurants.find_one({"owner_id": caller.id})
    if existing is not None:
        raise ConflictError("You already have a restaurant")

    doc = {
        "owner_id": caller.id,
        **payload.model_dump(),
        "menu": [],
        "created_at": datetime.now(timezone.utc),
    }
    try:
        result = await restaurants.insert_one(doc)
    except DuplicateKeyError:
        raise ConflictError("You already have a restaurant")
    except PyMongoError:
        logger.exception("DB error creating restaurant")
        raise UpstreamError("Failed to save restaurant")
    logger.info("Restaurant created", extra={"actor": caller.email, "restaurant_id": str(result.inserted_id)})
    return restaurant_out({**doc, "_id": result.inserted_id})

async def get_restaurant(db: MongoConnection, restaurant_id: str) -> dict:
    return restaurant_out(await fetch_restaurant(db, restaurant_id))

async def get_my_restaurant(db: MongoConnection, caller: CurrentUser) -> dict:
    # first-created wins if legacy data holds more than one
    cursor = db.restaurants_collection.find({"owner_id": caller.id}).sort("created_at", ASCENDING).limit(1)
    docs = await cursor.to_list(length=1)
    if not docs:
        raise NotFoundError("You do not have a restaurant yet")
    return restaurant_out(docs[0])

async def list_restaurants(
    db: MongoConnection,
    cuisine: str | None = None,
    location: str | None = None,
    price_range: str | None = None,
    flags: dict | None = None,
    skip: int = 0,
    limit: int = 50,
) -> list:
    q = {}
    if cuisine:
        q["cuisine"] = cuisine
    if location:
        q["location"] = location
    if price_range:
        q["price_range"] = price_range
    for flag, wanted in (flags or {}).items():
        # flags only narrow the result when asked for explicitly
        if flag in FEATURE_FLAGS and wanted:
            q[flag] = True
    cursor = db.restaurants_collection.find(q).sort("created_at", ASCENDING).skip(skip).limit(limit)
    docs = await cursor.to_list(length=limit)
    return [restaurant_out(d) for d in docs]

async def update_restaurant(db: MongoConnection, caller: CurrentUser, restaurant_id: str, payload: RestaurantUpdate) -> dict:
    restaurant = await fetch_restaurant(db, restaurant_id)
    ensure_allowed(caller, Action.RESTAURANT_UPDATE, restaurant=restaurant)
    update_doc = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    update_doc["updated_at"] = datetime.now(timezone.utc)
    result = await db.restaurants_collection.update_one({"_id": restaurant["_id"]}, {"$set": update_doc})
    if result.matched_count == 0:
        raise NotFoundError("Restaurant not found")
    logger.info("Restaurant updated", extra={"actor": caller.email, "restaurant_id": restaurant_id, "fields": sorted(update_doc)})
    return await get_restaurant(db, restaurant_id)

async def _cascade_step(name: str, collection, query: dict, restaurant_id: str, deleted: dict, failed: list):
    try:
        result = await collection.delete_many(query)
    except PyMongoError:
        logger.exception(f"Cascade step '{name}' failed for restaurant {restaurant_id}")
        failed.append(name)
        return
    deleted[name] = result.deleted_count
    logger.info(f"Cascade step '{name}' removed {result.deleted_count} document(s)", extra={"restaurant_id": restaurant_id})

async def delete_restaurant(db: MongoConnection, caller: CurrentUser, restaurant_id: str) -> dict:
    """
    Delete a restaurant and then its dependents, one collection at a time.
    There is no transaction: the parent goes first, each child step is tried
    independently and failed steps are reported back instead of retried.
    """
    restaurant = await fetch_restaurant(db, restaurant_id)
    ensure_allowed(caller, Action.RESTAURANT_DELETE, restaurant=restaurant)

    result = await db.restaurants_collection.delete_one({"_id": restaurant["_id"]})
    if result.deleted_count == 0:
        raise NotFoundError("Restaurant not found")
    logger.info("Restaurant deleted, cascading", extra={"actor": caller.email, "restaurant_id": restaurant_id})

    deleted = {"restaurant": 1}
    failed = []

    review_ids = None
    try:
        cursor = db.reviews_collection.find({"restaurant_id": restaurant_id}, {"_id": 1})
        review_ids = [str(d["_id"]) for d in await cursor.to_list(length=None)]
    except PyMongoError:
        logger.exception(f"Could not collect review ids for restaurant {restaurant_id}")
        failed.append("helpful_marks")

    await _cascade_step("reservations", db.reservations_collection, {"restaurant_id": restaurant_id}, restaurant_id, deleted, failed)
    await _cascade_step("reviews", db.reviews_collection, {"restaurant_id": restaurant_id}, restaurant_id, deleted, failed)
    if review_ids is not None:
        await _cascade_step("helpful_marks", db.helpful_marks_collection, {"review_id": {"$in": review_ids}}, restaurant_id, deleted, failed)
    await _cascade_step("favorites", db.favorites_collection, {"restaurant_id": restaurant_id}, restaurant_id, deleted, failed)

    if failed:
        logger.error(f"Restaurant {restaurant_id} deleted with incomplete cascade: {failed}")
    return {
        "message": "Restaurant deleted" if not failed else "Restaurant deleted, some related records could not be removed",
        "restaurant_id": restaurant_id,
        "deleted": deleted,
        "failed_steps": failed,
    }
