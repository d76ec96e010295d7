from datetime import datetime, timezone
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError
from db.db_operation import MongoConnection, to_object_id
from core.authorization import Action, ensure_allowed
from core.dependencies import CurrentUser
from core.exceptions import ConflictError, NotFoundError
from services.restaurant_service import fetch_restaurant
from utils.serializers import serialize_doc
from utils.logger import get_logger

logger = get_logger("Favorite_Service")

async def add_favorite(db: MongoConnection, caller: CurrentUser, restaurant_id: str) -> dict:
    ensure_allowed(caller, Action.FAVORITE_CREATE)
    restaurant = await fetch_restaurant(db, restaurant_id)
    if await db.favorites_collection.find_one({"customer_id": caller.id, "restaurant_id": restaurant_id}):
        raise ConflictError("Restaurant already in favorites")

    doc = {
        "customer_id": caller.id,
        "restaurant_id": restaurant_id,
        "created_at": datetime.now(timezone.utc),
    }
    try:
        result = await db.favorites_collection.insert_one(doc)
    except DuplicateKeyError:
        raise ConflictError("Restaurant already in favorites")
    logger.info(f"Favorite added: {caller.id} -> {restaurant_id}")
    out = serialize_doc({**doc, "_id": result.inserted_id})
    out["restaurant"] = _summary(restaurant)
    return out

def _summary(restaurant: dict) -> dict:
    return {
        "id": str(restaurant["_id"]),
        "name": restaurant.get("name"),
        "cuisine": restaurant.get("cuisine"),
        "rating": restaurant.get("rating"),
    }

async def list_favorites(db: MongoConnection, caller: CurrentUser) -> list:
    ensure_allowed(caller, Action.FAVORITE_LIST)
    docs = await db.favorites_collection.find({"customer_id": caller.id}).sort("created_at", DESCENDING).to_list(length=None)
    oids = list({to_object_id(d["restaurant_id"], "restaurant id") for d in docs})
    restaurants = await db.restaurants_collection.find({"_id": {"$in": oids}}).to_list(length=None)
    by_id = {str(r["_id"]): r for r in restaurants}
    out = []
    for d in docs:
        item = serialize_doc(d)
        restaurant = by_id.get(d["restaurant_id"])
        item["restaurant"] = _summary(restaurant) if restaurant else None
        out.append(item)
    return out

async def remove_favorite(db: MongoConnection, caller: CurrentUser, favorite_id: str) -> dict:
    favorite = await db.favorites_collection.find_one({"_id": to_object_id(favorite_id, "favorite id")})
    if not favorite:
        raise NotFoundError("Favorite not found")
    ensure_allowed(caller, Action.FAVORITE_DELETE, resource=favorite)
    await db.favorites_collection.delete_one({"_id": favorite["_id"]})
    logger.info(f"Favorite removed: {favorite_id}")
    return {"message": "Favorite removed", "favorite_id": favorite_id}

async def remove_favorite_by_restaurant(db: MongoConnection, caller: CurrentUser, restaurant_id: str) -> dict:
    ensure_allowed(caller, Action.FAVORITE_DELETE)
    result = await db.favorites_collection.delete_one({"customer_id": caller.id, "restaurant_id": restaurant_id})
    if result.deleted_count == 0:
        raise NotFoundError("Favorite not found")
    logger.info(f"Favorite removed: {caller.id} -> {restaurant_id}")
    return {"message": "Favorite removed", "restaurant_id": restaurant_id}
