"""
Rating Aggregator.

A restaurant's ``rating`` is a denormalized copy of the mean rating of its
approved reviews. It is recomputed from scratch after every write that can
change the approved set, so repeated calls converge on the same value.
"""
from pymongo.errors import PyMongoError
from db.db_operation import MongoConnection, to_object_id
from utils.logger import get_logger

logger = get_logger("Rating_Service")

APPROVED = "approved"

def mean_rating(ratings: list) -> float | None:
    if not ratings:
        return None
    return sum(ratings) / len(ratings)

async def recompute_restaurant_rating(db: MongoConnection, restaurant_id: str) -> float | None:
    """
    Re-derive ``restaurants.rating`` from approved reviews. Unsets the field
    when no approved review is left. Returns the stored value.
    """
    cursor = db.reviews_collection.find(
        {"restaurant_id": restaurant_id, "status": APPROVED},
        {"rating": 1},
    )
    approved = await cursor.to_list(length=None)
    rating = mean_rating([float(r["rating"]) for r in approved])
    oid = to_object_id(restaurant_id, "restaurant id")

    if rating is None:
        await db.restaurants_collection.update_one({"_id": oid}, {"$unset": {"rating": ""}})
    else:
        await db.restaurants_collection.update_one({"_id": oid}, {"$set": {"rating": rating}})
    logger.info("Restaurant rating recomputed", extra={"restaurant_id": restaurant_id, "approved": len(approved), "rating": rating})
    return rating

async def recompute_after_write(db: MongoConnection, restaurant_id: str) -> float | None:
    """
    Post-write hook used by the review workflow: the primary write has already
    succeeded, so a failed recompute is logged and left for the next one.
    """
    try:
        return await recompute_restaurant_rating(db, restaurant_id)
    except PyMongoError:
        logger.exception(f"Rating recompute failed for restaurant {restaurant_id}")
        return None
