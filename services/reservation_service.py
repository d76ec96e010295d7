from datetime import datetime, timezone
from pymongo.errors import PyMongoError
from db.db_operation import MongoConnection, to_object_id
from core.authorization import Action, ensure_allowed, CUSTOMER, RESTAURANT
from core.dependencies import CurrentUser
from core.exceptions import NotFoundError, UpstreamError, ValidationError
from models.reservation import ReservationCreate, ReservationUpdate
from services.restaurant_service import fetch_restaurant
from services.user_service import get_user_names, UNKNOWN_CUSTOMER
from utils.serializers import serialize_doc
from utils.logger import get_logger

logger = get_logger("Reservation_Service")

UNKNOWN_RESTAURANT = "Unknown Restaurant"

# allowed transitions; re-applying the current status is a no-op
ALLOWED_STATUS_TRANSITIONS = {
    "pending": ["confirmed", "cancelled"],
    "confirmed": ["cancelled"],
    "cancelled": [],
}

def can_transition(current: str, new: str) -> bool:
    return new == current or new in ALLOWED_STATUS_TRANSITIONS.get(current, [])

async def _restaurant_or_none(db: MongoConnection, restaurant_id: str):
    try:
        return await fetch_restaurant(db, restaurant_id)
    except (NotFoundError, ValidationError):
        return None

async def create_reservation(db: MongoConnection, notifier, caller: CurrentUser, payload: ReservationCreate) -> dict:
    """Book a table. Any date/time/party size is accepted; there is no capacity check."""
    ensure_allowed(caller, Action.RESERVATION_CREATE)
    restaurant = await fetch_restaurant(db, payload.restaurant_id)

    reservation = {
        "restaurant_id": payload.restaurant_id,
        "customer_id": caller.id,
        "date": payload.date.isoformat(),
        "time": payload.time,
        "guests": int(payload.guests),
        "status": "pending",
        "special_requests": payload.special_requests or "",
        "created_at": datetime.now(timezone.utc),
    }
    try:
        result = await db.reservations_collection.insert_one(reservation)
    except PyMongoError as e:
        logger.error(f"Error inserting reservation: {e}", exc_info=True)
        raise UpstreamError("Failed to save reservation")
    logger.info("Reservation created", extra={"reservation_id": str(result.inserted_id), "customer": caller.id, "restaurant_id": payload.restaurant_id})

    out = serialize_doc({**reservation, "_id": result.inserted_id})
    out["restaurant_name"] = restaurant.get("name")
    out["customer_name"] = caller.name or UNKNOWN_CUSTOMER
    notifier.emit_to_restaurant_owner(restaurant, "new_reservation", out)
    return out

async def list_reservations(
    db: MongoConnection,
    caller: CurrentUser,
    restaurant_id: str | None = None,
    customer_id: str | None = None,
    status: str | None = None,
) -> list:
    """Customers see their own bookings, owners see bookings for their restaurants."""
    restaurant = None
    if restaurant_id and caller.role == RESTAURANT:
        restaurant = await fetch_restaurant(db, restaurant_id)
    ensure_allowed(caller, Action.RESERVATION_LIST, restaurant=restaurant)

    query = {}
    if caller.role == CUSTOMER:
        query["customer_id"] = caller.id
        if restaurant_id:
            query["restaurant_id"] = restaurant_id
    else:
        if restaurant is not None:
            query["restaurant_id"] = restaurant_id
        else:
            owned = await db.restaurants_collection.find({"owner_id": caller.id}, {"_id": 1}).to_list(length=None)
            query["restaurant_id"] = {"$in": [str(r["_id"]) for r in owned]}
        if customer_id:
            query["customer_id"] = customer_id
    if status:
        query["status"] = status

    cursor = db.reservations_collection.find(query).sort([("date", 1), ("time", 1)])
    docs = await cursor.to_list(length=None)
    logger.info(f"Fetched {len(docs)} reservations for {caller.role} {caller.id}")
    return await _with_names(db, docs)

async def _with_names(db: MongoConnection, docs: list) -> list:
    customer_names = await get_user_names(db, [d["customer_id"] for d in docs])
    restaurant_oids = {to_object_id(d["restaurant_id"], "restaurant id") for d in docs}
    restaurants = await db.restaurants_collection.find({"_id": {"$in": list(restaurant_oids)}}, {"name": 1}).to_list(length=None)
    restaurant_names = {str(r["_id"]): r.get("name") for r in restaurants}
    out = []
    for d in docs:
        item = serialize_doc(d)
        item["restaurant_name"] = restaurant_names.get(d["restaurant_id"], UNKNOWN_RESTAURANT)
        item["customer_name"] = customer_names.get(d["customer_id"]) or UNKNOWN_CUSTOMER
        out.append(item)
    return out

async def _fetch_reservation(db: MongoConnection, reservation_id: str) -> dict:
    doc = await db.reservations_collection.find_one({"_id": to_object_id(reservation_id, "reservation id")})
    if not doc:
        raise NotFoundError("Reservation not found")
    return doc

async def get_reservation(db: MongoConnection, caller: CurrentUser, reservation_id: str) -> dict:
    reservation = await _fetch_reservation(db, reservation_id)
    restaurant = await _restaurant_or_none(db, reservation["restaurant_id"])
    ensure_allowed(caller, Action.RESERVATION_READ, resource=reservation, restaurant=restaurant)
    return (await _with_names(db, [reservation]))[0]

async def update_reservation(db: MongoConnection, notifier, caller: CurrentUser, reservation_id: str, payload: ReservationUpdate) -> dict:
    """
    Customers may change date/time/guests/special requests while the booking
    is pending. Restaurant owners may only move the status forward.
    """
    reservation = await _fetch_reservation(db, reservation_id)
    restaurant = await _restaurant_or_none(db, reservation["restaurant_id"])
    changes = payload.model_dump(exclude_unset=True)
    # ownership first; a non-pending booking is a 400 whatever the customer sends
    ensure_allowed(caller, Action.RESERVATION_UPDATE, resource=reservation, restaurant=restaurant)

    current_status = reservation["status"]
    now = datetime.now(timezone.utc)

    if caller.role == CUSTOMER and current_status != "pending":
        raise ValidationError("Cannot modify a confirmed or cancelled reservation")
    ensure_allowed(caller, Action.RESERVATION_UPDATE, resource=reservation, restaurant=restaurant, fields=changes.keys())

    if caller.role == CUSTOMER:
        update_doc = {}
        if changes.get("date") is not None:
            update_doc["date"] = changes["date"].isoformat()
        if changes.get("time") is not None:
            update_doc["time"] = changes["time"]
        if changes.get("guests") is not None:
            update_doc["guests"] = int(changes["guests"])
        if "special_requests" in changes:
            update_doc["special_requests"] = changes["special_requests"] or ""
        if not update_doc:
            raise ValidationError("Nothing to update")
        update_doc["updated_at"] = now
        await db.reservations_collection.update_one({"_id": reservation["_id"]}, {"$set": update_doc})
        logger.info(f"Reservation {reservation_id} updated by customer {caller.id}")

        event = serialize_doc({
            "id": reservation_id,
            **update_doc,
            "status": current_status,
            "restaurant_id": reservation["restaurant_id"],
            "restaurant_name": restaurant.get("name") if restaurant else UNKNOWN_RESTAURANT,
            "customer_name": caller.name or UNKNOWN_CUSTOMER,
        })
        notifier.emit_to_restaurant_owner(restaurant, "reservation_updated", event)
    else:
        new_status = changes.get("status")
        if not new_status:
            raise ValidationError("Status is required")
        if not can_transition(current_status, new_status):
            raise ValidationError(f"Invalid status transition from '{current_status}' to '{new_status}'")
        if new_status != current_status:
            await db.reservations_collection.update_one(
                {"_id": reservation["_id"]},
                {"$set": {"status": new_status, "updated_at": now}}
            )
            logger.info(f"Reservation {reservation_id} status updated from {current_status} -> {new_status}", extra={"actor": caller.email})
            notifier.emit(reservation["customer_id"], "reservation_updated", {
                "id": reservation_id,
                "status": new_status,
                "restaurant_id": reservation["restaurant_id"],
                "restaurant_name": restaurant.get("name"),
                "date": reservation["date"],
                "time": reservation["time"],
                "guests": reservation["guests"],
            })

    updated = await _fetch_reservation(db, reservation_id)
    return (await _with_names(db, [updated]))[0]
