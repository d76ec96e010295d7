from __future__ import annotations

from datetime import datetime, timezone

import pytest
from bson import ObjectId
from mongomock_motor import AsyncMongoMockClient

from core.dependencies import CurrentUser
from db.db_operation import MongoConnection, create_indexes


class RecordingNotifier:
    """Stands in for Notifier: keeps every emitted event in memory."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict]] = []

    def emit(self, recipient_id, event, payload) -> bool:
        if not recipient_id:
            return False
        self.events.append((recipient_id, event, payload))
        return True

    def emit_to_restaurant_owner(self, restaurant, event, payload) -> bool:
        if not restaurant:
            return False
        return self.emit(restaurant.get("owner_id"), event, payload)

    def names(self) -> list[str]:
        return [event for _, event, _ in self.events]

    def for_user(self, user_id: str) -> list[str]:
        return [event for recipient, event, _ in self.events if recipient == user_id]


@pytest.fixture
async def db() -> MongoConnection:
    conn = MongoConnection(client=AsyncMongoMockClient(), db_name="dinebook_test")
    await create_indexes(conn)
    return conn


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


async def insert_user(db: MongoConnection, name: str, role: str = "customer") -> CurrentUser:
    email = f"{name.lower().replace(' ', '.')}@example.com"
    result = await db.users_collection.insert_one({
        "name": name,
        "email": email,
        "password": "",
        "role": role,
        "created_at": datetime.now(timezone.utc),
    })
    return CurrentUser(id=str(result.inserted_id), email=email, name=name, role=role)


async def insert_restaurant(db: MongoConnection, owner: CurrentUser, name: str = "Trattoria", **fields) -> str:
    doc = {
        "owner_id": owner.id,
        "name": name,
        "cuisine": fields.pop("cuisine", "Italian"),
        "location": fields.pop("location", "Downtown"),
        "price_range": fields.pop("price_range", "medium"),
        "menu": [],
        "created_at": datetime.now(timezone.utc),
        **fields,
    }
    result = await db.restaurants_collection.insert_one(doc)
    return str(result.inserted_id)


async def insert_review(db: MongoConnection, customer: CurrentUser, restaurant_id: str, rating: int, status: str = "approved", **fields) -> str:
    doc = {
        "restaurant_id": restaurant_id,
        "customer_id": customer.id,
        "rating": rating,
        "comment": fields.pop("comment", "Lovely"),
        "images": [],
        "status": status,
        "helpful": fields.pop("helpful", 0),
        "report_count": fields.pop("report_count", 0),
        "reply": None,
        "date": datetime.now(timezone.utc),
        **fields,
    }
    result = await db.reviews_collection.insert_one(doc)
    return str(result.inserted_id)


@pytest.fixture
async def owner(db) -> CurrentUser:
    return await insert_user(db, "Olivia Owner", role="restaurant")


@pytest.fixture
async def other_owner(db) -> CurrentUser:
    return await insert_user(db, "Oscar Owner", role="restaurant")


@pytest.fixture
async def alice(db) -> CurrentUser:
    return await insert_user(db, "Alice")


@pytest.fixture
async def bob(db) -> CurrentUser:
    return await insert_user(db, "Bob")


@pytest.fixture
async def restaurant_id(db, owner) -> str:
    return await insert_restaurant(db, owner)


def random_id() -> str:
    return str(ObjectId())
