from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING
from bson import ObjectId
from bson.errors import InvalidId
from settings.config import settings
from core.exceptions import ValidationError
from utils.logger import get_logger

logger = get_logger("DB_OPERATION")

class MongoConnection:
    """
    Handle to the document store. Built once at startup (or by tests around an
    in-memory client), stored on ``app.state`` and closed at shutdown.
    """
    def __init__(self, client=None, db_name: str | None = None):
        logger.info("Initializing MongoDB Connection")
        self.client = client if client is not None else AsyncIOMotorClient(settings.MONGO_URI)
        self.db_name = db_name or settings.DB_NAME
        self.db = self.client[self.db_name]
        self.users_collection = self.db["users"]
        self.restaurants_collection = self.db["restaurants"]
        self.reservations_collection = self.db["reservations"]
        self.reviews_collection = self.db["reviews"]
        self.favorites_collection = self.db["favorites"]
        self.reports_collection = self.db["reports"]
        self.helpful_marks_collection = self.db["helpful_marks"]

    async def connect(self):
        try:
            # Force an actual connection & authentication check
            await self.db.command("ping")
            logger.info("Successfully connected to MongoDB and authenticated.")
            logger.info(f"Using Database: {self.db_name}")
        except Exception as e:
            logger.error(f"Could not connect to MongoDB: {e}")
            raise

    def close(self):
        self.client.close()
        logger.info("MongoDB connection closed")

async def create_indexes(conn: MongoConnection):
    await conn.users_collection.create_index("email", unique=True)
    # one restaurant per owner
    await conn.restaurants_collection.create_index("owner_id", unique=True)
    await conn.reservations_collection.create_index("restaurant_id")
    await conn.reservations_collection.create_index("customer_id")
    await conn.reviews_collection.create_index(
        [("customer_id", ASCENDING), ("restaurant_id", ASCENDING)], unique=True
    )
    await conn.reviews_collection.create_index([("restaurant_id", ASCENDING), ("status", ASCENDING)])
    await conn.favorites_collection.create_index(
        [("customer_id", ASCENDING), ("restaurant_id", ASCENDING)], unique=True
    )
    await conn.helpful_marks_collection.create_index(
        [("review_id", ASCENDING), ("user_id", ASCENDING)], unique=True
    )
    await conn.reports_collection.create_index("review_id")
    logger.info("Indexes created")

def to_object_id(value: str, label: str = "id") -> ObjectId:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise ValidationError(f"Invalid {label}")
