import copy
from datetime import datetime, timezone
from pymongo.errors import DuplicateKeyError
from bson import ObjectId
from bson.errors import InvalidId
from db.db_operation import MongoConnection, to_object_id
from core.dependencies import CurrentUser
from core.exceptions import AuthenticationError, ConflictError, NotFoundError, ValidationError
from models.user import UserCreate, UserLogin, ProfileUpdate, PasswordChange
from utils.hash import hash_password, verify_password
from utils.jwt_handler import create_access_token
from utils.serializers import serialize_doc
from utils.logger import get_logger

logger = get_logger("USER_SERVICE")

UNKNOWN_CUSTOMER = "Unknown Customer"

COMMON_SETTINGS = {
    "notifications": {
        "email": True,
        "marketing": False,
        "reservation_reminders": True,
        "reservation_updates": True,
        "special_offers": False,
    },
    "privacy": {
        "profile_visibility": "registered",
        "show_reviews": True,
        "share_data_with_partners": False,
    },
    "personalization": {
        "theme": "system",
        "language": "en",
        "currency": "USD",
        "date_format": "MM/DD/YYYY",
        "time_format": "12h",
    },
}

PROFILE_VISIBILITY = ("public", "registered", "private")
THEMES = ("light", "dark", "system")
DATE_FORMATS = ("MM/DD/YYYY", "DD/MM/YYYY", "YYYY-MM-DD")
TIME_FORMATS = ("12h", "24h")

def _token_for(user_doc: dict) -> str:
    return create_access_token({"sub": str(user_doc["_id"]), "email": user_doc["email"], "role": user_doc["role"]})

async def register_user(db: MongoConnection, user: UserCreate) -> dict:
    logger.info(f"User create request received for email: {user.email}")
    users_collection = db.users_collection
    if await users_collection.find_one({"email": user.email}):
        raise ConflictError("Email already registered")

    user_dict = {
        "name": user.name,
        "email": user.email,
        "password": hash_password(user.password),
        "role": user.role,
        "created_at": datetime.now(timezone.utc),
    }
    try:
        result = await users_collection.insert_one(user_dict)
    except DuplicateKeyError:
        raise ConflictError("Email already registered")
    user_dict["_id"] = result.inserted_id
    logger.info(f"User inserted into database with id: {result.inserted_id}")
    return {"user": serialize_doc(user_dict), "access_token": _token_for(user_dict), "token_type": "bearer"}

async def login_user(db: MongoConnection, credentials: UserLogin) -> dict:
    logger.info(f"Login attempt for: {credentials.email}")
    db_user = await db.users_collection.find_one({"email": credentials.email})
    if not db_user:
        logger.warning(f"Login failed: user not found {credentials.email}")
        raise AuthenticationError("Invalid credentials")
    if not verify_password(credentials.password, db_user.get("password")):
        logger.warning(f"Login failed: wrong password {credentials.email}")
        raise AuthenticationError("Invalid credentials")
    logger.info(f"Login successful: {credentials.email}")
    return {"user": serialize_doc(db_user), "access_token": _token_for(db_user), "token_type": "bearer"}

async def _fetch_user(db: MongoConnection, user_id: str) -> dict:
    doc = await db.users_collection.find_one({"_id": to_object_id(user_id, "user id")})
    if not doc:
        raise NotFoundError("User not found")
    return doc

async def get_profile(db: MongoConnection, caller: CurrentUser) -> dict:
    return serialize_doc(await _fetch_user(db, caller.id))

async def update_profile(db: MongoConnection, caller: CurrentUser, payload: ProfileUpdate) -> dict:
    update_doc = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if "email" in update_doc:
        clash = await db.users_collection.find_one({"email": update_doc["email"], "_id": {"$ne": ObjectId(caller.id)}})
        if clash:
            raise ConflictError("Email already registered")
    if update_doc:
        update_doc["updated_at"] = datetime.now(timezone.utc)
        result = await db.users_collection.update_one({"_id": ObjectId(caller.id)}, {"$set": update_doc})
        if result.matched_count == 0:
            raise NotFoundError("User not found")
    return await get_profile(db, caller)

async def change_password(db: MongoConnection, caller: CurrentUser, payload: PasswordChange) -> dict:
    user_doc = await _fetch_user(db, caller.id)
    if not verify_password(payload.current_password, user_doc.get("password")):
        raise ValidationError("Current password is incorrect")
    await db.users_collection.update_one(
        {"_id": user_doc["_id"]},
        {"$set": {"password": hash_password(payload.new_password), "updated_at": datetime.now(timezone.utc)}}
    )
    logger.info(f"Password changed for {caller.email}")
    return {"message": "Password updated successfully"}

def default_settings(role: str) -> dict:
    defaults = copy.deepcopy(COMMON_SETTINGS)
    if role == "restaurant":
        defaults["notifications"]["new_reviews"] = True
        defaults["privacy"]["show_reservations"] = True
    return defaults

def merge_settings(data: dict, role: str) -> dict:
    """Deep-merge over the role's defaults and coerce every value to its allowed shape."""
    defaults = default_settings(role)
    data = data or {}
    merged = {
        section: {**defaults[section], **(data.get(section) or {})}
        for section in defaults
    }
    merged["notifications"] = {k: bool(v) for k, v in merged["notifications"].items()}
    for key, value in merged["privacy"].items():
        if key == "profile_visibility":
            if value not in PROFILE_VISIBILITY:
                merged["privacy"][key] = defaults["privacy"][key]
        else:
            merged["privacy"][key] = bool(value)
    personalization = merged["personalization"]
    if personalization["theme"] not in THEMES:
        personalization["theme"] = defaults["personalization"]["theme"]
    if personalization["date_format"] not in DATE_FORMATS:
        personalization["date_format"] = defaults["personalization"]["date_format"]
    if personalization["time_format"] not in TIME_FORMATS:
        personalization["time_format"] = defaults["personalization"]["time_format"]
    return merged

async def get_settings(db: MongoConnection, caller: CurrentUser) -> dict:
    user_doc = await _fetch_user(db, caller.id)
    return user_doc.get("settings") or default_settings(user_doc.get("role"))

async def update_settings(db: MongoConnection, caller: CurrentUser, data: dict) -> dict:
    user_doc = await _fetch_user(db, caller.id)
    validated = merge_settings(data, user_doc.get("role"))
    await db.users_collection.update_one({"_id": user_doc["_id"]}, {"$set": {"settings": validated}})
    return {"message": "Settings updated successfully", "settings": validated}

async def get_user_names(db: MongoConnection, user_ids) -> dict:
    """Map of user id -> display name, for denormalizing list responses."""
    oids = []
    for uid in set(user_ids):
        try:
            oids.append(ObjectId(uid))
        except (InvalidId, TypeError):
            continue
    if not oids:
        return {}
    docs = await db.users_collection.find({"_id": {"$in": oids}}, {"name": 1}).to_list(length=None)
    return {str(d["_id"]): d.get("name") for d in docs}
