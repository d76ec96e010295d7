from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from bson import ObjectId
from bson.errors import InvalidId
from typing import Optional
from pydantic import BaseModel
from db.db_operation import MongoConnection
from core.exceptions import AuthenticationError
from utils.jwt_handler import decode_access_token
from utils.logger import get_logger

logger = get_logger("Dependencies")

# tells fastapi to expect a token in the request header after login
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)

class CurrentUser(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    role: str = "customer"

def get_db(request: Request) -> MongoConnection:
    return request.app.state.mongo

def get_notifier(request: Request):
    return request.app.state.notifier

async def resolve_user(db: MongoConnection, token: str) -> CurrentUser:
    """
    Decode token and re-read the user, so deleted accounts lose access
    immediately. Raises AuthenticationError on any failure.
    """
    try:
        payload = decode_access_token(token)
    except ValueError:
        logger.warning("JWT Error: Invalid token")
        raise AuthenticationError("Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token: no subject found")
    try:
        oid = ObjectId(user_id)
    except (InvalidId, TypeError):
        raise AuthenticationError("Invalid token: malformed subject")

    user = await db.users_collection.find_one({"_id": oid})
    if user is None:
        logger.warning(f"User not found for token subject: {user_id}")
        raise AuthenticationError("User not found")

    return CurrentUser(
        id=str(user["_id"]),
        email=user.get("email"),
        name=user.get("name"),
        role=user.get("role", "customer"),
    )

async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: MongoConnection = Depends(get_db),
) -> CurrentUser:
    if not token:
        raise AuthenticationError("Authorization required")
    return await resolve_user(db, token)

async def get_optional_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: MongoConnection = Depends(get_db),
) -> Optional[CurrentUser]:
    """Public endpoints that show more to an authenticated caller."""
    if not token:
        return None
    try:
        return await resolve_user(db, token)
    except AuthenticationError:
        # continue as an anonymous caller
        return None
