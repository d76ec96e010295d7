from fastapi import APIRouter, Depends, status
from models.user import UserCreate, UserLogin, AuthResponse
from db.db_operation import MongoConnection
from core.dependencies import get_db
from services.user_service import register_user, login_user
from utils.logger import get_logger

logger = get_logger("AUTH_ROUTE")

router = APIRouter(prefix="/auth", tags=["Authentication"])

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(user: UserCreate, db: MongoConnection = Depends(get_db)):
    logger.info(f"Attempting to register user with email: {user.email}")
    result = await register_user(db, user)
    logger.info(f"User created with email: {user.email}")
    return result

@router.post("/login", response_model=AuthResponse)
async def login(user: UserLogin, db: MongoConnection = Depends(get_db)):
    return await login_user(db, user)
