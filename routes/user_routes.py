from fastapi import APIRouter, Body, Depends
from models.user import UserOut, ProfileUpdate, PasswordChange
from db.db_operation import MongoConnection
from core.dependencies import get_current_user, get_db, CurrentUser
from services import user_service

router = APIRouter(prefix="/users", tags=["Users"])

@router.get("/profile", response_model=UserOut)
async def read_profile(current_user: CurrentUser = Depends(get_current_user), db: MongoConnection = Depends(get_db)):
    return await user_service.get_profile(db, current_user)

@router.put("/profile", response_model=UserOut)
async def update_profile(payload: ProfileUpdate, current_user: CurrentUser = Depends(get_current_user), db: MongoConnection = Depends(get_db)):
    return await user_service.update_profile(db, current_user, payload)

@router.post("/change-password")
async def change_password(payload: PasswordChange, current_user: CurrentUser = Depends(get_current_user), db: MongoConnection = Depends(get_db)):
    return await user_service.change_password(db, current_user, payload)

@router.get("/settings")
async def read_settings(current_user: CurrentUser = Depends(get_current_user), db: MongoConnection = Depends(get_db)):
    return await user_service.get_settings(db, current_user)

@router.put("/settings")
async def update_settings(data: dict = Body(...), current_user: CurrentUser = Depends(get_current_user), db: MongoConnection = Depends(get_db)):
    return await user_service.update_settings(db, current_user, data)
