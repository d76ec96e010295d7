from typing import List
from fastapi import APIRouter, Depends, Body, status
from db.db_operation import MongoConnection
from core.dependencies import get_current_user, get_db, CurrentUser
from models.favorite import FavoriteCreate, FavoriteOut
from services import favorite_service

router = APIRouter(prefix="/favorites", tags=["Favorites"])

@router.get("", response_model=List[FavoriteOut])
async def api_list_favorites(current_user: CurrentUser = Depends(get_current_user), db: MongoConnection = Depends(get_db)):
    return await favorite_service.list_favorites(db, current_user)

@router.post("", response_model=FavoriteOut, status_code=status.HTTP_201_CREATED)
async def api_add_favorite(payload: FavoriteCreate = Body(...), current_user: CurrentUser = Depends(get_current_user), db: MongoConnection = Depends(get_db)):
    return await favorite_service.add_favorite(db, current_user, payload.restaurant_id)

@router.delete("/restaurant/{restaurant_id}")
async def api_remove_favorite_by_restaurant(restaurant_id: str, current_user: CurrentUser = Depends(get_current_user), db: MongoConnection = Depends(get_db)):
    return await favorite_service.remove_favorite_by_restaurant(db, current_user, restaurant_id)

@router.delete("/{favorite_id}")
async def api_remove_favorite(favorite_id: str, current_user: CurrentUser = Depends(get_current_user), db: MongoConnection = Depends(get_db)):
    return await favorite_service.remove_favorite(db, current_user, favorite_id)
