from typing import List
from fastapi import APIRouter, Depends, Body, Path, status
from db.db_operation import MongoConnection
from core.dependencies import get_current_user, get_db, CurrentUser
from models.menu import (
    CategoryCreate, CategoryUpdate, MenuCategoryIn, MenuCategoryOut, MenuItemCreate, MenuItemOut, MenuItemUpdate,
)
from services import menu_service

router = APIRouter(prefix="/restaurants/{restaurant_id}/menu", tags=["Menu"])

# Public: full menu, categories in display order
@router.get("", response_model=List[MenuCategoryOut])
async def api_get_menu(restaurant_id: str = Path(...), db: MongoConnection = Depends(get_db)):
    return await menu_service.get_menu(db, restaurant_id)

@router.put("", response_model=List[MenuCategoryOut])
async def api_replace_menu(restaurant_id: str, categories: List[MenuCategoryIn] = Body(...), current_user: CurrentUser = Depends(get_current_user), db: MongoConnection = Depends(get_db)):
    return await menu_service.replace_menu(db, current_user, restaurant_id, categories)

@router.post("/categories", response_model=MenuCategoryOut, status_code=status.HTTP_201_CREATED)
async def api_create_category(restaurant_id: str, payload: CategoryCreate = Body(...), current_user: CurrentUser = Depends(get_current_user), db: MongoConnection = Depends(get_db)):
    return await menu_service.create_category(db, current_user, restaurant_id, payload)

@router.put("/categories/{category_id}", response_model=MenuCategoryOut)
async def api_update_category(restaurant_id: str, category_id: str, payload: CategoryUpdate = Body(...), current_user: CurrentUser = Depends(get_current_user), db: MongoConnection = Depends(get_db)):
    return await menu_service.update_category(db, current_user, restaurant_id, category_id, payload)

@router.delete("/categories/{category_id}")
async def api_delete_category(restaurant_id: str, category_id: str, current_user: CurrentUser = Depends(get_current_user), db: MongoConnection = Depends(get_db)):
    return await menu_service.delete_category(db, current_user, restaurant_id, category_id)

@router.post("/categories/{category_id}/items", response_model=MenuItemOut, status_code=status.HTTP_201_CREATED)
async def api_create_menu_item(restaurant_id: str, category_id: str, payload: MenuItemCreate = Body(...), current_user: CurrentUser = Depends(get_current_user), db: MongoConnection = Depends(get_db)):
    return await menu_service.create_item(db, current_user, restaurant_id, category_id, payload)

@router.put("/categories/{category_id}/items/{item_id}", response_model=MenuItemOut)
async def api_update_menu_item(restaurant_id: str, category_id: str, item_id: str, payload: MenuItemUpdate = Body(...), current_user: CurrentUser = Depends(get_current_user), db: MongoConnection = Depends(get_db)):
    return await menu_service.update_item(db, current_user, restaurant_id, category_id, item_id, payload)

@router.delete("/categories/{category_id}/items/{item_id}")
async def api_delete_menu_item(restaurant_id: str, category_id: str, item_id: str, current_user: CurrentUser = Depends(get_current_user), db: MongoConnection = Depends(get_db)):
    return await menu_service.delete_item(db, current_user, restaurant_id, category_id, item_id)
