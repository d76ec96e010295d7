# routes/restaurant_routes.py
from typing import Optional
from fastapi import APIRouter, Depends, Query, Body, Path, status
from db.db_operation import MongoConnection
from core.authorization import require_role, RESTAURANT
from core.dependencies import get_current_user, get_db, CurrentUser
from models.restaurant import RestaurantCreate, RestaurantOut, RestaurantUpdate, CascadeDeleteResult, PriceRange
from services import restaurant_service
from utils.logger import get_logger

logger = get_logger("Restaurant_Route")
router = APIRouter(prefix="/restaurants", tags=["Restaurants"])

# Public: list restaurants, optionally narrowed by cuisine/location/price and feature flags
@router.get("", response_model=list[RestaurantOut])
async def api_list_restaurants(
    cuisine: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
    price_range: Optional[PriceRange] = Query(None),
    is_lgbtq_friendly: bool = False,
    is_smoking_allowed: bool = False,
    has_outdoor_seating: bool = False,
    is_wheelchair_accessible: bool = False,
    has_vegan_options: bool = False,
    has_vegetarian_options: bool = False,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: MongoConnection = Depends(get_db),
):
    flags = {
        "is_lgbtq_friendly": is_lgbtq_friendly,
        "is_smoking_allowed": is_smoking_allowed,
        "has_outdoor_seating": has_outdoor_seating,
        "is_wheelchair_accessible": is_wheelchair_accessible,
        "has_vegan_options": has_vegan_options,
        "has_vegetarian_options": has_vegetarian_options,
    }
    return await restaurant_service.list_restaurants(
        db, cuisine=cuisine, location=location, price_range=price_range, flags=flags, skip=skip, limit=limit
    )

# Restaurant owner: create their restaurant
@router.post("", response_model=RestaurantOut, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_role(RESTAURANT))])
async def api_create_restaurant(payload: RestaurantCreate = Body(...), current_user: CurrentUser = Depends(get_current_user), db: MongoConnection = Depends(get_db)):
    return await restaurant_service.create_restaurant(db, current_user, payload)

# Restaurant owner: the restaurant they manage
@router.get("/mine", response_model=RestaurantOut, dependencies=[Depends(require_role(RESTAURANT))])
async def api_my_restaurant(current_user: CurrentUser = Depends(get_current_user), db: MongoConnection = Depends(get_db)):
    return await restaurant_service.get_my_restaurant(db, current_user)

# Public: get single restaurant
@router.get("/{restaurant_id}", response_model=RestaurantOut)
async def api_get_restaurant(restaurant_id: str = Path(...), db: MongoConnection = Depends(get_db)):
    return await restaurant_service.get_restaurant(db, restaurant_id)

@router.put("/{restaurant_id}", response_model=RestaurantOut)
async def api_update_restaurant(restaurant_id: str, payload: RestaurantUpdate = Body(...), current_user: CurrentUser = Depends(get_current_user), db: MongoConnection = Depends(get_db)):
    return await restaurant_service.update_restaurant(db, current_user, restaurant_id, payload)

@router.delete("/{restaurant_id}", response_model=CascadeDeleteResult)
async def api_delete_restaurant(restaurant_id: str, current_user: CurrentUser = Depends(get_current_user), db: MongoConnection = Depends(get_db)):
    result = await restaurant_service.delete_restaurant(db, current_user, restaurant_id)
    if result["failed_steps"]:
        logger.warning(f"Restaurant {restaurant_id} deleted with failed cascade steps: {result['failed_steps']}")
    return result
