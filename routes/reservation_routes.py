from typing import Optional, List
from fastapi import APIRouter, Depends, Query, Body, status
from db.db_operation import MongoConnection
from core.dependencies import get_current_user, get_db, get_notifier, CurrentUser
from models.reservation import ReservationCreate, ReservationOut, ReservationUpdate, ReservationStatus
from services import reservation_service
from utils.logger import get_logger

logger = get_logger("Reservation_Route")
router = APIRouter(prefix="/reservations", tags=["Reservations"])

@router.post("", response_model=ReservationOut, status_code=status.HTTP_201_CREATED)
async def api_create_reservation(
    payload: ReservationCreate = Body(...),
    current_user: CurrentUser = Depends(get_current_user),
    db: MongoConnection = Depends(get_db),
    notifier=Depends(get_notifier),
):
    logger.info(f"Reservation request from {current_user.email} for restaurant {payload.restaurant_id}")
    return await reservation_service.create_reservation(db, notifier, current_user, payload)

@router.get("", response_model=List[ReservationOut])
async def api_list_reservations(
    restaurant_id: Optional[str] = Query(None),
    customer_id: Optional[str] = Query(None),
    status: Optional[ReservationStatus] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    db: MongoConnection = Depends(get_db),
):
    return await reservation_service.list_reservations(
        db, current_user, restaurant_id=restaurant_id, customer_id=customer_id, status=status
    )

@router.get("/{reservation_id}", response_model=ReservationOut)
async def api_get_reservation(reservation_id: str, current_user: CurrentUser = Depends(get_current_user), db: MongoConnection = Depends(get_db)):
    return await reservation_service.get_reservation(db, current_user, reservation_id)

@router.put("/{reservation_id}", response_model=ReservationOut)
async def api_update_reservation(
    reservation_id: str,
    payload: ReservationUpdate = Body(...),
    current_user: CurrentUser = Depends(get_current_user),
    db: MongoConnection = Depends(get_db),
    notifier=Depends(get_notifier),
):
    return await reservation_service.update_reservation(db, notifier, current_user, reservation_id, payload)
