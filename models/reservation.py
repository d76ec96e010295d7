import datetime as dt
from pydantic import BaseModel, Field
from typing import Literal, Optional

ReservationStatus = Literal["pending", "confirmed", "cancelled"]

class ReservationCreate(BaseModel):
    restaurant_id: str = Field(..., min_length=1)
    date: dt.date
    time: str = Field(..., min_length=1)
    guests: int = Field(..., ge=1)
    special_requests: str = ""

class ReservationUpdate(BaseModel):
    """Customers send the booking fields, restaurant owners send `status`."""
    date: Optional[dt.date] = None
    time: Optional[str] = Field(None, min_length=1)
    guests: Optional[int] = Field(None, ge=1)
    special_requests: Optional[str] = None
    status: Optional[ReservationStatus] = None

class ReservationOut(BaseModel):
    id: str
    restaurant_id: str
    customer_id: str
    date: str
    time: str
    guests: int
    status: ReservationStatus
    special_requests: str = ""
    restaurant_name: Optional[str] = None
    customer_name: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
