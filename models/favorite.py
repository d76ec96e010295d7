from pydantic import BaseModel, Field
from typing import Optional
from models.restaurant import RestaurantSummary

class FavoriteCreate(BaseModel):
    restaurant_id: str = Field(..., min_length=1)

class FavoriteOut(BaseModel):
    id: str
    customer_id: str
    restaurant_id: str
    created_at: Optional[str] = None
    restaurant: Optional[RestaurantSummary] = None
