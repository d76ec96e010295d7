# models/restaurant.py
from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from models.menu import MenuCategoryOut

PriceRange = Literal["low", "medium", "high"]

class RestaurantCreate(BaseModel):
    name: str = Field(min_length=1)
    cuisine: str = Field(min_length=1)
    location: str = Field(min_length=1)
    description: str = ""
    phone: str = ""
    hours: str = ""
    images: List[str] = Field(default_factory=list)
    price_range: PriceRange = "medium"
    is_lgbtq_friendly: bool = False
    is_smoking_allowed: bool = False
    has_outdoor_seating: bool = False
    is_wheelchair_accessible: bool = False
    has_vegan_options: bool = False
    has_vegetarian_options: bool = False

class RestaurantUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    cuisine: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    phone: Optional[str] = None
    hours: Optional[str] = None
    images: Optional[List[str]] = None
    price_range: Optional[PriceRange] = None
    is_lgbtq_friendly: Optional[bool] = None
    is_smoking_allowed: Optional[bool] = None
    has_outdoor_seating: Optional[bool] = None
    is_wheelchair_accessible: Optional[bool] = None
    has_vegan_options: Optional[bool] = None
    has_vegetarian_options: Optional[bool] = None

class RestaurantOut(BaseModel):
    id: str
    owner_id: str
    name: str
    cuisine: str
    location: str
    description: Optional[str] = None
    phone: Optional[str] = None
    hours: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    menu: List[MenuCategoryOut] = Field(default_factory=list)
    # absent until the first review is approved
    rating: Optional[float] = None
    price_range: Optional[str] = None
    is_lgbtq_friendly: bool = False
    is_smoking_allowed: bool = False
    has_outdoor_seating: bool = False
    is_wheelchair_accessible: bool = False
    has_vegan_options: bool = False
    has_vegetarian_options: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

class RestaurantSummary(BaseModel):
    id: str
    name: str
    cuisine: Optional[str] = None
    rating: Optional[float] = None

class CascadeDeleteResult(BaseModel):
    message: str
    restaurant_id: str
    deleted: dict = Field(default_factory=dict)
    failed_steps: List[str] = Field(default_factory=list)
