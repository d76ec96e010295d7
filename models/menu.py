from pydantic import BaseModel, Field
from typing import List, Optional

class MenuItemCreate(BaseModel):
    name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    description: str = ""
    image_url: str = ""
    is_available: bool = True
    allergens: List[str] = Field(default_factory=list)
    is_vegetarian: bool = False
    is_vegan: bool = False
    is_gluten_free: bool = False

# item updates replace the whole item, same shape as create
MenuItemUpdate = MenuItemCreate

class MenuItemOut(MenuItemCreate):
    id: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    order: Optional[int] = None

class CategoryUpdate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    order: int = 0

class MenuCategoryOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = ""
    order: int = 0
    items: List[MenuItemOut] = Field(default_factory=list)

class MenuItemIn(MenuItemCreate):
    id: Optional[str] = None

class MenuCategoryIn(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    description: str = ""
    order: int = 0
    items: List[MenuItemIn] = Field(default_factory=list)
