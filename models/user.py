from pydantic import BaseModel, EmailStr, Field
from typing import Literal, Optional

Role = Literal["customer", "restaurant"]

class UserCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: Role = "customer"

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class UserOut(BaseModel):
    id: str
    name: str
    email: str
    role: Role
    phone: Optional[str] = None
    bio: Optional[str] = None
    profile_image: Optional[str] = None
    preferences: Optional[dict] = None
    created_at: Optional[str] = None

class AuthResponse(BaseModel):
    user: UserOut
    access_token: str
    token_type: str = "bearer"

class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    profile_image: Optional[str] = None
    bio: Optional[str] = None
    preferences: Optional[dict] = None

class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)
