from pydantic import BaseModel, Field
from typing import List, Literal, Optional

ReviewStatus = Literal["pending", "approved", "rejected"]

class ReviewCreate(BaseModel):
    restaurant_id: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1)
    images: List[str] = Field(default_factory=list)

class ReviewUpdate(BaseModel):
    """Authors send rating/comment/images, restaurant owners send reply/status."""
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, min_length=1)
    images: Optional[List[str]] = None
    reply: Optional[str] = None
    status: Optional[ReviewStatus] = None

class ModerateRequest(BaseModel):
    status: ReviewStatus

class ReportRequest(BaseModel):
    reason: str = Field(..., min_length=1)

class ReviewOut(BaseModel):
    id: str
    restaurant_id: str
    customer_id: str
    rating: int
    comment: str
    images: List[str] = Field(default_factory=list)
    status: ReviewStatus
    helpful: int = 0
    report_count: int = 0
    reply: Optional[str] = None
    date: Optional[str] = None
    updated_at: Optional[str] = None
    customer_name: Optional[str] = None
    restaurant_name: Optional[str] = None

class HelpfulOut(BaseModel):
    review_id: str
    helpful: int

class ReportOut(BaseModel):
    review_id: str
    report_id: str
    report_count: int
    status: ReviewStatus
