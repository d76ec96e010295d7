from typing import Optional, List, Literal
from fastapi import APIRouter, Depends, Query, Body, status
from db.db_operation import MongoConnection
from core.dependencies import get_current_user, get_optional_user, get_db, get_notifier, CurrentUser
from models.review import (
    ReviewCreate, ReviewOut, ReviewUpdate, ReviewStatus, ModerateRequest, ReportRequest, HelpfulOut, ReportOut,
)
from services import review_service

router = APIRouter(prefix="/reviews", tags=["Reviews"])

# Public: approved reviews; owners and authors see more
@router.get("", response_model=List[ReviewOut])
async def api_list_reviews(
    restaurant_id: Optional[str] = Query(None),
    customer_id: Optional[str] = Query(None),
    status: Optional[ReviewStatus] = Query(None),
    sort_by: Literal["date", "rating", "helpful"] = Query("date"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    db: MongoConnection = Depends(get_db),
):
    return await review_service.list_reviews(
        db, current_user, restaurant_id=restaurant_id, customer_id=customer_id,
        status=status, sort_by=sort_by, sort_order=sort_order,
    )

@router.post("", response_model=ReviewOut, status_code=status.HTTP_201_CREATED)
async def api_create_review(
    payload: ReviewCreate = Body(...),
    current_user: CurrentUser = Depends(get_current_user),
    db: MongoConnection = Depends(get_db),
    notifier=Depends(get_notifier),
):
    return await review_service.create_review(db, notifier, current_user, payload)

@router.get("/{review_id}", response_model=ReviewOut)
async def api_get_review(review_id: str, db: MongoConnection = Depends(get_db)):
    return await review_service.get_review(db, review_id)

@router.put("/{review_id}", response_model=ReviewOut)
async def api_update_review(
    review_id: str,
    payload: ReviewUpdate = Body(...),
    current_user: CurrentUser = Depends(get_current_user),
    db: MongoConnection = Depends(get_db),
    notifier=Depends(get_notifier),
):
    return await review_service.update_review(db, notifier, current_user, review_id, payload)

@router.delete("/{review_id}")
async def api_delete_review(
    review_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: MongoConnection = Depends(get_db),
    notifier=Depends(get_notifier),
):
    return await review_service.delete_review(db, notifier, current_user, review_id)

@router.put("/{review_id}/moderate", response_model=ReviewOut)
async def api_moderate_review(
    review_id: str,
    payload: ModerateRequest = Body(...),
    current_user: CurrentUser = Depends(get_current_user),
    db: MongoConnection = Depends(get_db),
    notifier=Depends(get_notifier),
):
    return await review_service.moderate_review(db, notifier, current_user, review_id, payload.status)

@router.post("/{review_id}/helpful", response_model=HelpfulOut)
async def api_mark_helpful(review_id: str, current_user: CurrentUser = Depends(get_current_user), db: MongoConnection = Depends(get_db)):
    return await review_service.mark_helpful(db, current_user, review_id)

@router.post("/{review_id}/report", response_model=ReportOut, status_code=status.HTTP_201_CREATED)
async def api_report_review(
    review_id: str,
    payload: ReportRequest = Body(...),
    current_user: CurrentUser = Depends(get_current_user),
    db: MongoConnection = Depends(get_db),
    notifier=Depends(get_notifier),
):
    return await review_service.report_review(db, notifier, current_user, review_id, payload.reason)
