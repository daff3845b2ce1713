from typing import List
from fastapi import APIRouter, Depends, Body, status
from core.authorization import require_role
from core.dependencies import CurrentUser
from models.review import ReviewCreate, ReviewUpdate, ReviewOut, ReviewStats
from models.response import SuccessResponse, ok
from services import review_service

router = APIRouter(prefix="/reviews", tags=["Reviews"])

@router.post("", response_model=SuccessResponse[ReviewOut], status_code=status.HTTP_201_CREATED)
async def api_create_review(payload: ReviewCreate = Body(...),
                            current_user: CurrentUser = Depends(require_role("customer"))):
    return ok(await review_service.create_review(current_user, payload), "Review added")

@router.get("/user", response_model=SuccessResponse[List[ReviewOut]])
async def api_my_reviews(current_user: CurrentUser = Depends(require_role("customer"))):
    return ok(await review_service.list_user_reviews(current_user))

@router.get("/restaurant/{restaurant_id}", response_model=SuccessResponse[List[ReviewOut]])
async def api_restaurant_reviews(restaurant_id: str):
    return ok(await review_service.list_restaurant_reviews(restaurant_id))

@router.get("/stats/restaurant/{restaurant_id}", response_model=SuccessResponse[ReviewStats])
async def api_review_stats(restaurant_id: str):
    return ok(await review_service.get_review_stats(restaurant_id))

@router.put("/{review_id}", response_model=SuccessResponse[ReviewOut])
async def api_update_review(review_id: str, payload: ReviewUpdate = Body(...),
                            current_user: CurrentUser = Depends(require_role("customer"))):
    return ok(await review_service.update_review(current_user, review_id, payload), "Review updated")

@router.delete("/{review_id}", response_model=SuccessResponse[dict])
async def api_delete_review(review_id: str, current_user: CurrentUser = Depends(require_role("customer"))):
    return ok(await review_service.delete_review(current_user, review_id), "Review deleted")
