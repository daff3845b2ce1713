# routes/restaurant_routes.py
from typing import List
from fastapi import APIRouter, Depends, Query, Body, Path
from core.authorization import require_role
from core.dependencies import CurrentUser
from models.restaurant import RestaurantOut, RestaurantUpdate
from models.admin import RestaurantCounts
from models.response import SuccessResponse, ok
from services.restaurant_service import (
    get_restaurant_by_id, get_restaurant_for_owner, list_public_restaurants, update_restaurant,
    toggle_restaurant_active, restaurant_counts, delete_restaurant,
)
from utils.logger import get_logger

logger = get_logger("Restaurant_Route")
router = APIRouter(prefix="/restaurants", tags=["Restaurants"])

# Public: active restaurants with an approved owner
@router.get("", response_model=SuccessResponse[List[RestaurantOut]])
async def api_list_restaurants(page: int = Query(1, ge=1), limit: int = Query(50, ge=1, le=200)):
    return ok(await list_public_restaurants(page, limit))

@router.get("/mine", response_model=SuccessResponse[RestaurantOut])
async def api_my_restaurant(current_user: CurrentUser = Depends(require_role("restaurant"))):
    return ok(await get_restaurant_for_owner(current_user.id))

@router.get("/stats/count", response_model=SuccessResponse[RestaurantCounts])
async def api_restaurant_counts(current_admin: CurrentUser = Depends(require_role("admin"))):
    return ok(await restaurant_counts())

@router.get("/{restaurant_id}", response_model=SuccessResponse[RestaurantOut])
async def api_get_restaurant(restaurant_id: str = Path(...)):
    return ok(await get_restaurant_by_id(restaurant_id))

# owner or admin; ownership is checked in the service
@router.patch("/{restaurant_id}", response_model=SuccessResponse[RestaurantOut])
async def api_update_restaurant(restaurant_id: str, payload: RestaurantUpdate = Body(...),
                                current_user: CurrentUser = Depends(require_role("restaurant", "admin"))):
    updated = await update_restaurant(restaurant_id, payload, current_user)
    return ok(updated, "Restaurant updated")

@router.patch("/{restaurant_id}/toggle-active", response_model=SuccessResponse[RestaurantOut])
async def api_toggle_restaurant(restaurant_id: str, current_admin: CurrentUser = Depends(require_role("admin"))):
    return ok(await toggle_restaurant_active(restaurant_id, current_admin.email))

@router.delete("/{restaurant_id}", response_model=SuccessResponse[dict])
async def api_delete_restaurant(restaurant_id: str, current_admin: CurrentUser = Depends(require_role("admin"))):
    return ok(await delete_restaurant(restaurant_id, current_admin.email), "Restaurant deleted")
