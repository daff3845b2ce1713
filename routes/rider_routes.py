from fastapi import APIRouter, Depends, Body
from core.authorization import require_role
from core.dependencies import CurrentUser
from models.rider import RiderStatusUpdate, RiderLocationUpdate, RiderProfile, RiderEarnings
from models.response import SuccessResponse, ok
from services import rider_service

router = APIRouter(prefix="/riders", tags=["Riders"])

rider_only = require_role("rider")

@router.get("/profile", response_model=SuccessResponse[RiderProfile])
async def api_rider_profile(current_user: CurrentUser = Depends(rider_only)):
    return ok(await rider_service.get_rider_profile(current_user))

@router.put("/status", response_model=SuccessResponse[dict])
async def api_rider_status(payload: RiderStatusUpdate = Body(...), current_user: CurrentUser = Depends(rider_only)):
    return ok(await rider_service.set_rider_status(current_user.id, payload.status), f"Status set to {payload.status}")

@router.put("/location", response_model=SuccessResponse[dict])
async def api_rider_location(payload: RiderLocationUpdate = Body(...), current_user: CurrentUser = Depends(rider_only)):
    return ok(await rider_service.update_rider_location(current_user.id, payload.latitude, payload.longitude))

@router.get("/earnings", response_model=SuccessResponse[RiderEarnings])
async def api_rider_earnings(current_user: CurrentUser = Depends(rider_only)):
    return ok(await rider_service.get_rider_earnings(current_user.id))

@router.get("/stats", response_model=SuccessResponse[dict])
async def api_rider_stats(current_user: CurrentUser = Depends(rider_only)):
    return ok(await rider_service.get_rider_stats(current_user.id))
