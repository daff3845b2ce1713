from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Body
from models.order import OrderOut, OrderStatusUpdate, CancelRequest, PaginatedOrders, RestaurantOrders
from models.response import SuccessResponse, ok
from core.authorization import require_role, ROLES
from core.dependencies import get_current_user, CurrentUser
from services import order_service
from utils.logger import get_logger

logger = get_logger("Order_Route")

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.get("/user", response_model=SuccessResponse[PaginatedOrders])
async def get_my_orders(
    current_user: CurrentUser = Depends(require_role("customer")),
    status: Optional[str] = Query(None, description="Filter by order status"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=50, description="Number of results per page"),
):
    """Fetch all orders for current user"""
    return ok(await order_service.list_user_orders(current_user.id, status, page, limit))

@router.get("/restaurant", response_model=SuccessResponse[RestaurantOrders])
async def get_restaurant_orders(
    status: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(require_role("restaurant")),
):
    return ok(await order_service.list_restaurant_orders(current_user, status))

@router.get("/rider/available", response_model=SuccessResponse[List[OrderOut]])
async def get_available_orders(current_user: CurrentUser = Depends(require_role("rider"))):
    return ok(await order_service.list_available_orders())

@router.get("/rider/my-deliveries", response_model=SuccessResponse[List[OrderOut]])
async def get_my_deliveries(current_user: CurrentUser = Depends(require_role("rider"))):
    return ok(await order_service.list_rider_deliveries(current_user.id))

@router.get("/track/{order_number}", response_model=SuccessResponse[OrderOut])
async def track(order_number: str, current_user: CurrentUser = Depends(get_current_user)):
    return ok(await order_service.track_order(order_number, current_user))

@router.get("/{order_id}", response_model=SuccessResponse[OrderOut])
async def get_order(order_id: str, current_user: CurrentUser = Depends(get_current_user)):
    return ok(await order_service.get_order(order_id, current_user))

@router.put("/{order_id}/accept", response_model=SuccessResponse[OrderOut])
async def accept(order_id: str, current_user: CurrentUser = Depends(require_role("rider"))):
    return ok(await order_service.accept_order(order_id, current_user), "Order accepted")

@router.patch("/{order_id}/status", response_model=SuccessResponse[OrderOut])
@router.put("/{order_id}/status", response_model=SuccessResponse[OrderOut])
async def change_order_status(
    order_id: str,
    payload: OrderStatusUpdate = Body(...),
    current_user: CurrentUser = Depends(require_role(*ROLES)),
):
    logger.info(f"Received status update request for {order_id} -> {payload.status} from {current_user.email}")
    updated = await order_service.update_order_status(order_id, payload.status, current_user, payload.reason)
    return ok(updated, "Order status updated")

@router.put("/{order_id}/cancel", response_model=SuccessResponse[OrderOut])
async def cancel_my_order(
    order_id: str,
    payload: Optional[CancelRequest] = Body(None),
    current_user: CurrentUser = Depends(require_role("customer")),
):
    reason = payload.reason if payload else None
    return ok(await order_service.cancel_order(order_id, current_user, reason), "Order cancelled")
