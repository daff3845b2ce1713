# routes/admin_routes.py
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Body
from core.authorization import require_role
from core.dependencies import CurrentUser
from models.admin import AuditItem, RevokePayload, DashboardStats, Analytics
from models.order import PaginatedOrders
from models.restaurant import RestaurantOut
from models.response import SuccessResponse, ok
from models.user import UserOut
from services.analytics_service import get_analytics, get_dashboard_stats, list_audit_logs
from services.order_service import list_all_orders
from services.restaurant_service import list_all_restaurants
from services.user_service import list_users, revoke_user_tokens
from utils.logger import get_logger

router = APIRouter(prefix="/admin", tags=["Admin"])
logger = get_logger("Admin_Route")

admin_only = require_role("admin")

@router.get("/dashboard/stats", response_model=SuccessResponse[DashboardStats])
async def api_dashboard_stats(current_admin: CurrentUser = Depends(admin_only)):
    return ok(await get_dashboard_stats())

@router.get("/analytics", response_model=SuccessResponse[Analytics])
async def api_analytics(
    since: Optional[datetime] = Query(None, description="Only orders created at or after this time"),
    until: Optional[datetime] = Query(None, description="Only orders created before this time"),
    top: int = Query(5, ge=1, le=50),
    recent: int = Query(5, ge=1, le=50),
    current_admin: CurrentUser = Depends(admin_only),
):
    return ok(await get_analytics(since, until, top, recent))

@router.get("/users", response_model=SuccessResponse[List[UserOut]])
async def api_list_users(
    role: Optional[str] = Query(None),
    approved: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    current_admin: CurrentUser = Depends(admin_only),
):
    return ok(await list_users(role, approved, page, limit))

@router.get("/restaurants", response_model=SuccessResponse[List[RestaurantOut]])
async def api_list_restaurants(
    approved: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    current_admin: CurrentUser = Depends(admin_only),
):
    return ok(await list_all_restaurants(approved, page, limit))

@router.get("/orders", response_model=SuccessResponse[PaginatedOrders])
async def api_list_orders(
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_admin: CurrentUser = Depends(admin_only),
):
    return ok(await list_all_orders(status, page, limit))

@router.post("/users/{user_id}/revoke", response_model=SuccessResponse[dict])
async def api_revoke_tokens(user_id: str, payload: Optional[RevokePayload] = Body(None),
                            current_admin: CurrentUser = Depends(admin_only)):
    reason = payload.reason if payload else None
    res = await revoke_user_tokens(user_id, current_admin.email, reason)
    return ok(res, "Tokens revoked")

@router.get("/audit-logs", response_model=SuccessResponse[List[AuditItem]])
async def api_audit_logs(page: int = Query(1, ge=1), limit: int = Query(100, ge=1, le=500),
                         current_admin: CurrentUser = Depends(admin_only)):
    return ok(await list_audit_logs(page, limit))
