from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from models.user import UserCreate, UserOut, UserLogin, TokenOut
from models.response import SuccessResponse, ok
from core.authorization import require_role
from core.dependencies import get_current_user, CurrentUser
from services.user_service import (
    create_user, authenticate, get_user, list_users, approve_user, toggle_user_active, delete_user,
)
from utils.logger import get_logger

logger = get_logger("AUTH_ROUTE")

router = APIRouter(prefix="/auth", tags=["Authentication"])

@router.post("/register", response_model=SuccessResponse[UserOut], status_code=status.HTTP_201_CREATED)
async def register(user: UserCreate):
    logger.info(f"Attempting to register user with email: {user.email}")
    user_created = await create_user(user)
    message = "Registration successful"
    if not user_created["is_approved"]:
        message = "Registration successful. Your account is waiting for admin approval"
    return ok(user_created, message)

@router.post("/login", response_model=SuccessResponse[TokenOut])
async def login(credentials: UserLogin):
    return ok(await authenticate(credentials), "Login successful")

@router.get("/me", response_model=SuccessResponse[UserOut])
async def me(current_user: CurrentUser = Depends(get_current_user)):
    return ok(await get_user(current_user.id))

# admin user management
@router.get("/users", response_model=SuccessResponse[List[UserOut]])
async def api_list_users(
    role: Optional[str] = Query(None),
    approved: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    current_admin: CurrentUser = Depends(require_role("admin")),
):
    return ok(await list_users(role, approved, page, limit))

@router.put("/users/{user_id}/approve", response_model=SuccessResponse[UserOut])
async def api_approve_user(user_id: str, current_admin: CurrentUser = Depends(require_role("admin"))):
    return ok(await approve_user(user_id, current_admin.email), "User approved")

@router.patch("/users/{user_id}/toggle-active", response_model=SuccessResponse[UserOut])
async def api_toggle_user(user_id: str, current_admin: CurrentUser = Depends(require_role("admin"))):
    return ok(await toggle_user_active(user_id, current_admin.email))

@router.delete("/users/{user_id}", response_model=SuccessResponse[dict])
async def api_delete_user(user_id: str, current_admin: CurrentUser = Depends(require_role("admin"))):
    return ok(await delete_user(user_id, current_admin.email), "User deleted")
