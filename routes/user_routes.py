from fastapi import APIRouter, Depends
from models.user import UserOut
from models.response import SuccessResponse, ok
from core.dependencies import get_current_user, CurrentUser
from services.user_service import get_user

router = APIRouter(prefix="/users", tags=["Users"])

@router.get("/me", response_model=SuccessResponse[UserOut])
async def read_me(current_user: CurrentUser = Depends(get_current_user)):
    return ok(await get_user(current_user.id))
