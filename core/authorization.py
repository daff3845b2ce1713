# core/authorization.py
from fastapi import Depends
from core.dependencies import get_current_user, CurrentUser
from core.exceptions import Forbidden, PendingApproval
from utils.logger import get_logger

logger = get_logger("Authorization")

ROLES = ("customer", "restaurant", "rider", "admin")
APPROVAL_REQUIRED_ROLES = ("restaurant", "rider")

def require_role(*allowed_roles):
    async def _dependency(current_user: CurrentUser = Depends(get_current_user)):
        if current_user.role not in allowed_roles:
            logger.warning(f"Forbidden: {current_user.email} role {current_user.role} not in allowed {allowed_roles}")
            raise Forbidden(f"Access denied. Requires one of roles: {', '.join(allowed_roles)}")
        if current_user.role in APPROVAL_REQUIRED_ROLES and not current_user.is_approved:
            logger.warning(f"Pending approval: {current_user.email} tried to use {current_user.role} endpoints")
            raise PendingApproval()
        return current_user
    return _dependency
