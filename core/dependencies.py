from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from bson import ObjectId
from bson.errors import InvalidId
from typing import Optional
from pydantic import BaseModel
from db.db_operation import mongo_conn
from core.exceptions import Unauthorized, Forbidden
from utils.jwt_handler import decode_access_token, extract_user_id
from utils.logger import get_logger

logger = get_logger("Dependencies")

# tells fastapi to expect a token in the request header after login
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)

class CurrentUser(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    role: str = "customer"
    is_approved: bool = True
    is_active: bool = True
    token_version: int = 0
    phone: Optional[str] = None
    address: Optional[str] = None

async def get_current_user(token: Optional[str] = Depends(oauth2_scheme)) -> CurrentUser:
    """
    Decode token, resolve the user it names, and ensure token_version matches.
    Returns CurrentUser object.
    """
    if not token:
        raise Unauthorized("No token, authorization denied")
    try:
        payload = decode_access_token(token)
    except ValueError:
        logger.warning("JWT Error: Invalid token")
        raise Unauthorized("Invalid token")

    user_id = extract_user_id(payload)
    if user_id is None:
        logger.debug("No user id found in token payload")
        raise Unauthorized("Invalid token: no user id found")
    try:
        oid = ObjectId(user_id)
    except (InvalidId, TypeError):
        raise Unauthorized("Invalid token: malformed user id")

    user = await mongo_conn.users_collection.find_one({"_id": oid}, {"password": 0})
    if user is None:
        logger.warning(f"User not found for id: {user_id}")
        raise Unauthorized("User not found")
    if int(payload.get("token_version", 0)) != int(user.get("token_version", 0)):
        logger.warning(f"Token version mismatch for user: {user.get('email')}")
        raise Unauthorized("Token has been revoked")
    if not user.get("is_active", True):
        logger.warning(f"Inactive user attempted access: {user.get('email')}")
        raise Forbidden("Account disabled")

    return CurrentUser(
        id=str(user["_id"]),
        email=user["email"],
        name=user.get("name"),
        role=user.get("role", "customer"),
        is_approved=user.get("is_approved", False),
        is_active=user.get("is_active", True),
        token_version=int(user.get("token_version", 0)),
        phone=user.get("phone"),
        address=user.get("address"),
    )
