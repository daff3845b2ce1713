from datetime import datetime, timedelta
from typing import Optional
from jose import jwt, JWTError
from settings.config import settings
from utils.logger import get_logger

logger = get_logger("JWT_HANDLER")

def create_access_token(data: dict, expires_minutes: Optional[int] = None):
    """
    Creates JWT token with expiry.
    """
    logger.debug("Access token creation requested")
    to_encode = data.copy()
    expire = datetime.utcnow() + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire, "iat": datetime.utcnow()})
    encoded_jwt = jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    logger.info(f"Access token created with expiry {expire}")
    return encoded_jwt

def decode_access_token(token: str) -> dict:
    """
    Decode JWT token and return payload.
    Raises ValueError if invalid or expired.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.debug(f"Token decode failed: {e}")
        raise ValueError("Invalid token")

def extract_user_id(payload: dict) -> Optional[str]:
    """
    Tokens have been issued with the user id under several keys:
    userId, id, _id or a nested user object. Return the first one found.
    """
    for key in ("userId", "id", "_id"):
        value = payload.get(key)
        if value:
            return str(value)
    nested = payload.get("user")
    if isinstance(nested, dict):
        value = nested.get("id") or nested.get("_id")
        if value:
            return str(value)
    return None
