from datetime import datetime
from typing import Optional
from bson import ObjectId
from bson.errors import InvalidId
from db.db_operation import mongo_conn
from core.exceptions import ValidationError
from utils.logger import get_logger

logger = get_logger("Service_Common")

def to_object_id(value, label: str = "") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise ValidationError(f"Invalid {label + ' ' if label else ''}id")

def str_id(value) -> Optional[str]:
    return str(value) if value is not None else None

def paginate(page: int, limit: int) -> tuple[int, int]:
    page = max(int(page), 1)
    limit = max(int(limit), 1)
    return (page - 1) * limit, limit

async def write_audit_log(actor_email: Optional[str], action: str, resource_type: str, resource_id: str,
                          before: Optional[dict] = None, after: Optional[dict] = None,
                          reason: Optional[str] = None):
    await mongo_conn.audit_logs.insert_one({
        "actor_email": actor_email,
        "action": action,
        "resource_type": resource_type,
        "resource_id": str(resource_id),
        "before": before,
        "after": after,
        "reason": reason,
        "timestamp": datetime.utcnow()
    })
