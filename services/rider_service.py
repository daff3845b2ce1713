# services/rider_service.py
from datetime import datetime, timedelta
from pymongo import ReturnDocument
from db.db_operation import mongo_conn
from core.exceptions import NotFound
from services.common import to_object_id
from services.order_state import ACTIVE_DELIVERY_STATUSES
from settings.config import settings
from utils.logger import get_logger

logger = get_logger("Rider_Service")

def _new_profile(user_id) -> dict:
    now = datetime.utcnow()
    return {
        "_id": user_id,
        "status": "offline",
        "location": {"type": "Point", "coordinates": [0, 0]},
        "last_active": now,
        "last_location_update": None,
        "active_deliveries": 0,
        "total_deliveries": 0,
        "created_at": now,
    }

async def create_rider_profile(user_id):
    """The rider profile shares the user's _id; identity fields stay on the user."""
    oid = to_object_id(user_id, "rider")
    await mongo_conn.riders_collection.update_one(
        {"_id": oid}, {"$setOnInsert": _new_profile(oid)}, upsert=True
    )
    logger.info("Rider profile created", extra={"rider_id": str(oid)})

async def get_rider_profile(user) -> dict:
    oid = to_object_id(user.id, "rider")
    profile = await mongo_conn.riders_collection.find_one({"_id": oid})
    if profile is None:
        # riders approved before profiles existed get one lazily
        await create_rider_profile(oid)
        profile = _new_profile(oid)
    account = await mongo_conn.users_collection.find_one({"_id": oid}, {"password": 0})
    if account is None:
        raise NotFound("Rider not found")
    return {
        "id": str(oid),
        "name": account.get("name", ""),
        "email": account["email"],
        "phone": account.get("phone"),
        "vehicle_type": account.get("vehicle_type"),
        "license_number": account.get("license_number"),
        "status": profile.get("status", "offline"),
        "is_active": account.get("is_active", True),
        "active_deliveries": int(profile.get("active_deliveries", 0)),
        "total_deliveries": int(profile.get("total_deliveries", 0)),
    }

async def get_rider_status(rider_id) -> str:
    profile = await mongo_conn.riders_collection.find_one({"_id": to_object_id(rider_id, "rider")}, {"status": 1})
    return profile.get("status", "offline") if profile else "offline"

async def set_rider_status(rider_id: str, status: str) -> dict:
    oid = to_object_id(rider_id, "rider")
    profile = await mongo_conn.riders_collection.find_one_and_update(
        {"_id": oid},
        {"$set": {"status": status, "last_active": datetime.utcnow()},
         "$setOnInsert": {"active_deliveries": 0, "total_deliveries": 0}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    logger.info(f"Rider {rider_id} status updated to: {status}")
    return {"status": profile["status"]}

async def update_rider_location(rider_id: str, latitude: float, longitude: float) -> dict:
    oid = to_object_id(rider_id, "rider")
    now = datetime.utcnow()
    await mongo_conn.riders_collection.update_one(
        {"_id": oid},
        {"$set": {
            "location": {"type": "Point", "coordinates": [longitude, latitude]},
            "last_location_update": now,
            "last_active": now,
        }},
        upsert=True,
    )
    logger.debug(f"Rider {rider_id} location updated: {latitude}, {longitude}")
    return {"latitude": latitude, "longitude": longitude, "updated_at": now}

async def change_active_deliveries(rider_id, delta: int):
    """Adjust the active delivery counter; never drops below zero."""
    oid = to_object_id(rider_id, "rider")
    query = {"_id": oid}
    if delta < 0:
        query["active_deliveries"] = {"$gte": -delta}
    await mongo_conn.riders_collection.update_one(query, {"$inc": {"active_deliveries": delta}})

async def record_delivery(rider_id):
    oid = to_object_id(rider_id, "rider")
    await mongo_conn.riders_collection.update_one(
        {"_id": oid, "active_deliveries": {"$gte": 1}},
        {"$inc": {"active_deliveries": -1}},
    )
    await mongo_conn.riders_collection.update_one({"_id": oid}, {"$inc": {"total_deliveries": 1}})

def _day_start(now: datetime) -> datetime:
    return datetime(now.year, now.month, now.day)

async def get_rider_earnings(rider_id: str) -> dict:
    """Riders earn the flat delivery fee per completed delivery."""
    oid = to_object_id(rider_id, "rider")
    orders = mongo_conn.orders_collection
    now = datetime.utcnow()
    base = {"rider": oid, "status": "delivered"}
    total = await orders.count_documents(base)
    today = await orders.count_documents({**base, "delivered_at": {"$gte": _day_start(now)}})
    weekly = await orders.count_documents({**base, "delivered_at": {"$gte": now - timedelta(days=7)}})
    monthly = await orders.count_documents({**base, "delivered_at": {"$gte": now - timedelta(days=30)}})
    fee = float(settings.DELIVERY_FEE)
    earnings = {
        "today": today * fee,
        "weekly": weekly * fee,
        "monthly": monthly * fee,
        "total": total * fee,
        "completed_deliveries": total,
    }
    logger.info(f"Earnings calculated for rider {rider_id}", extra=earnings)
    return earnings

async def get_rider_stats(rider_id: str) -> dict:
    oid = to_object_id(rider_id, "rider")
    orders = mongo_conn.orders_collection
    total = await orders.count_documents({"rider": oid, "status": "delivered"})
    pending = await orders.count_documents({"rider": oid, "status": {"$in": list(ACTIVE_DELIVERY_STATUSES)}})
    today = await orders.count_documents({
        "rider": oid, "status": "delivered", "delivered_at": {"$gte": _day_start(datetime.utcnow())}
    })
    return {
        "total_deliveries": total,
        "pending_deliveries": pending,
        "today_deliveries": today,
        "total_earnings": total * float(settings.DELIVERY_FEE),
    }
