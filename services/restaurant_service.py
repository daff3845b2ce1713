# services/restaurant_service.py
from db.db_operation import mongo_conn
from datetime import datetime
from typing import Optional
from core.exceptions import NotFound, Forbidden
from services.common import to_object_id, str_id, write_audit_log, paginate
from utils.logger import get_logger

logger = get_logger("Restaurant_Service")

def approval_stages() -> list:
    """
    Pipeline stages deriving is_approved from the owner's account.
    Restaurants never store their own approval flag.
    """
    return [
        {"$lookup": {"from": "users", "localField": "owner", "foreignField": "_id", "as": "owner_doc"}},
        {"$addFields": {"is_approved": {"$ifNull": [{"$arrayElemAt": ["$owner_doc.is_approved", 0]}, False]}}},
        {"$project": {"owner_doc": 0}},
    ]

def serialize_restaurant(doc: dict) -> dict:
    return {
        "id": str(doc["_id"]),
        "owner": str_id(doc.get("owner")),
        "name": doc["name"],
        "email": doc.get("email", ""),
        "phone": doc.get("phone"),
        "address": doc.get("address"),
        "cuisine": doc.get("cuisine"),
        "description": doc.get("description") or "",
        "delivery_time": doc.get("delivery_time") or "20-30 min",
        "opening_hours": doc.get("opening_hours") or {"open": "08:00", "close": "22:00"},
        "image": doc.get("image") or "",
        "rating": float(doc.get("rating", 0) or 0),
        "review_count": int(doc.get("review_count", 0) or 0),
        "is_active": bool(doc.get("is_active", True)),
        "is_approved": bool(doc.get("is_approved", False)),
        "created_at": doc.get("created_at"),
        "updated_at": doc.get("updated_at"),
    }

async def _find_restaurants(match: dict, approved: Optional[bool] = None, skip: int = 0, limit: int = 0) -> list:
    pipeline = [{"$match": match}, *approval_stages()]
    if approved is not None:
        pipeline.append({"$match": {"is_approved": approved}})
    pipeline.append({"$sort": {"created_at": -1}})
    if skip:
        pipeline.append({"$skip": skip})
    if limit:
        pipeline.append({"$limit": limit})
    cursor = mongo_conn.restaurants_collection.aggregate(pipeline)
    return await cursor.to_list(length=None)

async def get_restaurant_by_id(restaurant_id: str) -> dict:
    docs = await _find_restaurants({"_id": to_object_id(restaurant_id, "restaurant")})
    if not docs:
        raise NotFound("Restaurant not found")
    return serialize_restaurant(docs[0])

async def get_restaurant_for_owner(owner_id: str) -> dict:
    docs = await _find_restaurants({"owner": to_object_id(owner_id, "user")})
    if not docs:
        raise NotFound("Restaurant not found for this user")
    return serialize_restaurant(docs[0])

async def get_owned_restaurant_doc(owner_id: str) -> dict:
    """Raw restaurant document owned by the given user, for ownership checks."""
    doc = await mongo_conn.restaurants_collection.find_one({"owner": to_object_id(owner_id, "user")})
    if not doc:
        raise NotFound("Restaurant not found for this user")
    return doc

async def list_public_restaurants(page: int = 1, limit: int = 50) -> list:
    """Active restaurants whose owner has been approved."""
    skip, limit = paginate(page, limit)
    docs = await _find_restaurants({"is_active": True}, approved=True, skip=skip, limit=limit)
    return [serialize_restaurant(d) for d in docs]

async def list_all_restaurants(approved: Optional[bool] = None, page: int = 1, limit: int = 50) -> list:
    skip, limit = paginate(page, limit)
    docs = await _find_restaurants({}, approved=approved, skip=skip, limit=limit)
    return [serialize_restaurant(d) for d in docs]

async def update_restaurant(restaurant_id: str, payload, current_user) -> dict:
    oid = to_object_id(restaurant_id, "restaurant")
    restaurant = await mongo_conn.restaurants_collection.find_one({"_id": oid})
    if not restaurant:
        raise NotFound("Restaurant not found")
    # allow only admin or the owner of this restaurant
    if current_user.role != "admin" and str(restaurant.get("owner")) != current_user.id:
        raise Forbidden("Not allowed to update this restaurant")
    update_doc = payload.model_dump(exclude_none=True)
    update_doc["updated_at"] = datetime.utcnow()
    await mongo_conn.restaurants_collection.update_one({"_id": oid}, {"$set": update_doc})
    await write_audit_log(current_user.email, "update_restaurant", "restaurant", restaurant_id, after=update_doc)
    logger.info("Restaurant updated", extra={"actor": current_user.email, "restaurant_id": restaurant_id})
    return await get_restaurant_by_id(restaurant_id)

async def toggle_restaurant_active(restaurant_id: str, actor_email: str) -> dict:
    oid = to_object_id(restaurant_id, "restaurant")
    restaurant = await mongo_conn.restaurants_collection.find_one({"_id": oid})
    if not restaurant:
        raise NotFound("Restaurant not found")
    new_state = not restaurant.get("is_active", True)
    await mongo_conn.restaurants_collection.update_one(
        {"_id": oid}, {"$set": {"is_active": new_state, "updated_at": datetime.utcnow()}}
    )
    await write_audit_log(actor_email, "toggle_restaurant_active", "restaurant", restaurant_id,
                          before={"is_active": not new_state}, after={"is_active": new_state})
    logger.info(f"{actor_email} set is_active={new_state} for restaurant {restaurant_id}")
    return await get_restaurant_by_id(restaurant_id)

async def restaurant_counts() -> dict:
    pipeline = [
        *approval_stages(),
        {"$group": {
            "_id": None,
            "total": {"$sum": 1},
            "approved": {"$sum": {"$cond": ["$is_approved", 1, 0]}},
        }},
    ]
    rows = await mongo_conn.restaurants_collection.aggregate(pipeline).to_list(length=None)
    if not rows:
        return {"total": 0, "approved": 0, "pending": 0}
    total, approved = rows[0]["total"], rows[0]["approved"]
    return {"total": total, "approved": approved, "pending": total - approved}

async def delete_restaurant(restaurant_id: str, actor_email: str) -> dict:
    """Remove a restaurant with its menu and any carts filled from it. The owner account stays."""
    oid = to_object_id(restaurant_id, "restaurant")
    restaurant = await mongo_conn.restaurants_collection.find_one_and_delete({"_id": oid})
    if restaurant is None:
        raise NotFound("Restaurant not found")
    products = await mongo_conn.products_collection.delete_many({"restaurant": oid})
    await mongo_conn.carts_collection.delete_many({"restaurant_id": oid})
    await write_audit_log(actor_email, "delete_restaurant", "restaurant", restaurant_id,
                          before={"name": restaurant.get("name"), "owner": str_id(restaurant.get("owner"))})
    logger.info(f"{actor_email} deleted restaurant {restaurant_id}")
    return {"restaurant_id": restaurant_id, "products_deleted": products.deleted_count}
