from datetime import datetime
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
from db.db_operation import mongo_conn
from core.exceptions import Conflict, NotFound
from services.common import to_object_id
from utils.logger import get_logger

logger = get_logger("Review_Service")

RATING_VALUES = (1, 2, 3, 4, 5)

def serialize_review(doc: dict) -> dict:
    return {
        "id": str(doc["_id"]),
        "restaurant_id": str(doc["restaurant_id"]),
        "user_id": str(doc["user_id"]),
        "user_name": doc.get("user_name", ""),
        "rating": int(doc["rating"]),
        "comment": doc.get("comment") or "",
        "created_at": doc.get("created_at"),
        "updated_at": doc.get("updated_at"),
    }

async def _restaurant_exists(restaurant_oid) -> bool:
    return await mongo_conn.restaurants_collection.find_one({"_id": restaurant_oid}, {"_id": 1}) is not None

async def refresh_restaurant_rating(restaurant_oid):
    """Recompute the denormalised rating and review_count on the restaurant."""
    rows = await mongo_conn.reviews_collection.aggregate([
        {"$match": {"restaurant_id": restaurant_oid}},
        {"$group": {"_id": None, "average": {"$avg": "$rating"}, "count": {"$sum": 1}}},
    ]).to_list(length=1)
    average = round(rows[0]["average"], 1) if rows else 0
    count = rows[0]["count"] if rows else 0
    await mongo_conn.restaurants_collection.update_one(
        {"_id": restaurant_oid}, {"$set": {"rating": average, "review_count": count}}
    )

async def create_review(user, payload) -> dict:
    restaurant_oid = to_object_id(payload.restaurant_id, "restaurant")
    if not await _restaurant_exists(restaurant_oid):
        raise NotFound("Restaurant not found")
    user_oid = to_object_id(user.id, "user")
    if await mongo_conn.reviews_collection.find_one({"restaurant_id": restaurant_oid, "user_id": user_oid}):
        raise Conflict("You have already reviewed this restaurant")
    now = datetime.utcnow()
    doc = {
        "restaurant_id": restaurant_oid,
        "user_id": user_oid,
        "user_name": user.name or "",
        "rating": payload.rating,
        "comment": payload.comment.strip(),
        "created_at": now,
        "updated_at": now,
    }
    try:
        result = await mongo_conn.reviews_collection.insert_one(doc)
    except DuplicateKeyError:
        raise Conflict("You have already reviewed this restaurant")
    doc["_id"] = result.inserted_id
    await refresh_restaurant_rating(restaurant_oid)
    logger.info("Review created", extra={"restaurant_id": payload.restaurant_id, "user": user.id, "rating": payload.rating})
    return serialize_review(doc)

async def list_restaurant_reviews(restaurant_id: str) -> list:
    restaurant_oid = to_object_id(restaurant_id, "restaurant")
    if not await _restaurant_exists(restaurant_oid):
        raise NotFound("Restaurant not found")
    docs = await mongo_conn.reviews_collection.find({"restaurant_id": restaurant_oid}).sort("created_at", -1).to_list(length=None)
    return [serialize_review(d) for d in docs]

async def list_user_reviews(user) -> list:
    docs = await mongo_conn.reviews_collection.find(
        {"user_id": to_object_id(user.id, "user")}
    ).sort("created_at", -1).to_list(length=None)
    return [serialize_review(d) for d in docs]

async def update_review(user, review_id: str, payload) -> dict:
    update_doc = payload.model_dump(exclude_none=True)
    if "comment" in update_doc:
        update_doc["comment"] = update_doc["comment"].strip()
    update_doc["updated_at"] = datetime.utcnow()
    updated = await mongo_conn.reviews_collection.find_one_and_update(
        {"_id": to_object_id(review_id, "review"), "user_id": to_object_id(user.id, "user")},
        {"$set": update_doc},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise NotFound("Review not found")
    await refresh_restaurant_rating(updated["restaurant_id"])
    return serialize_review(updated)

async def delete_review(user, review_id: str) -> dict:
    deleted = await mongo_conn.reviews_collection.find_one_and_delete(
        {"_id": to_object_id(review_id, "review"), "user_id": to_object_id(user.id, "user")}
    )
    if deleted is None:
        raise NotFound("Review not found")
    await refresh_restaurant_rating(deleted["restaurant_id"])
    logger.info(f"Review {review_id} deleted by {user.id}")
    return {"review_id": review_id}

async def get_review_stats(restaurant_id: str) -> dict:
    restaurant_oid = to_object_id(restaurant_id, "restaurant")
    rows = await mongo_conn.reviews_collection.aggregate([
        {"$match": {"restaurant_id": restaurant_oid}},
        {"$group": {"_id": "$rating", "count": {"$sum": 1}}},
    ]).to_list(length=None)
    distribution = {value: 0 for value in RATING_VALUES}
    for row in rows:
        if row["_id"] in distribution:
            distribution[row["_id"]] = row["count"]
    total = sum(distribution.values())
    average = round(sum(k * v for k, v in distribution.items()) / total, 1) if total else 0
    return {"average_rating": average, "total_reviews": total, "rating_distribution": distribution}
