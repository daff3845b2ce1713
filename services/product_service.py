from db.db_operation import mongo_conn
from datetime import datetime
from pymongo.errors import PyMongoError
from core.exceptions import NotFound, ValidationError
from services.common import to_object_id, write_audit_log
from services.restaurant_service import get_owned_restaurant_doc
from utils.logger import get_logger

logger = get_logger("Product_Service")

def serialize_product(d: dict) -> dict:
    return {
        "id": str(d["_id"]),
        "restaurant": str(d["restaurant"]),
        "name": d["name"],
        "price": float(d["price"]),
        "description": d.get("description") or "",
        "category": d.get("category") or "main course",
        "preparation_time": int(d.get("preparation_time", 15)),
        "ingredients": d.get("ingredients") or "",
        "image": d.get("image") or "",
        "is_available": d.get("is_available", True),
        "created_at": d.get("created_at"),
        "updated_at": d.get("updated_at")
    }

async def create_product(owner, payload) -> dict:
    """
    Create a product under the caller's own restaurant.
    The restaurant is resolved from the owner, never taken from the request body.
    """
    restaurant = await get_owned_restaurant_doc(owner.id)
    now = datetime.utcnow()
    doc = {
        "restaurant": restaurant["_id"],
        "name": payload.name.strip(),
        "price": float(payload.price),
        "description": payload.description.strip(),
        "category": payload.category,
        "preparation_time": payload.preparation_time,
        "ingredients": payload.ingredients.strip(),
        "image": payload.image,
        "is_available": bool(payload.is_available),
        "created_at": now,
        "updated_at": now
    }
    if not doc["name"]:
        raise ValidationError("Product name is required")
    try:
        result = await mongo_conn.products_collection.insert_one(doc)
    except PyMongoError:
        logger.exception("DB error creating product")
        raise
    doc["_id"] = result.inserted_id
    logger.info("Product created", extra={"restaurant_id": str(restaurant["_id"]), "actor": owner.email, "product_id": str(result.inserted_id)})
    return serialize_product(doc)

async def list_products(restaurant_id: str, only_available: bool = True) -> list:
    q = {"restaurant": to_object_id(restaurant_id, "restaurant")}
    if only_available:
        q["is_available"] = True
    cursor = mongo_conn.products_collection.find(q).sort("created_at", -1)
    docs = await cursor.to_list(length=None)
    logger.info(f"Found {len(docs)} products for restaurant {restaurant_id}")
    return [serialize_product(d) for d in docs]

async def list_own_products(owner) -> list:
    restaurant = await get_owned_restaurant_doc(owner.id)
    return await list_products(str(restaurant["_id"]), only_available=False)

async def get_product(product_id: str) -> dict:
    d = await mongo_conn.products_collection.find_one({"_id": to_object_id(product_id, "product")})
    if not d:
        raise NotFound("Product not found")
    return serialize_product(d)

async def update_product(owner, product_id: str, payload) -> dict:
    oid = to_object_id(product_id, "product")
    restaurant = await get_owned_restaurant_doc(owner.id)
    update_doc = payload.model_dump(exclude_none=True)
    if "price" in update_doc:
        update_doc["price"] = float(update_doc["price"])
    update_doc["updated_at"] = datetime.utcnow()
    result = await mongo_conn.products_collection.update_one(
        {"_id": oid, "restaurant": restaurant["_id"]}, {"$set": update_doc}
    )
    if result.matched_count == 0:
        raise NotFound("Product not found")
    await write_audit_log(owner.email, "update_product", "product", product_id, after=update_doc)
    return await get_product(product_id)

async def delete_product(owner, product_id: str) -> dict:
    oid = to_object_id(product_id, "product")
    restaurant = await get_owned_restaurant_doc(owner.id)
    result = await mongo_conn.products_collection.delete_one({"_id": oid, "restaurant": restaurant["_id"]})
    if result.deleted_count == 0:
        raise NotFound("Product not found")
    await write_audit_log(owner.email, "delete_product", "product", product_id)
    logger.info("Product deleted", extra={"actor": owner.email, "product_id": product_id})
    return {"product_id": product_id}
