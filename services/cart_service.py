# services/cart_service.py
from datetime import datetime
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError
from db.db_operation import mongo_conn
from core.exceptions import NotFound, ValidationError, InvalidCart, Conflict
from services.common import to_object_id, str_id
from services.pricing import price_order
from services.restaurant_service import approval_stages
from services.order_service import insert_order
from utils.logger import get_logger

logger = get_logger("Cart_Service")

EMPTY_PRICING = {"subtotal": 0.0, "delivery_fee": 0.0, "service_fee": 0.0, "total": 0.0}

def serialize_cart(cart: dict) -> dict:
    items = [
        {
            "product_id": str(line["product_id"]),
            "product_name": line.get("product_name", ""),
            "price": float(line["price"]),
            "quantity": int(line["quantity"]),
        }
        for line in (cart or {}).get("items", [])
    ]
    pricing = price_order(items) if items else dict(EMPTY_PRICING)
    return {
        "restaurant_id": str_id((cart or {}).get("restaurant_id")) if items else None,
        "items": items,
        **pricing,
    }

async def _load_cart(user_id: str):
    return await mongo_conn.carts_collection.find_one({"_id": to_object_id(user_id, "user")})

async def get_cart(user) -> dict:
    cart = await _load_cart(user.id)
    return serialize_cart(cart)

async def add_item(user, product_id: str, quantity: int = 1) -> dict:
    """
    Add a product to the customer's cart, snapshotting its current price.
    A cart only ever holds products of one restaurant; adding from another
    raises InvalidCart and leaves the cart as it was.
    """
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    pid = to_object_id(product_id, "product")
    product = await mongo_conn.products_collection.find_one({"_id": pid})
    if not product:
        raise NotFound("Product not found")
    if not product.get("is_available", True):
        raise ValidationError(f"Product not available: {product['name']}")

    carts = mongo_conn.carts_collection
    uid = to_object_id(user.id, "user")
    restaurant_id = product["restaurant"]
    now = datetime.utcnow()

    # existing line for this product
    updated = await carts.find_one_and_update(
        {"_id": uid, "restaurant_id": restaurant_id, "items.product_id": pid},
        {"$inc": {"items.$.quantity": quantity}, "$set": {"updated_at": now}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        line = {
            "product_id": pid,
            "restaurant_id": restaurant_id,
            "product_name": product["name"],
            "price": float(product["price"]),
            "quantity": quantity,
        }
        # matches an empty cart, a cart of the same restaurant, or no cart at all (upsert)
        guard = {
            "_id": uid,
            "$or": [
                {"restaurant_id": restaurant_id},
                {"restaurant_id": None},
                {"items": {"$size": 0}},
            ],
        }
        try:
            updated = await carts.find_one_and_update(
                guard,
                {"$push": {"items": line}, "$set": {"restaurant_id": restaurant_id, "updated_at": now}},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # the guard failed on an existing cart, so the upsert collided on _id
            logger.info("Cart add rejected: different restaurant", extra={"user": user.id, "product_id": product_id})
            raise InvalidCart("Cart contains items from another restaurant. Clear the cart first")
    logger.info("Item added to cart", extra={"user": user.id, "product_id": product_id, "quantity": quantity})
    return serialize_cart(updated)

async def update_item(user, product_id: str, quantity: int) -> dict:
    if quantity < 0:
        raise ValidationError("Quantity cannot be negative")
    if quantity == 0:
        return await remove_item(user, product_id)
    pid = to_object_id(product_id, "product")
    updated = await mongo_conn.carts_collection.find_one_and_update(
        {"_id": to_object_id(user.id, "user"), "items.product_id": pid},
        {"$set": {"items.$.quantity": quantity, "updated_at": datetime.utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise NotFound("Item not in cart")
    return serialize_cart(updated)

async def remove_item(user, product_id: str) -> dict:
    pid = to_object_id(product_id, "product")
    updated = await mongo_conn.carts_collection.find_one_and_update(
        {"_id": to_object_id(user.id, "user"), "items.product_id": pid},
        {"$pull": {"items": {"product_id": pid}}, "$set": {"updated_at": datetime.utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise NotFound("Item not in cart")
    if not updated.get("items"):
        await mongo_conn.carts_collection.update_one({"_id": updated["_id"]}, {"$set": {"restaurant_id": None}})
        updated["restaurant_id"] = None
    return serialize_cart(updated)

async def clear_cart(user) -> dict:
    await mongo_conn.carts_collection.delete_one({"_id": to_object_id(user.id, "user")})
    logger.info(f"Cart cleared for user {user.id}")
    return serialize_cart(None)

async def _ensure_restaurant_open(restaurant_id):
    pipeline = [{"$match": {"_id": restaurant_id}}, *approval_stages()]
    docs = await mongo_conn.restaurants_collection.aggregate(pipeline).to_list(length=1)
    if not docs:
        raise NotFound("Restaurant not found")
    restaurant = docs[0]
    if not restaurant.get("is_active", True) or not restaurant.get("is_approved", False):
        raise ValidationError("Restaurant is not accepting orders")
    return restaurant

async def _restore_cart(cart: dict):
    try:
        await mongo_conn.carts_collection.insert_one(cart)
    except DuplicateKeyError:
        logger.warning("Cart not restored, a newer cart exists", extra={"cart_id": str(cart["_id"])})

async def checkout(user, payload) -> dict:
    """
    Turn the cart into a pending order priced from the snapshot prices,
    consuming the cart. Nothing is written if validation fails and only one
    checkout of the same cart can succeed.
    """
    cart = await _load_cart(user.id)
    lines = (cart or {}).get("items") or []
    if not lines:
        raise ValidationError("Cart is empty")
    restaurants = {str(line.get("restaurant_id", cart.get("restaurant_id"))) for line in lines}
    if len(restaurants) != 1 or str(cart.get("restaurant_id")) not in restaurants:
        raise InvalidCart("All items must be from the same restaurant")
    if not payload.delivery_address or not payload.delivery_address.strip():
        raise ValidationError("Delivery address is required")

    restaurant = await _ensure_restaurant_open(cart["restaurant_id"])
    pricing = price_order([{"price": line["price"], "quantity": line["quantity"]} for line in lines])
    # claim the cart exactly as read; a concurrent checkout or edit makes this miss
    claimed = await mongo_conn.carts_collection.find_one_and_delete({"_id": cart["_id"], "items": lines})
    if claimed is None:
        raise Conflict("Cart changed during checkout, please review it and retry")
    try:
        order = await insert_order(user.id, restaurant["_id"], lines, pricing, payload)
    except PyMongoError:
        await _restore_cart(claimed)
        raise
    logger.info("Checkout complete", extra={"user": user.id, "order_number": order["order_number"]})
    return order
