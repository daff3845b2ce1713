import secrets
import time
from datetime import datetime, timedelta
from math import ceil
from typing import Optional
from pymongo import ReturnDocument
from db.db_operation import mongo_conn
from core.exceptions import NotFound, Forbidden, Conflict, InvalidTransition
from services.common import to_object_id, str_id, write_audit_log, paginate
from services.order_state import OrderStatus, check_role_transition, parse_status
from services.restaurant_service import get_owned_restaurant_doc
from services.rider_service import change_active_deliveries, record_delivery, get_rider_status
from utils.logger import get_logger

logger = get_logger("Order_Service")

DELIVERY_ESTIMATE_MINUTES = 45
RIDER_ESTIMATE_MINUTES = 30

def generate_order_number() -> str:
    return f"FX{int(time.time() * 1000)}{secrets.token_hex(4)}".upper()

def serialize_order(order: dict) -> dict:
    return {
        "id": str(order["_id"]),
        "order_number": order["order_number"],
        "user": str(order["user"]),
        "restaurant": str(order["restaurant"]),
        "items": [
            {
                "product": str(item["product"]),
                "product_name": item.get("product_name"),
                "quantity": int(item["quantity"]),
                "price": float(item["price"]),
            }
            for item in order.get("items", [])
        ],
        "subtotal": float(order["subtotal"]),
        "delivery_fee": float(order["delivery_fee"]),
        "service_fee": float(order["service_fee"]),
        "total": float(order["total"]),
        "delivery_address": order["delivery_address"],
        "payment_method": order.get("payment_method", "cash"),
        "special_instructions": order.get("special_instructions") or "",
        "status": order["status"],
        "rider": str_id(order.get("rider")),
        "version": int(order.get("version", 0)),
        "estimated_delivery": order.get("estimated_delivery"),
        "assigned_at": order.get("assigned_at"),
        "delivered_at": order.get("delivered_at"),
        "cancelled_by": order.get("cancelled_by"),
        "cancellation_reason": order.get("cancellation_reason"),
        "created_at": order["created_at"],
        "updated_at": order.get("updated_at"),
    }

async def insert_order(user_id: str, restaurant_id, lines: list, pricing: dict, checkout) -> dict:
    """
    Persist a new pending order. Line prices are the snapshots taken when the
    items were added to the cart; pricing is stored and never recomputed.
    """
    now = datetime.utcnow()
    order_doc = {
        "order_number": generate_order_number(),
        "user": to_object_id(user_id, "user"),
        "restaurant": to_object_id(restaurant_id, "restaurant"),
        "items": [
            {
                "product": line["product_id"],
                "product_name": line.get("product_name"),
                "quantity": int(line["quantity"]),
                "price": float(line["price"]),
            }
            for line in lines
        ],
        **pricing,
        "delivery_address": checkout.delivery_address.strip(),
        "payment_method": checkout.payment_method,
        "special_instructions": checkout.special_instructions,
        "status": OrderStatus.PENDING.value,
        "rider": None,
        "version": 0,
        "estimated_delivery": now + timedelta(minutes=DELIVERY_ESTIMATE_MINUTES),
        "status_history": [{"from": None, "to": OrderStatus.PENDING.value, "by": "customer", "at": now}],
        "created_at": now,
        "updated_at": now,
    }
    result = await mongo_conn.orders_collection.insert_one(order_doc)
    order_doc["_id"] = result.inserted_id
    logger.info("Order created", extra={"order_id": str(result.inserted_id), "user": user_id, "total": pricing["total"]})
    return serialize_order(order_doc)

async def _paginated(query: dict, page: int, limit: int) -> dict:
    skip, limit = paginate(page, limit)
    cursor = mongo_conn.orders_collection.find(query).sort("created_at", -1).skip(skip).limit(limit)
    orders = await cursor.to_list(length=limit)
    total_count = await mongo_conn.orders_collection.count_documents(query)
    return {
        "total_orders": total_count,
        "page": max(int(page), 1),
        "page_size": limit,
        "total_pages": ceil(total_count / limit) if limit else 0,
        "orders": [serialize_order(o) for o in orders],
    }

async def list_user_orders(user_id: str, status: Optional[str] = None, page: int = 1, limit: int = 10) -> dict:
    """Fetch paginated user orders with optional status filter"""
    query = {"user": to_object_id(user_id, "user")}
    if status:
        query["status"] = parse_status(status).value
    return await _paginated(query, page, limit)

async def list_all_orders(status: Optional[str] = None, page: int = 1, limit: int = 20) -> dict:
    query = {}
    if status and status != "all":
        query["status"] = parse_status(status).value
    return await _paginated(query, page, limit)

async def list_restaurant_orders(owner, status: Optional[str] = None) -> dict:
    restaurant = await get_owned_restaurant_doc(owner.id)
    query = {"restaurant": restaurant["_id"]}
    if status:
        query["status"] = parse_status(status).value
    orders = await mongo_conn.orders_collection.find(query).sort("created_at", -1).to_list(length=None)
    return {
        "restaurant": {"id": str(restaurant["_id"]), "name": restaurant["name"]},
        "orders": [serialize_order(o) for o in orders],
    }

async def list_available_orders() -> list:
    """Ready orders nobody has picked up yet, oldest first."""
    cursor = mongo_conn.orders_collection.find(
        {"status": OrderStatus.READY.value, "rider": None}
    ).sort("created_at", 1)
    orders = await cursor.to_list(length=None)
    logger.info(f"Found {len(orders)} available orders for riders")
    return [serialize_order(o) for o in orders]

async def list_rider_deliveries(rider_id: str) -> list:
    cursor = mongo_conn.orders_collection.find({
        "rider": to_object_id(rider_id, "rider"),
        "status": {"$in": [OrderStatus.READY.value, OrderStatus.OUT_FOR_DELIVERY.value, OrderStatus.DELIVERED.value]},
    }).sort("created_at", -1)
    orders = await cursor.to_list(length=None)
    return [serialize_order(o) for o in orders]

async def _can_view(order: dict, user) -> bool:
    if user.role == "admin" or str(order["user"]) == user.id:
        return True
    if user.role == "rider":
        return order.get("rider") is not None and str(order["rider"]) == user.id
    if user.role == "restaurant":
        restaurant = await mongo_conn.restaurants_collection.find_one({"owner": to_object_id(user.id, "user")}, {"_id": 1})
        return restaurant is not None and restaurant["_id"] == order["restaurant"]
    return False

async def get_order(order_id: str, user) -> dict:
    order = await mongo_conn.orders_collection.find_one({"_id": to_object_id(order_id, "order")})
    if not order:
        raise NotFound("Order not found")
    if not await _can_view(order, user):
        raise Forbidden("Access denied")
    return serialize_order(order)

async def track_order(order_number: str, user) -> dict:
    order = await mongo_conn.orders_collection.find_one({"order_number": order_number})
    if not order:
        raise NotFound("Order not found")
    if not await _can_view(order, user):
        raise Forbidden("Access denied")
    return serialize_order(order)

async def _load_for_actor(oid, actor) -> dict:
    """Fetch an order the actor is responsible for; others' orders look absent."""
    query = {"_id": oid}
    if actor.role == "customer":
        query["user"] = to_object_id(actor.id, "user")
    elif actor.role == "rider":
        query["rider"] = to_object_id(actor.id, "rider")
    elif actor.role == "restaurant":
        restaurant = await get_owned_restaurant_doc(actor.id)
        query["restaurant"] = restaurant["_id"]
    order = await mongo_conn.orders_collection.find_one(query)
    if not order:
        raise NotFound("Order not found")
    return order

async def update_order_status(order_id: str, new_status: str, actor, reason: Optional[str] = None) -> dict:
    """
    Move an order along the lifecycle graph.
    The write only applies if the order is still in the status and version
    that were read, so concurrent updates cannot overwrite each other.
    """
    oid = to_object_id(order_id, "order")
    order = await _load_for_actor(oid, actor)
    current_status = order["status"]
    target = check_role_transition(actor.role, current_status, new_status)
    if target == OrderStatus.OUT_FOR_DELIVERY and order.get("rider") is None:
        raise InvalidTransition("Order has no assigned rider")

    now = datetime.utcnow()
    update_doc = {"status": target.value, "updated_at": now}
    if target == OrderStatus.DELIVERED:
        update_doc["delivered_at"] = now
    if target == OrderStatus.CANCELLED:
        update_doc["cancelled_by"] = actor.role
        if reason:
            update_doc["cancellation_reason"] = reason

    query = {"_id": oid, "status": current_status}
    if "version" in order:
        query["version"] = order["version"]
    else:
        query["version"] = {"$exists": False}

    updated = await mongo_conn.orders_collection.find_one_and_update(
        query,
        {
            "$set": update_doc,
            "$inc": {"version": 1},
            "$push": {"status_history": {"from": current_status, "to": target.value, "by": actor.role, "at": now}},
        },
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        logger.warning(f"Concurrent modification of order {order_id}")
        raise Conflict("Order was modified concurrently, reload and retry")

    rider_id = updated.get("rider")
    if rider_id is not None:
        if target == OrderStatus.DELIVERED:
            await record_delivery(rider_id)
        elif target == OrderStatus.CANCELLED:
            await change_active_deliveries(rider_id, -1)

    await write_audit_log(actor.email, "update_order_status", "order", order_id,
                          before={"status": current_status}, after={"status": target.value}, reason=reason)
    logger.info("Order status updated", extra={"order_id": order_id, "from": current_status, "to": target.value, "actor": actor.email})
    return serialize_order(updated)

async def cancel_order(order_id: str, customer, reason: Optional[str] = None) -> dict:
    return await update_order_status(order_id, OrderStatus.CANCELLED.value, customer, reason)

async def accept_order(order_id: str, rider) -> dict:
    """Assign a ready, unclaimed order to the calling rider. Status stays ready until pickup."""
    oid = to_object_id(order_id, "order")
    if await get_rider_status(rider.id) != "online":
        raise Forbidden("Go online before accepting orders")
    now = datetime.utcnow()
    updated = await mongo_conn.orders_collection.find_one_and_update(
        {"_id": oid, "status": OrderStatus.READY.value, "rider": None},
        {
            "$set": {
                "rider": to_object_id(rider.id, "rider"),
                "assigned_at": now,
                "estimated_delivery": now + timedelta(minutes=RIDER_ESTIMATE_MINUTES),
                "updated_at": now,
            },
            "$inc": {"version": 1},
        },
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise NotFound("Order not available or already taken")
    await change_active_deliveries(rider.id, 1)
    await write_audit_log(rider.email, "accept_order", "order", order_id, after={"rider": rider.id})
    logger.info(f"Order {updated['order_number']} assigned to rider {rider.id}")
    return serialize_order(updated)
