# services/analytics_service.py
from datetime import datetime
from typing import Optional
from db.db_operation import mongo_conn
from services.common import paginate
from services.order_service import serialize_order
from services.order_state import OrderStatus
from services.restaurant_service import restaurant_counts
from utils.logger import get_logger

logger = get_logger("Analytics_Service")

def compute_ratios(total_orders: int, delivered_orders: int, revenue: float, total_users: int) -> dict:
    """Derived dashboard ratios; every zero denominator yields 0."""
    return {
        "completion_rate": round(delivered_orders / total_orders * 100, 2) if total_orders else 0,
        "average_order_value": round(revenue / delivered_orders, 2) if delivered_orders else 0,
        "orders_per_user": round(total_orders / total_users, 2) if total_users else 0,
    }

def _window(since: Optional[datetime], until: Optional[datetime]) -> dict:
    created = {}
    if since is not None:
        created["$gte"] = since
    if until is not None:
        created["$lt"] = until
    return {"created_at": created} if created else {}

def analytics_pipeline(match: dict, top_n: int, recent_n: int) -> list:
    delivered = OrderStatus.DELIVERED.value
    return [
        {"$match": match},
        {"$facet": {
            "status_counts": [{"$group": {"_id": "$status", "count": {"$sum": 1}}}],
            "revenue": [
                {"$match": {"status": delivered}},
                {"$group": {"_id": None, "total": {"$sum": "$total"}, "fees": {"$sum": "$service_fee"}}},
            ],
            "top_restaurants": [
                {"$group": {
                    "_id": "$restaurant",
                    "orders": {"$sum": 1},
                    "revenue": {"$sum": {"$cond": [{"$eq": ["$status", delivered]}, "$total", 0]}},
                }},
                {"$sort": {"orders": -1, "revenue": -1}},
                {"$limit": top_n},
                {"$lookup": {"from": "restaurants", "localField": "_id", "foreignField": "_id", "as": "restaurant"}},
                {"$project": {"orders": 1, "revenue": 1, "name": {"$arrayElemAt": ["$restaurant.name", 0]}}},
            ],
            "recent_orders": [{"$sort": {"created_at": -1}}, {"$limit": recent_n}],
        }},
    ]

async def get_analytics(since: Optional[datetime] = None, until: Optional[datetime] = None,
                        top_n: int = 5, recent_n: int = 5) -> dict:
    match = _window(since, until)
    rows = await mongo_conn.orders_collection.aggregate(analytics_pipeline(match, top_n, recent_n)).to_list(length=1)
    facets = rows[0] if rows else {}

    order_stats = {s.value: 0 for s in OrderStatus}
    for row in facets.get("status_counts", []):
        if row["_id"] in order_stats:
            order_stats[row["_id"]] = row["count"]
    total_orders = sum(order_stats.values())

    revenue_rows = facets.get("revenue") or [{}]
    total_revenue = round(float(revenue_rows[0].get("total", 0) or 0), 2)
    platform_fees = round(float(revenue_rows[0].get("fees", 0) or 0), 2)
    total_users = await mongo_conn.users_collection.count_documents({})

    analytics = {
        "total_orders": total_orders,
        "total_users": total_users,
        "total_revenue": total_revenue,
        "platform_fees": platform_fees,
        "order_stats": order_stats,
        "top_restaurants": [
            {
                "restaurant_id": str(row["_id"]),
                "name": row.get("name"),
                "orders": row.get("orders", 0),
                "revenue": round(float(row.get("revenue", 0) or 0), 2),
            }
            for row in facets.get("top_restaurants", [])
        ],
        "recent_orders": [serialize_order(o) for o in facets.get("recent_orders", [])],
        **compute_ratios(total_orders, order_stats[OrderStatus.DELIVERED.value], total_revenue, total_users),
    }
    logger.info("Analytics computed", extra={"total_orders": total_orders, "total_revenue": total_revenue})
    return analytics

async def delivered_revenue(match: Optional[dict] = None) -> float:
    query = {**(match or {}), "status": OrderStatus.DELIVERED.value}
    rows = await mongo_conn.orders_collection.aggregate([
        {"$match": query},
        {"$group": {"_id": None, "total": {"$sum": "$total"}}},
    ]).to_list(length=1)
    return round(float(rows[0]["total"]), 2) if rows else 0.0

async def get_dashboard_stats() -> dict:
    now = datetime.utcnow()
    today = datetime(now.year, now.month, now.day)
    users = mongo_conn.users_collection
    orders = mongo_conn.orders_collection
    restaurants = await restaurant_counts()
    return {
        "total_users": await users.count_documents({}),
        "total_restaurants": restaurants["total"],
        "total_orders": await orders.count_documents({}),
        "total_products": await mongo_conn.products_collection.count_documents({}),
        "pending_approvals": await users.count_documents(
            {"role": {"$in": ["restaurant", "rider"]}, "is_approved": False}
        ),
        "pending_orders": await orders.count_documents({"status": OrderStatus.PENDING.value}),
        "todays_orders": await orders.count_documents({"created_at": {"$gte": today}}),
        "total_revenue": await delivered_revenue(),
    }

async def list_audit_logs(page: int = 1, limit: int = 100) -> list:
    skip, limit = paginate(page, limit)
    cursor = mongo_conn.audit_logs.find({}).sort("timestamp", -1).skip(skip).limit(limit)
    docs = await cursor.to_list(length=limit)
    return [
        {
            "id": str(d["_id"]),
            "actor_email": d.get("actor_email"),
            "action": d.get("action", ""),
            "resource_type": d.get("resource_type", ""),
            "resource_id": str(d.get("resource_id", "")),
            "before": d.get("before"),
            "after": d.get("after"),
            "reason": d.get("reason"),
            "timestamp": d.get("timestamp"),
        }
        for d in docs
    ]
