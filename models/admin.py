# models/admin.py
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime
from models.order import OrderOut

class RevokePayload(BaseModel):
    reason: Optional[str] = None

# Response for audit log item
class AuditItem(BaseModel):
    id: str
    actor_email: Optional[str] = None
    action: str
    resource_type: str
    resource_id: str
    before: Optional[dict] = None
    after: Optional[dict] = None
    reason: Optional[str] = None
    timestamp: Optional[datetime] = None

class DashboardStats(BaseModel):
    total_users: int = 0
    total_restaurants: int = 0
    total_orders: int = 0
    total_products: int = 0
    pending_approvals: int = 0
    pending_orders: int = 0
    todays_orders: int = 0
    total_revenue: float = 0

class TopRestaurant(BaseModel):
    restaurant_id: str
    name: Optional[str] = None
    orders: int = 0
    revenue: float = 0

class Analytics(BaseModel):
    total_orders: int = 0
    total_users: int = 0
    total_revenue: float = 0
    platform_fees: float = 0
    order_stats: Dict[str, int] = Field(default_factory=dict)
    top_restaurants: List[TopRestaurant] = Field(default_factory=list)
    recent_orders: List[OrderOut] = Field(default_factory=list)
    completion_rate: float = 0
    average_order_value: float = 0
    orders_per_user: float = 0

class RestaurantCounts(BaseModel):
    total: int = 0
    approved: int = 0
    pending: int = 0
