from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime

class OrderItem(BaseModel):
    product: str
    product_name: Optional[str] = None
    quantity: int
    price: float

class OrderOut(BaseModel):
    id: str
    order_number: str
    user: str
    restaurant: str
    items: List[OrderItem]
    subtotal: float
    delivery_fee: float
    service_fee: float
    total: float
    delivery_address: str
    payment_method: str
    special_instructions: str = ""
    status: str
    rider: Optional[str] = None
    version: int = 0
    estimated_delivery: Optional[datetime] = None
    assigned_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

class OrderStatusUpdate(BaseModel):
    status: str
    reason: Optional[str] = None

class CancelRequest(BaseModel):
    reason: Optional[str] = None

class PaginatedOrders(BaseModel):
    total_orders: int
    page: int
    page_size: int
    total_pages: int
    orders: List[OrderOut]

class RestaurantSummary(BaseModel):
    id: str
    name: str

class RestaurantOrders(BaseModel):
    restaurant: RestaurantSummary
    orders: List[OrderOut]
