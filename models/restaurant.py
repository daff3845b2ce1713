# models/restaurant.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class OpeningHours(BaseModel):
    open: str = "08:00"
    close: str = "22:00"

class RestaurantUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2)
    phone: Optional[str] = None
    address: Optional[str] = None
    cuisine: Optional[str] = None
    description: Optional[str] = None
    delivery_time: Optional[str] = None
    opening_hours: Optional[OpeningHours] = None
    image: Optional[str] = None

class RestaurantOut(BaseModel):
    id: str
    owner: str
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    cuisine: Optional[str] = None
    description: str = ""
    delivery_time: str = "20-30 min"
    opening_hours: OpeningHours = Field(default_factory=OpeningHours)
    image: str = ""
    rating: float = 0
    review_count: int = 0
    is_active: bool = True
    # derived from the owner's account, never stored on the restaurant
    is_approved: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
