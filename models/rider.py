from pydantic import BaseModel, Field
from typing import Literal, Optional

class RiderStatusUpdate(BaseModel):
    status: Literal["online", "offline"]

class RiderLocationUpdate(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

class RiderProfile(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    vehicle_type: Optional[str] = None
    license_number: Optional[str] = None
    status: str = "offline"
    is_active: bool = True
    active_deliveries: int = 0
    total_deliveries: int = 0

class RiderEarnings(BaseModel):
    today: float = 0
    weekly: float = 0
    monthly: float = 0
    total: float = 0
    completed_deliveries: int = 0
