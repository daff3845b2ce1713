from pydantic import BaseModel, EmailStr, Field
from typing import Literal, Optional
from datetime import datetime

VehicleType = Literal["motorcycle", "bicycle", "car"]

class UserCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    role: Literal["customer", "restaurant", "rider", "admin"] = "customer"
    # rider registration
    vehicle_type: VehicleType = "motorcycle"
    license_number: Optional[str] = None
    license_photo: Optional[str] = Field(None, description="base64 or data URL of the license photo")
    # restaurant registration
    restaurant_name: Optional[str] = None
    cuisine: Optional[str] = None
    restaurant_phone: Optional[str] = None
    restaurant_address: Optional[str] = None
    description: Optional[str] = None

class UserOut(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    role: str
    is_approved: bool
    is_active: bool = True
    vehicle_type: Optional[str] = None
    license_number: Optional[str] = None
    created_at: Optional[datetime] = None

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut
