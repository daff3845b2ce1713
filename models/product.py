from pydantic import BaseModel, Field
from typing import Literal, Optional
from datetime import datetime

Category = Literal["appetizer", "main course", "dessert", "beverage", "side dish", "combo meal"]

class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    description: str = ""
    category: Category = "main course"
    preparation_time: int = Field(15, ge=0)
    ingredients: str = ""
    image: str = ""
    is_available: bool = True

class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, ge=0)
    description: Optional[str] = None
    category: Optional[Category] = None
    preparation_time: Optional[int] = Field(None, ge=0)
    ingredients: Optional[str] = None
    image: Optional[str] = None
    is_available: Optional[bool] = None

class ProductOut(BaseModel):
    id: str
    restaurant: str
    name: str
    price: float
    description: str = ""
    category: str = "main course"
    preparation_time: int = 15
    ingredients: str = ""
    image: str = ""
    is_available: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
