from pydantic import BaseModel, Field
from typing import List, Literal, Optional

PaymentMethod = Literal["cash", "card", "digital_wallet"]

class CartAdd(BaseModel):
    product_id: str
    quantity: int = Field(1, gt=0)

class CartUpdate(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=0)

class CartLine(BaseModel):
    product_id: str
    product_name: str
    price: float
    quantity: int

class CartOut(BaseModel):
    restaurant_id: Optional[str] = None
    items: List[CartLine] = Field(default_factory=list)
    subtotal: float = 0
    delivery_fee: float = 0
    service_fee: float = 0
    total: float = 0

class CheckoutRequest(BaseModel):
    delivery_address: str = Field(..., min_length=1)
    payment_method: PaymentMethod = "cash"
    special_instructions: str = ""
