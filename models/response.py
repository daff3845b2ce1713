from pydantic import BaseModel, Field
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")

class SuccessResponse(BaseModel, Generic[T]):
    """Uniform success envelope returned by every endpoint."""
    success: bool = Field(default=True)
    message: Optional[str] = None
    data: Optional[T] = None

def ok(data: Any = None, message: Optional[str] = None) -> dict:
    return {"success": True, "message": message, "data": data}
