from pydantic import BaseModel, Field
from typing import Dict, Optional
from datetime import datetime

class ReviewCreate(BaseModel):
    restaurant_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field("", max_length=500)

class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=500)

class ReviewOut(BaseModel):
    id: str
    restaurant_id: str
    user_id: str
    user_name: str
    rating: int
    comment: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class ReviewStats(BaseModel):
    average_rating: float = 0
    total_reviews: int = 0
    rating_distribution: Dict[int, int]
