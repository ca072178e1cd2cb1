from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from models.testimonial import TestimonialStatus
from schemas.common import ORMBase


class TestimonialCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    rating: int = Field(ge=1, le=5)
    message: str = Field(min_length=1, max_length=1000)


class TestimonialOut(ORMBase):
    id: int
    user_name: str
    rating: int
    message: str
    status: TestimonialStatus
    created_at: Optional[datetime] = None
