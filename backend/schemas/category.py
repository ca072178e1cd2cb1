# backend/schemas/category.py
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field

from schemas.common import ORMBase
from schemas.product import ProductOut


class CategoryCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None


class CategoryUpdate(CategoryCreate):
    pass


class CategoryOut(ORMBase):
    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Category with the products it owns
class CategoryDetail(CategoryOut):
    products: List[ProductOut] = []
