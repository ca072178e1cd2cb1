# backend/schemas/product.py
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from pydantic import BaseModel, Field, model_validator

from schemas.common import ORMBase, Page


# Image entry in a product payload: with id it edits an existing image, without id it adds one
class ProductImageIn(BaseModel):
    id: Optional[int] = None
    url: Optional[str] = Field(default=None, min_length=1, max_length=2048)
    is_primary: Optional[bool] = None

    @model_validator(mode="after")
    def _url_required_for_new(self):
        if self.id is None and not self.url:
            raise ValueError("url is required when id is not given")
        return self


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    discount_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    is_active: bool = True
    stock_quantity: int = Field(default=0, ge=0)
    category_id: int
    images: List[ProductImageIn] = []


# Schema for partial product updates - all fields optional
class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    discount_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    is_active: Optional[bool] = None
    stock_quantity: Optional[int] = Field(default=None, ge=0)
    category_id: Optional[int] = None
    images: Optional[List[ProductImageIn]] = None
    deleted_image_ids: List[int] = []


class ProductImageOut(ORMBase):
    id: int
    url: str
    is_primary: bool


class CategoryBrief(ORMBase):
    id: int
    name: str


# Compact product view embedded in cart and order lines
class ProductSummary(ORMBase):
    id: int
    name: str
    price: float
    discount_price: Optional[float] = None
    is_active: bool
    images: List[ProductImageOut] = []


class ProductOut(ORMBase):
    id: int
    name: str
    description: Optional[str] = None
    price: float
    discount_price: Optional[float] = None
    stock_quantity: int
    is_active: bool
    category_id: int
    video_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    images: List[ProductImageOut] = []
    category: Optional[CategoryBrief] = None
    # Review aggregates
    reviews_count: int = 0
    average_rating: Optional[float] = None


ProductListPage = Page[ProductOut]


class ReviewCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    rating: int = Field(ge=1, le=5)
    comment: str = Field(min_length=1, max_length=2000)


class ReviewOut(ORMBase):
    id: int
    product_id: int
    user_id: Optional[int] = None
    name: str
    rating: int
    comment: str
    created_at: Optional[datetime] = None


# Paginated reviews with the product-wide average
class ReviewPage(Page[ReviewOut]):
    average_rating: float = 0.0
