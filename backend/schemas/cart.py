from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from schemas.common import ORMBase
from schemas.product import ProductSummary

# Request schema for adding an item to the cart
class CartAddItem(BaseModel):
    product_id: int
    variant_id: Optional[int] = None
    quantity: int = Field(ge=1)

# Request schema for updating cart item quantity
class CartUpdateItem(BaseModel):
    quantity: int = Field(ge=1)

# Response schema for a single cart line item
class CartItemOut(ORMBase):
    id: int
    product_id: int
    variant_id: Optional[int] = None
    quantity: int
    product: Optional[ProductSummary] = None

# Response schema for the whole cart, hydrated with products and images
class CartOut(ORMBase):
    id: int
    user_id: int
    created_at: Optional[datetime] = None
    items: List[CartItemOut] = []
