from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from models.order import OrderStatus, PaymentMethod
from models.payment import PaymentStatus
from schemas.common import ORMBase
from schemas.product import ProductSummary


# Input schema for a single requested line
class OrderItemIn(BaseModel):
    product_id: int
    variant_id: Optional[int] = None
    quantity: int = Field(ge=1)


# Input schema for creating a new order with contact and shipping details
class OrderCreatePayload(BaseModel):
    # Admins may place an order on behalf of another user
    user_id: Optional[int] = None
    payment_method: PaymentMethod
    items: List[OrderItemIn] = Field(min_length=1)
    from_cart_id: Optional[int] = None

    email: EmailStr
    first_name: str = Field(min_length=1, max_length=255)
    last_name: str = Field(min_length=1, max_length=255)
    address: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=1, max_length=255)
    state: str = Field(min_length=1, max_length=100)
    zip_code: str = Field(min_length=1, max_length=20)
    phone: str = Field(min_length=1, max_length=50)


# Schema for updating order status
class OrderStatusPatch(BaseModel):
    status: OrderStatus


# Schema for changing the quantity of a line on a pending order
class OrderItemQuantityPatch(BaseModel):
    quantity: int = Field(ge=1)


class OrderPaymentOut(ORMBase):
    id: int
    status: PaymentStatus
    amount: float
    transaction_id: Optional[str] = None
    payment_provider: Optional[str] = None
    created_at: Optional[datetime] = None


# Output schema for an individual order line item
class OrderItemOut(ORMBase):
    id: int
    product_id: Optional[int] = None
    variant_id: Optional[int] = None
    quantity: int
    price_at_purchase: float
    line_total: float
    product: Optional[ProductSummary] = None


# Output schema representing the full order details
class OrderResponse(ORMBase):
    id: int
    user_id: int
    status: OrderStatus
    total_amount: float
    payment_method: PaymentMethod
    created_at: Optional[datetime] = None

    email: str
    first_name: str
    last_name: str
    address: str
    city: str
    state: str
    zip_code: str
    phone: str

    items: List[OrderItemOut] = []
    payments: List[OrderPaymentOut] = []
