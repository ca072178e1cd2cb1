from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

from models.payment import PaymentStatus
from schemas.order import OrderPaymentOut, OrderResponse


class PaymentCreate(BaseModel):
    order_id: int
    amount: Decimal = Field(ge=0)
    payment_provider: str = Field(min_length=1, max_length=255)
    transaction_id: Optional[str] = Field(default=None, max_length=255)


class PaymentStatusPatch(BaseModel):
    status: PaymentStatus
    transaction_id: Optional[str] = Field(default=None, max_length=255)


class PaymentRefund(BaseModel):
    transaction_id: Optional[str] = Field(default=None, max_length=255)


# Payment with the order it settles
class PaymentResponse(OrderPaymentOut):
    order_id: int
    order: Optional[OrderResponse] = None
