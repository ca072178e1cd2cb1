# backend/models/payment.py
import enum
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, Enum, func
from sqlalchemy.orm import relationship
from database import Base
from models.order import enum_values


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    REFUNDED = "refunded"


# A payment recorded against an order; amount is fixed when the row is created
class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(
        Enum(PaymentStatus, values_callable=enum_values, native_enum=False, length=20),
        nullable=False, default=PaymentStatus.PENDING, index=True,
    )
    amount = Column(Numeric(10, 2), nullable=False)
    transaction_id = Column(String(255), nullable=True, index=True)
    payment_provider = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order", back_populates="payments")
