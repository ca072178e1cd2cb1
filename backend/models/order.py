# backend/models/order.py
import enum
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, Enum, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base


# Lifecycle states of an order; delivered and cancelled are terminal
class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, enum.Enum):
    CARD = "card"
    COD = "cod"  # cash on delivery
    PAYPAL = "paypal"
    OTHER = "other"


def enum_values(enum_cls):
    # Persist the lowercase values rather than the member names
    return [member.value for member in enum_cls]


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(
        Enum(OrderStatus, values_callable=enum_values, native_enum=False, length=20),
        nullable=False, default=OrderStatus.PENDING, index=True,
    )
    total_amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(
        Enum(PaymentMethod, values_callable=enum_values, native_enum=False, length=20),
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Contact and shipping details
    email = Column(String(255), nullable=False)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    address = Column(String(255), nullable=False)
    city = Column(String(255), nullable=False)
    state = Column(String(100), nullable=False)
    zip_code = Column(String(20), nullable=False)
    phone = Column(String(50), nullable=False)

    items = relationship(
        "OrderItem", back_populates="order",
        cascade="all, delete-orphan", order_by="OrderItem.id",
    )
    payments = relationship(
        "Payment", back_populates="order",
        cascade="all, delete-orphan", order_by="Payment.id",
    )

    @property
    def is_cod(self) -> bool:
        return self.payment_method == PaymentMethod.COD


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    # Kept nullable so the line survives deletion of the catalog product
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    variant_id = Column(Integer, nullable=True)
    quantity = Column(Integer, CheckConstraint("quantity >= 1"), nullable=False)
    # Unit price captured when the order was placed
    price_at_purchase = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")

    @property
    def line_total(self):
        return self.quantity * self.price_at_purchase
