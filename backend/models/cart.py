# backend/models/cart.py
from sqlalchemy import Column, Integer, ForeignKey, DateTime, UniqueConstraint, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base

# Represents the user's shopping cart (at most one per user, created lazily)
class Cart(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # One-to-many relationship with cart items
    items = relationship(
        "CartItem", back_populates="cart",
        cascade="all, delete-orphan", order_by="CartItem.id",
    )


# Represents a single line (product + optional variant + quantity) within a cart
class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), index=True, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), index=True, nullable=False)
    variant_id = Column(Integer, nullable=True)
    quantity = Column(Integer, CheckConstraint("quantity >= 1"), nullable=False, default=1)

    cart = relationship("Cart", back_populates="items")
    product = relationship("Product")

    __table_args__ = (
        # Repeat adds of the same product/variant bump quantity instead of inserting
        UniqueConstraint("cart_id", "product_id", "variant_id", name="uq_cartitem_cart_product_variant"),
    )
