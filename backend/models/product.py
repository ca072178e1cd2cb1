# backend/models/product.py
from sqlalchemy import (
    Column, Integer, String, Text, Numeric, Boolean, ForeignKey,
    DateTime, CheckConstraint, func
)
from sqlalchemy.orm import relationship
from database import Base

# Model Product
# A sellable catalog entry. Prices are stored as fixed-point Numeric(10, 2)
# and read back as Decimal; discount_price, when present, stays below price.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)

    price = Column(Numeric(10, 2), CheckConstraint("price >= 0"), nullable=False)
    discount_price = Column(Numeric(10, 2), CheckConstraint("discount_price >= 0"), nullable=True)

    stock_quantity = Column(Integer, CheckConstraint("stock_quantity >= 0"), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)

    # Optional URL of a product video held by the blob store
    video_url = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    category = relationship("Category", back_populates="products")
    images = relationship(
        "ProductImage", back_populates="product",
        cascade="all, delete-orphan", order_by="ProductImage.id",
    )
    reviews = relationship("ProductReview", back_populates="product", cascade="all, delete-orphan")

    @property
    def primary_image(self):
        for image in self.images:
            if image.is_primary:
                return image
        return None


# Image attached to a product; exactly one per product carries is_primary
class ProductImage(Base):
    __tablename__ = "product_images"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(String, nullable=False)
    is_primary = Column(Boolean, nullable=False, default=False)

    product = relationship("Product", back_populates="images")


# Customer review with a 1-5 star rating
class ProductReview(Base):
    __tablename__ = "product_reviews"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    name = Column(String(255), nullable=False)
    rating = Column(Integer, CheckConstraint("rating >= 1 AND rating <= 5"), nullable=False)
    comment = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    product = relationship("Product", back_populates="reviews")
