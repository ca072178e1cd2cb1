# backend/models/testimonial.py
import enum
from sqlalchemy import Column, Integer, Text, ForeignKey, DateTime, Enum, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base
from models.order import enum_values


# Moderation states; only approved testimonials reach the storefront
class TestimonialStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Shop-wide customer feedback, separate from per-product reviews
class Testimonial(Base):
    __tablename__ = "testimonials"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = Column(Integer, CheckConstraint("rating >= 1 AND rating <= 5"), nullable=False)
    message = Column(Text, nullable=False)
    status = Column(
        Enum(TestimonialStatus, values_callable=enum_values, native_enum=False, length=20),
        nullable=False, default=TestimonialStatus.PENDING, index=True,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User")

    @property
    def user_name(self) -> str:
        if self.user is None:
            return "Customer"
        full = " ".join(part for part in (self.user.first_name, self.user.last_name) if part)
        return full or "Customer"
