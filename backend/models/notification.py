# backend/models/notification.py
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, JSON, func
from database import Base

# Back-office inbox entry raised by storefront activity (new order, message, testimonial)
class AdminNotification(Base):
    __tablename__ = "admin_notifications"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(50), nullable=False, index=True)   # order_created, contact_message...
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
