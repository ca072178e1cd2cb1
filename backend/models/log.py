from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, func
from database import Base

# Audit trail entry: who did what to which resource, and how it ended
class Log(Base):
    __tablename__ = "logs"

    id = Column(Integer, primary_key=True, index=True)

    ts = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    action = Column(String(50), index=True)     # e.g. ORDER_CREATE, PAYMENT_REFUND
    resource = Column(String(50), index=True)   # orders, payments, products...
    status = Column(String(20), index=True)     # SUCCESS / FAIL
    ip = Column(String(64), nullable=True)

    # Identifiers and amounts relevant to the event
    meta = Column(JSON, nullable=True)
