# backend/models/users.py
from sqlalchemy import Column, Integer, String, DateTime, func
from database import Base

# Represents an account known to the authentication layer; role "admin" opens the back office
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    role = Column(String, nullable=False, default="customer")
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def is_admin(self) -> bool:
        return (self.role or "").upper() == "ADMIN"
