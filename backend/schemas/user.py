from pydantic import BaseModel
from typing import Optional

# Output schema for the authenticated user's profile
class UserResponse(BaseModel):
    id: int
    email: str
    role: str
    is_admin: bool
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    class Config:
        from_attributes = True
