# backend/routes/auth.py
from fastapi import APIRouter, Depends

from models.users import User
from schemas.common import ApiResponse
from schemas.user import UserResponse
from utils.tokenJWT import get_current_user

# Credentials are issued elsewhere; this router only exposes the bearer's identity
router = APIRouter(tags=["Auth"])


@router.get("/me", response_model=ApiResponse[UserResponse])
def read_me(current_user: User = Depends(get_current_user)):
    return ApiResponse(data=UserResponse.model_validate(current_user), message="User retrieved successfully")
