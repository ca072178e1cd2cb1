# backend/schemas/common.py
from typing import Dict, Generic, List, Optional, TypeVar
from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Uniform success envelope returned by every endpoint
class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    message: str = ""


# Uniform error envelope rendered by the exception handlers
class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    errors: Optional[Dict[str, List[str]]] = None


# Schema for paginated lists
class Page(BaseModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    page_size: int
