# backend/routes/categories.py
from typing import List
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from schemas.common import ApiResponse
from schemas.category import CategoryCreate, CategoryUpdate, CategoryOut, CategoryDetail
from services import categories as category_service
from services.context import AuthContext
from utils.audit import write_log
from utils.tokenJWT import admin_required

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.get("", response_model=ApiResponse[List[CategoryOut]])
def list_categories(db: Session = Depends(get_db)):
    categories = category_service.list_categories(db)
    return ApiResponse(data=[CategoryOut.model_validate(c) for c in categories], message="Categories retrieved successfully")


@router.get("/{category_id}", response_model=ApiResponse[CategoryDetail])
def get_category(category_id: int, db: Session = Depends(get_db)):
    category = category_service.get_category(db, category_id, with_products=True)
    return ApiResponse(data=CategoryDetail.model_validate(category), message="Category retrieved successfully")


@router.post("", response_model=ApiResponse[CategoryOut], status_code=201)
def create_category(
    payload: CategoryCreate,
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(admin_required),
):
    category = category_service.create_category(db, payload)
    write_log(db, user_id=ctx.user_id, action="CATEGORY_CREATE", resource="categories", request=request,
              meta={"category_id": category.id, "name": category.name})
    return ApiResponse(data=CategoryOut.model_validate(category), message="Category created successfully")


@router.put("/{category_id}", response_model=ApiResponse[CategoryOut])
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(admin_required),
):
    category = category_service.update_category(db, category_id, payload)
    write_log(db, user_id=ctx.user_id, action="CATEGORY_UPDATE", resource="categories", request=request,
              meta={"category_id": category_id})
    return ApiResponse(data=CategoryOut.model_validate(category), message="Category updated successfully")


# Refused while the category still owns products
@router.delete("/{category_id}", response_model=ApiResponse[None])
def delete_category(
    category_id: int,
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(admin_required),
):
    category_service.delete_category(db, category_id)
    write_log(db, user_id=ctx.user_id, action="CATEGORY_DELETE", resource="categories", request=request,
              meta={"category_id": category_id})
    return ApiResponse(data=None, message="Category deleted successfully")
