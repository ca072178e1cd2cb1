# backend/routes/reviews.py
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from database import get_db
from schemas.common import ApiResponse
from schemas.product import ReviewCreate, ReviewOut, ReviewPage
from services import reviews as review_service
from services.context import AuthContext
from utils.audit import write_log
from utils.tokenJWT import get_auth_context, admin_required

router = APIRouter(prefix="/products/{product_id}/reviews", tags=["Reviews"])


@router.get("", response_model=ApiResponse[ReviewPage])
def list_reviews(
    product_id: int,
    page: int = Query(1, ge=1),
    page_size: int = Query(3, ge=1, le=20),
    db: Session = Depends(get_db),
):
    items, total, average = review_service.list_reviews(db, product_id, page, page_size)
    data = ReviewPage(
        items=[ReviewOut.model_validate(r) for r in items],
        total=total, page=page, page_size=page_size, average_rating=average,
    )
    return ApiResponse(data=data, message="Reviews retrieved successfully")


@router.post("", response_model=ApiResponse[ReviewOut], status_code=201)
def create_review(
    product_id: int,
    payload: ReviewCreate,
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    review = review_service.create_review(db, ctx, product_id, payload)
    write_log(db, user_id=ctx.user_id, action="REVIEW_CREATE", resource="reviews", request=request,
              meta={"product_id": product_id, "review_id": review.id, "rating": review.rating})
    return ApiResponse(data=ReviewOut.model_validate(review), message="Review created successfully")


@router.delete("/{review_id}", response_model=ApiResponse[None])
def delete_review(
    product_id: int,
    review_id: int,
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(admin_required),
):
    review_service.delete_review(db, product_id, review_id)
    write_log(db, user_id=ctx.user_id, action="REVIEW_DELETE", resource="reviews", request=request,
              meta={"product_id": product_id, "review_id": review_id})
    return ApiResponse(data=None, message="Review deleted successfully")
