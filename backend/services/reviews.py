# backend/services/reviews.py
from typing import List, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from database import atomic
from models.product import Product, ProductReview
from schemas.product import ReviewCreate
from services.context import AuthContext
from utils.errors import NotFound


def _ensure_product(db: Session, product_id: int) -> None:
    if not db.query(Product.id).filter(Product.id == product_id).first():
        raise NotFound("Product not found")


def list_reviews(db: Session, product_id: int, page: int, page_size: int) -> Tuple[List[ProductReview], int, float]:
    _ensure_product(db, product_id)
    query = db.query(ProductReview).filter(ProductReview.product_id == product_id)
    total = query.count()
    average = db.query(func.avg(ProductReview.rating)).filter(ProductReview.product_id == product_id).scalar()
    items = (
        query.order_by(ProductReview.created_at.desc(), ProductReview.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return items, total, round(float(average or 0), 2)


def create_review(db: Session, ctx: AuthContext, product_id: int, payload: ReviewCreate) -> ProductReview:
    _ensure_product(db, product_id)
    review = ProductReview(
        product_id=product_id,
        user_id=ctx.user_id,
        name=payload.name,
        rating=payload.rating,
        comment=payload.comment,
    )
    with atomic(db, "create review"):
        db.add(review)
    db.refresh(review)
    return review


def delete_review(db: Session, product_id: int, review_id: int) -> None:
    _ensure_product(db, product_id)
    review = (
        db.query(ProductReview)
        .filter(ProductReview.product_id == product_id, ProductReview.id == review_id)
        .first()
    )
    if not review:
        raise NotFound("Review not found")
    with atomic(db, "delete review"):
        db.delete(review)
