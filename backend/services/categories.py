# backend/services/categories.py
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from database import atomic
from models.category import Category
from models.product import Product
from schemas.category import CategoryCreate, CategoryUpdate
from utils.errors import NotFound, ValidationFailed


def _ensure_unique_name(db: Session, name: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(Category.id).filter(func.lower(Category.name) == name.strip().lower())
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first():
        raise ValidationFailed.field("name", "The name has already been taken.")


def list_categories(db: Session) -> List[Category]:
    return db.query(Category).order_by(Category.name.asc()).all()


def get_category(db: Session, category_id: int, with_products: bool = False) -> Category:
    query = db.query(Category)
    if with_products:
        query = query.options(
            selectinload(Category.products).selectinload(Product.images)
        )
    category = query.filter(Category.id == category_id).first()
    if not category:
        raise NotFound("Category not found")
    return category


def create_category(db: Session, payload: CategoryCreate) -> Category:
    _ensure_unique_name(db, payload.name)
    category = Category(name=payload.name.strip(), description=payload.description)
    with atomic(db, "create category"):
        db.add(category)
    db.refresh(category)
    return category


def update_category(db: Session, category_id: int, payload: CategoryUpdate) -> Category:
    category = get_category(db, category_id)
    _ensure_unique_name(db, payload.name, exclude_id=category.id)
    with atomic(db, "update category"):
        category.name = payload.name.strip()
        category.description = payload.description
    db.refresh(category)
    return category


def delete_category(db: Session, category_id: int) -> None:
    category = get_category(db, category_id)
    owned = db.query(func.count(Product.id)).filter(Product.category_id == category.id).scalar()
    if owned:
        raise ValidationFailed("Cannot delete category with associated products")
    with atomic(db, "delete category"):
        db.delete(category)
