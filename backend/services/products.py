"""Catalog products: search, CRUD and media.

Whatever path touches a product's images (create, update, upload, delete)
finishes with ``ensure_single_primary`` so a product with images always has
exactly one primary image.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import BinaryIO, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import or_, func
from sqlalchemy.orm import Session, selectinload, joinedload

from database import atomic
from models.cart import CartItem
from models.category import Category
from models.order import OrderItem
from models.product import Product, ProductImage, ProductReview
from schemas.product import ProductCreate, ProductUpdate
from utils.errors import NotFound, ValidationFailed
from utils.money import to_money
from utils.storage import IMAGE_TYPES, VIDEO_TYPES, LocalFileStorage

logger = logging.getLogger(__name__)

FEATURED_LIMIT = 8
LATEST_LIMIT = 12
LAST_IMAGE_MESSAGE = "Cannot delete all images. A product must have at least one image."

# product_id -> (reviews_count, average_rating)
ReviewStats = Dict[int, Tuple[int, Optional[float]]]


@dataclass
class ProductFilters:
    q: Optional[str] = None
    category_id: Optional[int] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    is_active: Optional[bool] = None


@dataclass
class Upload:
    stream: BinaryIO
    filename: str
    content_type: Optional[str]


# ---- HELPERS ----

def _product_query(db: Session):
    return db.query(Product).options(selectinload(Product.images), joinedload(Product.category))


def _apply_filters(query, filters: ProductFilters):
    # Boolean AND of the optional predicates; the text query is OR'd over name/description
    if filters.q:
        like = f"%{filters.q}%"
        query = query.filter(or_(Product.name.ilike(like), Product.description.ilike(like)))
    if filters.category_id is not None:
        query = query.filter(Product.category_id == filters.category_id)
    if filters.min_price is not None:
        query = query.filter(Product.price >= filters.min_price)
    if filters.max_price is not None:
        query = query.filter(Product.price <= filters.max_price)
    if filters.is_active is not None:
        query = query.filter(Product.is_active == filters.is_active)
    return query


def _validate_category(db: Session, category_id: Optional[int]) -> None:
    if category_id is None or not db.query(Category.id).filter(Category.id == category_id).first():
        raise ValidationFailed.field("category_id", "The selected category id is invalid.")


def _validate_discount(price, discount_price) -> None:
    if discount_price is not None and price is not None and to_money(discount_price) >= to_money(price):
        raise ValidationFailed(
            "Discount price must be less than the regular price",
            {"discount_price": ["The discount price must be less than the price."]},
        )


def _check_type(upload: Upload, allowed, field: str) -> None:
    if upload.content_type not in allowed:
        raise ValidationFailed.field(field, f"Invalid file type: {upload.content_type or 'unknown'}")


def ensure_single_primary(images: Sequence[ProductImage], preferred: Optional[ProductImage] = None) -> None:
    """Leave exactly one image flagged as primary.

    ``preferred`` wins when given; otherwise the first image already flagged
    keeps the flag, and failing that the first image gets it.
    """
    if not images:
        return
    if preferred is not None and any(image is preferred for image in images):
        winner = preferred
    else:
        winner = next((image for image in images if image.is_primary), images[0])
    for image in images:
        image.is_primary = image is winner


# ---- QUERIES ----

def list_products(db: Session, filters: ProductFilters, page: int, page_size: int) -> Tuple[List[Product], int]:
    query = _apply_filters(_product_query(db), filters)
    total = query.count()
    items = query.order_by(Product.id.asc()).offset((page - 1) * page_size).limit(page_size).all()
    return items, total


def search_products(db: Session, filters: ProductFilters) -> List[Product]:
    return _apply_filters(_product_query(db), filters).order_by(Product.id.asc()).all()


def featured_products(db: Session) -> List[Product]:
    return (
        _product_query(db)
        .filter(
            Product.discount_price.isnot(None),
            Product.discount_price < Product.price,
            Product.is_active.is_(True),
            Product.stock_quantity > 0,
        )
        .order_by(Product.updated_at.desc(), Product.id.desc())
        .limit(FEATURED_LIMIT)
        .all()
    )


def latest_products(db: Session) -> List[Product]:
    return (
        _product_query(db)
        .filter(Product.is_active.is_(True))
        .order_by(Product.created_at.desc(), Product.id.desc())
        .limit(LATEST_LIMIT)
        .all()
    )


def review_stats(db: Session, product_ids: Sequence[int]) -> ReviewStats:
    if not product_ids:
        return {}
    rows = (
        db.query(ProductReview.product_id, func.count(ProductReview.id), func.avg(ProductReview.rating))
        .filter(ProductReview.product_id.in_(list(product_ids)))
        .group_by(ProductReview.product_id)
        .all()
    )
    return {
        product_id: (count, round(float(avg), 2) if avg is not None else None)
        for product_id, count, avg in rows
    }


def get_product(db: Session, product_id: int) -> Product:
    product = _product_query(db).filter(Product.id == product_id).first()
    if not product:
        raise NotFound("Product not found")
    return product


def _get_image(product: Product, image_id: int) -> ProductImage:
    image = next((img for img in product.images if img.id == image_id), None)
    if image is None:
        raise NotFound("Product image not found")
    return image


# ---- MUTATIONS ----

def create_product(db: Session, payload: ProductCreate) -> Product:
    _validate_category(db, payload.category_id)
    _validate_discount(payload.price, payload.discount_price)

    product = Product(
        name=payload.name,
        description=payload.description,
        price=to_money(payload.price),
        discount_price=to_money(payload.discount_price) if payload.discount_price is not None else None,
        is_active=payload.is_active,
        stock_quantity=payload.stock_quantity,
        category_id=payload.category_id,
    )

    preferred = None
    for entry in payload.images:
        if not entry.url:
            continue
        image = ProductImage(url=entry.url, is_primary=bool(entry.is_primary))
        # Only the first image designated as primary keeps the flag
        if entry.is_primary and preferred is None:
            preferred = image
        product.images.append(image)
    ensure_single_primary(product.images, preferred)

    with atomic(db, "create product"):
        db.add(product)
    logger.info("Product %s created with %d images", product.id, len(payload.images))
    return get_product(db, product.id)


def update_product(
    db: Session, product_id: int, payload: ProductUpdate, storage: Optional[LocalFileStorage] = None
) -> Product:
    product = get_product(db, product_id)
    data = payload.model_dump(exclude_unset=True, exclude={"images", "deleted_image_ids"})

    for required in ("name", "price", "is_active", "stock_quantity"):
        if required in data and data[required] is None:
            raise ValidationFailed.field(required, f"The {required} field is required.")
    if "category_id" in data:
        _validate_category(db, data["category_id"])

    new_price = data.get("price", product.price)
    new_discount = data["discount_price"] if "discount_price" in data else product.discount_price
    _validate_discount(new_price, new_discount)

    existing = {image.id: image for image in product.images}
    deleted_ids = set(payload.deleted_image_ids)
    if deleted_ids - existing.keys():
        raise ValidationFailed.field("deleted_image_ids", "The selected image id is invalid.")

    entries = payload.images or []
    for entry in entries:
        if entry.id is not None and (entry.id not in existing or entry.id in deleted_ids):
            raise ValidationFailed.field("images", f"The selected image id {entry.id} is invalid.")

    added = [entry for entry in entries if entry.id is None]
    remaining = [image for image in product.images if image.id not in deleted_ids]
    if deleted_ids and not remaining and not added:
        raise ValidationFailed(LAST_IMAGE_MESSAGE, {"deleted_image_ids": [LAST_IMAGE_MESSAGE]})

    removed_urls = []
    with atomic(db, "update product"):
        for key, value in data.items():
            if key in ("price", "discount_price") and value is not None:
                value = to_money(value)
            setattr(product, key, value)

        for image in list(product.images):
            if image.id in deleted_ids:
                removed_urls.append(image.url)
                product.images.remove(image)

        preferred = None
        for entry in entries:
            if entry.id is not None:
                image = existing[entry.id]
                if entry.url:
                    image.url = entry.url
                if entry.is_primary is not None:
                    image.is_primary = entry.is_primary
            else:
                image = ProductImage(url=entry.url, is_primary=bool(entry.is_primary))
                product.images.append(image)
            if entry.is_primary and preferred is None:
                preferred = image
        ensure_single_primary(product.images, preferred)

    if storage is not None:
        for url in removed_urls:
            storage.delete(url)
    db.expire_all()
    return get_product(db, product_id)


def delete_product(db: Session, product_id: int, storage: Optional[LocalFileStorage] = None) -> None:
    product = get_product(db, product_id)
    urls = [image.url for image in product.images]
    if product.video_url:
        urls.append(product.video_url)

    with atomic(db, "delete product"):
        db.query(CartItem).filter(CartItem.product_id == product.id).delete(synchronize_session=False)
        # Order lines keep their snapshot price but lose the catalog link
        db.query(OrderItem).filter(OrderItem.product_id == product.id).update(
            {OrderItem.product_id: None}, synchronize_session=False
        )
        db.delete(product)

    if storage is not None:
        for url in urls:
            storage.delete(url)


def add_images(
    db: Session, product_id: int, uploads: Sequence[Upload],
    primary_index: Optional[int], storage: LocalFileStorage,
) -> Product:
    """Store uploaded files and attach them to the product.

    ``primary_index`` designates which upload becomes primary; without it the
    current primary stays (or the first image gets it if there was none).
    """
    product = get_product(db, product_id)
    if not uploads:
        raise ValidationFailed.field("images_files", "At least one image file is required.")
    for upload in uploads:
        _check_type(upload, IMAGE_TYPES, "images_files")
    if primary_index is not None and not 0 <= primary_index < len(uploads):
        raise ValidationFailed.field("primary_index", "The primary index is out of range.")

    urls = [storage.store(upload.stream, upload.filename, "products") for upload in uploads]
    try:
        with atomic(db, "attach product images"):
            new_images = [ProductImage(url=url, is_primary=False) for url in urls]
            product.images.extend(new_images)
            preferred = new_images[primary_index] if primary_index is not None else None
            ensure_single_primary(product.images, preferred)
    except Exception:
        for url in urls:
            storage.delete(url)
        raise
    db.expire_all()
    return get_product(db, product_id)


def replace_image(
    db: Session, product_id: int, image_id: int, upload: Upload, storage: LocalFileStorage
) -> Product:
    product = get_product(db, product_id)
    image = _get_image(product, image_id)
    _check_type(upload, IMAGE_TYPES, "image")

    old_url = image.url
    new_url = storage.store(upload.stream, upload.filename, "products")
    try:
        with atomic(db, "replace product image"):
            image.url = new_url
    except Exception:
        storage.delete(new_url)
        raise
    storage.delete(old_url)
    db.expire_all()
    return get_product(db, product_id)


def delete_image(db: Session, product_id: int, image_id: int, storage: LocalFileStorage) -> Product:
    product = get_product(db, product_id)
    image = _get_image(product, image_id)
    if len(product.images) == 1:
        raise ValidationFailed(LAST_IMAGE_MESSAGE)

    url = image.url
    with atomic(db, "delete product image"):
        product.images.remove(image)
        ensure_single_primary(product.images)
    storage.delete(url)
    db.expire_all()
    return get_product(db, product_id)


def set_video(db: Session, product_id: int, upload: Upload, storage: LocalFileStorage) -> Product:
    product = get_product(db, product_id)
    _check_type(upload, VIDEO_TYPES, "video")

    old_url = product.video_url
    new_url = storage.store(upload.stream, upload.filename, "product_videos")
    try:
        with atomic(db, "attach product video"):
            product.video_url = new_url
    except Exception:
        storage.delete(new_url)
        raise
    if old_url:
        storage.delete(old_url)
    db.expire_all()
    return get_product(db, product_id)
