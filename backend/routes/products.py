# backend/routes/products.py
from decimal import Decimal
from typing import Optional, List
from fastapi import (
    APIRouter, Depends, Query, Request,
    UploadFile, File, Form
)
from sqlalchemy.orm import Session

from database import get_db
from models.product import Product
from schemas.common import ApiResponse
import schemas.product as product_schemas
from services import products as product_service
from services.context import AuthContext
from services.products import ProductFilters, Upload
from utils.audit import write_log
from utils.storage import LocalFileStorage, get_storage
from utils.tokenJWT import admin_required

router = APIRouter(tags=["Products"])


# ---- HELPERS ----
def _product_to_out(
    product: Product, stats: product_service.ReviewStats, primary_first: bool = False
) -> product_schemas.ProductOut:
    out = product_schemas.ProductOut.model_validate(product)
    count, average = stats.get(product.id, (0, None))
    update = {"reviews_count": count, "average_rating": average}
    if primary_first:
        update["images"] = sorted(out.images, key=lambda image: not image.is_primary)
    return out.model_copy(update=update)


def _products_out(db: Session, products: List[Product], primary_first: bool = False):
    stats = product_service.review_stats(db, [p.id for p in products])
    return [_product_to_out(p, stats, primary_first) for p in products]


def _single_out(db: Session, product: Product) -> product_schemas.ProductOut:
    return _product_to_out(product, product_service.review_stats(db, [product.id]))


def _upload(file: UploadFile) -> Upload:
    return Upload(stream=file.file, filename=file.filename or "", content_type=file.content_type)


def _filters(
    q: Optional[str] = Query(None, description="Substring of name or description"),
    category_id: Optional[int] = Query(None),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    is_active: Optional[bool] = Query(None),
) -> ProductFilters:
    return ProductFilters(q=q, category_id=category_id, min_price=min_price, max_price=max_price, is_active=is_active)


# =========================
# STOREFRONT
# =========================
@router.get("/featured-products", response_model=ApiResponse[List[product_schemas.ProductOut]])
def featured_products(db: Session = Depends(get_db)):
    products = product_service.featured_products(db)
    return ApiResponse(data=_products_out(db, products, primary_first=True),
                       message="Featured products retrieved successfully")


@router.get("/latest-products", response_model=ApiResponse[List[product_schemas.ProductOut]])
def latest_products(db: Session = Depends(get_db)):
    products = product_service.latest_products(db)
    return ApiResponse(data=_products_out(db, products), message="Latest products retrieved successfully")


# =========================
# PRODUCT LIST
# =========================
@router.get("/products", response_model=ApiResponse[product_schemas.ProductListPage])
def list_products(
    filters: ProductFilters = Depends(_filters),
    page: int = Query(1, ge=1),
    page_size: int = Query(15, ge=1, le=100),
    db: Session = Depends(get_db),
):
    items, total = product_service.list_products(db, filters, page, page_size)
    data = product_schemas.ProductListPage(
        items=_products_out(db, items), total=total, page=page, page_size=page_size
    )
    return ApiResponse(data=data, message="Products retrieved successfully")


# Declared before /products/{product_id} so "search" is not read as an id
@router.get("/products/search", response_model=ApiResponse[List[product_schemas.ProductOut]])
def search_products(filters: ProductFilters = Depends(_filters), db: Session = Depends(get_db)):
    products = product_service.search_products(db, filters)
    return ApiResponse(data=_products_out(db, products), message="Products retrieved successfully")


@router.get("/products/{product_id}", response_model=ApiResponse[product_schemas.ProductOut])
def get_product(product_id: int, db: Session = Depends(get_db)):
    product = product_service.get_product(db, product_id)
    return ApiResponse(data=_single_out(db, product), message="Product retrieved successfully")


# =========================
# MANAGEMENT (admin)
# =========================
@router.post("/products", response_model=ApiResponse[product_schemas.ProductOut], status_code=201)
def create_product(
    payload: product_schemas.ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(admin_required),
):
    product = product_service.create_product(db, payload)
    write_log(db, user_id=ctx.user_id, action="PRODUCT_CREATE", resource="products", request=request,
              meta={"product_id": product.id, "name": product.name})
    return ApiResponse(data=_single_out(db, product), message="Product created successfully")


@router.put("/products/{product_id}", response_model=ApiResponse[product_schemas.ProductOut])
def update_product(
    product_id: int,
    payload: product_schemas.ProductUpdate,
    request: Request,
    db: Session = Depends(get_db),
    storage: LocalFileStorage = Depends(get_storage),
    ctx: AuthContext = Depends(admin_required),
):
    product = product_service.update_product(db, product_id, payload, storage)
    write_log(
        db, user_id=ctx.user_id, action="PRODUCT_UPDATE", resource="products", request=request,
        meta={"product_id": product_id, "fields": sorted(payload.model_fields_set)},
    )
    return ApiResponse(data=_single_out(db, product), message="Product updated successfully")


@router.delete("/products/{product_id}", response_model=ApiResponse[None])
def delete_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    storage: LocalFileStorage = Depends(get_storage),
    ctx: AuthContext = Depends(admin_required),
):
    product_service.delete_product(db, product_id, storage)
    write_log(db, user_id=ctx.user_id, action="PRODUCT_DELETE", resource="products", request=request,
              meta={"product_id": product_id})
    return ApiResponse(data=None, message="Product deleted successfully")


# =========================
# MEDIA
# =========================
@router.post("/products/{product_id}/images", response_model=ApiResponse[product_schemas.ProductOut], status_code=201)
def upload_product_images(
    product_id: int,
    request: Request,
    images_files: List[UploadFile] = File(...),
    primary_index: Optional[int] = Form(None),
    db: Session = Depends(get_db),
    storage: LocalFileStorage = Depends(get_storage),
    ctx: AuthContext = Depends(admin_required),
):
    product = product_service.add_images(
        db, product_id, [_upload(f) for f in images_files], primary_index, storage
    )
    write_log(db, user_id=ctx.user_id, action="PRODUCT_IMAGES_ADD", resource="products", request=request,
              meta={"product_id": product_id, "count": len(images_files)})
    return ApiResponse(data=_single_out(db, product), message="Images uploaded successfully")


@router.put("/products/{product_id}/images/{image_id}", response_model=ApiResponse[product_schemas.ProductOut])
def replace_product_image(
    product_id: int,
    image_id: int,
    request: Request,
    image: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage: LocalFileStorage = Depends(get_storage),
    ctx: AuthContext = Depends(admin_required),
):
    product = product_service.replace_image(db, product_id, image_id, _upload(image), storage)
    write_log(db, user_id=ctx.user_id, action="PRODUCT_IMAGE_REPLACE", resource="products", request=request,
              meta={"product_id": product_id, "image_id": image_id})
    return ApiResponse(data=_single_out(db, product), message="Image replaced successfully")


@router.delete("/products/{product_id}/images/{image_id}", response_model=ApiResponse[product_schemas.ProductOut])
def delete_product_image(
    product_id: int,
    image_id: int,
    request: Request,
    db: Session = Depends(get_db),
    storage: LocalFileStorage = Depends(get_storage),
    ctx: AuthContext = Depends(admin_required),
):
    product = product_service.delete_image(db, product_id, image_id, storage)
    write_log(db, user_id=ctx.user_id, action="PRODUCT_IMAGE_DELETE", resource="products", request=request,
              meta={"product_id": product_id, "image_id": image_id})
    return ApiResponse(data=_single_out(db, product), message="Image deleted successfully")


@router.post("/products/{product_id}/video", response_model=ApiResponse[product_schemas.ProductOut])
def upload_product_video(
    product_id: int,
    request: Request,
    video: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage: LocalFileStorage = Depends(get_storage),
    ctx: AuthContext = Depends(admin_required),
):
    product = product_service.set_video(db, product_id, _upload(video), storage)
    write_log(db, user_id=ctx.user_id, action="PRODUCT_VIDEO_SET", resource="products", request=request,
              meta={"product_id": product_id})
    return ApiResponse(data=_single_out(db, product), message="Video uploaded successfully")
