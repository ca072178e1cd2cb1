# backend/routes/cart.py
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from database import get_db
from schemas.cart import CartAddItem, CartUpdateItem, CartOut
from schemas.common import ApiResponse
from services import cart as cart_service
from services.context import AuthContext
from utils.audit import write_log
from utils.tokenJWT import get_auth_context

router = APIRouter(prefix="/cart", tags=["Cart"])


def _target_user(ctx: AuthContext, user_id: Optional[int]) -> int:
    # Admins may work on another user's cart; everyone else gets their own
    if ctx.is_admin and user_id is not None:
        return user_id
    return ctx.user_id


@router.get("", response_model=ApiResponse[CartOut])
def get_cart(
    user_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    cart = cart_service.get_or_create_cart(db, _target_user(ctx, user_id))
    return ApiResponse(data=CartOut.model_validate(cart), message="Cart retrieved successfully")


@router.post("/items", response_model=ApiResponse[CartOut], status_code=201)
def add_item(
    payload: CartAddItem,
    request: Request,
    user_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    cart = cart_service.add_item(db, _target_user(ctx, user_id), payload)
    write_log(db, user_id=ctx.user_id, action="CART_ADD", resource="cart", request=request,
              meta={"cart_id": cart.id, "product_id": payload.product_id, "quantity": payload.quantity})
    return ApiResponse(data=CartOut.model_validate(cart), message="Item added to cart successfully")


@router.put("/items/{item_id}", response_model=ApiResponse[CartOut])
def update_item(
    item_id: int,
    payload: CartUpdateItem,
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    cart = cart_service.update_item(db, ctx, item_id, payload.quantity)
    write_log(db, user_id=ctx.user_id, action="CART_ITEM_UPDATE", resource="cart", request=request,
              meta={"cart_id": cart.id, "item_id": item_id, "quantity": payload.quantity})
    return ApiResponse(data=CartOut.model_validate(cart), message="Cart item updated successfully")


@router.delete("/items/{item_id}", response_model=ApiResponse[CartOut])
def remove_item(
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    cart = cart_service.remove_item(db, ctx, item_id)
    write_log(db, user_id=ctx.user_id, action="CART_ITEM_DELETE", resource="cart", request=request,
              meta={"cart_id": cart.id, "item_id": item_id})
    return ApiResponse(data=CartOut.model_validate(cart), message="Cart item removed successfully")


@router.delete("/{cart_id}/clear", response_model=ApiResponse[None])
def clear_cart(
    cart_id: int,
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    cart_service.clear_cart(db, ctx, cart_id)
    write_log(db, user_id=ctx.user_id, action="CART_CLEAR", resource="cart", request=request,
              meta={"cart_id": cart_id})
    return ApiResponse(data=None, message="Cart cleared successfully")


@router.delete("/{cart_id}", response_model=ApiResponse[None])
def delete_cart(
    cart_id: int,
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    cart_service.delete_cart(db, ctx, cart_id)
    write_log(db, user_id=ctx.user_id, action="CART_DELETE", resource="cart", request=request,
              meta={"cart_id": cart_id})
    return ApiResponse(data=None, message="Cart deleted successfully")
