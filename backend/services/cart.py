# backend/services/cart.py
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload, joinedload

from database import atomic
from models.cart import Cart, CartItem
from models.product import Product
from models.users import User
from schemas.cart import CartAddItem
from services.context import AuthContext
from utils.errors import NotFound

logger = logging.getLogger(__name__)


def _cart_query(db: Session):
    # Carts always come back hydrated: items -> product -> images
    return db.query(Cart).options(
        selectinload(Cart.items).joinedload(CartItem.product).selectinload(Product.images)
    )


def _load(db: Session, cart_id: int) -> Cart:
    db.expire_all()
    return _cart_query(db).filter(Cart.id == cart_id).first()


def get_or_create_cart(db: Session, user_id: int) -> Cart:
    cart = _cart_query(db).filter(Cart.user_id == user_id).first()
    if cart:
        return cart
    if not db.query(User.id).filter(User.id == user_id).first():
        raise NotFound("User not found")
    try:
        db.add(Cart(user_id=user_id))
        db.commit()
    except IntegrityError:
        # Created concurrently by another request for the same user
        db.rollback()
        cart = _cart_query(db).filter(Cart.user_id == user_id).first()
        if cart is None:
            raise
        return cart
    return _cart_query(db).filter(Cart.user_id == user_id).first()


def _owned_cart(db: Session, ctx: AuthContext, cart_id: int) -> Cart:
    cart = db.query(Cart).filter(Cart.id == cart_id).first()
    if not cart or not ctx.owns(cart.user_id):
        raise NotFound("Cart not found")
    return cart


def _owned_item(db: Session, ctx: AuthContext, item_id: int) -> CartItem:
    item = db.query(CartItem).filter(CartItem.id == item_id).first()
    if not item or not ctx.owns(item.cart.user_id):
        raise NotFound("Cart item not found")
    return item


def add_item(db: Session, user_id: int, payload: CartAddItem) -> Cart:
    """Add a line to the user's cart, merging repeats of the same product/variant."""
    if not db.query(Product.id).filter(Product.id == payload.product_id).first():
        raise NotFound("Product not found")

    cart = get_or_create_cart(db, user_id)
    with atomic(db, "add item to cart"):
        variant_filter = (
            CartItem.variant_id.is_(None) if payload.variant_id is None
            else CartItem.variant_id == payload.variant_id
        )
        item = db.query(CartItem).filter(
            CartItem.cart_id == cart.id,
            CartItem.product_id == payload.product_id,
            variant_filter,
        ).first()
        if item:
            item.quantity += payload.quantity
        else:
            db.add(CartItem(
                cart_id=cart.id,
                product_id=payload.product_id,
                variant_id=payload.variant_id,
                quantity=payload.quantity,
            ))
    return _load(db, cart.id)


def update_item(db: Session, ctx: AuthContext, item_id: int, quantity: int) -> Cart:
    item = _owned_item(db, ctx, item_id)
    cart_id = item.cart_id
    with atomic(db, "update cart item"):
        item.quantity = quantity
    return _load(db, cart_id)


def remove_item(db: Session, ctx: AuthContext, item_id: int) -> Cart:
    item = _owned_item(db, ctx, item_id)
    cart_id = item.cart_id
    with atomic(db, "remove cart item"):
        db.delete(item)
    return _load(db, cart_id)


def clear_cart(db: Session, ctx: AuthContext, cart_id: int) -> None:
    cart = _owned_cart(db, ctx, cart_id)
    with atomic(db, "clear cart"):
        db.query(CartItem).filter(CartItem.cart_id == cart.id).delete(synchronize_session=False)


def delete_cart(db: Session, ctx: AuthContext, cart_id: int) -> None:
    cart = _owned_cart(db, ctx, cart_id)
    with atomic(db, "delete cart"):
        db.delete(cart)
