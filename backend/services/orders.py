"""Order lifecycle: placement, status changes, cancellation and line edits.

Every operation that writes more than one row runs inside ``database.atomic``
so the order, its lines and any cash-on-delivery payment change together or
not at all.
"""
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload, joinedload

from database import atomic
from models.cart import Cart, CartItem
from models.order import Order, OrderItem, OrderStatus
from models.product import Product
from models.users import User
from schemas.order import OrderCreatePayload
from services import lifecycle, notifications
from services.context import AuthContext
from utils.errors import NotFound, ValidationFailed
from utils.money import to_money, lines_total

logger = logging.getLogger(__name__)


def _order_query(db: Session):
    return db.query(Order).options(
        selectinload(Order.items).joinedload(OrderItem.product).selectinload(Product.images),
        selectinload(Order.payments),
    )


def _reload(db: Session, order_id: int) -> Order:
    db.expire_all()
    return _order_query(db).filter(Order.id == order_id).first()


def get_order(db: Session, ctx: AuthContext, order_id: int) -> Order:
    order = _order_query(db).filter(Order.id == order_id).first()
    # Someone else's order looks exactly like a missing one
    if not order or not ctx.owns(order.user_id):
        raise NotFound("Order not found")
    return order


def list_orders(
    db: Session, ctx: AuthContext,
    user_id: Optional[int] = None, status: Optional[OrderStatus] = None,
) -> List[Order]:
    query = _order_query(db)
    if not ctx.is_admin:
        query = query.filter(Order.user_id == ctx.user_id)
    elif user_id is not None:
        query = query.filter(Order.user_id == user_id)
    if status is not None:
        query = query.filter(Order.status == status)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def recalculate_total(db: Session, order: Order) -> Decimal:
    """Recompute total_amount from the lines currently stored, using their snapshot prices."""
    db.flush()
    items = db.query(OrderItem).filter(OrderItem.order_id == order.id).all()
    order.total_amount = lines_total(items)
    return order.total_amount


def create_order(db: Session, ctx: AuthContext, payload: OrderCreatePayload) -> Order:
    user_id = ctx.user_id
    if payload.user_id is not None and payload.user_id != ctx.user_id:
        if not ctx.is_admin:
            raise ValidationFailed.field("user_id", "Orders can only be placed for your own account.")
        if not db.query(User.id).filter(User.id == payload.user_id).first():
            raise ValidationFailed.field("user_id", "The selected user id is invalid.")
        user_id = payload.user_id

    # Resolve every product up front: a single missing one aborts the whole order
    product_ids = {line.product_id for line in payload.items}
    products = {p.id: p for p in db.query(Product).filter(Product.id.in_(product_ids)).all()}
    missing = sorted(product_ids - products.keys())
    if missing:
        raise NotFound(f"Product not found: {missing[0]}")

    cart = None
    if payload.from_cart_id is not None:
        cart = db.query(Cart).filter(Cart.id == payload.from_cart_id).first()
        if cart is not None and cart.user_id != user_id:
            cart = None

    contact = payload.model_dump(
        include={"email", "first_name", "last_name", "address", "city", "state", "zip_code", "phone"}
    )
    order = Order(
        user_id=user_id,
        status=OrderStatus.PENDING,
        payment_method=payload.payment_method,
        **contact,
    )
    for line in payload.items:
        order.items.append(OrderItem(
            product_id=line.product_id,
            variant_id=line.variant_id,
            quantity=line.quantity,
            price_at_purchase=to_money(products[line.product_id].price),
        ))
    order.total_amount = lines_total(order.items)

    with atomic(db, "create order"):
        db.add(order)
        if cart is not None:
            db.query(CartItem).filter(CartItem.cart_id == cart.id).delete(synchronize_session=False)
        if order.is_cod:
            lifecycle.new_cod_payment(order)
        db.flush()
        notifications.notify(
            db, notifications.ORDER_CREATED,
            title=f"New order #{order.id}",
            message=f"Order #{order.id} placed for {order.total_amount} ({order.payment_method.value})",
            data={"order_id": order.id, "user_id": user_id, "total": str(order.total_amount)},
        )

    logger.info("Order %s created for user %s, total %s", order.id, user_id, order.total_amount)
    return _reload(db, order.id)


def update_status(db: Session, ctx: AuthContext, order_id: int, target: OrderStatus) -> Order:
    order = get_order(db, ctx, order_id)
    lifecycle.check_order_transition(order, target)
    old_status = order.status
    with atomic(db, "update order status"):
        lifecycle.apply_order_status(db, order, target)
    logger.info("Order %s status %s -> %s", order_id, old_status.value, target.value)
    return _reload(db, order_id)


def cancel_order(db: Session, ctx: AuthContext, order_id: int) -> Order:
    order = get_order(db, ctx, order_id)
    lifecycle.ensure_cancellable(order)
    with atomic(db, "cancel order"):
        lifecycle.apply_order_status(db, order, OrderStatus.CANCELLED)
    return _reload(db, order_id)


def delete_order(db: Session, ctx: AuthContext, order_id: int) -> None:
    order = get_order(db, ctx, order_id)
    lifecycle.ensure_order_deletable(order)
    with atomic(db, "delete order"):
        db.delete(order)


def _pending_order_item(db: Session, ctx: AuthContext, order_id: int, item_id: int):
    order = get_order(db, ctx, order_id)
    lifecycle.ensure_items_editable(order)
    item = next((it for it in order.items if it.id == item_id), None)
    if item is None:
        raise NotFound("Order item not found")
    return order, item


def update_item(db: Session, ctx: AuthContext, order_id: int, item_id: int, quantity: int) -> Order:
    order, item = _pending_order_item(db, ctx, order_id, item_id)
    with atomic(db, "update order item"):
        item.quantity = quantity
        recalculate_total(db, order)
    return _reload(db, order_id)


def remove_item(db: Session, ctx: AuthContext, order_id: int, item_id: int) -> Order:
    order, item = _pending_order_item(db, ctx, order_id, item_id)
    with atomic(db, "remove order item"):
        order.items.remove(item)
        # May drop to 0.00 once the last line is gone
        recalculate_total(db, order)
    return _reload(db, order_id)
