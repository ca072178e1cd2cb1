"""Payment records and their effect on the owning order."""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload, joinedload

from database import atomic
from models.order import Order, OrderItem
from models.payment import Payment, PaymentStatus
from models.product import Product
from schemas.payment import PaymentCreate, PaymentStatusPatch, PaymentRefund
from services import lifecycle
from services.context import AuthContext
from services.orders import get_order
from utils.errors import NotFound, ValidationFailed
from utils.money import to_money, money_equal

logger = logging.getLogger(__name__)


def _payment_query(db: Session):
    return db.query(Payment).options(
        joinedload(Payment.order).selectinload(Order.items)
        .joinedload(OrderItem.product).selectinload(Product.images),
        joinedload(Payment.order).selectinload(Order.payments),
    )


def _reload(db: Session, payment_id: int) -> Payment:
    db.expire_all()
    return _payment_query(db).filter(Payment.id == payment_id).first()


def list_payments(
    db: Session, order_id: Optional[int] = None,
    status: Optional[PaymentStatus] = None, payment_provider: Optional[str] = None,
) -> List[Payment]:
    query = _payment_query(db)
    if order_id is not None:
        query = query.filter(Payment.order_id == order_id)
    if status is not None:
        query = query.filter(Payment.status == status)
    if payment_provider:
        query = query.filter(Payment.payment_provider == payment_provider)
    return query.order_by(Payment.created_at.desc(), Payment.id.desc()).all()


def get_payment(db: Session, payment_id: int) -> Payment:
    payment = _payment_query(db).filter(Payment.id == payment_id).first()
    if not payment:
        raise NotFound("Payment not found")
    return payment


def payments_for_order(db: Session, ctx: AuthContext, order_id: int) -> List[Payment]:
    order = get_order(db, ctx, order_id)
    return (
        db.query(Payment)
        .filter(Payment.order_id == order.id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .all()
    )


def create_payment(db: Session, payload: PaymentCreate) -> Payment:
    order = db.query(Order).filter(Order.id == payload.order_id).first()
    if not order:
        raise NotFound("Order not found")
    lifecycle.ensure_payment_acceptable(order)

    # Compared to the cent, never as floats
    if not money_equal(payload.amount, order.total_amount):
        raise ValidationFailed(
            "Payment amount does not match order total",
            {"amount": [f"The amount must equal the order total of {to_money(order.total_amount)}."]},
        )

    payment = Payment(
        order_id=order.id,
        status=PaymentStatus.PENDING,
        amount=to_money(payload.amount),
        transaction_id=payload.transaction_id,
        payment_provider=payload.payment_provider,
    )
    with atomic(db, "create payment"):
        db.add(payment)
    logger.info("Payment %s recorded for order %s (%s)", payment.id, order.id, payment.amount)
    return _reload(db, payment.id)


def update_payment(db: Session, payment_id: int, payload: PaymentStatusPatch) -> Payment:
    payment = get_payment(db, payment_id)
    with atomic(db, "update payment"):
        lifecycle.apply_payment_status(db, payment, payload.status)
        if "transaction_id" in payload.model_fields_set:
            payment.transaction_id = payload.transaction_id
    return _reload(db, payment_id)


def refund_payment(db: Session, payment_id: int, payload: Optional[PaymentRefund] = None) -> Payment:
    payment = get_payment(db, payment_id)
    with atomic(db, "refund payment"):
        lifecycle.apply_refund(db, payment)
        if payload is not None and "transaction_id" in payload.model_fields_set:
            payment.transaction_id = payload.transaction_id
    logger.info("Payment %s refunded, order %s cancelled", payment_id, payment.order_id)
    return _reload(db, payment_id)


def delete_payment(db: Session, payment_id: int) -> None:
    payment = get_payment(db, payment_id)
    lifecycle.ensure_payment_deletable(payment)
    with atomic(db, "delete payment"):
        db.delete(payment)
