"""Order and payment state machine.

Order endpoints and payment endpoints both move the pair
``(Order.status, Payment.status)``. Every rule coupling the two lives here so
that whichever path a request travels, the pair stays consistent. In
particular an order is never left ``cancelled`` while one of its payments is
``success``: cancelling requires a refund first, and a payment cannot become
``success`` on a cancelled order.

Functions here only validate and mutate ORM objects; committing is the
caller's job (inside ``database.atomic``).
"""
import logging
from typing import Dict, FrozenSet, Optional

from sqlalchemy.orm import Session

from models.order import Order, OrderStatus
from models.payment import Payment, PaymentStatus
from utils.errors import IllegalTransition

logger = logging.getLogger(__name__)

COD_PROVIDER = "cod"

# Forward moves from each status. Skipping ahead (pending -> delivered) is allowed.
ORDER_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({
        OrderStatus.PAID, OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED,
    }),
    OrderStatus.PAID: frozenset({OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

NOT_CANCELLABLE = frozenset({OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED})
DELETABLE_ORDER_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CANCELLED})
DELETABLE_PAYMENT_STATUSES = frozenset({PaymentStatus.PENDING, PaymentStatus.FAILED})


# ---- order side ----

def check_order_transition(order: Order, target: OrderStatus) -> None:
    """Reject a generic status update the state machine does not allow.

    Re-applying the current status is accepted as a no-op transition.
    """
    if target == order.status:
        return
    if target not in ORDER_TRANSITIONS[order.status]:
        raise IllegalTransition(
            f"Cannot change order status from {order.status.value} to {target.value}"
        )
    if target == OrderStatus.CANCELLED:
        ensure_no_settled_payment(order)


def ensure_cancellable(order: Order) -> None:
    if order.status in NOT_CANCELLABLE:
        raise IllegalTransition(f"Cannot cancel order with status: {order.status.value}")
    ensure_no_settled_payment(order)


def ensure_no_settled_payment(order: Order) -> None:
    if any(p.status == PaymentStatus.SUCCESS for p in order.payments):
        raise IllegalTransition(
            "Cannot cancel an order with a successful payment; refund the payment instead"
        )


def ensure_order_deletable(order: Order) -> None:
    if order.status not in DELETABLE_ORDER_STATUSES:
        raise IllegalTransition(f"Cannot delete order with status: {order.status.value}")


def ensure_items_editable(order: Order) -> None:
    if order.status != OrderStatus.PENDING:
        raise IllegalTransition("Only pending orders can be modified")


def apply_order_status(db: Session, order: Order, target: OrderStatus) -> None:
    """Move the order to ``target`` and keep a cash-on-delivery payment in step."""
    order.status = target
    if order.is_cod:
        sync_cod_payment(db, order, target)


def sync_cod_payment(db: Session, order: Order, target: OrderStatus) -> None:
    """Infer the cod payment state from order progress.

    A cod order always ends up with a payment row: it is created on demand,
    ``success`` once the goods are delivered, ``failed`` once the order is
    cancelled. At most one payment per order is ever ``success``.
    Refunded payments are left untouched.
    """
    payments = list(order.payments)
    if not payments:
        if target == OrderStatus.DELIVERED:
            status = PaymentStatus.SUCCESS
        elif target == OrderStatus.CANCELLED:
            status = PaymentStatus.FAILED
        else:
            status = PaymentStatus.PENDING
        payment = new_cod_payment(order, status)
        db.add(payment)
        logger.info("Created %s cod payment for order %s", status.value, order.id)
        return

    if target == OrderStatus.DELIVERED:
        # Collected once: only the first open payment settles
        if settled_payment(order) is None:
            collectable = next(
                (p for p in payments if p.status in (PaymentStatus.PENDING, PaymentStatus.FAILED)), None
            )
            if collectable is not None:
                collectable.status = PaymentStatus.SUCCESS
    elif target == OrderStatus.CANCELLED:
        for payment in payments:
            if payment.status == PaymentStatus.PENDING:
                payment.status = PaymentStatus.FAILED


def new_cod_payment(order: Order, status: PaymentStatus = PaymentStatus.PENDING) -> Payment:
    payment = Payment(
        status=status,
        amount=order.total_amount,
        transaction_id=None,
        payment_provider=COD_PROVIDER,
    )
    order.payments.append(payment)
    return payment


# ---- payment side ----

def settled_payment(order: Order, exclude: Optional[Payment] = None) -> Optional[Payment]:
    return next(
        (p for p in order.payments if p is not exclude and p.status == PaymentStatus.SUCCESS), None
    )


def ensure_payment_acceptable(order: Order) -> None:
    """A new payment may only be recorded against an open, unsettled order."""
    if order.status == OrderStatus.CANCELLED:
        raise IllegalTransition("Cannot record a payment for a cancelled order")
    if settled_payment(order) is not None:
        raise IllegalTransition("Order already has a successful payment")


def ensure_payment_deletable(payment: Payment) -> None:
    if payment.status not in DELETABLE_PAYMENT_STATUSES:
        raise IllegalTransition(f"Cannot delete payment with status: {payment.status.value}")


def apply_payment_status(db: Session, payment: Payment, target: PaymentStatus) -> None:
    """Generic payment status update.

    ``success`` promotes a pending order to ``paid`` (never the other way);
    ``refunded`` is routed through the refund rule.
    """
    if target == PaymentStatus.REFUNDED:
        apply_refund(db, payment)
        return
    if payment.status == PaymentStatus.REFUNDED:
        raise IllegalTransition("Refunded payments cannot change status")

    order = payment.order
    if target == PaymentStatus.SUCCESS and order.status == OrderStatus.CANCELLED:
        raise IllegalTransition("Cannot mark a payment as successful on a cancelled order")

    if target == PaymentStatus.SUCCESS and settled_payment(order, exclude=payment) is not None:
        raise IllegalTransition("Order already has a successful payment")

    payment.status = target
    if target == PaymentStatus.SUCCESS and order.status == OrderStatus.PENDING:
        order.status = OrderStatus.PAID


def apply_refund(db: Session, payment: Payment) -> None:
    """Refund a successful payment and cancel the owning order."""
    if payment.status != PaymentStatus.SUCCESS:
        raise IllegalTransition("Can only refund successful payments")
    order = payment.order
    # Cancelling the order would strand a second settled payment
    if settled_payment(order, exclude=payment) is not None:
        raise IllegalTransition("Order has more than one successful payment")

    payment.status = PaymentStatus.REFUNDED
    if order.status != OrderStatus.CANCELLED:
        # Skip the transition table: a refund cancels even delivered orders
        apply_order_status(db, order, OrderStatus.CANCELLED)
