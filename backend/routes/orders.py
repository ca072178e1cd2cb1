# backend/routes/orders.py
from typing import List, Optional
from fastapi import APIRouter, Depends, Request, Query
from sqlalchemy.orm import Session

from database import get_db
from models.order import OrderStatus
from schemas.common import ApiResponse
from schemas.order import OrderResponse, OrderCreatePayload, OrderStatusPatch, OrderItemQuantityPatch
from schemas.order import OrderPaymentOut
from services import orders as order_service
from services import payments as payment_service
from services.context import AuthContext
from utils.audit import write_log
from utils.tokenJWT import get_auth_context, admin_required

router = APIRouter(prefix="/orders", tags=["Orders"])


def _out(order) -> OrderResponse:
    return OrderResponse.model_validate(order)


# List orders; customers only ever see their own
@router.get("", response_model=ApiResponse[List[OrderResponse]])
def list_orders(
    user_id: Optional[int] = Query(None),
    status: Optional[OrderStatus] = Query(None),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    orders = order_service.list_orders(db, ctx, user_id=user_id, status=status)
    return ApiResponse(data=[_out(o) for o in orders], message="Orders retrieved successfully")


# Place an order; cod orders get a pending payment in the same transaction
@router.post("", response_model=ApiResponse[OrderResponse], status_code=201)
def create_order(
    payload: OrderCreatePayload,
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    order = order_service.create_order(db, ctx, payload)
    write_log(
        db, user_id=ctx.user_id, action="ORDER_CREATE", resource="orders", request=request,
        meta={"order_id": order.id, "total": str(order.total_amount), "payment_method": order.payment_method.value},
    )
    return ApiResponse(data=_out(order), message="Order created successfully")


@router.get("/{order_id}", response_model=ApiResponse[OrderResponse])
def get_order(order_id: int, db: Session = Depends(get_db), ctx: AuthContext = Depends(get_auth_context)):
    order = order_service.get_order(db, ctx, order_id)
    return ApiResponse(data=_out(order), message="Order retrieved successfully")


# Generic status update (admin)
@router.put("/{order_id}", response_model=ApiResponse[OrderResponse])
def update_order_status(
    order_id: int,
    payload: OrderStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(admin_required),
):
    order = order_service.update_status(db, ctx, order_id, payload.status)
    write_log(
        db, user_id=ctx.user_id, action="ORDER_STATUS", resource="orders", request=request,
        meta={"order_id": order_id, "status": payload.status.value},
    )
    return ApiResponse(data=_out(order), message="Order status updated successfully")


@router.post("/{order_id}/cancel", response_model=ApiResponse[OrderResponse])
def cancel_order(
    order_id: int,
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    order = order_service.cancel_order(db, ctx, order_id)
    write_log(db, user_id=ctx.user_id, action="ORDER_CANCEL", resource="orders", request=request,
              meta={"order_id": order_id})
    return ApiResponse(data=_out(order), message="Order cancelled successfully")


@router.delete("/{order_id}", response_model=ApiResponse[None])
def delete_order(
    order_id: int,
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    order_service.delete_order(db, ctx, order_id)
    write_log(db, user_id=ctx.user_id, action="ORDER_DELETE", resource="orders", request=request,
              meta={"order_id": order_id})
    return ApiResponse(data=None, message="Order deleted successfully")


# ---- line items (pending orders only) ----

@router.put("/{order_id}/items/{item_id}", response_model=ApiResponse[OrderResponse])
def update_order_item(
    order_id: int,
    item_id: int,
    payload: OrderItemQuantityPatch,
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    order = order_service.update_item(db, ctx, order_id, item_id, payload.quantity)
    write_log(
        db, user_id=ctx.user_id, action="ORDER_ITEM_UPDATE", resource="orders", request=request,
        meta={"order_id": order_id, "item_id": item_id, "quantity": payload.quantity,
              "total": str(order.total_amount)},
    )
    return ApiResponse(data=_out(order), message="Order item updated successfully")


@router.delete("/{order_id}/items/{item_id}", response_model=ApiResponse[OrderResponse])
def remove_order_item(
    order_id: int,
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    order = order_service.remove_item(db, ctx, order_id, item_id)
    write_log(
        db, user_id=ctx.user_id, action="ORDER_ITEM_DELETE", resource="orders", request=request,
        meta={"order_id": order_id, "item_id": item_id, "total": str(order.total_amount)},
    )
    return ApiResponse(data=_out(order), message="Order item removed successfully")


@router.get("/{order_id}/payments", response_model=ApiResponse[List[OrderPaymentOut]])
def list_order_payments(order_id: int, db: Session = Depends(get_db), ctx: AuthContext = Depends(get_auth_context)):
    payments = payment_service.payments_for_order(db, ctx, order_id)
    return ApiResponse(
        data=[OrderPaymentOut.model_validate(p) for p in payments],
        message="Order payments retrieved successfully",
    )
