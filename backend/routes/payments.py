# backend/routes/payments.py
from typing import List, Optional
from fastapi import APIRouter, Depends, Request, Query, Body
from sqlalchemy.orm import Session

from database import get_db
from models.payment import PaymentStatus
from schemas.common import ApiResponse
from schemas.payment import PaymentCreate, PaymentStatusPatch, PaymentRefund, PaymentResponse
from services import payments as payment_service
from services.context import AuthContext
from utils.audit import write_log
from utils.tokenJWT import admin_required

# Payment records are back-office only
router = APIRouter(prefix="/payments", tags=["Payments"])


def _out(payment) -> PaymentResponse:
    return PaymentResponse.model_validate(payment)


@router.get("", response_model=ApiResponse[List[PaymentResponse]])
def list_payments(
    order_id: Optional[int] = Query(None),
    status: Optional[PaymentStatus] = Query(None),
    payment_provider: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(admin_required),
):
    payments = payment_service.list_payments(db, order_id=order_id, status=status, payment_provider=payment_provider)
    return ApiResponse(data=[_out(p) for p in payments], message="Payments retrieved successfully")


@router.post("", response_model=ApiResponse[PaymentResponse], status_code=201)
def create_payment(
    payload: PaymentCreate,
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(admin_required),
):
    payment = payment_service.create_payment(db, payload)
    write_log(
        db, user_id=ctx.user_id, action="PAYMENT_CREATE", resource="payments", request=request,
        meta={"payment_id": payment.id, "order_id": payment.order_id, "amount": str(payment.amount)},
    )
    return ApiResponse(data=_out(payment), message="Payment created successfully")


@router.get("/{payment_id}", response_model=ApiResponse[PaymentResponse])
def get_payment(payment_id: int, db: Session = Depends(get_db), ctx: AuthContext = Depends(admin_required)):
    payment = payment_service.get_payment(db, payment_id)
    return ApiResponse(data=_out(payment), message="Payment retrieved successfully")


@router.put("/{payment_id}", response_model=ApiResponse[PaymentResponse])
def update_payment(
    payment_id: int,
    payload: PaymentStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(admin_required),
):
    payment = payment_service.update_payment(db, payment_id, payload)
    write_log(
        db, user_id=ctx.user_id, action="PAYMENT_UPDATE", resource="payments", request=request,
        meta={"payment_id": payment_id, "status": payload.status.value},
    )
    return ApiResponse(data=_out(payment), message="Payment updated successfully")


@router.delete("/{payment_id}", response_model=ApiResponse[None])
def delete_payment(
    payment_id: int,
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(admin_required),
):
    payment_service.delete_payment(db, payment_id)
    write_log(db, user_id=ctx.user_id, action="PAYMENT_DELETE", resource="payments", request=request,
              meta={"payment_id": payment_id})
    return ApiResponse(data=None, message="Payment deleted successfully")


# Refund a successful payment; the owning order is cancelled with it
@router.post("/{payment_id}/refund", response_model=ApiResponse[PaymentResponse])
def refund_payment(
    payment_id: int,
    request: Request,
    payload: Optional[PaymentRefund] = Body(None),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(admin_required),
):
    payment = payment_service.refund_payment(db, payment_id, payload)
    write_log(
        db, user_id=ctx.user_id, action="PAYMENT_REFUND", resource="payments", request=request,
        meta={"payment_id": payment_id, "order_id": payment.order_id, "amount": str(payment.amount)},
    )
    return ApiResponse(data=_out(payment), message="Payment refunded successfully")
