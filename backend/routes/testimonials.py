# backend/routes/testimonials.py
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from database import get_db
from models.testimonial import TestimonialStatus
from schemas.common import ApiResponse
from schemas.testimonial import TestimonialCreate, TestimonialOut
from services import testimonials as testimonial_service
from services.context import AuthContext
from utils.audit import write_log
from utils.tokenJWT import admin_required, get_auth_context

router = APIRouter(tags=["Testimonials"])


# ---- storefront ----

@router.get("/testimonials", response_model=ApiResponse[List[TestimonialOut]])
def list_testimonials(db: Session = Depends(get_db)):
    items = testimonial_service.list_public(db)
    return ApiResponse(data=[TestimonialOut.model_validate(t) for t in items],
                       message="Testimonials retrieved successfully")


@router.post("/testimonials", response_model=ApiResponse[TestimonialOut], status_code=201)
def create_testimonial(
    payload: TestimonialCreate,
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    testimonial = testimonial_service.create_testimonial(db, ctx, payload)
    write_log(db, user_id=ctx.user_id, action="TESTIMONIAL_CREATE", resource="testimonials", request=request,
              meta={"testimonial_id": testimonial.id, "rating": testimonial.rating})
    return ApiResponse(data=TestimonialOut.model_validate(testimonial),
                       message="Thank you! Your testimonial will appear once approved")


# ---- moderation ----

@router.get("/admin/testimonials", response_model=ApiResponse[List[TestimonialOut]])
def list_all_testimonials(
    status: Optional[TestimonialStatus] = Query(None),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(admin_required),
):
    items = testimonial_service.list_all(db, status)
    return ApiResponse(data=[TestimonialOut.model_validate(t) for t in items],
                       message="Testimonials retrieved successfully")


def _moderate(db: Session, ctx: AuthContext, request: Request, testimonial_id: int, status: TestimonialStatus):
    testimonial = testimonial_service.set_status(db, testimonial_id, status)
    write_log(db, user_id=ctx.user_id, action=f"TESTIMONIAL_{status.name}", resource="testimonials",
              request=request, meta={"testimonial_id": testimonial_id})
    return ApiResponse(data=TestimonialOut.model_validate(testimonial), message=f"Testimonial {status.value}")


@router.patch("/admin/testimonials/{testimonial_id}/approve", response_model=ApiResponse[TestimonialOut])
def approve_testimonial(
    testimonial_id: int,
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(admin_required),
):
    return _moderate(db, ctx, request, testimonial_id, TestimonialStatus.APPROVED)


@router.patch("/admin/testimonials/{testimonial_id}/reject", response_model=ApiResponse[TestimonialOut])
def reject_testimonial(
    testimonial_id: int,
    request: Request,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(admin_required),
):
    return _moderate(db, ctx, request, testimonial_id, TestimonialStatus.REJECTED)
