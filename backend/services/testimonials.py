# backend/services/testimonials.py
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from database import atomic
from models.testimonial import Testimonial, TestimonialStatus
from schemas.testimonial import TestimonialCreate
from services import notifications
from services.context import AuthContext
from utils.errors import NotFound

PUBLIC_LIMIT = 12


def _query(db: Session):
    return db.query(Testimonial).options(joinedload(Testimonial.user)).order_by(
        Testimonial.created_at.desc(), Testimonial.id.desc()
    )


def list_public(db: Session) -> List[Testimonial]:
    return _query(db).filter(Testimonial.status == TestimonialStatus.APPROVED).limit(PUBLIC_LIMIT).all()


def list_all(db: Session, status: Optional[TestimonialStatus] = None) -> List[Testimonial]:
    query = _query(db)
    if status is not None:
        query = query.filter(Testimonial.status == status)
    return query.all()


def create_testimonial(db: Session, ctx: AuthContext, payload: TestimonialCreate) -> Testimonial:
    testimonial = Testimonial(
        user_id=ctx.user_id,
        rating=payload.rating,
        message=payload.message,
        status=TestimonialStatus.PENDING,
    )
    with atomic(db, "create testimonial"):
        db.add(testimonial)
        db.flush()
        notifications.notify(
            db, notifications.TESTIMONIAL_SUBMITTED,
            title="New testimonial awaiting moderation",
            message=f"{testimonial.rating}-star testimonial submitted",
            data={"testimonial_id": testimonial.id, "user_id": ctx.user_id},
        )
    db.refresh(testimonial)
    return testimonial


def set_status(db: Session, testimonial_id: int, status: TestimonialStatus) -> Testimonial:
    testimonial = db.query(Testimonial).filter(Testimonial.id == testimonial_id).first()
    if not testimonial:
        raise NotFound("Testimonial not found")
    with atomic(db, f"mark testimonial as {status.value}"):
        testimonial.status = status
    db.refresh(testimonial)
    return testimonial
