"""Admin notification inbox.

``notify`` only stages the row on the session so the event and the thing it
reports on are committed together by the caller's ``atomic`` block.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from database import atomic
from models.notification import AdminNotification
from utils.errors import NotFound

logger = logging.getLogger(__name__)

ORDER_CREATED = "order_created"
CONTACT_MESSAGE = "contact_message"
TESTIMONIAL_SUBMITTED = "testimonial_submitted"


def notify(db: Session, type: str, title: str, message: str, data: Optional[Dict[str, Any]] = None) -> AdminNotification:
    notification = AdminNotification(type=type, title=title, message=message, data=data, is_read=False)
    db.add(notification)
    logger.info("Admin notification staged: %s", type)
    return notification


def list_notifications(
    db: Session, page: int, page_size: int, unread_only: bool = False,
) -> Tuple[List[AdminNotification], int, int]:
    query = db.query(AdminNotification)
    if unread_only:
        query = query.filter(AdminNotification.is_read.is_(False))
    total = query.count()
    unread = db.query(AdminNotification).filter(AdminNotification.is_read.is_(False)).count()
    items = (
        query.order_by(AdminNotification.created_at.desc(), AdminNotification.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return items, total, unread


def mark_read(db: Session, notification_id: int) -> AdminNotification:
    notification = db.query(AdminNotification).filter(AdminNotification.id == notification_id).first()
    if not notification:
        raise NotFound("Notification not found")
    with atomic(db, "mark notification as read"):
        notification.is_read = True
    db.refresh(notification)
    return notification


def mark_all_read(db: Session) -> int:
    with atomic(db, "mark notifications as read"):
        count = (
            db.query(AdminNotification)
            .filter(AdminNotification.is_read.is_(False))
            .update({AdminNotification.is_read: True}, synchronize_session=False)
        )
    return count
