# backend/routes/notifications.py
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from database import get_db
from schemas.common import ApiResponse
from schemas.notification import NotificationOut, NotificationPage
from services import notifications as notification_service
from services.context import AuthContext
from utils.audit import write_log
from utils.tokenJWT import admin_required

router = APIRouter(prefix="/admin/notifications", tags=["Notifications"])


@router.get("", response_model=ApiResponse[NotificationPage])
def list_notifications(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    unread_only: bool = Query(False),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(admin_required),
):
    items, total, unread = notification_service.list_notifications(db, page, page_size, unread_only)
    data = NotificationPage(
        items=[NotificationOut.model_validate(n) for n in items],
        total=total, page=page, page_size=page_size, unread_count=unread,
    )
    return ApiResponse(data=data, message="Notifications retrieved successfully")


@router.post("/read-all", response_model=ApiResponse[None])
def mark_all_read(request: Request, db: Session = Depends(get_db), ctx: AuthContext = Depends(admin_required)):
    count = notification_service.mark_all_read(db)
    write_log(db, user_id=ctx.user_id, action="NOTIFICATION_READ_ALL", resource="notifications", request=request,
              meta={"count": count})
    return ApiResponse(data=None, message="All notifications marked as read")


@router.patch("/{notification_id}/read", response_model=ApiResponse[NotificationOut])
def mark_read(notification_id: int, db: Session = Depends(get_db), ctx: AuthContext = Depends(admin_required)):
    notification = notification_service.mark_read(db, notification_id)
    return ApiResponse(data=NotificationOut.model_validate(notification), message="Notification marked as read")
