from datetime import datetime
from typing import Any, Optional

from schemas.common import ORMBase, Page


class NotificationOut(ORMBase):
    id: int
    type: str
    title: str
    message: str
    data: Optional[Any] = None
    is_read: bool
    created_at: Optional[datetime] = None


# Inbox page with the badge count of everything still unread
class NotificationPage(Page[NotificationOut]):
    unread_count: int = 0
