import logging
from typing import Optional

from fastapi import Request
from sqlalchemy.orm import Session
from models.log import Log

logger = logging.getLogger(__name__)


def client_ip(request: Optional[Request]) -> Optional[str]:
    return request.client.host if request is not None and request.client else None


# Persist an audit entry; call only after the business transaction has been committed
def write_log(db: Session, *, user_id, action, resource, status="SUCCESS", request=None, meta=None):
    entry = Log(user_id=user_id, action=action, resource=resource, status=status,
                ip=client_ip(request), meta=meta or {})
    db.add(entry)
    db.commit()
    logger.info("%s %s user=%s status=%s meta=%s", resource, action, user_id, status, meta or {})
