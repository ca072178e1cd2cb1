# backend/routes/logs.py
from datetime import date, datetime, time, timedelta
from typing import Any, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from models.log import Log
from schemas.common import ApiResponse, ORMBase, Page
from services.context import AuthContext
from utils.tokenJWT import admin_required

router = APIRouter(prefix="/logs", tags=["Logs"])


# --- SCHEMAS ---
class LogResponse(ORMBase):
    id: int
    user_id: Optional[int] = None
    action: str
    resource: str
    status: str
    ip: Optional[str] = None
    ts: Optional[datetime] = None
    meta: Optional[Any] = None


LogPage = Page[LogResponse]


# --- ENDPOINT ---
@router.get("", response_model=ApiResponse[LogPage])
def get_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    action: Optional[str] = Query(None, description="Filter by action"),
    user_id: Optional[int] = Query(None, description="Filter by user id"),
    resource: Optional[str] = Query(None, description="Filter by resource"),
    status: Optional[str] = Query(None, description="Filter by status (SUCCESS/FAIL)"),
    date_from: Optional[date] = Query(None, description="From date (YYYY-MM-DD)"),
    date_to: Optional[date] = Query(None, description="To date (YYYY-MM-DD), inclusive"),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(admin_required),
):
    query = db.query(Log)

    if action:
        query = query.filter(Log.action.ilike(f"%{action}%"))
    if user_id is not None:
        query = query.filter(Log.user_id == user_id)
    if resource:
        query = query.filter(Log.resource.ilike(f"%{resource}%"))
    if status:
        query = query.filter(Log.status == status.upper())
    if date_from:
        query = query.filter(Log.ts >= datetime.combine(date_from, time.min))
    if date_to:
        # Whole end day included
        query = query.filter(Log.ts < datetime.combine(date_to + timedelta(days=1), time.min))

    query = query.order_by(Log.ts.desc(), Log.id.desc())

    total = query.count()
    logs = query.offset((page - 1) * page_size).limit(page_size).all()

    data = LogPage(
        items=[LogResponse.model_validate(entry) for entry in logs],
        total=total, page=page, page_size=page_size,
    )
    return ApiResponse(data=data, message="Logs retrieved successfully")
