# backend/routes/contact.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from schemas.common import ApiResponse
from schemas.contact import ContactMessageCreate
from services import contact as contact_service
from utils.audit import write_log

router = APIRouter(prefix="/contact-messages", tags=["Contact"])


# Public form, no login required
@router.post("", response_model=ApiResponse[None], status_code=201)
def send_message(payload: ContactMessageCreate, request: Request, db: Session = Depends(get_db)):
    message = contact_service.send_message(db, payload)
    write_log(db, user_id=None, action="CONTACT_MESSAGE", resource="contact_messages", request=request,
              meta={"contact_message_id": message.id})
    return ApiResponse(data=None, message="Your message has been sent successfully!")
