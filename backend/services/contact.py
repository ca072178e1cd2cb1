# backend/services/contact.py
from sqlalchemy.orm import Session

from database import atomic
from models.contact import ContactMessage
from schemas.contact import ContactMessageCreate
from services import notifications


def send_message(db: Session, payload: ContactMessageCreate) -> ContactMessage:
    message = ContactMessage(**payload.model_dump())
    with atomic(db, "store contact message"):
        db.add(message)
        db.flush()
        notifications.notify(
            db, notifications.CONTACT_MESSAGE,
            title=f"Contact message: {message.subject}"[:255],
            message=f"From {message.name} <{message.email}>",
            data={"contact_message_id": message.id},
        )
    return message
