import logging
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from typing import Optional
from devspace.database import get_db
from devspace.errors import not_found
from devspace.models.contact import Contact, ContactStatus
from devspace.models.analytics import EventType
from devspace.models.user import User, UserRole
from devspace.schemas.contact import ContactCreate, ContactStatusUpdate
from devspace.services.analytics_service import track_event, client_ip
from devspace.services.email_service import notify_new_contact
from devspace.utils.auth import require_roles
from devspace.utils.pagination import Pagination
from devspace.utils.serializers import iso

logger = logging.getLogger(__name__)

router = APIRouter()


def _contact_dict(contact: Contact):
    return {
        "id": contact.id,
        "name": contact.name,
        "email": contact.email,
        "subject": contact.subject,
        "message": contact.message,
        "status": contact.status.value,
        "ip_address": contact.ip_address,
        "user_agent": contact.user_agent,
        "created_at": iso(contact.created_at),
        "updated_at": iso(contact.updated_at)
    }


@router.post("", status_code=201)
def submit_contact(data: ContactCreate, request: Request, db: Session = Depends(get_db)):
    """Submit contact form"""
    contact = Contact(
        name=data.name,
        email=data.email,
        subject=data.subject,
        message=data.message,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent")
    )
    db.add(contact)
    db.commit()
    db.refresh(contact)

    track_event(
        db, request, EventType.CONTACT_FORM, "Contact Form Submission",
        page_path="/contact", event_data={"subject": data.subject}
    )

    try:
        email_sent = notify_new_contact(contact)
    except Exception as e:
        logger.error("Contact notification for %s failed: %s", contact.id, e)
        email_sent = False

    return {
        "success": True,
        "message": "Thank you for reaching out! Your message has been received.",
        "data": {
            "contact_id": contact.id,
            "submitted_at": iso(contact.created_at),
            "email_sent": email_sent
        }
    }


@router.get("")
def list_contacts(
    status: Optional[ContactStatus] = None,
    pagination: Pagination = Depends(Pagination.depends(20)),
    admin: User = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Get all contact submissions (admin only)"""
    query = db.query(Contact)
    if status:
        query = query.filter(Contact.status == status)

    contacts, total = pagination.apply(query.order_by(Contact.created_at.desc(), Contact.id.desc()))

    return {
        "success": True,
        "message": "Contact submissions retrieved.",
        "data": {
            "contacts": [_contact_dict(c) for c in contacts],
            "pagination": pagination.meta(total)
        }
    }


@router.put("/{contact_id}/status")
def update_contact_status(
    contact_id: int,
    update: ContactStatusUpdate,
    admin: User = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Mark a submission as read / responded / archived (admin only)"""
    contact = db.query(Contact).filter(Contact.id == contact_id).first()
    if not contact:
        raise not_found("Contact Not Found", "This contact submission does not exist.")

    contact.status = update.status
    db.commit()

    return {
        "success": True,
        "message": f"Contact marked as {update.status.value}.",
        "data": {"contact": _contact_dict(contact)}
    }
