from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime, timedelta
from devspace.config import settings
from devspace.database import get_db
from devspace.errors import APIError, not_found
from devspace.models.analytics import EventType
from devspace.models.guestbook import GuestbookEntry, GuestbookStatus, GuestbookCategory, FlagReason
from devspace.models.user import User, UserRole
from devspace.schemas.guestbook import GuestbookCreate, ReplyCreate, FlagCreate, ModerationUpdate
from devspace.services.analytics_service import track_event, client_ip
from devspace.services.realtime import manager
from devspace.services.spam_service import classify
from devspace.utils.auth import get_current_user, get_optional_user, require_roles, track_activity
from devspace.utils.pagination import Pagination
from devspace.utils.serializers import entry_dict, reply_dict, iso

router = APIRouter()

SOCIAL_BUTTERFLY_POSTS = 10
MODERATION_STATUSES = {
    GuestbookStatus.APPROVED, GuestbookStatus.REJECTED,
    GuestbookStatus.FLAGGED, GuestbookStatus.HIDDEN
}


def _visible(query):
    return query.filter(
        GuestbookEntry.status == GuestbookStatus.APPROVED,
        GuestbookEntry.is_spam == False
    )


def _get_entry(db: Session, entry_id: int) -> GuestbookEntry:
    entry = db.query(GuestbookEntry).filter(GuestbookEntry.id == entry_id).first()
    if not entry:
        raise not_found("Message Not Found", "This guestbook message does not exist.")
    return entry


@router.get("")
def list_messages(
    request: Request,
    category: Optional[GuestbookCategory] = None,
    featured: Optional[bool] = None,
    pagination: Pagination = Depends(Pagination.depends(20)),
    db: Session = Depends(get_db)
):
    """Get approved guestbook messages, featured first"""
    query = _visible(db.query(GuestbookEntry))
    if category:
        query = query.filter(GuestbookEntry.category == category)
    if featured:
        query = query.filter(GuestbookEntry.featured == True)

    query = query.order_by(
        GuestbookEntry.featured.desc(),
        GuestbookEntry.created_at.desc(),
        GuestbookEntry.id.desc()
    )
    messages, total = pagination.apply(query)
    payload = [entry_dict(m) for m in messages]

    filters = {
        "category": category.value if category else None,
        "featured": featured
    }
    track_event(
        db, request, EventType.PAGE_VIEW, "Guestbook View",
        page_path="/guestbook", event_data=filters
    )

    return {
        "success": True,
        "message": "Guestbook messages retrieved.",
        "data": {
            "messages": payload,
            "pagination": pagination.meta(total, total_key="total_messages"),
            "filters": filters
        }
    }


@router.get("/featured")
def featured_messages(limit: int = Query(5, ge=1, le=50), db: Session = Depends(get_db)):
    messages = _visible(db.query(GuestbookEntry)).filter(
        GuestbookEntry.featured == True
    ).order_by(GuestbookEntry.created_at.desc(), GuestbookEntry.id.desc()).limit(limit).all()

    return {
        "success": True,
        "message": "Featured messages retrieved.",
        "data": {"messages": [entry_dict(m) for m in messages]}
    }


@router.get("/categories")
def message_categories(db: Session = Depends(get_db)):
    """Message counts per category"""
    count = func.count(GuestbookEntry.id)
    rows = _visible(
        db.query(GuestbookEntry.category, count)
    ).group_by(GuestbookEntry.category).order_by(count.desc()).all()

    return {
        "success": True,
        "message": "Message categories retrieved.",
        "data": {
            "categories": [{"category": c.value, "count": n} for c, n in rows]
        }
    }


@router.get("/search")
def search_messages(
    q: Optional[str] = None,
    category: Optional[GuestbookCategory] = None,
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    query_text = (q or "").strip()
    if len(query_text) < 2:
        raise APIError(400, "Invalid Search Query", "Search query must be at least 2 characters long.")

    pattern = f"%{query_text}%"
    query = _visible(db.query(GuestbookEntry)).filter(
        or_(GuestbookEntry.message.ilike(pattern), GuestbookEntry.name.ilike(pattern))
    )
    if category:
        query = query.filter(GuestbookEntry.category == category)

    messages = query.order_by(GuestbookEntry.created_at.desc()).limit(limit).all()

    return {
        "success": True,
        "message": f"Found {len(messages)} messages matching your search.",
        "data": {
            "messages": [entry_dict(m) for m in messages],
            "query": query_text,
            "category": category.value if category else None,
            "result_count": len(messages)
        }
    }


@router.post("", status_code=201)
def post_message(
    data: GuestbookCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """Post a new guestbook message"""
    ip_address = client_ip(request)
    window_start = datetime.utcnow() - timedelta(minutes=settings.GUESTBOOK_RATE_WINDOW_MINUTES)
    recent_messages = db.query(GuestbookEntry).filter(
        GuestbookEntry.ip_address == ip_address,
        GuestbookEntry.created_at >= window_start
    ).count()

    if recent_messages >= settings.GUESTBOOK_RATE_LIMIT:
        raise APIError(
            429, "Rate Limit Exceeded",
            f"Slow down! You can only send {settings.GUESTBOOK_RATE_LIMIT} messages per hour.",
            retry_after=settings.GUESTBOOK_RATE_WINDOW_MINUTES * 60
        )

    entry_status, is_spam, score = classify(data.message)

    entry = GuestbookEntry(
        name=data.name,
        email=data.email,
        message=data.message,
        category=data.category,
        contact=data.contact,
        status=entry_status,
        is_spam=is_spam,
        spam_score=score,
        user_id=current_user.id if current_user else None,
        ip_address=ip_address,
        user_agent=request.headers.get("user-agent", ""),
        location_country=request.headers.get("cf-ipcountry", "Unknown"),
        location_timezone=request.headers.get("cf-timezone", "UTC")
    )
    db.add(entry)

    if current_user:
        current_user.messages_posted = (current_user.messages_posted or 0) + 1
        if current_user.messages_posted >= SOCIAL_BUTTERFLY_POSTS:
            current_user.add_achievement(
                "Social Butterfly",
                "You've shared your thoughts 10 times! Your voice echoes across the universe.",
                "🦋"
            )

    db.commit()
    db.refresh(entry)

    track_event(
        db, request, EventType.MESSAGE_POST, "Guestbook Message Posted",
        user=current_user, page_path="/guestbook",
        event_data={
            "message_category": data.category.value,
            "message_length": len(data.message),
            "has_email": bool(data.email),
            "has_contact": bool(data.contact)
        },
        conversion_type="contact"
    )

    if entry.status == GuestbookStatus.APPROVED:
        background_tasks.add_task(manager.emit, "new_guestbook_message", {
            "id": entry.id,
            "name": entry.author_name,
            "message": entry.excerpt,
            "category": entry.category.value,
            "timestamp": iso(entry.created_at)
        })

    return {
        "success": True,
        "message": "Your message has been sent. Thank you for signing the guestbook!",
        "data": {
            "message": entry_dict(entry),
            "status": entry.status.value,
            "spam_score": entry.spam_score
        }
    }


@router.get("/{entry_id}")
def get_message(entry_id: int, db: Session = Depends(get_db)):
    entry = _get_entry(db, entry_id)

    if entry.status != GuestbookStatus.APPROVED or entry.is_spam:
        raise not_found("Message Not Available", "This guestbook message is not available.")

    entry.views = (entry.views or 0) + 1
    db.commit()
    db.refresh(entry)

    return {
        "success": True,
        "message": "Guestbook message retrieved.",
        "data": {"message": entry_dict(entry, with_replies=True)}
    }


@router.post("/{entry_id}/like")
def toggle_like(
    entry_id: int,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Toggle the caller's like on a message"""
    entry = _get_entry(db, entry_id)

    if entry.status != GuestbookStatus.APPROVED:
        raise APIError(403, "Message Not Available", "You cannot like this message.")

    liked, likes_count = entry.toggle_like(current_user.id)
    db.commit()

    track_event(
        db, request, EventType.MESSAGE_LIKE, "Message Liked" if liked else "Message Unliked",
        user=current_user, page_path=f"/guestbook/{entry_id}/like",
        event_data={"message_id": entry_id, "action": "like" if liked else "unlike"}
    )

    return {
        "success": True,
        "message": "Message liked!" if liked else "Like removed!",
        "data": {"liked": liked, "likes_count": likes_count}
    }


@router.post("/{entry_id}/reply", status_code=201)
def reply_to_message(
    entry_id: int,
    data: ReplyCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    reply_message = (data.message or "").strip()
    if not reply_message:
        raise APIError(400, "Reply Required", "Please provide a reply message.")
    if len(reply_message) > 500:
        raise APIError(400, "Reply Too Long", "Reply cannot exceed 500 characters.")

    entry = _get_entry(db, entry_id)
    if entry.status != GuestbookStatus.APPROVED:
        raise APIError(403, "Cannot Reply", "You cannot reply to this message.")

    reply = entry.add_reply(current_user.id, current_user.username, reply_message)
    db.commit()
    db.refresh(reply)

    return {
        "success": True,
        "message": "Your reply has been posted.",
        "data": {"reply": reply_dict(reply)}
    }


@router.post("/{entry_id}/flag")
def flag_message(
    entry_id: int,
    data: FlagCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    valid_reasons = [r.value for r in FlagReason]
    if data.reason not in valid_reasons:
        raise APIError(
            400, "Invalid Flag Reason",
            f"Please provide a valid reason for flagging: {', '.join(valid_reasons)}."
        )

    entry = _get_entry(db, entry_id)

    if not entry.flag(current_user.id, data.reason, data.description):
        raise APIError(400, "Already Flagged", "You have already flagged this message.")

    db.commit()

    return {
        "success": True,
        "message": "Message flagged. Our moderation team will review it.",
        "data": {"flagged": True, "status": entry.status.value}
    }


@router.delete("/{entry_id}")
def delete_message(
    entry_id: int,
    moderator: User = Depends(require_roles(UserRole.ADMIN, UserRole.MODERATOR)),
    _: User = Depends(track_activity),
    db: Session = Depends(get_db)
):
    """Delete guestbook message (admin / moderator)"""
    entry = _get_entry(db, entry_id)
    db.delete(entry)
    db.commit()

    return {
        "success": True,
        "message": "Guestbook message removed.",
        "data": {"deleted_id": entry_id}
    }


@router.put("/{entry_id}/moderate")
def moderate_message(
    entry_id: int,
    update: ModerationUpdate,
    moderator: User = Depends(require_roles(UserRole.ADMIN, UserRole.MODERATOR)),
    _: User = Depends(track_activity),
    db: Session = Depends(get_db)
):
    """Set moderation status (and optionally featured) on a message"""
    if update.status not in MODERATION_STATUSES:
        raise APIError(
            400, "Invalid Status",
            "Status must be one of: approved, rejected, flagged, hidden."
        )

    entry = _get_entry(db, entry_id)

    entry.status = update.status
    entry.moderated_by = moderator.id
    entry.moderated_at = datetime.utcnow()
    if update.reason:
        entry.moderation_reason = update.reason
    if update.featured is not None:
        entry.featured = update.featured
    if update.status == GuestbookStatus.APPROVED:
        entry.is_spam = False

    db.commit()

    return {
        "success": True,
        "message": f"Message has been {update.status.value}.",
        "data": {
            "message": {
                "id": entry.id,
                "status": entry.status.value,
                "featured": entry.featured,
                "moderated_at": iso(entry.moderated_at)
            }
        }
    }
