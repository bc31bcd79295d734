from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import distinct, func
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime, timedelta
from devspace.database import get_db
from devspace.models.analytics import AnalyticsEvent, EventType
from devspace.models.contact import Contact, ContactStatus
from devspace.models.guestbook import GuestbookEntry, GuestbookStatus
from devspace.models.portfolio import Project
from devspace.models.user import User, UserRole
from devspace.schemas.analytics import TrackEventRequest
from devspace.services.analytics_service import track_event
from devspace.utils.auth import get_optional_user, require_roles
from devspace.utils.pagination import Pagination
from devspace.utils.serializers import event_dict, iso

router = APIRouter()


@router.post("/track", status_code=201)
def track(
    data: TrackEventRequest,
    request: Request,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """Record a client-side event"""
    event = track_event(
        db, request, data.event_type, data.event_name,
        user=current_user,
        page_path=data.page_path,
        page_title=data.page_title,
        referrer=data.referrer,
        event_data=data.event_data,
        conversion_type=data.conversion_type
    )

    return {
        "success": True,
        "message": "Event tracked.",
        "data": {
            "tracked": event is not None,
            "event_id": event.id if event is not None else None
        }
    }


@router.get("/dashboard")
def dashboard(
    days: int = Query(30, ge=1, le=365),
    admin: User = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Aggregated analytics for the admin dashboard"""
    start_date = datetime.utcnow() - timedelta(days=days)

    def in_period(query):
        return query.filter(AnalyticsEvent.timestamp >= start_date)

    total_events = in_period(db.query(func.count(AnalyticsEvent.id))).scalar() or 0
    page_views = in_period(db.query(func.count(AnalyticsEvent.id))).filter(
        AnalyticsEvent.event_type == EventType.PAGE_VIEW
    ).scalar() or 0
    unique_sessions = in_period(db.query(func.count(distinct(AnalyticsEvent.session_id)))).scalar() or 0
    unique_users = in_period(db.query(func.count(distinct(AnalyticsEvent.user_id)))).filter(
        AnalyticsEvent.user_id.isnot(None)
    ).scalar() or 0
    conversions = in_period(db.query(func.count(AnalyticsEvent.id))).filter(
        AnalyticsEvent.is_conversion == True
    ).scalar() or 0

    type_count = func.count(AnalyticsEvent.id)
    by_type = in_period(
        db.query(AnalyticsEvent.event_type, type_count)
    ).group_by(AnalyticsEvent.event_type).order_by(type_count.desc()).all()

    day = func.date(AnalyticsEvent.timestamp)
    daily = in_period(
        db.query(day, func.count(AnalyticsEvent.id), func.count(distinct(AnalyticsEvent.session_id)))
    ).group_by(day).order_by(day).all()

    page_count = func.count(AnalyticsEvent.id)
    top_pages = in_period(
        db.query(AnalyticsEvent.page_path, page_count)
    ).filter(
        AnalyticsEvent.event_type == EventType.PAGE_VIEW,
        AnalyticsEvent.page_path.isnot(None)
    ).group_by(AnalyticsEvent.page_path).order_by(page_count.desc()).limit(10).all()

    return {
        "success": True,
        "message": "Analytics dashboard retrieved.",
        "data": {
            "overview": {
                "total_events": total_events,
                "page_views": page_views,
                "unique_sessions": unique_sessions,
                "unique_users": unique_users,
                "conversions": conversions,
                "conversion_rate": round(conversions / unique_sessions * 100, 2) if unique_sessions else 0.0
            },
            "events_by_type": [{"event_type": t.value, "count": n} for t, n in by_type],
            "daily": [{"date": str(d), "events": n, "sessions": s} for d, n, s in daily],
            "top_pages": [{"page_path": p, "views": n} for p, n in top_pages],
            "totals": {
                "users": db.query(User).count(),
                "projects": db.query(Project).count(),
                "guestbook_messages": db.query(GuestbookEntry).filter(
                    GuestbookEntry.status == GuestbookStatus.APPROVED
                ).count(),
                "new_contacts": db.query(Contact).filter(Contact.status == ContactStatus.NEW).count()
            },
            "period": {"days": days, "start_date": iso(start_date)}
        }
    }


@router.get("/events")
def list_events(
    event_type: Optional[EventType] = None,
    user_id: Optional[int] = None,
    pagination: Pagination = Depends(Pagination.depends(50)),
    admin: User = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    query = db.query(AnalyticsEvent)
    if event_type:
        query = query.filter(AnalyticsEvent.event_type == event_type)
    if user_id is not None:
        query = query.filter(AnalyticsEvent.user_id == user_id)

    events, total = pagination.apply(
        query.order_by(AnalyticsEvent.timestamp.desc(), AnalyticsEvent.id.desc())
    )

    return {
        "success": True,
        "message": "Analytics events retrieved.",
        "data": {
            "events": [event_dict(e) for e in events],
            "pagination": pagination.meta(total, total_key="total_events")
        }
    }


@router.get("/popular-pages")
def popular_pages(
    days: int = Query(7, ge=1, le=365),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db)
):
    """Most viewed page paths"""
    start_date = datetime.utcnow() - timedelta(days=days)
    views = func.count(AnalyticsEvent.id)
    rows = db.query(
        AnalyticsEvent.page_path, views, func.count(distinct(AnalyticsEvent.session_id))
    ).filter(
        AnalyticsEvent.event_type == EventType.PAGE_VIEW,
        AnalyticsEvent.timestamp >= start_date,
        AnalyticsEvent.page_path.isnot(None)
    ).group_by(AnalyticsEvent.page_path).order_by(views.desc()).limit(limit).all()

    return {
        "success": True,
        "message": "Popular pages retrieved.",
        "data": {
            "pages": [
                {"page_path": path, "views": n, "unique_sessions": sessions}
                for path, n, sessions in rows
            ],
            "period": {"days": days}
        }
    }
