import logging
from typing import Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from devspace.models.analytics import AnalyticsEvent, EventType
from devspace.models.user import User

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Session-Id"


def client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def session_id(request: Request) -> str:
    return request.headers.get(SESSION_HEADER) or request.cookies.get("session_id") or "anonymous"


def track_event(
    db: Session,
    request: Request,
    event_type: EventType,
    event_name: str,
    user: Optional[User] = None,
    page_path: Optional[str] = None,
    event_data: Optional[dict] = None,
    conversion_type: Optional[str] = None,
    page_title: Optional[str] = None,
    referrer: Optional[str] = None,
):
    """
    Record an analytics event.
    Best effort: a failed write is rolled back and logged, never raised,
    so callers must commit their own changes before tracking.
    """
    event = AnalyticsEvent(
        event_type=event_type,
        event_name=event_name,
        session_id=session_id(request),
        user_id=user.id if user else None,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
        page_url=str(request.url),
        page_path=page_path or request.url.path,
        page_title=page_title,
        referrer=referrer or request.headers.get("referer"),
        event_data={k: v for k, v in (event_data or {}).items() if v is not None},
        is_conversion=conversion_type is not None,
        conversion_type=conversion_type,
    )
    try:
        db.add(event)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Failed to record analytics event %s: %s", event_type.value, e)
        return None
    return event
