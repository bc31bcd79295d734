from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, ForeignKey, JSON
from datetime import datetime
import enum
from devspace.database import Base


class EventType(str, enum.Enum):
    PAGE_VIEW = "page_view"
    PROJECT_VIEW = "project_view"
    PROJECT_LIKE = "project_like"
    MESSAGE_POST = "message_post"
    MESSAGE_LIKE = "message_like"
    CONTACT_FORM = "contact_form"
    PROFILE_VIEW = "profile_view"
    USER_REGISTER = "user_register"
    USER_LOGIN = "user_login"
    CLICK = "click"
    CUSTOM = "custom"


class AnalyticsEvent(Base):
    __tablename__ = "analytics_events"

    id = Column(Integer, primary_key=True, index=True)
    event_type = Column(Enum(EventType), nullable=False, index=True)
    event_name = Column(String(200), nullable=False)
    session_id = Column(String(128), default="anonymous", index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True)

    # Request metadata
    ip_address = Column(String(64))
    user_agent = Column(String(500))

    # Page context
    page_url = Column(String(1000))
    page_path = Column(String(500), index=True)
    page_title = Column(String(200))
    referrer = Column(String(1000))

    event_data = Column(JSON, default=dict)

    # Conversion
    is_conversion = Column(Boolean, default=False, nullable=False)
    conversion_type = Column(String(50))

    timestamp = Column(DateTime, default=datetime.utcnow, index=True)
