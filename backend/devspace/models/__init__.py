from devspace.models.user import User, UserRole, UserStatus, Achievement
from devspace.models.contact import Contact, ContactStatus
from devspace.models.guestbook import (
    GuestbookEntry, GuestbookLike, GuestbookReply, GuestbookFlag,
    GuestbookStatus, GuestbookCategory, FlagReason
)
from devspace.models.portfolio import (
    Project, ProjectLike, ProjectComment,
    ProjectCategory, ProjectVisibility, ProjectStatus
)
from devspace.models.analytics import AnalyticsEvent, EventType
