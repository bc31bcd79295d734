from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, Enum, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from devspace.database import Base


class GuestbookStatus(str, enum.Enum):
    NEW = "new"
    APPROVED = "approved"
    REJECTED = "rejected"
    FLAGGED = "flagged"
    HIDDEN = "hidden"


class GuestbookCategory(str, enum.Enum):
    GENERAL = "general"
    FEEDBACK = "feedback"
    COLLABORATION = "collaboration"
    QUESTION = "question"
    APPRECIATION = "appreciation"


class FlagReason(str, enum.Enum):
    SPAM = "spam"
    INAPPROPRIATE = "inappropriate"
    OFFENSIVE = "offensive"
    MISLEADING = "misleading"
    OTHER = "other"


# Approved entries with this many flags are pulled for review
FLAG_REVIEW_THRESHOLD = 3
EXCERPT_LENGTH = 100


class GuestbookEntry(Base):
    __tablename__ = "guestbook_entries"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    email = Column(String(255))
    message = Column(Text, nullable=False)
    category = Column(Enum(GuestbookCategory), default=GuestbookCategory.GENERAL, nullable=False)
    contact = Column(String(200))

    # Moderation
    status = Column(Enum(GuestbookStatus), default=GuestbookStatus.APPROVED, nullable=False, index=True)
    featured = Column(Boolean, default=False, nullable=False)
    is_spam = Column(Boolean, default=False, nullable=False)
    spam_score = Column(Float, default=0.0, nullable=False)
    moderated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    moderated_at = Column(DateTime)
    moderation_reason = Column(String(500))

    # Engagement
    likes = Column(Integer, default=0, nullable=False)
    views = Column(Integer, default=0, nullable=False)

    # Author / request metadata
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    ip_address = Column(String(64), index=True)
    user_agent = Column(String(500))
    location_country = Column(String(64), default="Unknown")
    location_timezone = Column(String(64), default="UTC")

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", foreign_keys=[user_id])
    liked_by = relationship("GuestbookLike", back_populates="entry", cascade="all, delete-orphan")
    replies = relationship(
        "GuestbookReply", back_populates="entry", cascade="all, delete-orphan",
        order_by="GuestbookReply.id"
    )
    flags = relationship("GuestbookFlag", back_populates="entry", cascade="all, delete-orphan")

    @property
    def author_name(self):
        return self.user.username if self.user else self.name

    @property
    def excerpt(self):
        if len(self.message) <= EXCERPT_LENGTH:
            return self.message
        return self.message[:EXCERPT_LENGTH] + "..."

    def toggle_like(self, user_id: int):
        """Add or remove the user's like; returns (liked, likes_count)"""
        existing = next((like for like in self.liked_by if like.user_id == user_id), None)
        if existing:
            self.liked_by.remove(existing)
            liked = False
        else:
            self.liked_by.append(GuestbookLike(user_id=user_id))
            liked = True
        self.likes = len(self.liked_by)
        return liked, self.likes

    def add_reply(self, user_id: int, username: str, message: str):
        reply = GuestbookReply(user_id=user_id, username=username, message=message)
        self.replies.append(reply)
        return reply

    def flag(self, user_id: int, reason: str, description: str = None) -> bool:
        """Record a flag; False when this user already flagged the entry"""
        if any(f.user_id == user_id for f in self.flags):
            return False
        self.flags.append(GuestbookFlag(user_id=user_id, reason=FlagReason(reason), description=description))
        if len(self.flags) >= FLAG_REVIEW_THRESHOLD and self.status == GuestbookStatus.APPROVED:
            self.status = GuestbookStatus.FLAGGED
        return True


class GuestbookLike(Base):
    __tablename__ = "guestbook_likes"
    __table_args__ = (UniqueConstraint("entry_id", "user_id", name="uq_guestbook_like"),)

    id = Column(Integer, primary_key=True, index=True)
    entry_id = Column(Integer, ForeignKey("guestbook_entries.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    entry = relationship("GuestbookEntry", back_populates="liked_by")


class GuestbookReply(Base):
    __tablename__ = "guestbook_replies"

    id = Column(Integer, primary_key=True, index=True)
    entry_id = Column(Integer, ForeignKey("guestbook_entries.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"))
    username = Column(String(30), nullable=False)
    message = Column(String(500), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    entry = relationship("GuestbookEntry", back_populates="replies")
    user = relationship("User")


class GuestbookFlag(Base):
    __tablename__ = "guestbook_flags"
    __table_args__ = (UniqueConstraint("entry_id", "user_id", name="uq_guestbook_flag"),)

    id = Column(Integer, primary_key=True, index=True)
    entry_id = Column(Integer, ForeignKey("guestbook_entries.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reason = Column(Enum(FlagReason), nullable=False)
    description = Column(String(500))
    created_at = Column(DateTime, default=datetime.utcnow)

    entry = relationship("GuestbookEntry", back_populates="flags")
