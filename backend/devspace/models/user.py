from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, ForeignKey, Text, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from devspace.database import Base


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"
    MODERATOR = "moderator"


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


# (minimum points, rank title), highest first
COSMIC_RANKS = [
    (1000, "Legend"),
    (400, "Commander"),
    (150, "Navigator"),
    (50, "Explorer"),
    (0, "Space Cadet"),
]


def default_preferences():
    return {"privacy": {"show_email": False, "show_last_login": False}}


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(30), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(Enum(UserRole), default=UserRole.USER, nullable=False)
    status = Column(Enum(UserStatus), default=UserStatus.ACTIVE, nullable=False)
    email_verified = Column(Boolean, default=False)

    # Profile
    first_name = Column(String(50))
    last_name = Column(String(50))
    bio = Column(Text)
    avatar = Column(String(500))
    location = Column(String(100))
    website = Column(String(500))
    preferences = Column(JSON, default=default_preferences)

    # Stats
    profile_views = Column(Integer, default=0, nullable=False)
    projects_created = Column(Integer, default=0, nullable=False)
    messages_posted = Column(Integer, default=0, nullable=False)
    likes_received = Column(Integer, default=0, nullable=False)

    login_count = Column(Integer, default=0, nullable=False)
    last_login = Column(DateTime)
    last_activity = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    achievements = relationship(
        "Achievement", back_populates="user", cascade="all, delete-orphan",
        order_by="Achievement.id"
    )

    @property
    def full_name(self):
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) if parts else None

    @property
    def points(self):
        return (
            (self.projects_created or 0) * 10
            + (self.messages_posted or 0) * 2
            + (self.likes_received or 0) * 5
            + (self.profile_views or 0)
        )

    @property
    def cosmic_rank(self):
        points = self.points
        for threshold, title in COSMIC_RANKS:
            if points >= threshold:
                return title
        return COSMIC_RANKS[-1][1]

    @property
    def is_active(self):
        return self.status == UserStatus.ACTIVE

    def privacy(self, key: str) -> bool:
        prefs = self.preferences or {}
        return bool(prefs.get("privacy", {}).get(key, False))

    def add_achievement(self, name: str, description: str, icon: str = "🏆"):
        """Award an achievement once; returns the new Achievement or None if already earned"""
        if any(a.name == name for a in self.achievements):
            return None
        achievement = Achievement(name=name, description=description, icon=icon)
        self.achievements.append(achievement)
        return achievement

    def __repr__(self):
        return f"<User {self.username}>"


class Achievement(Base):
    __tablename__ = "achievements"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_achievement_user_name"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=False)
    icon = Column(String(20), default="🏆")
    earned_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="achievements")
