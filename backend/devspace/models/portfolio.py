from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, ForeignKey, Text, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from devspace.database import Base


class ProjectCategory(str, enum.Enum):
    WEB = "web"
    MOBILE = "mobile"
    DESKTOP = "desktop"
    AI_ML = "ai-ml"
    DATA = "data"
    GAME = "game"
    DEVOPS = "devops"
    OTHER = "other"


class ProjectVisibility(str, enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class ProjectStatus(str, enum.Enum):
    PLANNING = "planning"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"
    ARCHIVED = "archived"


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    short_description = Column(String(200))
    category = Column(Enum(ProjectCategory), default=ProjectCategory.OTHER, nullable=False, index=True)
    tags = Column(JSON, default=list)
    technologies = Column(JSON, default=list)
    keywords = Column(JSON, default=list)
    links = Column(JSON, default=dict)  # live, github, demo, documentation
    thumbnail = Column(String(500))

    visibility = Column(Enum(ProjectVisibility), default=ProjectVisibility.PUBLIC, nullable=False, index=True)
    status = Column(Enum(ProjectStatus), default=ProjectStatus.COMPLETED, nullable=False)
    featured = Column(Boolean, default=False, nullable=False)

    # Metrics
    views = Column(Integer, default=0, nullable=False)
    likes = Column(Integer, default=0, nullable=False)

    creator_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    creator = relationship("User")
    liked_by = relationship("ProjectLike", back_populates="project", cascade="all, delete-orphan")
    comments = relationship(
        "ProjectComment", back_populates="project", cascade="all, delete-orphan",
        order_by="ProjectComment.id"
    )

    def is_liked_by(self, user_id: int) -> bool:
        return any(like.user_id == user_id for like in self.liked_by)

    def toggle_like(self, user_id: int):
        """Add or remove the user's like; returns (liked, likes_count)"""
        existing = next((like for like in self.liked_by if like.user_id == user_id), None)
        if existing:
            self.liked_by.remove(existing)
            liked = False
        else:
            self.liked_by.append(ProjectLike(user_id=user_id))
            liked = True
        self.likes = len(self.liked_by)
        return liked, self.likes

    def add_comment(self, user_id: int, content: str):
        comment = ProjectComment(user_id=user_id, content=content)
        self.comments.append(comment)
        return comment


class ProjectLike(Base):
    __tablename__ = "project_likes"
    __table_args__ = (UniqueConstraint("project_id", "user_id", name="uq_project_like"),)

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project", back_populates="liked_by")


class ProjectComment(Base):
    __tablename__ = "project_comments"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(String(1000), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project", back_populates="comments")
    user = relationship("User")
