"""Shape ORM objects into the JSON the API returns."""

from typing import Optional

from devspace.models.user import User


def iso(value):
    return value.isoformat() if value else None


def user_summary(user: Optional[User]):
    """Public author block embedded in projects, entries and comments"""
    if user is None:
        return None
    return {
        "id": user.id,
        "username": user.username,
        "full_name": user.full_name,
        "avatar": user.avatar,
        "cosmic_rank": user.cosmic_rank,
    }


def achievement_dict(achievement):
    return {
        "id": achievement.id,
        "name": achievement.name,
        "description": achievement.description,
        "icon": achievement.icon,
        "earned_at": iso(achievement.earned_at),
    }


def user_profile(user: User, private: bool = False):
    """
    Profile document for a user. Email, preferences and last login are only
    included for private views (the user themselves or an admin), except where
    the user's privacy preferences opt in to showing them.
    """
    data = {
        "id": user.id,
        "username": user.username,
        "role": user.role.value,
        "status": user.status.value,
        "email_verified": user.email_verified,
        "profile": {
            "first_name": user.first_name,
            "last_name": user.last_name,
            "full_name": user.full_name,
            "bio": user.bio,
            "avatar": user.avatar,
            "location": user.location,
            "website": user.website,
        },
        "stats": {
            "profile_views": user.profile_views,
            "projects_created": user.projects_created,
            "messages_posted": user.messages_posted,
            "likes_received": user.likes_received,
        },
        "points": user.points,
        "cosmic_rank": user.cosmic_rank,
        "achievements": [achievement_dict(a) for a in user.achievements],
        "login_count": user.login_count,
        "created_at": iso(user.created_at),
    }
    if private or user.privacy("show_email"):
        data["email"] = user.email
    if private or user.privacy("show_last_login"):
        data["last_login"] = iso(user.last_login)
    if private:
        data["preferences"] = user.preferences
        data["last_activity"] = iso(user.last_activity)
    return data


def project_dict(project, current_user: Optional[User] = None, with_comments: bool = False):
    data = {
        "id": project.id,
        "title": project.title,
        "description": project.description,
        "short_description": project.short_description,
        "category": project.category.value,
        "tags": project.tags or [],
        "technologies": project.technologies or [],
        "keywords": project.keywords or [],
        "links": project.links or {},
        "thumbnail": project.thumbnail,
        "visibility": project.visibility.value,
        "status": project.status.value,
        "featured": project.featured,
        "metrics": {"views": project.views, "likes": project.likes},
        "creator": user_summary(project.creator),
        "created_at": iso(project.created_at),
        "updated_at": iso(project.updated_at),
    }
    if current_user is not None:
        data["is_liked_by_user"] = project.is_liked_by(current_user.id)
    if with_comments:
        data["comments"] = [comment_dict(c) for c in project.comments]
    return data


def comment_dict(comment):
    return {
        "id": comment.id,
        "content": comment.content,
        "user": user_summary(comment.user),
        "created_at": iso(comment.created_at),
    }


def reply_dict(reply):
    return {
        "id": reply.id,
        "message": reply.message,
        "username": reply.username,
        "user": user_summary(reply.user),
        "created_at": iso(reply.created_at),
    }


def entry_dict(entry, with_replies: bool = False):
    data = {
        "id": entry.id,
        "name": entry.name,
        "author_name": entry.author_name,
        "message": entry.message,
        "excerpt": entry.excerpt,
        "category": entry.category.value,
        "status": entry.status.value,
        "featured": entry.featured,
        "likes": entry.likes,
        "views": entry.views,
        "reply_count": len(entry.replies),
        "user": user_summary(entry.user),
        "location": {
            "country": entry.location_country,
            "timezone": entry.location_timezone,
        },
        "created_at": iso(entry.created_at),
    }
    if with_replies:
        data["replies"] = [reply_dict(r) for r in entry.replies]
    return data


def event_dict(event):
    return {
        "id": event.id,
        "event_type": event.event_type.value,
        "event_name": event.event_name,
        "session_id": event.session_id,
        "user_id": event.user_id,
        "page": {
            "url": event.page_url,
            "path": event.page_path,
            "title": event.page_title,
            "referrer": event.referrer,
        },
        "event_data": event.event_data or {},
        "is_conversion": event.is_conversion,
        "conversion_type": event.conversion_type,
        "timestamp": iso(event.timestamp),
    }
