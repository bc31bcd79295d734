import logging
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime, timedelta
from devspace.database import get_db
from devspace.errors import APIError, not_found
from devspace.models.analytics import AnalyticsEvent, EventType
from devspace.models.guestbook import GuestbookEntry, GuestbookLike, GuestbookReply, GuestbookFlag, GuestbookStatus
from devspace.models.portfolio import Project, ProjectLike, ProjectComment, ProjectVisibility
from devspace.models.user import User, UserRole, UserStatus
from devspace.schemas.user import RoleUpdate, StatusUpdate, AchievementCreate
from devspace.services.analytics_service import track_event
from devspace.utils.auth import get_current_user, get_optional_user, require_roles, track_activity
from devspace.utils.pagination import Pagination, sort_clause
from devspace.utils.serializers import user_profile, achievement_dict, event_dict, iso

logger = logging.getLogger(__name__)

router = APIRouter()

SORT_FIELDS = {
    "created_at": User.created_at,
    "createdAt": User.created_at,
    "username": User.username,
    "last_login": User.last_login,
    "login_count": User.login_count,
}

POINTS = (
    User.projects_created * 10
    + User.messages_posted * 2
    + User.likes_received * 5
    + User.profile_views
)


def _get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise not_found("User Not Found", "This user does not exist.")
    return user


@router.get("")
def list_users(
    role: Optional[UserRole] = None,
    status: Optional[UserStatus] = None,
    search: Optional[str] = None,
    sort: str = "-created_at",
    pagination: Pagination = Depends(Pagination.depends(20)),
    admin: User = Depends(require_roles(UserRole.ADMIN)),
    _: User = Depends(track_activity),
    db: Session = Depends(get_db)
):
    """Get all users (admin only)"""
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    if status:
        query = query.filter(User.status == status)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            User.username.ilike(pattern),
            User.email.ilike(pattern),
            User.first_name.ilike(pattern),
            User.last_name.ilike(pattern)
        ))

    query = query.order_by(sort_clause(sort, SORT_FIELDS), User.id.desc())
    users, total = pagination.apply(query)
    payload = [user_profile(u, private=True) for u in users]
    db.commit()

    return {
        "success": True,
        "message": "Users retrieved.",
        "data": {
            "users": payload,
            "pagination": pagination.meta(total, total_key="total_users"),
            "filters": {
                "role": role.value if role else None,
                "status": status.value if status else None,
                "search": search
            }
        }
    }


@router.get("/leaderboard")
def leaderboard(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    users = db.query(User).filter(
        User.status == UserStatus.ACTIVE
    ).order_by(POINTS.desc(), User.created_at.asc()).limit(limit).all()

    return {
        "success": True,
        "message": "Leaderboard retrieved.",
        "data": {
            "leaderboard": [
                {
                    "rank": position,
                    "id": u.id,
                    "username": u.username,
                    "avatar": u.avatar,
                    "cosmic_rank": u.cosmic_rank,
                    "points": u.points,
                    "stats": {
                        "projects_created": u.projects_created,
                        "messages_posted": u.messages_posted,
                        "likes_received": u.likes_received,
                        "profile_views": u.profile_views
                    }
                }
                for position, u in enumerate(users, start=1)
            ]
        }
    }


@router.get("/stats")
def user_stats(
    days: int = Query(30, ge=1, le=365),
    admin: User = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Aggregate user statistics (admin only)"""
    start_date = datetime.utcnow() - timedelta(days=days)

    overview = db.query(
        func.count(User.id),
        func.sum(case((User.status == UserStatus.ACTIVE, 1), else_=0)),
        func.sum(case((User.created_at >= start_date, 1), else_=0)),
        func.sum(case((User.email_verified == True, 1), else_=0)),
        func.avg(User.login_count),
        func.sum(User.profile_views),
        func.sum(User.projects_created),
        func.sum(User.messages_posted)
    ).one()

    role_rows = db.query(User.role, func.count(User.id)).group_by(User.role).all()

    login_day = func.date(User.last_login)
    activity_rows = db.query(login_day, func.count(User.id)).filter(
        User.last_login >= start_date
    ).group_by(login_day).order_by(login_day).all()

    return {
        "success": True,
        "message": "User statistics retrieved.",
        "data": {
            "overview": {
                "total_users": overview[0] or 0,
                "active_users": int(overview[1] or 0),
                "new_users": int(overview[2] or 0),
                "verified_users": int(overview[3] or 0),
                "avg_login_count": round(float(overview[4] or 0), 2),
                "total_profile_views": int(overview[5] or 0),
                "total_projects_created": int(overview[6] or 0),
                "total_messages_posted": int(overview[7] or 0)
            },
            "role_distribution": [{"role": r.value, "count": n} for r, n in role_rows],
            "activity_trend": [{"date": str(d), "active_users": n} for d, n in activity_rows],
            "period": {"days": days, "start_date": iso(start_date)}
        }
    }


@router.get("/{user_id}")
def get_profile(
    user_id: int,
    request: Request,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """Public profile; full details for the owner and admins"""
    user = _get_user(db, user_id)

    is_own_profile = current_user is not None and current_user.id == user.id
    is_admin = current_user is not None and current_user.role == UserRole.ADMIN

    projects = db.query(Project).filter(
        Project.creator_id == user.id,
        Project.visibility == ProjectVisibility.PUBLIC
    ).order_by(Project.views.desc()).limit(6).all()

    messages = db.query(GuestbookEntry).filter(
        GuestbookEntry.user_id == user.id,
        GuestbookEntry.status == GuestbookStatus.APPROVED
    ).order_by(GuestbookEntry.created_at.desc(), GuestbookEntry.id.desc()).limit(5).all()

    if not is_own_profile:
        user.profile_views = (user.profile_views or 0) + 1
        db.commit()
        db.refresh(user)

    payload = {
        "user": user_profile(user, private=is_own_profile or is_admin),
        "projects": [
            {
                "id": p.id,
                "title": p.title,
                "short_description": p.short_description,
                "category": p.category.value,
                "thumbnail": p.thumbnail,
                "metrics": {"views": p.views, "likes": p.likes}
            }
            for p in projects
        ],
        "messages": [
            {
                "id": m.id,
                "message": m.message,
                "likes": m.likes,
                "created_at": iso(m.created_at)
            }
            for m in messages
        ],
        "is_own_profile": is_own_profile,
        "stats": {"project_count": len(projects), "message_count": len(messages)}
    }

    if current_user and not is_own_profile:
        track_event(
            db, request, EventType.PROFILE_VIEW, "User Profile View",
            user=current_user, page_path=f"/users/{user_id}",
            event_data={"viewed_user_id": user_id, "viewed_username": payload["user"]["username"]}
        )

    return {
        "success": True,
        "message": "User profile retrieved.",
        "data": payload
    }


@router.put("/{user_id}/role")
def update_role(
    user_id: int,
    update: RoleUpdate,
    admin: User = Depends(require_roles(UserRole.ADMIN)),
    _: User = Depends(track_activity),
    db: Session = Depends(get_db)
):
    user = _get_user(db, user_id)

    if admin.id == user.id and update.role != UserRole.ADMIN:
        raise APIError(400, "Self-Demotion Denied", "You cannot change your own admin role.")

    old_role = user.role
    user.role = update.role
    if update.role == UserRole.ADMIN:
        user.add_achievement(
            "Space Commander",
            "Welcome to the command center! You now have administrative powers.",
            "👑"
        )
    db.commit()

    return {
        "success": True,
        "message": f"User role updated from {old_role.value} to {update.role.value}.",
        "data": {
            "user": {
                "id": user.id,
                "username": user.username,
                "role": user.role.value,
                "old_role": old_role.value
            }
        }
    }


@router.put("/{user_id}/status")
def update_status(
    user_id: int,
    update: StatusUpdate,
    admin: User = Depends(require_roles(UserRole.ADMIN)),
    _: User = Depends(track_activity),
    db: Session = Depends(get_db)
):
    user = _get_user(db, user_id)

    if admin.id == user.id and update.status != UserStatus.ACTIVE:
        raise APIError(400, "Self-Action Denied", "You cannot change your own account status.")

    old_status = user.status
    user.status = update.status
    db.commit()

    logger.info(
        "User %s status changed %s -> %s by %s (%s)",
        user.id, old_status.value, update.status.value, admin.id, update.reason or "no reason"
    )

    return {
        "success": True,
        "message": f"User account status updated from {old_status.value} to {update.status.value}.",
        "data": {
            "user": {
                "id": user.id,
                "username": user.username,
                "status": user.status.value,
                "old_status": old_status.value
            },
            "reason": update.reason
        }
    }


def _purge_user(db: Session, user: User):
    """Delete a user with their projects, guestbook entries, interactions and analytics"""
    # Withdraw likes first so counters on other users' content stay correct
    liked_projects = db.query(Project).join(ProjectLike).filter(ProjectLike.user_id == user.id).all()
    for project in liked_projects:
        project.toggle_like(user.id)
    liked_entries = db.query(GuestbookEntry).join(GuestbookLike).filter(GuestbookLike.user_id == user.id).all()
    for entry in liked_entries:
        entry.toggle_like(user.id)
    db.flush()

    for project in db.query(Project).filter(Project.creator_id == user.id).all():
        db.delete(project)
    for entry in db.query(GuestbookEntry).filter(GuestbookEntry.user_id == user.id).all():
        db.delete(entry)
    db.flush()

    db.query(ProjectComment).filter(ProjectComment.user_id == user.id).delete(synchronize_session=False)
    db.query(GuestbookReply).filter(GuestbookReply.user_id == user.id).delete(synchronize_session=False)
    db.query(GuestbookFlag).filter(GuestbookFlag.user_id == user.id).delete(synchronize_session=False)
    db.query(AnalyticsEvent).filter(AnalyticsEvent.user_id == user.id).delete(synchronize_session=False)
    db.query(GuestbookEntry).filter(GuestbookEntry.moderated_by == user.id).update(
        {GuestbookEntry.moderated_by: None}, synchronize_session=False
    )

    db.delete(user)


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    admin: User = Depends(require_roles(UserRole.ADMIN)),
    _: User = Depends(track_activity),
    db: Session = Depends(get_db)
):
    """Delete a user account and all related data in one transaction (admin only)"""
    user = _get_user(db, user_id)

    if admin.id == user.id:
        raise APIError(400, "Self-Deletion Denied", "You cannot delete your own account.")

    deleted_user = {"id": user.id, "username": user.username, "email": user.email}

    _purge_user(db, user)
    db.commit()
    logger.info("User %s deleted by admin %s", deleted_user["id"], admin.id)

    return {
        "success": True,
        "message": "User and all related data have been removed.",
        "data": {"deleted_user": deleted_user}
    }


@router.post("/{user_id}/achievement")
def award_achievement(
    user_id: int,
    data: AchievementCreate,
    admin: User = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    if not data.name or not data.name.strip() or not data.description or not data.description.strip():
        raise APIError(400, "Achievement Data Required", "Please provide achievement name and description.")

    user = _get_user(db, user_id)

    achievement = user.add_achievement(data.name.strip(), data.description.strip(), data.icon or "🏆")
    if achievement is None:
        raise APIError(400, "Achievement Already Exists", "This achievement has already been awarded.")

    db.commit()
    db.refresh(achievement)

    return {
        "success": True,
        "message": "Achievement awarded.",
        "data": {
            "achievement": achievement_dict(achievement),
            "user": {"id": user.id, "username": user.username}
        }
    }


@router.get("/{user_id}/activity")
def user_activity(
    user_id: int,
    limit: int = Query(20, ge=1, le=100),
    days: int = Query(30, ge=1, le=365),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Activity timeline: own profile or admin"""
    if current_user.id != user_id and current_user.role != UserRole.ADMIN:
        raise APIError(403, "Access Denied", "You can only view your own activity timeline.")

    start_date = datetime.utcnow() - timedelta(days=days)
    events = db.query(AnalyticsEvent).filter(
        AnalyticsEvent.user_id == user_id,
        AnalyticsEvent.timestamp >= start_date
    ).order_by(AnalyticsEvent.timestamp.desc(), AnalyticsEvent.id.desc()).limit(limit).all()

    return {
        "success": True,
        "message": "User activity retrieved.",
        "data": {
            "activity": [event_dict(e) for e in events],
            "period": {"days": days, "start_date": iso(start_date)},
            "total_events": len(events)
        }
    }
