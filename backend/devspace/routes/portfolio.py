from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import String, cast, func, or_
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime, timedelta
from devspace.database import get_db
from devspace.errors import APIError, not_found
from devspace.models.analytics import EventType
from devspace.models.portfolio import Project, ProjectCategory, ProjectStatus, ProjectVisibility
from devspace.models.user import User, UserRole
from devspace.schemas.portfolio import ProjectCreate, ProjectUpdate, CommentCreate
from devspace.services.analytics_service import track_event
from devspace.utils.auth import get_current_user, get_optional_user, track_activity, ensure_owner_or_admin
from devspace.utils.pagination import Pagination, sort_clause
from devspace.utils.serializers import project_dict, comment_dict

router = APIRouter()

SORT_FIELDS = {
    "created_at": Project.created_at,
    "createdAt": Project.created_at,
    "updated_at": Project.updated_at,
    "updatedAt": Project.updated_at,
    "title": Project.title,
    "views": Project.views,
    "likes": Project.likes,
}


def _public(query):
    return query.filter(Project.visibility == ProjectVisibility.PUBLIC)


def _get_project(db: Session, project_id: int) -> Project:
    project = db.query(Project).filter(Project.id == project_id).first()
    if not project:
        raise not_found("Project Not Found", "This project does not exist.")
    return project


def _text_search(query, text: str):
    pattern = f"%{text}%"
    return query.filter(or_(
        Project.title.ilike(pattern),
        Project.description.ilike(pattern),
        Project.short_description.ilike(pattern),
        cast(Project.tags, String).ilike(pattern),
        cast(Project.keywords, String).ilike(pattern)
    ))


def _parse_status(value: Optional[str]) -> Optional[ProjectStatus]:
    if not value or value == "all":
        return None
    try:
        return ProjectStatus(value)
    except ValueError:
        raise APIError(
            400, "Invalid Status",
            f"Status must be 'all' or one of: {', '.join(s.value for s in ProjectStatus)}."
        )


@router.get("")
def list_projects(
    request: Request,
    category: Optional[ProjectCategory] = None,
    featured: Optional[bool] = None,
    status: Optional[str] = "completed",
    search: Optional[str] = None,
    sort: str = "-created_at",
    pagination: Pagination = Depends(Pagination.depends(12)),
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """Get public portfolio projects"""
    query = _public(db.query(Project))

    if category:
        query = query.filter(Project.category == category)
    if featured:
        query = query.filter(Project.featured == True)
    project_status = _parse_status(status)
    if project_status:
        query = query.filter(Project.status == project_status)
    if search and search.strip():
        query = _text_search(query, search.strip())

    query = query.order_by(sort_clause(sort, SORT_FIELDS), Project.id.desc())
    projects, total = pagination.apply(query)
    payload = [project_dict(p, current_user) for p in projects]

    filters = {
        "category": category.value if category else None,
        "featured": featured,
        "status": status,
        "search": search
    }

    if current_user:
        track_event(
            db, request, EventType.PAGE_VIEW, "Portfolio Gallery View",
            user=current_user, page_path="/portfolio", event_data=filters
        )

    return {
        "success": True,
        "message": "Portfolio projects retrieved.",
        "data": {
            "projects": payload,
            "pagination": pagination.meta(total, total_key="total_projects"),
            "filters": filters
        }
    }


@router.get("/featured")
def featured_projects(limit: int = Query(6, ge=1, le=50), db: Session = Depends(get_db)):
    projects = _public(db.query(Project)).filter(
        Project.featured == True
    ).order_by(Project.likes.desc(), Project.created_at.desc()).limit(limit).all()

    return {
        "success": True,
        "message": "Featured projects retrieved.",
        "data": {"projects": [project_dict(p) for p in projects]}
    }


@router.get("/trending")
def trending_projects(
    days: int = Query(7, ge=1, le=365),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db)
):
    """Public projects created in the last `days`, ranked by likes*2 + views"""
    since = datetime.utcnow() - timedelta(days=days)
    score = Project.likes * 2 + Project.views
    projects = _public(db.query(Project)).filter(
        Project.created_at >= since
    ).order_by(score.desc(), Project.created_at.desc()).limit(limit).all()

    return {
        "success": True,
        "message": "Trending projects retrieved.",
        "data": {"projects": [project_dict(p) for p in projects], "days": days}
    }


@router.get("/search")
def search_projects(
    q: Optional[str] = None,
    category: Optional[ProjectCategory] = None,
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    query_text = (q or "").strip()
    if len(query_text) < 2:
        raise APIError(400, "Invalid Search Query", "Search query must be at least 2 characters long.")

    query = _text_search(_public(db.query(Project)), query_text)
    if category:
        query = query.filter(Project.category == category)
    projects = query.order_by(Project.likes.desc(), Project.created_at.desc()).limit(limit).all()

    return {
        "success": True,
        "message": f"Found {len(projects)} projects matching your search.",
        "data": {
            "projects": [project_dict(p) for p in projects],
            "query": query_text,
            "category": category.value if category else None,
            "result_count": len(projects)
        }
    }


@router.get("/categories")
def project_categories(db: Session = Depends(get_db)):
    count = func.count(Project.id)
    rows = _public(
        db.query(Project.category, count)
    ).group_by(Project.category).order_by(count.desc()).all()

    return {
        "success": True,
        "message": "Project categories retrieved.",
        "data": {"categories": [{"category": c.value, "count": n} for c, n in rows]}
    }


@router.get("/user/{user_id}")
def user_projects(
    user_id: int,
    sort: str = "-created_at",
    pagination: Pagination = Depends(Pagination.depends(12)),
    db: Session = Depends(get_db)
):
    """Get a user's public projects"""
    query = _public(db.query(Project)).filter(Project.creator_id == user_id)
    query = query.order_by(sort_clause(sort, SORT_FIELDS), Project.id.desc())
    projects, total = pagination.apply(query)

    return {
        "success": True,
        "message": "User projects retrieved.",
        "data": {
            "projects": [project_dict(p) for p in projects],
            "pagination": pagination.meta(total, total_key="total_projects")
        }
    }


@router.get("/{project_id}")
def get_project(
    project_id: int,
    request: Request,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    project = _get_project(db, project_id)

    if project.visibility == ProjectVisibility.PRIVATE and (
        not current_user or project.creator_id != current_user.id
    ):
        raise APIError(403, "Access Denied", "This project is private.")

    project.views = (project.views or 0) + 1
    db.commit()
    db.refresh(project)
    payload = project_dict(project, current_user, with_comments=True)

    track_event(
        db, request, EventType.PROJECT_VIEW, "Project Detail View",
        user=current_user, page_path=f"/portfolio/{project_id}",
        event_data={
            "project_id": project.id,
            "project_title": project.title,
            "project_category": project.category.value,
            "project_creator": project.creator.username if project.creator else None
        }
    )

    return {
        "success": True,
        "message": "Project retrieved.",
        "data": {"project": payload}
    }


@router.post("", status_code=201)
def create_project(
    data: ProjectCreate,
    current_user: User = Depends(track_activity),
    db: Session = Depends(get_db)
):
    """Create a portfolio project owned by the caller"""
    project = Project(
        title=data.title,
        description=data.description,
        short_description=data.short_description,
        category=data.category,
        tags=data.tags,
        technologies=data.technologies,
        keywords=data.keywords,
        links=data.links.model_dump(exclude_none=True) if data.links else {},
        thumbnail=data.thumbnail,
        visibility=data.visibility,
        status=data.status,
        creator_id=current_user.id
    )
    db.add(project)

    current_user.projects_created = (current_user.projects_created or 0) + 1
    if current_user.projects_created == 1:
        current_user.add_achievement(
            "First Launch",
            "Congratulations on launching your first project! This is just the beginning.",
            "🚀"
        )

    db.commit()
    db.refresh(project)

    return {
        "success": True,
        "message": "Your project has been launched!",
        "data": {"project": project_dict(project, current_user)}
    }


@router.put("/{project_id}")
def update_project(
    project_id: int,
    update: ProjectUpdate,
    current_user: User = Depends(track_activity),
    db: Session = Depends(get_db)
):
    """Update a project (owner or admin)"""
    project = _get_project(db, project_id)
    ensure_owner_or_admin(project.creator_id, current_user)

    changes = update.model_dump(exclude_unset=True)
    if "featured" in changes and current_user.role != UserRole.ADMIN:
        raise APIError(403, "Access Denied", "Only admins can feature projects.")
    if "links" in changes:
        changes["links"] = update.links.model_dump(exclude_none=True) if update.links else {}
    for field, value in changes.items():
        if value is None and field in ("title", "description", "category", "visibility", "status", "featured"):
            continue
        setattr(project, field, value)

    db.commit()
    db.refresh(project)

    return {
        "success": True,
        "message": "Your project has been updated.",
        "data": {"project": project_dict(project, current_user)}
    }


@router.delete("/{project_id}")
def delete_project(
    project_id: int,
    current_user: User = Depends(track_activity),
    db: Session = Depends(get_db)
):
    """Delete a project (owner or admin)"""
    project = _get_project(db, project_id)
    ensure_owner_or_admin(project.creator_id, current_user)

    creator = project.creator
    if creator:
        creator.projects_created = max(0, (creator.projects_created or 0) - 1)

    db.delete(project)
    db.commit()

    return {
        "success": True,
        "message": "Your project has been removed.",
        "data": {"deleted_id": project_id}
    }


@router.post("/{project_id}/like")
def toggle_like(
    project_id: int,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    project = _get_project(db, project_id)

    liked, likes_count = project.toggle_like(current_user.id)
    if liked and project.creator:
        project.creator.likes_received = (project.creator.likes_received or 0) + 1
    db.commit()

    track_event(
        db, request, EventType.PROJECT_LIKE, "Project Liked" if liked else "Project Unliked",
        user=current_user, page_path=f"/portfolio/{project_id}/like",
        event_data={
            "project_id": project_id,
            "project_title": project.title,
            "action": "like" if liked else "unlike"
        }
    )

    return {
        "success": True,
        "message": "Project liked!" if liked else "Like removed!",
        "data": {"liked": liked, "likes_count": likes_count}
    }


@router.post("/{project_id}/comment", status_code=201)
def add_comment(
    project_id: int,
    data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    content = (data.content or "").strip()
    if not content:
        raise APIError(400, "Comment Required", "Please provide a comment.")
    if len(content) > 1000:
        raise APIError(400, "Comment Too Long", "Comment cannot exceed 1000 characters.")

    project = _get_project(db, project_id)
    comment = project.add_comment(current_user.id, content)
    db.commit()
    db.refresh(comment)

    return {
        "success": True,
        "message": "Your comment has been added.",
        "data": {"comment": comment_dict(comment)}
    }
