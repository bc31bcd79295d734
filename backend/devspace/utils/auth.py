"""Authentication and role-based authorization dependencies."""

from datetime import datetime
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from devspace.database import get_db
from devspace.errors import APIError
from devspace.models.user import User, UserRole
from devspace.utils.security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


def _user_from_token(token: str, db: Session) -> Optional[User]:
    payload = decode_access_token(token)
    if not payload or payload.get("sub") is None:
        return None
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        return None
    return db.query(User).filter(User.id == user_id).first()


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Require a valid bearer token belonging to an active user"""
    if credentials is None:
        raise APIError(
            401, "Access Denied", "No token provided. Please log in.",
        )

    user = _user_from_token(credentials.credentials, db)
    if user is None:
        raise APIError(401, "Invalid Token", "Your session is invalid or has expired. Please log in again.")

    if not user.is_active:
        raise APIError(403, "Account Inactive", f"Your account is {user.status.value}.")

    return user


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """Resolve the caller if a valid token is present, otherwise None"""
    if credentials is None:
        return None
    user = _user_from_token(credentials.credentials, db)
    if user is None or not user.is_active:
        return None
    return user


def require_roles(*roles: UserRole):
    """Dependency factory: the current user must hold one of `roles`"""
    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise APIError(
                403, "Insufficient Permissions",
                f"This action requires one of the roles: {', '.join(r.value for r in roles)}."
            )
        return current_user
    return role_checker


def track_activity(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> User:
    """Stamp the caller's last_activity; committed with the route's own changes"""
    current_user.last_activity = datetime.utcnow()
    db.add(current_user)
    return current_user


def ensure_owner_or_admin(resource_owner_id: int, user: User):
    if resource_owner_id != user.id and user.role != UserRole.ADMIN:
        raise APIError(403, "Access Denied", "You can only modify your own resources.")
