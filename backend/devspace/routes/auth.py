from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import or_
from sqlalchemy.orm import Session
from datetime import datetime
from devspace.database import get_db
from devspace.errors import APIError
from devspace.models.user import User, UserRole, default_preferences
from devspace.models.analytics import EventType
from devspace.schemas.user import RegisterRequest, LoginRequest, ProfileUpdate
from devspace.services.analytics_service import track_event
from devspace.utils.auth import get_current_user
from devspace.utils.security import verify_password, get_password_hash, create_access_token
from devspace.utils.serializers import user_profile

router = APIRouter()


def _token_response(user: User, message: str):
    access_token = create_access_token(data={"sub": str(user.id), "role": user.role.value})
    return {
        "success": True,
        "message": message,
        "data": {
            "access_token": access_token,
            "token_type": "bearer",
            "user": user_profile(user, private=True)
        }
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, request: Request, db: Session = Depends(get_db)):
    """Create an account and return an access token"""
    existing_user = db.query(User).filter(
        or_(User.email == data.email, User.username == data.username)
    ).first()
    if existing_user:
        field = "Email" if existing_user.email == data.email else "Username"
        raise APIError(400, "User Exists", f"{field} is already registered.")

    user = User(
        username=data.username,
        email=data.email,
        password_hash=get_password_hash(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        role=UserRole.USER,
        preferences=default_preferences(),
        login_count=1,
        last_login=datetime.utcnow()
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    track_event(
        db, request, EventType.USER_REGISTER, "User Registered",
        user=user, page_path="/register", conversion_type="signup"
    )

    return _token_response(user, "Welcome aboard! Your account has been created.")


@router.post("/login")
def login(credentials: LoginRequest, request: Request, db: Session = Depends(get_db)):
    """Login - Get access token"""
    user = db.query(User).filter(User.email == credentials.email.lower()).first()
    if not user or not verify_password(credentials.password, user.password_hash):
        raise APIError(
            401, "Invalid Credentials", "Incorrect email or password.",
        )

    if not user.is_active:
        raise APIError(403, "Account Inactive", f"Your account is {user.status.value}.")

    user.login_count = (user.login_count or 0) + 1
    user.last_login = datetime.utcnow()
    db.commit()
    db.refresh(user)

    track_event(db, request, EventType.USER_LOGIN, "User Login", user=user, page_path="/login")

    return _token_response(user, "Welcome back!")


@router.get("/me")
def get_me(current_user: User = Depends(get_current_user)):
    return {
        "success": True,
        "message": "Profile retrieved.",
        "data": {"user": user_profile(current_user, private=True)}
    }


@router.put("/me")
def update_me(
    update: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update own profile fields and privacy preferences"""
    changes = update.model_dump(exclude_unset=True)
    privacy = changes.pop("privacy", None)

    for field, value in changes.items():
        setattr(current_user, field, value)

    if privacy is not None:
        # Reassign so the JSON column is marked dirty
        preferences = dict(current_user.preferences or default_preferences())
        preferences["privacy"] = {**preferences.get("privacy", {}), **privacy}
        current_user.preferences = preferences

    db.commit()
    db.refresh(current_user)

    return {
        "success": True,
        "message": "Profile updated.",
        "data": {"user": user_profile(current_user, private=True)}
    }
