import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BREVO_API_KEY"] = ""
os.environ["ENVIRONMENT"] = "development"
os.environ["SECRET_KEY"] = "test-secret-key"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from devspace.database import Base, get_db
from devspace.main import app
from devspace.models.guestbook import GuestbookEntry, GuestbookStatus
from devspace.models.portfolio import Project, ProjectCategory
from devspace.models.user import User, UserRole
from devspace.utils.security import get_password_hash, create_access_token

PASSWORD = "secret1"
PASSWORD_HASH = get_password_hash(PASSWORD)

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


def auth_headers(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(autouse=True)
def reset_rate_limits():
    app.state.limiter.reset()


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(username: str, role: UserRole = UserRole.USER, **fields) -> User:
        user = User(
            username=username,
            email=f"{username}@example.com",
            password_hash=PASSWORD_HASH,
            role=role,
            **fields
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def user(make_user):
    return make_user("stardust")


@pytest.fixture
def other_user(make_user):
    return make_user("nebula")


@pytest.fixture
def admin(make_user):
    return make_user("commander", role=UserRole.ADMIN)


@pytest.fixture
def moderator(make_user):
    return make_user("warden", role=UserRole.MODERATOR)


@pytest.fixture
def make_project(db):
    def _make(creator: User, title: str = "Orbit Tracker", **fields) -> Project:
        fields.setdefault("description", "Tracks satellites across the night sky.")
        fields.setdefault("category", ProjectCategory.WEB)
        project = Project(title=title, creator_id=creator.id, **fields)
        db.add(project)
        db.commit()
        db.refresh(project)
        return project
    return _make


@pytest.fixture
def make_entry(db):
    def _make(message: str = "Lovely work on this site!", **fields) -> GuestbookEntry:
        fields.setdefault("name", "Visitor")
        fields.setdefault("status", GuestbookStatus.APPROVED)
        fields.setdefault("ip_address", "10.0.0.1")
        entry = GuestbookEntry(message=message, **fields)
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry
    return _make
