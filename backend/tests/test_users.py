from conftest import auth_headers
from devspace.models.analytics import AnalyticsEvent
from devspace.models.guestbook import GuestbookEntry, GuestbookLike, GuestbookStatus
from devspace.models.portfolio import Project, ProjectComment, ProjectLike, ProjectVisibility
from devspace.models.user import User, UserRole, UserStatus


def test_list_users_admin_only(client, user, admin):
    assert client.get("/api/users", headers=auth_headers(user)).status_code == 403

    response = client.get("/api/users?search=star", headers=auth_headers(admin))
    assert response.status_code == 200
    data = response.json()["data"]
    assert [u["username"] for u in data["users"]] == ["stardust"]
    assert data["users"][0]["email"] == "stardust@example.com"
    assert data["pagination"]["total_users"] == 1


def test_list_users_filters_by_role(client, user, moderator, admin):
    response = client.get("/api/users?role=moderator", headers=auth_headers(admin))
    assert [u["username"] for u in response.json()["data"]["users"]] == ["warden"]


def test_public_profile_hides_private_fields(client, db, user, make_project, make_entry):
    make_project(user, title="Visible", views=3)
    make_project(user, title="Private", visibility=ProjectVisibility.PRIVATE)
    make_entry(message="Hello from stardust", user_id=user.id)
    make_entry(message="Pending", user_id=user.id, status=GuestbookStatus.NEW)

    response = client.get(f"/api/users/{user.id}")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["is_own_profile"] is False
    assert "email" not in data["user"]
    assert "preferences" not in data["user"]
    assert [p["title"] for p in data["projects"]] == ["Visible"]
    assert [m["message"] for m in data["messages"]] == ["Hello from stardust"]

    db.refresh(user)
    assert user.profile_views == 1


def test_own_profile_shows_private_fields(client, db, user):
    response = client.get(f"/api/users/{user.id}", headers=auth_headers(user))
    data = response.json()["data"]
    assert data["is_own_profile"] is True
    assert data["user"]["email"] == user.email
    assert "preferences" in data["user"]

    db.refresh(user)
    assert user.profile_views == 0


def test_profile_respects_show_email_preference(client, make_user):
    open_user = make_user("openbook", preferences={"privacy": {"show_email": True, "show_last_login": False}})
    data = client.get(f"/api/users/{open_user.id}").json()["data"]
    assert data["user"]["email"] == "openbook@example.com"
    assert "last_login" not in data["user"]


def test_profile_view_tracked_for_signed_in_viewer(client, db, user, other_user):
    client.get(f"/api/users/{user.id}", headers=auth_headers(other_user))
    event = db.query(AnalyticsEvent).one()
    assert event.user_id == other_user.id
    assert event.event_data["viewed_user_id"] == user.id


def test_unknown_user(client):
    response = client.get("/api/users/999")
    assert response.status_code == 404
    assert response.json()["error"] == "User Not Found"


def test_role_update(client, db, user, admin):
    self_demote = client.put(
        f"/api/users/{admin.id}/role", json={"role": "user"}, headers=auth_headers(admin)
    )
    assert self_demote.status_code == 400

    assert client.put(
        f"/api/users/{user.id}/role", json={"role": "captain"}, headers=auth_headers(admin)
    ).status_code == 400

    response = client.put(f"/api/users/{user.id}/role", json={"role": "admin"}, headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["data"]["user"]["old_role"] == "user"

    db.refresh(user)
    assert user.role == UserRole.ADMIN
    assert [a.name for a in user.achievements] == ["Space Commander"]


def test_status_update(client, db, user, admin):
    self_suspend = client.put(
        f"/api/users/{admin.id}/status", json={"status": "suspended"}, headers=auth_headers(admin)
    )
    assert self_suspend.status_code == 400

    response = client.put(
        f"/api/users/{user.id}/status",
        json={"status": "suspended", "reason": "Spamming"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200

    db.refresh(user)
    assert user.status == UserStatus.SUSPENDED
    assert client.get("/api/auth/me", headers=auth_headers(user)).status_code == 403


def test_delete_user_cascades(client, db, make_user, make_project, make_entry, admin):
    doomed = make_user("doomed")
    survivor = make_user("survivor")

    own_project = make_project(doomed, title="Doomed project")
    own_entry = make_entry(message="Doomed entry", user_id=doomed.id)
    survivor_project = make_project(survivor, title="Survivor project")
    survivor_entry = make_entry(message="Survivor entry", user_id=survivor.id)
    doomed_id, own_project_id, own_entry_id = doomed.id, own_project.id, own_entry.id

    headers = auth_headers(doomed)
    client.post(f"/api/portfolio/{survivor_project.id}/like", headers=headers)
    client.post(f"/api/portfolio/{survivor_project.id}/comment", json={"content": "Nice!"}, headers=headers)
    client.post(f"/api/guestbook/{survivor_entry.id}/like", headers=headers)
    client.post(f"/api/portfolio/{own_project.id}/like", headers=auth_headers(survivor))

    assert client.delete(f"/api/users/{admin.id}", headers=auth_headers(admin)).status_code == 400

    response = client.delete(f"/api/users/{doomed_id}", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["data"]["deleted_user"]["username"] == "doomed"

    db.expire_all()
    assert db.query(User).filter(User.username == "doomed").count() == 0
    assert db.query(Project).filter(Project.id == own_project_id).count() == 0
    assert db.query(GuestbookEntry).filter(GuestbookEntry.id == own_entry_id).count() == 0
    assert db.query(ProjectLike).count() == 0
    assert db.query(GuestbookLike).count() == 0
    assert db.query(ProjectComment).count() == 0
    assert db.query(AnalyticsEvent).filter(AnalyticsEvent.user_id == doomed_id).count() == 0

    survivor_project = db.query(Project).filter(Project.title == "Survivor project").one()
    survivor_entry = db.query(GuestbookEntry).filter(GuestbookEntry.message == "Survivor entry").one()
    assert survivor_project.likes == 0
    assert survivor_entry.likes == 0


def test_achievements(client, db, user, admin):
    url = f"/api/users/{user.id}/achievement"
    headers = auth_headers(admin)

    assert client.post(url, json={"name": "Trailblazer"}, headers=headers).status_code == 400

    award = {"name": "Trailblazer", "description": "First to explore", "icon": "🌠"}
    response = client.post(url, json=award, headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["achievement"]["name"] == "Trailblazer"

    duplicate = client.post(url, json=award, headers=headers)
    assert duplicate.status_code == 400
    assert duplicate.json()["error"] == "Achievement Already Exists"


def test_activity_timeline_access(client, user, other_user, admin):
    client.get(f"/api/users/{other_user.id}", headers=auth_headers(user))

    own = client.get(f"/api/users/{user.id}/activity", headers=auth_headers(user))
    assert own.status_code == 200
    assert [e["event_type"] for e in own.json()["data"]["activity"]] == ["profile_view"]

    assert client.get(f"/api/users/{user.id}/activity", headers=auth_headers(other_user)).status_code == 403
    assert client.get(f"/api/users/{user.id}/activity", headers=auth_headers(admin)).status_code == 200


def test_leaderboard_orders_by_points(client, make_user):
    make_user("rookie", messages_posted=1)
    make_user("veteran", projects_created=3, likes_received=2)
    make_user("banned", projects_created=50, status=UserStatus.SUSPENDED)

    board = client.get("/api/users/leaderboard").json()["data"]["leaderboard"]
    assert [entry["username"] for entry in board] == ["veteran", "rookie"]
    assert board[0]["points"] == 40
    assert board[0]["rank"] == 1


def test_stats(client, user, moderator, admin):
    assert client.get("/api/users/stats", headers=auth_headers(user)).status_code == 403

    data = client.get("/api/users/stats", headers=auth_headers(admin)).json()["data"]
    assert data["overview"]["total_users"] == 3
    assert data["overview"]["active_users"] == 3
    assert {r["role"]: r["count"] for r in data["role_distribution"]} == {"user": 1, "moderator": 1, "admin": 1}
    assert data["period"]["days"] == 30
