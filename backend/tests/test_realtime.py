import pytest
from fastapi.testclient import TestClient

from conftest import override_get_db
from devspace.database import get_db
from devspace.main import app


@pytest.fixture
def live_client(db):
    """Client whose requests and websockets share one event loop"""
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def test_new_message_is_relayed_to_other_clients():
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as sender, client.websocket_connect("/ws") as listener:
            sender.send_json({"event": "new_message", "data": {"name": "Visitor", "message": "Hi!"}})
            assert listener.receive_json() == {
                "event": "message_received",
                "data": {"name": "Visitor", "message": "Hi!"},
            }


def test_page_view_becomes_analytics_update():
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as sender, client.websocket_connect("/ws") as listener:
            sender.send_text("not json")
            sender.send_json({"event": "page_view", "data": {"page": "/portfolio"}})
            update = listener.receive_json()
            assert update["event"] == "analytics_update"
            assert update["data"]["type"] == "page_view"
            assert update["data"]["page"] == "/portfolio"
            assert "timestamp" in update["data"]


def test_approved_guestbook_post_is_broadcast(live_client):
    with live_client.websocket_connect("/ws") as listener:
        response = live_client.post("/api/guestbook", json={
            "name": "Comet",
            "message": "Beautiful portfolio, keep exploring!",
            "category": "feedback",
        })
        assert response.status_code == 201
        entry = response.json()["data"]["message"]

        event = listener.receive_json()
        assert event["event"] == "new_guestbook_message"
        assert event["data"]["id"] == entry["id"]
        assert event["data"]["name"] == "Comet"
        assert event["data"]["message"] == "Beautiful portfolio, keep exploring!"
        assert event["data"]["category"] == "feedback"
        assert event["data"]["timestamp"]


def test_held_and_spam_posts_are_not_broadcast(live_client):
    with live_client.websocket_connect("/ws") as listener:
        spam = live_client.post("/api/guestbook", json={
            "name": "Spammer", "message": "Free money! Click here and buy now"
        })
        assert spam.json()["data"]["status"] == "flagged"
        held = live_client.post("/api/guestbook", json={
            "name": "Linker", "message": "See www.example.com"
        })
        assert held.json()["data"]["status"] == "new"
        approved = live_client.post("/api/guestbook", json={
            "name": "Comet", "message": "Lovely work on this site!"
        })

        # Only the approved entry reaches listeners
        event = listener.receive_json()
        assert event["event"] == "new_guestbook_message"
        assert event["data"]["id"] == approved.json()["data"]["message"]["id"]
