from conftest import auth_headers
from devspace.models.contact import Contact, ContactStatus

VALID_CONTACT = {
    "name": "Grace",
    "email": "Grace@Example.com",
    "subject": "Collaboration",
    "message": "I would love to build something together.",
}


def test_submit_contact(client, db):
    response = client.post("/api/contact", json=VALID_CONTACT)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["contact_id"]
    assert data["email_sent"] is False

    contact = db.query(Contact).one()
    assert contact.email == "grace@example.com"
    assert contact.status == ContactStatus.NEW


def test_submit_contact_validation(client):
    response = client.post("/api/contact", json={**VALID_CONTACT, "message": "short"})
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation Error"
    assert body["details"]


def test_list_contacts_requires_admin(client, user):
    assert client.get("/api/contact").status_code == 401
    response = client.get("/api/contact", headers=auth_headers(user))
    assert response.status_code == 403
    assert response.json()["error"] == "Insufficient Permissions"


def test_list_contacts_paginated(client, admin):
    for i in range(3):
        client.post("/api/contact", json={**VALID_CONTACT, "subject": f"Hello {i}"})

    response = client.get("/api/contact?limit=2", headers=auth_headers(admin))
    assert response.status_code == 200
    data = response.json()["data"]
    assert len(data["contacts"]) == 2
    assert data["contacts"][0]["subject"] == "Hello 2"
    assert data["pagination"]["total_items"] == 3
    assert data["pagination"]["total_pages"] == 2
    assert data["pagination"]["has_next"] is True


def test_update_contact_status(client, db, admin):
    contact_id = client.post("/api/contact", json=VALID_CONTACT).json()["data"]["contact_id"]

    response = client.put(
        f"/api/contact/{contact_id}/status",
        json={"status": "responded"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    assert response.json()["data"]["contact"]["status"] == "responded"

    missing = client.put("/api/contact/999/status", json={"status": "read"}, headers=auth_headers(admin))
    assert missing.status_code == 404
