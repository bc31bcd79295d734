from limits import parse

from devspace.config import settings


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "operational"
    assert body["uptime"] >= 0
    assert "timestamp" in body


def test_unknown_api_path_returns_json_404(client):
    response = client.get("/api/does-not-exist")
    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "Not Found"
    assert "suggestion" in body

    assert client.post("/api/does-not-exist", json={}).status_code == 404


def test_wrong_method_on_known_path_is_405(client):
    response = client.put("/api/guestbook", json={})
    assert response.status_code == 405
    assert response.json()["error"] == "Method Not Allowed"
    assert "POST" in response.headers["allow"]
    assert "GET" in response.headers["allow"]

    assert client.delete("/api/portfolio").status_code == 405
    assert client.put("/api/nowhere").status_code == 404


def test_spa_fallback_serves_index(client):
    response = client.get("/guestbook")
    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]
    assert "Cosmic DevSpace" in response.text

    assert client.get("/").status_code == 200


def test_static_file_served(client):
    response = client.get("/css/style.css")
    assert response.status_code == 200
    assert "text/css" in response.headers["content-type"]


def test_path_traversal_falls_back_to_index(client):
    response = client.get("/..%2Fpyproject.toml")
    assert response.status_code == 200
    assert "build-system" not in response.text


def test_invalid_path_id_is_400(client):
    response = client.get("/api/portfolio/not-a-number")
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid ID"


def test_cors_allows_localhost_in_development(client):
    response = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
    assert response.headers.get("access-control-allow-origin") == "http://localhost:5173"


def test_security_headers_on_api_and_frontend(client):
    for path in ("/api/health", "/"):
        headers = client.get(path).headers
        assert headers["x-content-type-options"] == "nosniff"
        assert headers["x-frame-options"] == "SAMEORIGIN"
        assert headers["referrer-policy"] == "no-referrer"
        assert "default-src 'self'" in headers["content-security-policy"]

    assert "content-security-policy" not in client.get("/docs").headers


def test_global_rate_limit_per_ip(client):
    allowed = parse(settings.RATE_LIMIT).amount
    for _ in range(allowed):
        assert client.get("/api/health").status_code == 200

    response = client.get("/api/portfolio")
    assert response.status_code == 429
    body = response.json()
    assert body["error"] == "Rate Limit Exceeded"
    assert body["retry_after"] == 15 * 60
    assert response.headers["x-content-type-options"] == "nosniff"


def test_rate_limit_resets_between_tests(client):
    assert client.get("/api/health").status_code == 200


def test_index_links_every_section(client):
    html = client.get("/").text
    for section in ("portfolio", "guestbook", "blog", "contact", "dashboard", "login"):
        assert f'<section id="{section}"' in html
    for script in ("realtime", "app", "guestbook", "blog", "analytics"):
        assert f'src="/js/{script}.js"' in html


def test_frontend_scripts_are_served(client):
    scripts = {
        name: client.get(f"/js/{name}.js")
        for name in ("realtime", "app", "guestbook", "blog", "analytics")
    }
    for response in scripts.values():
        assert response.status_code == 200
        assert "javascript" in response.headers["content-type"]

    assert "new_guestbook_message" in scripts["guestbook"].text
    assert "localStorage" in scripts["blog"].text
    assert "/analytics/dashboard" in scripts["analytics"].text
    assert "/analytics/popular-pages" in scripts["analytics"].text
    assert "/auth/login" in scripts["app"].text
