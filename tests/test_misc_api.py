import io
import re

from conftest import bearer


def test_health(client):
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"


def test_root_and_docs(client):
    assert client.get("/").get_json()["docs"] == "/apidocs/"
    docs = client.get("/swagger.json")
    assert docs.status_code == 200
    assert "/auth/refresh" in docs.get_json()["paths"]


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/nowhere")
    assert resp.status_code == 404
    assert resp.get_json() == {"error": "NOT_FOUND", "message": "Resource not found", "status": 404}


def test_search_users_and_posts(client, user, register):
    register(email="c@x.com", username="alice", password="secret3")
    client.post("/posts", headers=bearer(user["accessToken"]), json={"title": "t", "content": "Alice in wonderland"})
    client.post("/posts", headers=bearer(user["accessToken"]), json={"title": "t", "content": "unrelated"})

    results = client.get("/search?q=ALICE").get_json()["data"]
    assert [(r["type"], r.get("username") or r.get("content")) for r in results] == [
        ("user", "alice"),
        ("post", "Alice in wonderland"),
    ]


def test_search_limits_results(client, register):
    for i in range(7):
        register(email=f"u{i}@x.com", username=f"match{i}", password="secret1")
    results = client.get("/search?q=match").get_json()["data"]
    assert len(results) == 5


def test_search_matches_wildcards_literally(client, user):
    client.post("/posts", headers=bearer(user["accessToken"]), json={"title": "t", "content": "100% sure"})
    client.post("/posts", headers=bearer(user["accessToken"]), json={"title": "t", "content": "plain"})

    percent = client.get("/search?q=%25").get_json()["data"]
    assert [(r["type"], r["content"]) for r in percent] == [("post", "100% sure")]
    assert client.get("/search?q=_").get_json()["data"] == []


def test_search_without_query(client):
    assert client.get("/search").get_json()["data"] == []


def test_upload_and_fetch_file(client):
    resp = client.post(
        "/files",
        data={"file": (io.BytesIO(b"Test image content"), "testimage.jpg")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    url = resp.get_json()["url"]
    path = url.split("://", 1)[1].split("/", 1)[1]
    assert re.fullmatch(r"storage/\d{13}-[0-9a-f]{8}\.jpg", path)

    fetched = client.get(f"/{path}")
    assert fetched.status_code == 200
    assert fetched.data == b"Test image content"


def test_upload_without_file(client):
    assert client.post("/files", data={}, content_type="multipart/form-data").status_code == 400
