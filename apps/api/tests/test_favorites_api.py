from fastapi.testclient import TestClient

from app.main import app

client = TestClient(app)


def test_favorite_add_list_remove():
    r = client.post("/api/favorites", json={"drive_file_id": "f1", "name": "clip.mp4", "thumbnail_link": "https://x/t.jpg"})
    assert r.status_code == 200
    assert r.json()["favorite"]["drive_file_id"] == "f1"

    favs = client.get("/api/favorites").json()["favorites"]
    assert [f["drive_file_id"] for f in favs] == ["f1"]

    r = client.delete("/api/favorites/f1")
    assert r.status_code == 200
    assert r.json()["removed"] == 1
    assert client.get("/api/favorites").json()["favorites"] == []


def test_favorite_is_unique_per_drive_file():
    client.post("/api/favorites", json={"drive_file_id": "f2", "name": "old.mp4"})
    client.post("/api/favorites", json={"drive_file_id": "f2", "name": "new.mp4"})

    favs = client.get("/api/favorites").json()["favorites"]
    assert len(favs) == 1
    assert favs[0]["name"] == "new.mp4"


def test_removing_unknown_favorite_is_harmless():
    r = client.delete("/api/favorites/nope")
    assert r.status_code == 200
    assert r.json()["removed"] == 0
