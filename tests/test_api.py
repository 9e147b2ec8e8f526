"""Tests for the FastAPI application."""

import io

import pytest
from fastapi.testclient import TestClient

from instastream_api.main import create_app


@pytest.fixture
def app(settings, launcher, timers):
    from conftest import FakeTimer

    return create_app(settings, launcher=launcher, timer_factory=FakeTimer)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def _upload(client, name="clip.mp4", data=b"\x00" * 128, mime="video/mp4"):
    return client.post("/api/upload", files={"video": (name, io.BytesIO(data), mime)})


def test_health_endpoint(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert "timestamp" in body


def test_index_lists_endpoints(client):
    body = client.get("/").json()
    assert body["name"] == "Insta-Stream Server"
    assert "POST /api/stream/start" in body["endpoints"]["stream"]


def test_upload_adds_item(client, settings):
    response = _upload(client, "My Clip.mp4")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Video uploaded successfully"
    assert body["data"]["name"] == "My Clip.mp4"
    assert body["data"]["duration"] is None

    stored = [p for p in settings.upload_dir.iterdir() if p.name.endswith("-MyClip.mp4")]
    assert len(stored) == 1
    assert client.get("/api/playlist").json()["data"]["total"] == 1


def test_upload_rejects_non_video(client, settings):
    response = _upload(client, "notes.txt", b"hello", "text/plain")
    assert response.status_code == 400
    assert response.json()["success"] is False
    assert not [p for p in settings.upload_dir.iterdir() if p.name.endswith("notes.txt")]


def test_upload_rejects_oversize_file(client, settings):
    response = _upload(client, data=b"\x00" * (settings.max_upload_bytes + 1))
    assert response.status_code == 400
    assert "too large" in response.json()["message"]
    assert not [p for p in settings.upload_dir.iterdir() if p.suffix == ".mp4"]


def test_upload_without_file(client):
    response = client.post("/api/upload")
    assert response.status_code == 400
    assert response.json()["message"] == "No video file provided"


def test_start_empty_playlist_is_400(client):
    response = client.post("/api/stream/start")
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "No items in playlist", "code": "empty_playlist"}


def test_stream_lifecycle(client, launcher):
    _upload(client)
    response = client.post("/api/stream/start")
    assert response.status_code == 200
    assert response.json()["data"]["phase"] == "streaming"

    assert client.post("/api/stream/start").status_code == 400
    assert client.post("/api/stream/resume").status_code == 400
    assert client.post("/api/stream/pause").status_code == 200
    assert client.get("/api/stream/status").json()["data"]["phase"] == "paused"
    assert client.post("/api/stream/resume").status_code == 200
    assert client.post("/api/stream/stop").status_code == 200
    assert client.post("/api/stream/stop").status_code == 200
    assert client.post("/api/stream/pause").json()["message"] == "No active stream"
    assert launcher.last.terminated


def test_playlist_routes(client):
    ids = [_upload(client, f"{n}.mp4").json()["data"]["id"] for n in "abc"]

    assert client.post("/api/playlist/current/5").status_code == 400
    assert client.post("/api/playlist/current/1").status_code == 200
    data = client.get("/api/playlist").json()["data"]
    assert data["current_item"]["id"] == ids[1]

    assert client.post("/api/playlist/reorder", json={"order": ids[:2]}).status_code == 400
    assert client.post("/api/playlist/reorder", json={"order": "abc"}).status_code == 422
    assert client.post("/api/playlist/reorder", json={"order": ids[::-1]}).status_code == 200

    assert client.post("/api/playlist/next").json()["data"]["id"] == ids[0]

    assert client.delete("/api/playlist/unknown").status_code == 404
    assert client.delete(f"/api/playlist/{ids[0]}").status_code == 200
    assert client.delete("/api/playlist").status_code == 200
    assert client.get("/api/playlist").json()["data"]["total"] == 0


def test_stream_files_are_served(client, settings):
    (settings.stream_dir / "stream.m3u8").write_text("#EXTM3U\n")
    response = client.get("/stream/stream.m3u8")
    assert response.status_code == 200
    assert response.text.startswith("#EXTM3U")


def test_player_page_renders(client):
    _upload(client, "<i>odd.mp4")
    response = client.get("/player")
    assert response.status_code == 200
    assert "Insta-Stream" in response.text
    assert "&lt;i&gt;odd.mp4" in response.text


def test_playlist_survives_app_restart(settings, launcher):
    with TestClient(create_app(settings, launcher=launcher)) as c:
        item_id = _upload(c).json()["data"]["id"]
    with TestClient(create_app(settings, launcher=launcher)) as c:
        data = c.get("/api/playlist").json()["data"]
    assert [i["id"] for i in data["items"]] == [item_id]
    assert data["current_index"] == 0
