"""End-to-end tests for the video API."""

import time
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app import app
from conftest import FakeRenderer
from services.jobs.app import get_orchestrator

CAPITALS = {
    "topic": "Capitals",
    "questions": [
        {"question": "What is the capital of France?", "answer": "Paris"},
        {"question": "What is the capital of Japan?", "answer": "Tokyo"},
        {"question": "What is the capital of Canada?", "answer": "Ottawa"},
    ],
}


@pytest.fixture
def client():
    """Test client with the lifespan running and ffmpeg replaced."""
    with TestClient(app) as test_client:
        app.state.orchestrator.renderer = FakeRenderer()
        yield test_client
    app.dependency_overrides.clear()


def wait_for_status(client: TestClient, video_id: str, timeout: float = 10.0) -> dict:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        body = client.get(f"/api/v1/videos/status/{video_id}").json()
        if body["status"] in ("completed", "failed"):
            return body
        time.sleep(0.05)
    raise AssertionError(f"Video {video_id} did not finish in {timeout}s")


def test_health(client: TestClient) -> None:
    assert client.get("/health").json()["status"] == "healthy"
    response = client.get("/api/v1/videos/health")
    assert response.status_code == 200
    assert response.json()["service"] == "videos"


def test_capitals_scenario(client: TestClient) -> None:
    response = client.post("/api/v1/videos/generate", json=CAPITALS)
    assert response.status_code == 202
    body = response.json()
    assert body["success"] is True
    video_id = body["video_id"]

    status = wait_for_status(client, video_id)
    assert status["status"] == "completed"
    assert status["progress"] == 100
    assert status["step"] == "Video ready for download!"
    assert status["video_url"] == f"/api/v1/videos/download/{video_id}"
    assert status["error"] is None

    job = app.state.orchestrator.get_job(video_id)
    assert len(job.assets.background_images) == 4
    assert len(job.assets.audio_files.questions) == 3
    assert len(job.assets.audio_files.answers) == 3

    download = client.get(status["video_url"])
    assert download.status_code == 200
    assert download.headers["content-type"] == "video/mp4"
    assert len(download.content) > 0

    partial = client.get(status["video_url"], headers={"Range": "bytes=0-99"})
    assert partial.status_code == 206
    assert len(partial.content) == 100
    assert partial.content == download.content[:100]


@pytest.mark.parametrize(
    "payload",
    [
        {"topic": "Capitals", "questions": CAPITALS["questions"][:1]},
        {"topic": "Capitals", "questions": CAPITALS["questions"] * 2},
        {"topic": "No", "questions": CAPITALS["questions"]},
        {"topic": "Capitals", "questions": [{"question": "Why?", "answer": "Paris"}] * 2},
        {"topic": "Capitals", "questions": [{"question": "What is the capital?", "answer": "P"}] * 2},
    ],
)
def test_invalid_requests_never_reach_orchestrator(client: TestClient, payload: dict) -> None:
    fake = MagicMock()
    app.dependency_overrides[get_orchestrator] = lambda: fake

    response = client.post("/api/v1/videos/generate", json=payload)

    assert response.status_code == 422
    fake.submit.assert_not_called()


def test_unknown_video(client: TestClient) -> None:
    assert client.get("/api/v1/videos/status/nope").status_code == 404
    assert client.get("/api/v1/videos/download/nope").status_code == 404
    assert client.delete("/api/v1/videos/nope").status_code == 404
    assert client.post("/api/v1/videos/cancel/nope").status_code == 404
    assert client.get("/api/v1/videos/assets/nope/intro-bg.jpg").status_code == 404


def test_download_before_completion_conflicts(client: TestClient) -> None:
    orchestrator = app.state.orchestrator
    job_id = orchestrator.store.create("Capitals", [])

    response = client.get(f"/api/v1/videos/download/{job_id}")
    assert response.status_code == 409


def test_assets_are_confined_to_job_directory(client: TestClient) -> None:
    video_id = client.post("/api/v1/videos/generate", json=CAPITALS).json()["video_id"]
    wait_for_status(client, video_id)

    asset = client.get(f"/api/v1/videos/assets/{video_id}/intro-bg.jpg")
    assert asset.status_code == 200
    assert asset.content[:2] == b"\xff\xd8"

    assert client.get(f"/api/v1/videos/assets/{video_id}/%2E%2E").status_code == 400
    assert client.get(f"/api/v1/videos/assets/{video_id}/missing.jpg").status_code == 404


def test_delete_video(client: TestClient) -> None:
    video_id = client.post("/api/v1/videos/generate", json=CAPITALS).json()["video_id"]
    wait_for_status(client, video_id)
    job_dir = app.state.orchestrator.job_dir(video_id)
    assert job_dir.exists()

    assert client.delete(f"/api/v1/videos/{video_id}").status_code == 200
    assert not job_dir.exists()
    assert client.get(f"/api/v1/videos/status/{video_id}").status_code == 404


def test_cancel_completed_video(client: TestClient) -> None:
    video_id = client.post("/api/v1/videos/generate", json=CAPITALS).json()["video_id"]
    wait_for_status(client, video_id)

    response = client.post(f"/api/v1/videos/cancel/{video_id}")
    assert response.status_code == 200
    assert response.json() == {"video_id": video_id, "cancelled": False}


def test_progress_websocket(client: TestClient) -> None:
    video_id = client.post("/api/v1/videos/generate", json=CAPITALS).json()["video_id"]
    wait_for_status(client, video_id)

    with client.websocket_connect(f"/api/v1/videos/ws/{video_id}") as websocket:
        latest = websocket.receive_json()
        assert latest["job_id"] == video_id
        assert latest["status"] == "completed"
        assert latest["progress"] == 100

        websocket.send_json({"action": "ping"})
        assert websocket.receive_json() == {"event": "pong"}


def test_progress_websocket_unknown_job(client: TestClient) -> None:
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/api/v1/videos/ws/unknown") as websocket:
            websocket.receive_json()
