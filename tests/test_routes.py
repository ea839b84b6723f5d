import time

import pytest
from fastapi.testclient import TestClient

from mediamind.core.app import create_app
from mediamind.core.exceptions import StorageError
from mediamind.services.media_store import InMemoryMediaStore


class FailingCreateStore(InMemoryMediaStore):
    async def create_job(self, job):
        raise StorageError("database unavailable")


@pytest.fixture
def client(build_orchestrator, moon_adapters):
    app = create_app(orchestrator=build_orchestrator(moon_adapters))
    with TestClient(app) as c:
        yield c


def wait_for_terminal(client, job_id, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        body = client.get(f"/v1/research/{job_id}").json()
        if body["status"] != "processing":
            return body
        time.sleep(0.02)
    raise AssertionError(f"job {job_id} still processing after {timeout}s")


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["service"] == "mediamind"
    assert body["active_jobs"] == 0


def test_start_research_returns_processing_job(client):
    response = client.post(
        "/v1/research",
        json={"topic": "1969 moon landing", "options": {"media_types": ["video"]}},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["status"] == "processing"
    assert body["topic"] == "1969 moon landing"
    assert body["slug"].startswith("1969-moon-landing-")

    final = wait_for_terminal(client, body["job_id"])
    assert final["status"] == "completed"
    assert final["counts"]["video"] == 3
    assert [m["url"] for m in final["media"]["video"]] == [
        "https://archive.example/a.mp4",
        "https://stock.example/b.mp4",
        "https://pathe.example/c.mp4",
    ]
    assert final["media"]["video"][0]["tier"] == 1


def test_status_without_media(client):
    job_id = client.post(
        "/v1/research", json={"topic": "Berlin Wall", "options": {"media_types": ["video"]}}
    ).json()["job_id"]
    wait_for_terminal(client, job_id)
    body = client.get(f"/v1/research/{job_id}", params={"include_media": "false"}).json()
    assert body["media"] == {}


def test_unknown_job_is_404(client):
    response = client.get("/v1/research/does-not-exist")
    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "HTTP Error"
    assert body["detail"] == "Research job not found"
    assert body["request_id"]


def test_cancel_unknown_job_succeeds(client):
    response = client.delete("/v1/research/does-not-exist")
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "job_id": "does-not-exist",
        "message": "No active job to cancel",
    }


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({}, "Topic field is required"),
        ({"topic": "x"}, "topic:"),
        ({"topic": "Berlin Wall", "options": {"max_videos": -1}}, "options.max_videos:"),
    ],
)
def test_validation_errors_describe_expected_format(client, payload, expected):
    response = client.post("/v1/research", json=payload)
    assert response.status_code == 422
    body = response.json()
    assert any(d.startswith(expected) for d in body["detail"])
    assert "topic" in body["expected_format"]


def test_job_row_failure_is_500(build_orchestrator, moon_adapters):
    app = create_app(orchestrator=build_orchestrator(moon_adapters, store=FailingCreateStore()))
    with TestClient(app) as c:
        response = c.post("/v1/research", json={"topic": "Berlin Wall"})
    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to create project: database unavailable"


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
