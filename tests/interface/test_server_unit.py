from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from prepigo.consts import VERSION
from prepigo.server import app, health_check

client = TestClient(app)


def test_health_check():
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == VERSION
    assert data["uptime_seconds"] >= 0


@pytest.mark.asyncio
async def test_health_check_direct():
    response = await health_check()
    assert response.status == "ok"


def test_version():
    response = client.get("/version")
    assert response.status_code == 200
    assert response.json() == {"version": VERSION}


def test_build_queue(collection_file):
    response = client.post(
        "/queue", json={"container_ids": ["bio"], "collection_path": str(collection_file)}
    )

    assert response.status_code == 200
    data = response.json()
    assert [i["id"] for i in data["items"]] == ["b1", "b2", "b3"]
    assert data["items"][0]["exam"] == "Final"
    assert data["new_count"] == 2
    assert data["review_count"] == 1
    assert data["learning_count"] == 0


def test_build_queue_without_exams(collection_file):
    response = client.post(
        "/queue",
        json={"collection_path": str(collection_file), "include_exams": False, "seed": 3},
    )

    assert response.status_code == 200
    data = response.json()
    assert all(i["exam"] is None for i in data["items"])
    assert data["new_count"] == 2


def test_build_queue_for_banks(collection_file):
    response = client.post("/queue", json={"kind": "bank", "collection_path": str(collection_file)})

    assert response.status_code == 200
    assert [i["id"] for i in response.json()["items"]] == ["q1"]


def test_build_queue_unknown_container(collection_file):
    response = client.post(
        "/queue", json={"container_ids": ["nope"], "collection_path": str(collection_file)}
    )
    assert response.status_code == 404
    assert "nope" in response.json()["detail"]


def test_build_queue_invalid_settings(tmp_path):
    path = tmp_path / "collection.yaml"
    path.write_text("settings:\n  scheduler: leitner\ndecks: []\n")

    response = client.post("/queue", json={"collection_path": str(path)})
    assert response.status_code == 422


def test_build_queue_rejects_unknown_kind():
    response = client.post("/queue", json={"kind": "folder"})
    assert response.status_code == 422


def test_build_queue_failure(collection_file):
    with patch(
        "prepigo.application.queue_builder.build_session_queue",
        side_effect=RuntimeError("boom"),
    ):
        response = client.post("/queue", json={"collection_path": str(collection_file)})

    assert response.status_code == 500
    assert "boom" in response.json()["detail"]


def test_counts(collection_file):
    response = client.get("/counts", params={"collection_path": str(collection_file)})

    assert response.status_code == 200
    assert response.json() == [
        {"id": "bio", "name": "Biology", "new": 3, "learn": 0, "due": 1},
        {"id": "bio-cell", "name": "Cells", "new": 1, "learn": 0, "due": 0},
    ]


def test_counts_missing_collection(tmp_path):
    response = client.get("/counts", params={"collection_path": str(tmp_path / "absent.yaml")})
    assert response.status_code == 422
