from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from huddle.api.deps import get_db, get_pipeline
from huddle.main import app
from huddle.services.meeting_pipeline import MeetingPipeline

from conftest import FakeExtractor, FakeInsightGenerator, FakeMeetingStore, fixed_probe

VIDEO_PATH = "meetings/team-1/m-1.mp4"


@pytest.fixture
def db():
    return FakeMeetingStore(
        {
            "m-1": {
                "id": "m-1",
                "team_id": "team-1",
                "status": "uploaded",
                "recording_url": "gs://bucket/" + VIDEO_PATH,
                "error": None,
            }
        }
    )


@pytest.fixture
def client(db, storage, tmp_path, recognizers):
    work_root = tmp_path / "work"
    work_root.mkdir()
    pipeline = MeetingPipeline(
        db,
        storage=storage,
        extractor=FakeExtractor(storage, work_root),
        recognizers=recognizers,
        insight_generator=FakeInsightGenerator(error=RuntimeError("model unavailable")),
        duration_probe=fixed_probe(12.0),
    )
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["services"]["database"] == "connected"


def test_object_finalized_runs_pipeline_in_background(client, db, upload_video):
    upload_video(VIDEO_PATH)

    resp = client.post(
        "/events/object-finalized",
        json={"name": VIDEO_PATH, "bucket": "bucket", "contentType": "video/mp4"},
    )

    assert resp.status_code == 200
    assert resp.json() == {"status": "accepted", "name": VIDEO_PATH}
    assert db.meetings["m-1"]["status"] == "processed"


def test_object_finalized_skips_other_objects(client, db):
    resp = client.post(
        "/events/object-finalized",
        json={"name": "avatars/u-1.png", "contentType": "image/png"},
    )

    assert resp.json()["status"] == "skipped"
    assert db.claims == []


def test_object_finalized_errors_stay_in_background(client, db):
    # Recording missing from storage: the trigger is still acknowledged
    resp = client.post(
        "/events/object-finalized",
        json={"name": VIDEO_PATH, "contentType": "video/mp4"},
    )

    assert resp.status_code == 200
    assert db.meetings["m-1"]["status"] == "uploaded"


def test_reprocess_meeting(client, db, upload_video):
    upload_video(VIDEO_PATH)
    db.meetings["m-1"]["status"] = "failed"

    resp = client.post("/reprocess-meeting", json={"meetingId": "m-1"})

    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "message": "Meeting reprocessed successfully",
        "meetingId": "m-1",
        "filePath": VIDEO_PATH,
    }


@pytest.mark.parametrize(
    "payload, status, code",
    [
        ({}, "failed", 400),
        ({"meetingId": "missing"}, "failed", 404),
        ({"meetingId": "m-1"}, "processing", 409),
        ({"meetingId": "m-1"}, "failed", 404),
    ],
)
def test_reprocess_meeting_rejections(client, db, payload, status, code):
    db.meetings["m-1"]["status"] = status

    resp = client.post("/reprocess-meeting", json=payload)

    assert resp.status_code == code
    assert db.meetings["m-1"]["status"] == status


def test_reprocess_meeting_pipeline_failure_is_500(client, db, upload_video, failing_recognizers):
    upload_video(VIDEO_PATH)
    db.meetings["m-1"]["status"] = "failed"
    pipeline = app.dependency_overrides[get_pipeline]()
    pipeline.recognizers = failing_recognizers

    resp = client.post("/reprocess-meeting", json={"meetingId": "m-1"})

    assert resp.status_code == 500
    assert resp.json()["detail"] == "Failed to reprocess meeting: No speech recognition results"
    assert db.meetings["m-1"]["status"] == "failed"
    assert db.meetings["m-1"]["error"] == "No speech recognition results"


def test_meeting_status(client):
    resp = client.get("/meetings/m-1/status")
    assert resp.status_code == 200
    assert resp.json() == {"meetingId": "m-1", "status": "uploaded", "error": None}

    assert client.get("/meetings/nope/status").status_code == 404
