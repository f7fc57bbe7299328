import pytest
from fastapi.testclient import TestClient

from admissions.app.db.base import Base
from admissions.app.db.session import engine
from admissions.app.main import app


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def create_lead(client: TestClient, **extra) -> int:
    payload = {"parentsName": "Anil", "kidsName": "Meera", "phone": "9876543210", **extra}
    resp = client.post("/leads", json=payload)
    assert resp.status_code == 201
    return resp.json()["data"]["id"]


def send_stage(client: TestClient, lead_id: int, stage: int):
    return client.post(f"/leads/{lead_id}/stages/{stage}/send")


def test_missing_meeting_link_refused_without_notifier_call(notifier):
    client = TestClient(app)
    lead_id = create_lead(client, meetingDate="2025-03-05", meetingTime="10:00")
    resp = send_stage(client, lead_id, 2)
    assert resp.status_code == 422
    assert resp.json()["missing"] == ["Meeting Link"]
    assert notifier.calls == []
    assert client.get(f"/leads/{lead_id}").json()["stageStatuses"]["stage2_status"] == ""


def test_missing_labels_follow_custom_field_names(notifier):
    client = TestClient(app)
    client.post("/settings/items", json={"type": "custom_field", "name": "Zoom Link", "field_key": "meetingLink"})
    lead_id = create_lead(client)
    resp = send_stage(client, lead_id, 2)
    assert resp.status_code == 422
    assert resp.json()["missing"] == ["Meeting Date", "Meeting Time", "Zoom Link"]
    assert notifier.calls == []


def test_stage_two_send_marks_cell_sent(notifier):
    client = TestClient(app)
    lead_id = create_lead(client, meetingDate="2025-03-05", meetingTime="10:00", meetingLink="https://meet.example/abc")
    resp = send_stage(client, lead_id, 2)
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["stageStatuses"]["stage2_status"] == "SENT"
    assert notifier.calls == [
        {
            "template": "Meeting-agenda-1",
            "destination": "+919876543210",
            "params": ["Anil", "2025-03-05", "10:00", "https://meet.example/abc"],
            "user_name": "Anil",
        }
    ]
    history = client.get(f"/leads/{lead_id}/history").json()
    assert history[0]["action"] == "WhatsApp Message Sent"
    assert history[0]["details"] == "WhatsApp message sent for Stage 2 - Connected"


def test_already_sent_cell_is_refused(notifier):
    client = TestClient(app)
    lead_id = create_lead(client)
    assert send_stage(client, lead_id, 8).status_code == 200
    resp = send_stage(client, lead_id, 8)
    assert resp.status_code == 409
    assert len(notifier.calls) == 1


def test_unknown_stage_returns_404(notifier):
    client = TestClient(app)
    lead_id = create_lead(client)
    resp = send_stage(client, lead_id, 3)
    assert resp.status_code == 404
    assert notifier.calls == []


def test_missing_lead_returns_404(notifier):
    client = TestClient(app)
    assert send_stage(client, 404, 2).status_code == 404


def test_failed_send_leaves_cell_empty(failing_notifier):
    client = TestClient(app)
    lead_id = create_lead(client)
    resp = send_stage(client, lead_id, 9)
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is False
    assert body["side_effects"] == [
        {"name": "notification:stage9", "ok": False, "error": "notifier_api_error:500"}
    ]
    assert body["data"]["stageStatuses"]["stage9_status"] == ""
    actions = [h["action"] for h in client.get(f"/leads/{lead_id}/history").json()]
    assert "WhatsApp Message Sent" not in actions


def test_visit_done_requires_visit_date(notifier):
    client = TestClient(app)
    lead_id = create_lead(client)
    resp = send_stage(client, lead_id, 7)
    assert resp.status_code == 422
    assert resp.json()["missing"] == ["Visit Date"]


def test_clear_expired_resets_unconfirmed_meeting(notifier):
    client = TestClient(app)
    lead_id = create_lead(client, meetingDate="2020-01-06", meetingTime="10:00", meetingLink="https://meet.example/x")
    assert send_stage(client, lead_id, 2).status_code == 200

    resp = client.post("/leads/statuses/clear-expired")
    assert resp.status_code == 200
    assert resp.json()["cleared"] == [{"leadId": lead_id, "statusField": "stage2_status"}]
    assert client.get(f"/leads/{lead_id}").json()["stageStatuses"]["stage2_status"] == ""
    assert client.get(f"/leads/{lead_id}/history").json()[0]["action"] == "Stage Status Cleared"
