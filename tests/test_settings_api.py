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


def add_item(client: TestClient, type: str, name: str, **extra):
    resp = client.post("/settings/items", json={"type": type, "name": name, **extra})
    assert resp.status_code == 201
    return resp.json()


def test_create_items_assigns_sort_order_and_stage_key():
    client = TestClient(app)
    first = add_item(client, "stage", "New Lead", value={"score": 20, "status": "New"})
    second = add_item(client, "stage", "Connected")
    assert first["stage_key"] == "New Lead"
    assert (first["sort_order"], second["sort_order"]) == (1, 2)


def test_unknown_type_rejected():
    client = TestClient(app)
    resp = client.post("/settings/items", json={"type": "planet", "name": "Mars"})
    assert resp.status_code == 422


def test_settings_snapshot_groups_items():
    client = TestClient(app)
    add_item(client, "grade", "LKG")
    add_item(client, "counsellor", "Asha", value={"user_id": "u-7"})
    add_item(client, "stage", "New Lead", stage_key="new_lead", value={"status": "New"})
    snapshot = client.get("/settings").json()
    assert [g["name"] for g in snapshot["grades"]] == ["LKG"]
    assert snapshot["counsellors"][0]["userId"] == "u-7"
    assert snapshot["stages"][0]["stage_key"] == "new_lead"


def test_update_item():
    client = TestClient(app)
    item = add_item(client, "source", "Instgram")
    resp = client.put(f"/settings/items/{item['id']}", json={"name": "Instagram"})
    assert resp.status_code == 200
    assert resp.json()["name"] == "Instagram"
    assert resp.json()["type"] == "source"


@pytest.mark.parametrize("stage_key", [None, "", "   "])
def test_stage_key_cannot_be_cleared(stage_key):
    client = TestClient(app)
    item = add_item(client, "stage", "New Lead", stage_key="new_lead")
    resp = client.put(f"/settings/items/{item['id']}", json={"stage_key": stage_key})
    assert resp.status_code == 400
    stages = client.get("/settings/items", params={"type": "stage"}).json()
    assert stages[0]["stage_key"] == "new_lead"


def test_stage_key_can_be_renamed():
    client = TestClient(app)
    item = add_item(client, "stage", "New Lead", stage_key="new_lead")
    resp = client.put(f"/settings/items/{item['id']}", json={"stage_key": "fresh"})
    assert resp.status_code == 200
    assert resp.json()["stage_key"] == "fresh"


def test_delete_is_soft():
    client = TestClient(app)
    item = add_item(client, "grade", "Nursery")
    resp = client.delete(f"/settings/items/{item['id']}")
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False
    assert client.get("/settings/items", params={"type": "grade"}).json() == []
    everything = client.get("/settings/items", params={"type": "grade", "include_inactive": True}).json()
    assert [i["name"] for i in everything] == ["Nursery"]


def test_missing_item_returns_404():
    client = TestClient(app)
    assert client.put("/settings/items/99", json={"name": "x"}).status_code == 404
    assert client.delete("/settings/items/99").status_code == 404


def test_move_stage_up():
    client = TestClient(app)
    add_item(client, "stage", "New Lead")
    add_item(client, "stage", "Connected")
    third = add_item(client, "stage", "Visit Done")
    resp = client.post(f"/settings/items/{third['id']}/move", json={"direction": "up"})
    assert resp.status_code == 200
    assert [i["name"] for i in resp.json()] == ["New Lead", "Visit Done", "Connected"]


def test_organization_profile_upsert():
    client = TestClient(app)
    resp = client.put("/settings/organization-profile", json={"name": "Sunrise School"})
    assert resp.json() == {"name": "Sunrise School"}
    resp = client.put("/settings/organization-profile", json={"name": "Sunrise Public School"})
    assert resp.json() == {"name": "Sunrise Public School"}
    assert client.get("/settings").json()["organization_profile"] == {"name": "Sunrise Public School"}
