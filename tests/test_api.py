import json
import logging
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from conftest import make_conversation
from chatdesk.main import app
from chatdesk.preferences import DEFAULT_MODELS

T1 = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def client(data_dir):
    with TestClient(app) as c:
        yield c


def _body(conv):
    return {"content": conv.to_json()}


def test_startup_creates_default_files(client, data_dir):
    assert json.loads((data_dir / "chat_conversations" / "index.json").read_text()) == []
    assert json.loads((data_dir / "models.json").read_text()) == DEFAULT_MODELS
    assert json.loads((data_dir / "appearance.json").read_text()) == {"scale": 1, "fontSize": 14}
    assert json.loads((data_dir / "prompts.json").read_text()) == []


def test_startup_keeps_existing_files(data_dir):
    data_dir.mkdir(parents=True)
    (data_dir / "models.json").write_text('{"Mine": "me/model"}')
    with TestClient(app) as c:
        assert c.get("/api/models").json() == {"Mine": "me/model"}


def test_save_get_and_index(client):
    conv = make_conversation(T1, title="Hello")
    assert client.post("/api/conversations/a.json", json=_body(conv)).json() == {"success": True}
    assert client.put("/api/conversations/a.json", json=_body(conv)).status_code == 200

    assert client.get("/api/conversations/index").json() == ["a.json"]
    resp = client.get("/api/conversations/a.json")
    assert resp.status_code == 200
    assert resp.json()["content"]["title"] == "Hello"
    assert resp.json()["content"]["id"] == conv.id


def test_get_missing_conversation_is_404(client):
    assert client.get("/api/conversations/none.json").status_code == 404


def test_delete_twice_succeeds(client):
    client.post("/api/conversations/a.json", json=_body(make_conversation(T1)))
    for _ in range(2):
        resp = client.delete("/api/conversations/a.json")
        assert resp.status_code == 200
        assert resp.json() == {"success": True}
    assert client.get("/api/conversations/index").json() == []


def test_bulk_delete_resets_index(client):
    client.post("/api/conversations/a.json", json=_body(make_conversation(T1)))
    client.post("/api/conversations/b.json", json=_body(make_conversation(T1)))
    resp = client.delete("/api/conversations")
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert client.get("/api/conversations/index").json() == []
    assert client.get("/api/conversations/a.json").status_code == 404


def test_invalid_filename_is_400(client):
    conv = make_conversation(T1)
    assert client.post("/api/conversations/notes.txt", json=_body(conv)).status_code == 400
    assert client.post("/api/conversations/index.json", json=_body(conv)).status_code == 400


def test_invalid_body_is_422(client):
    resp = client.post(
        "/api/conversations/a.json",
        json={"content": {"messages": [{"role": "robot", "content": "x"}]}},
    )
    assert resp.status_code == 422


def test_corrupt_index_is_500(client, data_dir):
    (data_dir / "chat_conversations" / "index.json").write_text("{oops")
    assert client.get("/api/conversations/index").status_code == 500


def test_models_round_trip_and_delete(client):
    models = {"A": "org/a", "A again": "org/a", "B": "org/b"}
    assert client.post("/api/models", json=models).json() == {"success": True}
    assert client.delete("/api/models/org/a").json() == {"success": True}
    assert client.get("/api/models").json() == {"B": "org/b"}


def test_appearance_round_trip(client):
    client.post("/api/appearance", json={"scale": 1.25, "fontSize": 16})
    assert client.get("/api/appearance").json() == {"scale": 1.25, "fontSize": 16}


def test_prompts_round_trip_and_delete(client):
    prompts = [
        {"id": "p1", "name": "Coder", "content": "You write code"},
        {"id": "p2", "name": "Poet", "content": "You write poems"},
    ]
    client.post("/api/prompts", json=prompts)
    assert client.delete("/api/prompts/p1").json() == {"success": True}
    assert client.get("/api/prompts").json() == prompts[1:]
    assert client.delete("/api/prompts/p1").status_code == 404


def test_health(client):
    assert client.get("/api/health").json()["status"] == "ok"


def test_logs_capture_and_clear(client, caplog):
    caplog.set_level(logging.INFO)
    client.delete("/api/logs")
    client.post("/api/conversations/a.json", json=_body(make_conversation(T1)))
    messages = [e["message"] for e in client.get("/api/logs").json()["logs"]]
    assert any("a.json" in m for m in messages)

    assert client.delete("/api/logs").json() == {"success": True}
    assert client.get("/api/logs", params={"level": "error"}).json()["logs"] == []
