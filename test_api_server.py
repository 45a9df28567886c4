from __future__ import annotations

from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from api.server import create_app
from main import build_pipeline
from shared.config import AppSettings
from shared.models import TextSegment, ToolCall


def _pipeline(tmp_path, segments):
    settings = AppSettings(
        academic_db_path=str(tmp_path / "academic.db"),
        conversation_db_path=str(tmp_path / "conv.db"),
    )
    pipeline = build_pipeline(settings)
    model_adapter = MagicMock()
    model_adapter.converse.return_value = segments
    pipeline.loop.model_adapter = model_adapter
    return pipeline


def test_chat_confirm_flow_over_http(tmp_path):
    pipeline = _pipeline(
        tmp_path, [ToolCall(name="addJurusan", args={"jurusan_data": [{"name": "Teknik Mesin"}]})]
    )
    with TestClient(create_app(pipeline)) as client:
        held = client.post("/v1/chat", json={"message": "add Teknik Mesin", "session_id": "s1"}).json()

        assert held["sessionId"] == "s1"
        assert held["needsConfirmation"] is True
        assert "Teknik Mesin" in held["confirmationPrompt"]
        assert pipeline.store.table_counts()["jurusan"] == 0

        done = client.post(
            "/v1/chat/confirm",
            json={"session_id": "s1", "approved": True, "pending_id": held["pendingActions"]["id"]},
        ).json()

        assert done["success"] is True
        assert "needsConfirmation" not in done
        assert pipeline.store.table_counts()["jurusan"] == 1

        messages = client.get("/v1/sessions/s1/messages").json()["messages"]
        assert [message["role"] for message in messages] == ["user", "assistant", "user", "assistant"]
        assert messages[1]["response"]["needsConfirmation"] is True
    pipeline.close()


def test_rejection_and_session_clear(tmp_path):
    pipeline = _pipeline(tmp_path, [ToolCall(name="deleteJurusan", args={"name": "Teknik Sipil"})])
    with TestClient(create_app(pipeline)) as client:
        client.post("/v1/chat", json={"message": "delete Teknik Sipil", "session_id": "s1"})
        rejected = client.post("/v1/chat/confirm", json={"session_id": "s1", "approved": False}).json()
        assert rejected["success"] is True
        assert "cancelled" in rejected["introText"]

        client.post("/v1/chat", json={"message": "delete Teknik Sipil", "session_id": "s2"})
        assert client.delete("/v1/sessions/s2").json()["status"] == "cleared"
        assert pipeline.gate.pending_for("s2") is None
        assert client.get("/v1/sessions/s2/messages").json()["messages"] == []
    pipeline.close()


def test_text_answer_and_catalog(tmp_path):
    pipeline = _pipeline(tmp_path, [TextSegment(text="Hello!")])
    with TestClient(create_app(pipeline)) as client:
        assert client.get("/health").json() == {"status": "ok"}
        answer = client.post("/v1/chat", json={"message": "hi"}).json()
        assert answer["introText"] == "Hello!"
        assert answer["sessionId"]

        actions = client.get("/v1/actions").json()["actions"]
        assert len(actions) == 26
    pipeline.close()


def test_user_import_and_template(tmp_path):
    pipeline = _pipeline(tmp_path, [])
    pipeline.store.perform_operation("addJurusan", {"jurusan_data": [{"name": "Teknik Elektro"}]})
    pipeline.store.perform_operation(
        "addProdi", {"prodi_data": [{"nama_jurusan": "Teknik Elektro", "name": "Teknik Informatika", "jenjang": "D3"}]}
    )
    with TestClient(create_app(pipeline)) as client:
        template = client.get("/v1/users/template").json()
        assert "nim_or_nidn" in template["columns"]

        assert client.post("/v1/users/import", json={"rows": []}).status_code == 400

        report = client.post("/v1/users/import", json={"rows": template["rows"]}).json()
        assert report == {"totalRows": 2, "successCount": 2, "errors": []}
    pipeline.close()
