import os

import pytest
from fastapi.testclient import TestClient

from formpilot import api
from formpilot.config import Config


@pytest.fixture
def client():
    with TestClient(api.app) as client:
        yield client


def upload(client, pdf_bytes, filename="form.pdf", media_type="application/pdf"):
    return client.post("/api/upload-form", files={"form": (filename, pdf_bytes, media_type)})


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["llm_enabled"] is False
    assert body["ocr_enabled"] is False


def test_full_session(client, text_pdf_bytes):
    response = upload(client, text_pdf_bytes)
    assert response.status_code == 200
    body = response.json()
    session_id = body["sessionId"]
    assert [f["label"] for f in body["formSchema"]["fields"]] == ["Full Name", "Email Address"]
    assert body["firstQuestion"]["question"] == "Please provide your Full Name."
    assert body["firstQuestion"]["fieldId"] == "field_1"

    reply = client.post("/api/chat", json={"sessionId": session_id, "message": "Jane Doe"}).json()
    assert reply["fieldId"] == "field_2"
    assert reply["isComplete"] is False

    retry = client.post("/api/chat", json={"sessionId": session_id, "message": "jane"}).json()
    assert retry["validationError"] is True
    assert retry["fieldId"] == "field_2"

    done = client.post("/api/chat", json={"sessionId": session_id, "message": "jane@example.com"}).json()
    assert done["isComplete"] is True

    state = client.get(f"/api/form-state/{session_id}").json()
    assert state["isComplete"] is True
    assert state["currentFieldIndex"] == 2
    assert state["progress"] == {"total": 2, "filled": 2}
    assert state["filledFields"] == {"field_1": "Jane Doe", "field_2": "jane@example.com"}

    exported = client.post("/api/export-pdf", json={"sessionId": session_id})
    assert exported.status_code == 200
    assert exported.headers["content-type"] == "application/pdf"
    assert "filled_form.pdf" in exported.headers["content-disposition"]
    assert exported.content.startswith(b"%PDF")

    assert client.get(f"/api/form-state/{session_id}").status_code == 404
    assert os.listdir(Config.get_upload_dir_path()) == []


def test_export_requires_complete_form(client, text_pdf_bytes):
    session_id = upload(client, text_pdf_bytes).json()["sessionId"]

    response = client.post("/api/export-pdf", json={"sessionId": session_id})

    assert response.status_code == 400
    assert response.json()["reason"] == "form_incomplete"
    assert client.get(f"/api/form-state/{session_id}").status_code == 200


def test_rejects_unsupported_type(client):
    response = upload(client, b"hello", filename="notes.txt", media_type="text/plain")

    assert response.status_code == 400


def test_rejects_oversized_upload(client, monkeypatch, text_pdf_bytes):
    monkeypatch.setattr(Config, "MAX_FILE_SIZE", 16)

    response = upload(client, text_pdf_bytes)

    assert response.status_code == 413


def test_unreadable_image_is_unprocessable(client, png_path):
    with open(png_path, "rb") as f:
        response = upload(client, f.read(), filename="scan.png", media_type="image/png")

    assert response.status_code == 422
    assert response.json()["reason"] == "extraction_failed"
    assert os.listdir(Config.get_upload_dir_path()) == []


def test_chat_requires_session_and_message(client):
    assert client.post("/api/chat", json={"sessionId": "abc"}).status_code == 400
    assert client.post("/api/chat", json={"message": "hi"}).status_code == 400


def test_unknown_session(client):
    response = client.post("/api/chat", json={"sessionId": "missing", "message": "hi"})

    assert response.status_code == 404
    assert response.json()["reason"] == "session_not_found"
    assert client.get("/api/form-state/missing").status_code == 404
    assert client.post("/api/export-pdf", json={"sessionId": "missing"}).status_code == 404


def test_delete_session(client, text_pdf_bytes):
    session_id = upload(client, text_pdf_bytes).json()["sessionId"]

    response = client.delete(f"/api/session/{session_id}")

    assert response.json() == {"success": True, "message": "Session deleted"}
    assert client.get(f"/api/form-state/{session_id}").status_code == 404
    assert os.listdir(Config.get_upload_dir_path()) == []
    assert client.delete(f"/api/session/{session_id}").status_code == 200
