"""Tests for the FastAPI REST endpoints."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from tfgenie.api.app import app, get_service
from tfgenie.workflow.service import WorkflowService

_SESSION_FORM = {
    "cif_number": "ABC12345",
    "lc_number": "LC-2024-001",
    "lifecycle": "Import LC",
}


@pytest.fixture
def client(service: WorkflowService) -> Iterator[TestClient]:
    """Create a FastAPI test client backed by an instant workflow service."""
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create_session(client: TestClient) -> str:
    response = client.post("/sessions", json=_SESSION_FORM)
    assert response.status_code == 201
    return response.json()["session_id"]


def _upload(
    client: TestClient, session_id: str, file_name: str = "lc_draft.pdf"
) -> str:
    response = client.post(
        f"/sessions/{session_id}/documents",
        files=[("files", (file_name, b"%PDF-1.4 test", "application/pdf"))],
    )
    assert response.status_code == 201
    return response.json()[0]["id"]


def _validated(client: TestClient, file_name: str = "lc_draft.pdf") -> tuple[str, str]:
    session_id = _create_session(client)
    document_id = _upload(client, session_id, file_name)
    assert client.post(f"/documents/{document_id}/ocr").status_code == 200
    response = client.post(
        f"/documents/{document_id}/validate", json={"approved": True}
    )
    assert response.status_code == 200
    return session_id, document_id


class TestInfoEndpoints:
    """Tests for health, steps, templates and dashboard."""

    def test_health_returns_ok(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert data["sessions"] == 0

    def test_workflow_steps(self, client: TestClient) -> None:
        steps = client.get("/workflow/steps").json()
        names = [s["name"] for s in steps]
        assert names[:3] == ["Session Init", "Session Box", "Upload"]
        assert len(steps) == 8

    def test_templates(self, client: TestClient) -> None:
        data = client.get("/templates").json()
        assert data["total_templates"] == 232
        assert len(data["templates"]) == 7
        first = data["templates"][0]
        assert first["id"] == "master_lc_001"
        assert first["type"] == "master"
        assert first["band"] == "high"

    def test_dashboard(self, client: TestClient) -> None:
        _create_session(client)
        data = client.get("/dashboard").json()
        assert data["total_sessions"] == 1
        assert data["completed"] == 0
        assert len(data["recent_sessions"]) == 1


class TestSessionEndpoints:
    """Tests for session creation and lookup."""

    def test_create_session(self, client: TestClient) -> None:
        response = client.post(
            "/sessions", json={**_SESSION_FORM, "cif_number": "abc12345"}
        )
        assert response.status_code == 201
        data = response.json()
        assert data["cif_number"] == "ABC12345"
        assert data["status"] == "created"
        assert data["session_id"].startswith("TF_")

    def test_invalid_metadata_returns_422(self, client: TestClient) -> None:
        response = client.post("/sessions", json={**_SESSION_FORM, "lc_number": "LC1"})
        assert response.status_code == 422
        assert "lc_number" in response.json()["detail"]

    def test_unknown_session_returns_404(self, client: TestClient) -> None:
        assert client.get("/sessions/TF_missing").status_code == 404
        assert client.get("/sessions/TF_missing/progress").status_code == 404

    def test_session_detail(self, client: TestClient) -> None:
        session_id = _create_session(client)
        _upload(client, session_id)
        data = client.get(f"/sessions/{session_id}").json()
        assert data["session"]["status"] == "uploading"
        assert len(data["documents"]) == 1
        assert data["documents"][0]["file_size"] == len(b"%PDF-1.4 test")
        assert data["current_step"] == 3
        assert data["can_edit"] is True

    def test_list_sessions(self, client: TestClient) -> None:
        _create_session(client)
        _create_session(client)
        assert len(client.get("/sessions").json()) == 2


class TestDocumentEndpoints:
    """Tests for the document processing endpoints."""

    def test_full_workflow(self, client: TestClient) -> None:
        session_id, document_id = _validated(client)

        compared = client.post(f"/documents/{document_id}/compare").json()
        assert compared["comparison"]["best_match"]["id"] == "master_lc_001"
        assert compared["comparison"]["total_templates_checked"] == 232

        response = client.post(
            f"/documents/{document_id}/select", json={"template_id": "master_lc_001"}
        )
        assert response.status_code == 200

        cataloged = client.post(f"/documents/{document_id}/catalog").json()
        assert cataloged["cataloged_template_id"] == "master_lc_001"
        assert len(cataloged["extracted_fields"]) == 12

        progress = client.get(f"/sessions/{session_id}/progress").json()
        assert progress["current_step"] == 6
        assert progress["steps"][6]["status"] == "active"

        record = client.post(f"/sessions/{session_id}/complete").json()
        assert record["session_id"] == session_id
        assert record["total_documents"] == 1

        progress = client.get(f"/sessions/{session_id}/progress").json()
        assert progress["current_step"] == 7
        assert progress["progress_percent"] == 100

    def test_ocr_result_payload(self, client: TestClient) -> None:
        session_id = _create_session(client)
        document_id = _upload(client, session_id)
        data = client.post(f"/documents/{document_id}/ocr").json()
        assert data["status"] == "processed"
        assert data["ocr_result"]["document_type"] == "Letter of Credit"
        assert 0.85 <= data["ocr_result"]["confidence"] < 0.95

    def test_reject_and_reprocess(self, client: TestClient) -> None:
        session_id = _create_session(client)
        document_id = _upload(client, session_id)
        client.post(f"/documents/{document_id}/ocr")
        rejected = client.post(
            f"/documents/{document_id}/validate", json={"approved": False}
        )
        assert rejected.json()["status"] == "error"

        data = client.post(f"/documents/{document_id}/reprocess").json()
        assert data["iteration"] == 2
        assert data["status"] == "processed"

    def test_validate_before_ocr_returns_409(self, client: TestClient) -> None:
        session_id = _create_session(client)
        document_id = _upload(client, session_id)
        response = client.post(
            f"/documents/{document_id}/validate", json={"approved": True}
        )
        assert response.status_code == 409

    def test_catalog_without_selection_returns_409(self, client: TestClient) -> None:
        _, document_id = _validated(client)
        assert client.post(f"/documents/{document_id}/catalog").status_code == 409

    def test_unknown_document_returns_404(self, client: TestClient) -> None:
        assert client.post("/documents/doc-missing/ocr").status_code == 404

    def test_frozen_session_rejects_uploads(self, client: TestClient) -> None:
        session_id = _create_session(client)
        frozen = client.post(f"/sessions/{session_id}/freeze").json()
        assert frozen["is_frozen"] is True
        response = client.post(
            f"/sessions/{session_id}/documents",
            files=[("files", ("invoice.pdf", b"data", "application/pdf"))],
        )
        assert response.status_code == 409


class TestApprovalEndpoints:
    """Tests for new-document-type requests and their resolution."""

    def test_request_and_resolve(self, client: TestClient) -> None:
        _, document_id = _validated(client, "packing_list.pdf")
        compared = client.post(f"/documents/{document_id}/compare").json()
        assert compared["comparison"]["is_new_document"] is True

        response = client.post(
            f"/documents/{document_id}/new-type-requests",
            json={"document_type": "Packing List"},
        )
        assert response.status_code == 201
        request_id = response.json()["id"]
        assert response.json()["status"] == "pending"

        resolved = client.post(
            f"/approvals/{request_id}",
            json={"approved": True, "admin": "root@tradefi.com", "notes": "added"},
        )
        assert resolved.status_code == 200
        assert resolved.json()["status"] == "approved"

        again = client.post(
            f"/approvals/{request_id}",
            json={"approved": False, "admin": "root@tradefi.com"},
        )
        assert again.status_code == 409

    def test_unknown_approval_returns_404(self, client: TestClient) -> None:
        response = client.post(
            "/approvals/req-missing",
            json={"approved": True, "admin": "root@tradefi.com"},
        )
        assert response.status_code == 404
