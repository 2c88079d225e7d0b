"""Tests for the invoice audit HTTP API"""

import pytest
from fastapi.testclient import TestClient

from invoice_auditor.api.app import create_app
from invoice_auditor.api.auth import header_identity

from tests.conftest import INVOICE_PDF, MATCH_RESULT

AUTH = {"X-User-Id": "user-1"}


@pytest.fixture
def client_for(make_orchestrator):
    def _client(**kwargs):
        orchestrator = make_orchestrator(**kwargs)
        app = create_app(orchestrator=orchestrator, identity_resolver=header_identity)
        return TestClient(app)

    return _client


def _post(client, contract_id="C1", headers=AUTH, filename="invoice.pdf", content_type="application/pdf"):
    data = {"contract_id": contract_id} if contract_id is not None else {}
    files = {"invoice": (filename, INVOICE_PDF, content_type)} if filename else None
    return client.post("/invoice-audit", data=data, files=files, headers=headers)


class TestSubmit:

    def test_completed_audit(self, client_for, add_document):
        add_document(primary=True)
        response = _post(client_for(result=MATCH_RESULT))

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "completed"
        assert body["total_discrepancies"] == 0
        assert body["invoice_total"] == 1000
        assert body["currency"] == "EUR"
        assert body["audit_result"]["summary"]["overall_status"] == "match"
        assert body["created_by"] == "user-1"
        assert body["invoice_file_name"] == "invoice.pdf"

    def test_failed_audit_is_still_200(self, client_for, add_document):
        add_document(primary=True)
        response = _post(client_for(text="I could not read the invoice."))

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "failed"
        assert body["error_message"] == "Failed to parse AI response as JSON"
        assert body["audit_result"] is None

    def test_no_contract_document(self, client_for, db):
        response = _post(client_for(result=MATCH_RESULT))

        assert response.status_code == 400
        assert response.json() == {
            "error": "No contract document found. Please upload a contract PDF first."
        }
        assert db.list_audits("C1") == []

    def test_missing_contract_id(self, client_for):
        response = _post(client_for(result=MATCH_RESULT), contract_id=None)
        assert response.status_code == 400
        assert "contract_id" in response.json()["error"]

    def test_missing_invoice(self, client_for):
        response = _post(client_for(result=MATCH_RESULT), filename=None)
        assert response.status_code == 400

    def test_invoice_sent_as_text_field(self, client_for, add_document, db):
        add_document(primary=True)
        client = client_for(result=MATCH_RESULT)
        response = client.post(
            "/invoice-audit",
            data={"contract_id": "C1", "invoice": "notafile"},
            headers=AUTH,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Missing invoice file or contract_id"}
        assert db.list_audits("C1") == []

    def test_document_lookup_failure_is_json_500(self, client_for, db, monkeypatch):
        client = client_for(result=MATCH_RESULT)

        def broken_lookup(contract_id):
            raise RuntimeError("connection refused")

        monkeypatch.setattr(db, "get_contract_documents", broken_lookup)
        response = _post(client)
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to resolve contract document"}

    def test_non_pdf_rejected(self, client_for, add_document):
        add_document(primary=True)
        response = _post(client_for(result=MATCH_RESULT), filename="invoice.png", content_type="image/png")
        assert response.status_code == 400
        assert response.json()["error"] == "Please upload a PDF file"

    def test_unauthenticated(self, client_for, add_document, db):
        add_document(primary=True)
        response = _post(client_for(result=MATCH_RESULT), headers={})
        assert response.status_code == 401
        assert db.list_audits("C1") == []

    def test_upload_failure_is_500(self, client_for, add_document, blobs, monkeypatch):
        add_document(primary=True)
        client = client_for(result=MATCH_RESULT)

        def broken_upload(*args):
            raise ConnectionError("storage unavailable")

        monkeypatch.setattr(blobs, "upload", broken_upload)
        response = _post(client)
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to upload invoice"}


class TestList:

    def test_newest_first(self, client_for, add_document):
        add_document(primary=True)
        client = client_for(result=MATCH_RESULT)
        first = _post(client, filename="first.pdf").json()
        second = _post(client, filename="second.pdf").json()

        response = client.get("/invoice-audit", params={"contract_id": "C1"}, headers=AUTH)
        assert response.status_code == 200
        assert [a["id"] for a in response.json()] == [second["id"], first["id"]]

    def test_empty(self, client_for):
        response = client_for().get("/invoice-audit", params={"contract_id": "C1"}, headers=AUTH)
        assert response.status_code == 200
        assert response.json() == []

    def test_missing_contract_id(self, client_for):
        response = client_for().get("/invoice-audit", headers=AUTH)
        assert response.status_code == 400

    def test_unauthenticated(self, client_for):
        response = client_for().get("/invoice-audit", params={"contract_id": "C1"})
        assert response.status_code == 401

    def test_store_failure(self, client_for, db, monkeypatch):
        client = client_for()

        def broken_list(contract_id):
            raise RuntimeError("connection refused")

        monkeypatch.setattr(db, "list_audits", broken_list)
        response = client.get("/invoice-audit", params={"contract_id": "C1"}, headers=AUTH)
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch audits"}


class TestGetOne:

    def test_existing(self, client_for, add_document):
        add_document(primary=True)
        client = client_for(result=MATCH_RESULT)
        created = _post(client).json()

        response = client.get(f"/invoice-audit/{created['id']}", headers=AUTH)
        assert response.status_code == 200
        assert response.json() == created

    def test_unknown(self, client_for):
        response = client_for().get("/invoice-audit/nope", headers=AUTH)
        assert response.status_code == 404


def test_health(client_for):
    response = client_for().get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["db_mode"] == "sqlite"
