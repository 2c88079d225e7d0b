"""Pytest configuration and fixtures"""

import itertools
import json
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from invoice_auditor.db.local_storage import LocalBlobStore
from invoice_auditor.db.sqlite import SQLiteClient
from invoice_auditor.services.invoker import AIAuditInvoker
from invoice_auditor.services.orchestrator import AuditOrchestrator

CONTRACT_PDF = b"%PDF-1.4 contract fee schedule"
INVOICE_PDF = b"%PDF-1.4 invoice \x00\xff binary"

MATCH_RESULT = {
    "summary": {
        "overall_status": "match",
        "confidence_score": 0.95,
        "total_invoiced": 1000,
        "total_contracted": 1000,
        "total_difference": 0,
        "currency": "EUR",
    },
    "line_items": [],
    "discrepancies": [],
    "recommendations": [],
    "extracted_contract_terms": {"visit_fees": [], "other_fees": [], "currency": "EUR"},
}

DISCREPANCY_RESULT = {
    "summary": {
        "overall_status": "discrepancies_found",
        "confidence_score": 0.8,
        "invoice_number": "INV-2024-017",
        "invoice_date": "2024-03-31",
        "invoice_period": "Q1 2024",
        "total_invoiced": 4650.0,
        "total_contracted": 4000.0,
        "total_difference": 650.0,
        "currency": None,
    },
    "line_items": [
        {
            "description": "Screening Visit",
            "invoice_quantity": 2,
            "invoice_unit_price": 1100.0,
            "invoice_total": 2200.0,
            "contract_unit_price": 1000.0,
            "contract_total": 2000.0,
            "status": "price_mismatch",
            "difference": 200.0,
            "notes": "Unit price 10% above contract",
        },
        {
            "description": "Visit 1",
            "invoice_quantity": 2,
            "invoice_unit_price": 1000.0,
            "invoice_total": 2000.0,
            "contract_unit_price": 1000.0,
            "contract_total": 2000.0,
            "status": "match",
        },
        {
            "description": "Courier fee",
            "invoice_total": 450.0,
            "status": "not_in_contract",
        },
        {
            "description": "Closeout",
            "invoice_total": None,
            "contract_total": 1500.0,
            "status": "missing_from_invoice",
        },
    ],
    "discrepancies": [
        {
            "type": "price_mismatch",
            "severity": "medium",
            "description": "Screening visit billed at 1100 instead of 1000",
            "invoice_value": 1100.0,
            "contract_value": 1000.0,
            "difference": 100.0,
            "line_item_reference": "Screening Visit",
        },
        {
            "type": "unauthorized_charge",
            "severity": "low",
            "description": "Courier fee is not covered by the contract",
            "invoice_value": 450.0,
        },
    ],
    "recommendations": [
        "Request a credit note for the screening visit overcharge",
        "Ask the site to justify the courier fee",
    ],
    "extracted_contract_terms": {
        "visit_fees": [
            {"visit_name": "Screening Visit", "fee": 1000.0},
            {"visit_name": "Visit 1", "fee": 1000.0},
        ],
        "startup_fee": 5000.0,
        "closeout_fee": 1500.0,
        "screen_failure_fee": None,
        "patient_compensation": 50.0,
        "other_fees": [{"description": "Lab kit", "fee": 120.0}],
        "currency": "EUR",
    },
}


class FakeMessages:
    """Stands in for client.messages; records every create() call."""

    def __init__(self, text=None, blocks=None, error=None):
        self.text = text
        self.blocks = blocks
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if self.blocks is not None:
            content = self.blocks
        else:
            content = [SimpleNamespace(type="text", text=self.text)]
        return SimpleNamespace(
            content=content,
            usage=SimpleNamespace(input_tokens=1200, output_tokens=300),
        )


class FakeClient:
    def __init__(self, **kwargs):
        self.messages = FakeMessages(**kwargs)


@pytest.fixture(autouse=True)
def test_env(tmp_path, monkeypatch):
    """Set up test environment with temporary database and storage"""
    monkeypatch.setenv("DB_MODE", "sqlite")
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "test.db"))
    monkeypatch.setenv("STORAGE_PATH", str(tmp_path / "storage"))
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test_key")
    monkeypatch.setenv("LLM_PROVIDER", "anthropic")

    yield


@pytest.fixture
def db(tmp_path):
    client = SQLiteClient(str(tmp_path / "test.db"))
    client.init_db()
    return client


@pytest.fixture
def blobs(tmp_path):
    return LocalBlobStore(str(tmp_path / "storage"))


@pytest.fixture
def add_document(db, blobs):
    """Store a contract PDF and register it; returns the document row."""
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    counter = itertools.count()

    def _add(contract_id="C1", primary=False, minutes=0, doc_id=None, content=CONTRACT_PDF):
        storage_path = f"{contract_id}/{next(counter)}-contract-{minutes}.pdf"
        blobs.upload("contract-documents", storage_path, content, "application/pdf")
        row = {
            "contract_id": contract_id,
            "storage_path": storage_path,
            "file_name": f"contract-{minutes}.pdf",
            "is_primary": primary,
            "uploaded_at": base + timedelta(minutes=minutes),
        }
        if doc_id:
            row["id"] = doc_id
        return db.insert_document(row)

    return _add


@pytest.fixture
def make_orchestrator(db, blobs):
    def _make(text=None, blocks=None, error=None, result=None, **kwargs):
        if result is not None:
            text = json.dumps(result)
        client = FakeClient(text=text, blocks=blocks, error=error)
        invoker = AIAuditInvoker(client, model="test-model", max_tokens=1024)
        orchestrator = AuditOrchestrator(db=db, blobs=blobs, invoker=invoker, **kwargs)
        orchestrator.fake_client = client
        return orchestrator

    return _make
