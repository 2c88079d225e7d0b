"""SQLite implementation of RecordStore for local development"""

import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from invoice_auditor.db.base import RecordStore
from invoice_auditor.utils.config import get_settings

logger = logging.getLogger(__name__)

AUDIT_COLUMNS = (
    "id", "contract_id", "invoice_file_name", "invoice_file_path",
    "invoice_file_size_bytes", "contract_document_id", "contract_document_path",
    "status", "audit_result", "total_discrepancies", "invoice_total",
    "contract_expected_total", "currency", "error_message", "created_by",
    "created_at", "updated_at",
)

DOCUMENT_COLUMNS = (
    "id", "contract_id", "storage_path", "file_name", "is_primary", "uploaded_at",
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@contextmanager
def get_connection(db_path: Path):
    """Get a database connection as context manager"""
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


class SQLiteClient(RecordStore):
    """SQLite implementation of RecordStore."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = Path(db_path or get_settings().database_path)

    def init_db(self) -> None:
        """Create tables and indexes if missing"""
        with get_connection(self.db_path) as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    id TEXT PRIMARY KEY,
                    contract_id TEXT NOT NULL,
                    storage_path TEXT NOT NULL,
                    file_name TEXT NOT NULL,
                    is_primary INTEGER NOT NULL DEFAULT 0,
                    uploaded_at TIMESTAMP NOT NULL
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_documents_contract
                ON documents(contract_id, uploaded_at)
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS invoice_audits (
                    id TEXT PRIMARY KEY,
                    contract_id TEXT NOT NULL,
                    invoice_file_name TEXT NOT NULL,
                    invoice_file_path TEXT NOT NULL,
                    invoice_file_size_bytes INTEGER NOT NULL,
                    contract_document_id TEXT,
                    contract_document_path TEXT,
                    status TEXT NOT NULL
                        CHECK (status IN ('processing', 'completed', 'failed')),
                    audit_result TEXT,
                    total_discrepancies INTEGER,
                    invoice_total REAL,
                    contract_expected_total REAL,
                    currency TEXT,
                    error_message TEXT,
                    created_by TEXT,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP,
                    CHECK (
                        (status = 'processing' AND audit_result IS NULL AND error_message IS NULL)
                        OR (status = 'completed' AND audit_result IS NOT NULL AND error_message IS NULL)
                        OR (status = 'failed' AND audit_result IS NULL AND error_message IS NOT NULL)
                    )
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_audits_contract
                ON invoice_audits(contract_id, created_at)
            """)

    # Audit records

    def insert_audit(self, audit: dict) -> dict:
        row = {k: v for k, v in audit.items() if k in AUDIT_COLUMNS}
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", _now())
        if row.get("audit_result") is not None:
            row["audit_result"] = json.dumps(row["audit_result"], ensure_ascii=False)

        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        with get_connection(self.db_path) as conn:
            conn.execute(
                f"INSERT INTO invoice_audits ({columns}) VALUES ({placeholders})",
                tuple(row.values()),
            )
        return self.get_audit(row["id"])

    def update_audit(self, audit_id: str, fields: dict) -> Optional[dict]:
        row = {k: v for k, v in fields.items() if k in AUDIT_COLUMNS and k != "id"}
        if row.get("audit_result") is not None:
            row["audit_result"] = json.dumps(row["audit_result"], ensure_ascii=False)
        row["updated_at"] = _now()

        assignments = ", ".join(f"{k} = ?" for k in row)
        with get_connection(self.db_path) as conn:
            cursor = conn.execute(
                f"UPDATE invoice_audits SET {assignments} "
                "WHERE id = ? AND status = 'processing'",
                (*row.values(), audit_id),
            )
            if cursor.rowcount == 0:
                return None
        return self.get_audit(audit_id)

    def get_audit(self, audit_id: str) -> Optional[dict]:
        with get_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM invoice_audits WHERE id = ?", (audit_id,)
            ).fetchone()
            return _decode_audit(row) if row else None

    def list_audits(self, contract_id: str) -> List[dict]:
        with get_connection(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM invoice_audits WHERE contract_id = ? "
                "ORDER BY created_at DESC, rowid DESC",
                (contract_id,),
            ).fetchall()
            return [_decode_audit(r) for r in rows]

    # Contract documents

    def get_contract_documents(self, contract_id: str) -> List[dict]:
        with get_connection(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM documents WHERE contract_id = ? "
                "ORDER BY uploaded_at DESC, id DESC",
                (contract_id,),
            ).fetchall()
            return [_decode_document(r) for r in rows]

    def insert_document(self, document: dict) -> dict:
        row = {k: v for k, v in document.items() if k in DOCUMENT_COLUMNS}
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("uploaded_at", _now())
        if isinstance(row["uploaded_at"], datetime):
            row["uploaded_at"] = row["uploaded_at"].isoformat()
        row["is_primary"] = 1 if row.get("is_primary") else 0

        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        with get_connection(self.db_path) as conn:
            conn.execute(
                f"INSERT INTO documents ({columns}) VALUES ({placeholders})",
                tuple(row.values()),
            )
            saved = conn.execute(
                "SELECT * FROM documents WHERE id = ?", (row["id"],)
            ).fetchone()
        logger.info(f"Registered contract document {row['id']} for contract {row['contract_id']}")
        return _decode_document(saved)


def _decode_audit(row: sqlite3.Row) -> dict:
    data = dict(row)
    if data.get("audit_result"):
        data["audit_result"] = json.loads(data["audit_result"])
    return data


def _decode_document(row: sqlite3.Row) -> dict:
    data = dict(row)
    data["is_primary"] = bool(data.get("is_primary"))
    return data
