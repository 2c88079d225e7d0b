"""Supabase clients implementing RecordStore and BlobStore"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from invoice_auditor.db.base import BlobStore, RecordStore
from invoice_auditor.utils.config import get_settings

logger = logging.getLogger(__name__)

AUDITS_TABLE = "invoice_audits"
DOCUMENTS_TABLE = "documents"
LIST_PAGE_SIZE = 1000

# Lazy imports to avoid requiring supabase when using sqlite mode
_supabase_client = None
_service_client = None


def _get_supabase_client():
    """Get or create the singleton Supabase client (anon key)."""
    global _supabase_client
    if _supabase_client is None:
        from supabase import ClientOptions, create_client

        settings = get_settings()
        if not settings.supabase_url or not settings.supabase_key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_KEY must be set when DB_MODE=supabase"
            )
        _supabase_client = create_client(
            settings.supabase_url,
            settings.supabase_key,
            options=ClientOptions(
                postgrest_client_timeout=10,
                storage_client_timeout=60,
            ),
        )
    return _supabase_client


def _get_service_client():
    """Get or create the singleton Supabase service-role client (bypasses RLS)."""
    global _service_client
    if _service_client is None:
        from supabase import ClientOptions, create_client

        settings = get_settings()
        key = settings.supabase_service_key or settings.supabase_key
        if not settings.supabase_url or not key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_SERVICE_KEY must be set for write operations"
            )
        _service_client = create_client(
            settings.supabase_url,
            key,
            options=ClientOptions(
                postgrest_client_timeout=10,
                storage_client_timeout=60,
            ),
        )
    return _service_client


class SupabaseClient(RecordStore):
    """Supabase implementation of RecordStore."""

    def __init__(self):
        self._read = _get_supabase_client
        self._write = _get_service_client

    def init_db(self) -> None:
        """Verify the schema exists.
        Tables are created through the Supabase SQL editor / migrations."""
        client = self._read()
        try:
            client.table(AUDITS_TABLE).select("id").limit(1).execute()
            client.table(DOCUMENTS_TABLE).select("id").limit(1).execute()
            logger.info("Supabase schema verified: tables accessible")
        except Exception as e:
            raise RuntimeError(
                f"Supabase schema not initialized ({AUDITS_TABLE}, {DOCUMENTS_TABLE}). Error: {e}"
            ) from e

    def insert_audit(self, audit: dict) -> dict:
        client = self._write()
        data = {k: v for k, v in audit.items() if v is not None}
        result = client.table(AUDITS_TABLE).insert(data).execute()
        return result.data[0]

    def update_audit(self, audit_id: str, fields: dict) -> Optional[dict]:
        client = self._write()
        fields = {**fields, "updated_at": datetime.now(timezone.utc).isoformat()}
        result = (
            client.table(AUDITS_TABLE)
            .update(fields)
            .eq("id", audit_id)
            .eq("status", "processing")
            .execute()
        )
        return result.data[0] if result.data else None

    def get_audit(self, audit_id: str) -> Optional[dict]:
        client = self._read()
        result = (
            client.table(AUDITS_TABLE)
            .select("*")
            .eq("id", audit_id)
            .limit(1)
            .execute()
        )
        return result.data[0] if result.data else None

    def list_audits(self, contract_id: str) -> List[dict]:
        client = self._read()
        result = (
            client.table(AUDITS_TABLE)
            .select("*")
            .eq("contract_id", contract_id)
            .order("created_at", desc=True)
            .execute()
        )
        return result.data or []

    def get_contract_documents(self, contract_id: str) -> List[dict]:
        client = self._read()
        result = (
            client.table(DOCUMENTS_TABLE)
            .select("id, storage_path, file_name, contract_id, is_primary, uploaded_at")
            .eq("contract_id", contract_id)
            .order("uploaded_at", desc=True)
            .execute()
        )
        return result.data or []

    def insert_document(self, document: dict) -> dict:
        client = self._write()
        data = {k: v for k, v in document.items() if v is not None}
        result = client.table(DOCUMENTS_TABLE).insert(data).execute()
        return result.data[0]


class SupabaseStorage(BlobStore):
    """Supabase Storage implementation of BlobStore."""

    def __init__(self):
        self._read = _get_supabase_client
        self._write = _get_service_client

    def upload(self, bucket: str, path: str, content: bytes, content_type: str) -> str:
        client = self._write()
        client.storage.from_(bucket).upload(
            path=path,
            file=content,
            file_options={"content-type": content_type},
        )
        return path

    def download(self, bucket: str, path: str) -> bytes:
        client = self._write()
        return client.storage.from_(bucket).download(path)

    def remove(self, bucket: str, paths: List[str]) -> None:
        if not paths:
            return
        client = self._write()
        client.storage.from_(bucket).remove(paths)

    def list_paths(self, bucket: str, prefix: str) -> List[str]:
        client = self._write()
        folder = prefix.rstrip("/")
        paths = []
        offset = 0
        while True:
            entries = client.storage.from_(bucket).list(
                folder, {"limit": LIST_PAGE_SIZE, "offset": offset}
            )
            # Folders come back with a null id
            paths.extend(
                f"{folder}/{e['name']}" if folder else e["name"]
                for e in entries
                if e.get("id") is not None
            )
            if len(entries) < LIST_PAGE_SIZE:
                return paths
            offset += LIST_PAGE_SIZE


def resolve_user_id(access_token: str) -> Optional[str]:
    """Resolve a Supabase access token to the caller's user id."""
    client = _get_supabase_client()
    try:
        response = client.auth.get_user(access_token)
    except Exception as e:
        logger.info(f"Supabase auth rejected token: {e}")
        return None
    user = getattr(response, "user", None)
    return user.id if user else None


def get_database(mode: str = None) -> RecordStore:
    """Factory: returns appropriate record store implementation.

    mode: 'supabase' or 'sqlite'. Defaults to DB_MODE env var.
    """
    if mode is None:
        mode = get_settings().db_mode

    if mode == "supabase":
        return SupabaseClient()
    else:
        from invoice_auditor.db.sqlite import SQLiteClient

        return SQLiteClient()


def get_blob_store(mode: str = None) -> BlobStore:
    """Factory: returns appropriate blob store implementation."""
    if mode is None:
        mode = get_settings().db_mode

    if mode == "supabase":
        return SupabaseStorage()
    else:
        from invoice_auditor.db.local_storage import LocalBlobStore

        return LocalBlobStore()
